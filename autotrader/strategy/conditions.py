"""CONDITIONAL trigger evaluation over a close-price series.

RSI conditions compare the RSI value against a threshold.  EMA, SMA and
PRICE conditions compare the close price against the indicator value.
"""

import logging
import math
from dataclasses import dataclass

from autotrader.errors import StrategyConfigError
from autotrader.strategy.indicators import calculate_ema, calculate_rsi, calculate_sma
from autotrader.strategy.models import (
    DEFAULT_RSI_THRESHOLD,
    Condition,
    Indicator,
    Trigger,
)

logger = logging.getLogger("autotrader.strategy")

RSI_TOUCH_POINTS = 2.0
PRICE_TOUCH_PCT = 0.005


@dataclass(frozen=True)
class ConditionCheck:
    """Result of checking one condition at the latest candle."""

    met: bool
    indicator_value: float
    current_price: float
    description: str


def _defined(*values: float) -> bool:
    return all(not math.isnan(v) for v in values)


def _crosses_above(prev: float, prev_level: float, cur: float, level: float) -> bool:
    return _defined(prev, prev_level, cur, level) and prev <= prev_level and cur > level


def _crosses_below(prev: float, prev_level: float, cur: float, level: float) -> bool:
    return _defined(prev, prev_level, cur, level) and prev >= prev_level and cur < level


def _check_rsi(condition: Condition, closes: list[float]) -> tuple[bool, float]:
    rsi = calculate_rsi(closes, condition.effective_period)
    threshold = condition.value if condition.value is not None else DEFAULT_RSI_THRESHOLD
    current = rsi[-1]
    previous = rsi[-2] if len(rsi) >= 2 else float("nan")
    if not _defined(current):
        return False, current

    trigger = condition.trigger
    if trigger is Trigger.PRICE_ABOVE:
        return current > threshold, current
    if trigger is Trigger.PRICE_BELOW:
        return current < threshold, current
    if trigger is Trigger.PRICE_TOUCHES:
        return abs(current - threshold) <= RSI_TOUCH_POINTS, current
    if trigger is Trigger.CROSSES_ABOVE:
        return _crosses_above(previous, threshold, current, threshold), current
    return _crosses_below(previous, threshold, current, threshold), current


def _indicator_series(condition: Condition, closes: list[float]) -> list[float]:
    if condition.indicator is Indicator.EMA:
        return calculate_ema(closes, condition.effective_period)
    if condition.indicator is Indicator.SMA:
        return calculate_sma(closes, condition.effective_period)
    if condition.value is None:
        raise StrategyConfigError("PRICE condition requires a value")
    return [condition.value] * len(closes)


def _check_price(condition: Condition, closes: list[float]) -> tuple[bool, float]:
    series = _indicator_series(condition, closes)
    level = series[-1]
    price = closes[-1]
    if not _defined(level):
        return False, level

    trigger = condition.trigger
    if trigger is Trigger.PRICE_ABOVE:
        return price > level, level
    if trigger is Trigger.PRICE_BELOW:
        return price < level, level
    if trigger is Trigger.PRICE_TOUCHES:
        if level == 0:
            return False, level
        return abs(price - level) / abs(level) < PRICE_TOUCH_PCT, level

    if len(closes) < 2:
        return False, level
    prev_price, prev_level = closes[-2], series[-2]
    if trigger is Trigger.CROSSES_ABOVE:
        return _crosses_above(prev_price, prev_level, price, level), level
    return _crosses_below(prev_price, prev_level, price, level), level


def evaluate_condition(condition: Condition, closes: list[float]) -> ConditionCheck:
    """Check *condition* at the last entry of *closes* (oldest first).

    Raises ``StrategyConfigError`` for a PRICE condition without a value.
    """
    if not closes:
        return ConditionCheck(False, float("nan"), float("nan"), "no price data")

    if condition.indicator is Indicator.RSI:
        met, value = _check_rsi(condition, closes)
    else:
        met, value = _check_price(condition, closes)

    label = condition.indicator.value
    if condition.indicator is not Indicator.PRICE:
        label = f"{label}({condition.effective_period})"
    description = (
        f"{condition.trigger.value} {label} = {value:.4f}, "
        f"current price = {closes[-1]:.4f}"
    )
    logger.debug("Condition %s met=%s", description, met)
    return ConditionCheck(met, value, closes[-1], description)
