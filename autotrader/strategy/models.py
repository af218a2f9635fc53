"""Strategy records, their type-tagged configuration, and evaluation results.

A strategy's configuration is stored as the JSON the chat layer wrote
(camelCase keys).  ``parse_strategy_config`` turns it into exactly one of
``SniperConfig``, ``ConditionalConfig`` or ``SpotConfig``; each carries only
the fields its type uses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from autotrader.errors import StrategyConfigError
from autotrader.market.models import TIMEFRAME_SECONDS, PairCriteria


class StrategyType(str, Enum):
    SNIPER = "SNIPER"
    CONDITIONAL = "CONDITIONAL"
    SPOT = "SPOT"


class Indicator(str, Enum):
    EMA = "EMA"
    RSI = "RSI"
    SMA = "SMA"
    PRICE = "PRICE"


class Trigger(str, Enum):
    PRICE_ABOVE = "price_above"
    PRICE_BELOW = "price_below"
    PRICE_TOUCHES = "price_touches"
    CROSSES_ABOVE = "crosses_above"
    CROSSES_BELOW = "crosses_below"


class Action(str, Enum):
    TRADE_EXECUTED = "TRADE_EXECUTED"
    NO_OPPORTUNITIES = "NO_OPPORTUNITIES"
    ALREADY_BOUGHT = "ALREADY_BOUGHT"
    ERROR = "ERROR"


DEFAULT_PERIOD = 20
DEFAULT_RSI_PERIOD = 14
DEFAULT_RSI_THRESHOLD = 30.0


# ── Configuration variants ───────────────────────────────────────────────


@dataclass(frozen=True)
class Condition:
    """Indicator trigger for a CONDITIONAL strategy."""

    indicator: Indicator
    trigger: Trigger
    period: Optional[int] = None
    timeframe: str = "1H"
    value: Optional[float] = None

    @property
    def effective_period(self) -> int:
        if self.period:
            return self.period
        return DEFAULT_RSI_PERIOD if self.indicator is Indicator.RSI else DEFAULT_PERIOD


@dataclass(frozen=True)
class SniperConfig:
    amount: float = 0.01  # SOL
    slippage_bps: int = 300
    max_age_minutes: float = 60
    min_liquidity: float = 10_000
    max_liquidity: Optional[float] = None
    min_volume: Optional[float] = None
    min_market_cap: Optional[float] = None
    max_market_cap: Optional[float] = None
    name_filter: Optional[str] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None

    def criteria(self, limit: int = 20) -> PairCriteria:
        return PairCriteria(
            max_age_minutes=self.max_age_minutes,
            min_liquidity=self.min_liquidity,
            max_liquidity=self.max_liquidity,
            min_volume=self.min_volume,
            min_market_cap=self.min_market_cap,
            max_market_cap=self.max_market_cap,
            limit=limit,
        )


@dataclass(frozen=True)
class ConditionalConfig:
    input_token: str
    condition: Condition
    output_token: Optional[str] = None
    direction: str = "buy"  # "buy" | "sell"
    amount: float = 0.1
    slippage_bps: int = 100
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None


@dataclass(frozen=True)
class SpotConfig:
    input_token: Optional[str] = None
    output_token: Optional[str] = None
    amount: Optional[float] = None
    slippage_bps: int = 100
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None


StrategyConfig = Union[SniperConfig, ConditionalConfig, SpotConfig]


def _number(raw: dict, key: str, cast=float):
    value = raw.get(key)
    if value is None or value == "":
        return None
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise StrategyConfigError(f"Invalid {key}: {value!r}") from exc


def _or_default(value, default):
    # Zero and empty values fall back to the default, as stored configs expect.
    return value if value else default


def _parse_condition(raw: dict) -> Condition:
    try:
        indicator = Indicator(str(raw.get("indicator", "")).upper())
    except ValueError as exc:
        raise StrategyConfigError(f"Unknown indicator: {raw.get('indicator')!r}") from exc
    try:
        trigger = Trigger(str(raw.get("trigger", "")).lower())
    except ValueError as exc:
        raise StrategyConfigError(f"Unknown trigger: {raw.get('trigger')!r}") from exc

    timeframe = raw.get("timeframe") or "1H"
    if timeframe not in TIMEFRAME_SECONDS:
        raise StrategyConfigError(f"Unsupported timeframe: {timeframe!r}")

    period = _number(raw, "period", int)
    if period is not None and period < 1:
        raise StrategyConfigError(f"Invalid period: {period}")

    return Condition(
        indicator=indicator,
        trigger=trigger,
        period=period,
        timeframe=timeframe,
        value=_number(raw, "value"),
    )


def parse_strategy_config(strategy_type: str, raw: dict) -> StrategyConfig:
    """Build the typed configuration for *strategy_type* from stored JSON.

    Raises ``StrategyConfigError`` for unknown types, malformed values, or
    fields the type requires but the record lacks.
    """
    try:
        kind = StrategyType(str(strategy_type).upper())
    except ValueError as exc:
        raise StrategyConfigError(f"Unknown strategy type: {strategy_type!r}") from exc

    common = {
        "stop_loss": _number(raw, "stopLoss"),
        "take_profit": _number(raw, "takeProfit"),
    }

    if kind is StrategyType.SNIPER:
        name_filter = raw.get("nameFilter") or None
        return SniperConfig(
            amount=_or_default(_number(raw, "amount"), 0.01),
            slippage_bps=_or_default(_number(raw, "slippageBps", int), 300),
            max_age_minutes=_or_default(_number(raw, "maxAgeMinutes"), 60),
            min_liquidity=_or_default(_number(raw, "minLiquidity"), 10_000),
            max_liquidity=_number(raw, "maxLiquidity"),
            min_volume=_number(raw, "minVolume"),
            min_market_cap=_number(raw, "minMarketCap"),
            max_market_cap=_number(raw, "maxMarketCap"),
            name_filter=name_filter,
            **common,
        )

    if kind is StrategyType.CONDITIONAL:
        condition = raw.get("condition")
        input_token = raw.get("inputToken")
        if not condition or not input_token:
            raise StrategyConfigError("Missing condition or inputToken in config")
        direction = str(raw.get("direction") or "buy").lower()
        if direction not in ("buy", "sell"):
            raise StrategyConfigError(f"Invalid direction: {direction!r}")
        return ConditionalConfig(
            input_token=input_token,
            condition=_parse_condition(condition),
            output_token=raw.get("outputToken") or None,
            direction=direction,
            amount=_or_default(_number(raw, "amount"), 0.1),
            slippage_bps=_or_default(_number(raw, "slippageBps", int), 100),
            **common,
        )

    return SpotConfig(
        input_token=raw.get("inputToken") or None,
        output_token=raw.get("outputToken") or None,
        amount=_number(raw, "amount"),
        slippage_bps=_or_default(_number(raw, "slippageBps", int), 100),
        **common,
    )


# ── Records ──────────────────────────────────────────────────────────────


@dataclass
class Strategy:
    """A saved strategy as read from the store; ``config`` is the raw JSON."""

    id: int
    user_id: str
    name: str
    type: str
    config: dict
    is_active: bool = True
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Trade:
    """A trade to persist. Amounts are UI units."""

    user_id: str
    signature: str
    direction: str  # "BUY" | "SELL"
    input_token: str
    output_token: str
    input_amount: float
    output_amount: float
    price_usd: Optional[float] = None
    strategy_id: Optional[int] = None
    type: str = "SPOT"
    status: str = "CONFIRMED"
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class TradeSummary:
    signature: str
    token_address: str
    token_symbol: str
    input_amount: float
    output_amount: float
    direction: str = "BUY"
    explorer_url: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "signature": self.signature,
            "token_address": self.token_address,
            "token_symbol": self.token_symbol,
            "input_amount": self.input_amount,
            "output_amount": self.output_amount,
            "direction": self.direction,
            "explorer_url": self.explorer_url,
        }


@dataclass
class ExecutionResult:
    """Outcome of evaluating one strategy once."""

    strategy_id: int
    strategy_name: str
    action: Action
    details: Optional[str] = None
    trade: Optional[TradeSummary] = None
    error: Optional[str] = None
    meta: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "strategy_id": self.strategy_id,
            "strategy_name": self.strategy_name,
            "action": self.action.value,
            "details": self.details,
            "trade": self.trade.to_dict() if self.trade else None,
            "error": self.error,
        }
