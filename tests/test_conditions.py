"""Tests for autotrader.strategy.conditions — trigger rules per indicator family."""

import pytest

from autotrader.errors import StrategyConfigError
from autotrader.strategy.conditions import evaluate_condition
from autotrader.strategy.indicators import calculate_ema, calculate_rsi
from autotrader.strategy.models import Condition, Indicator, Trigger


def _cond(indicator, trigger, period=None, value=None) -> Condition:
    return Condition(indicator=Indicator(indicator), trigger=Trigger(trigger), period=period, value=value)


# ── EMA / SMA / PRICE: close vs indicator ────────────────────────────────


class TestPriceFamily:
    def test_ema_crosses_above(self):
        closes = [1.0] * 60 + [2.0]
        check = evaluate_condition(_cond("EMA", "crosses_above", 50), closes)
        ema = calculate_ema(closes, 50)
        assert closes[-2] <= ema[-2]
        assert closes[-1] > ema[-1]
        assert check.met
        assert check.indicator_value == pytest.approx(ema[-1])
        assert check.current_price == 2.0

    def test_ema_no_cross_when_already_above(self):
        closes = [1.0] * 60 + [2.0, 2.1]
        assert not evaluate_condition(_cond("EMA", "crosses_above", 50), closes).met

    def test_sma_crosses_below(self):
        closes = [5.0] * 25 + [4.0]
        assert evaluate_condition(_cond("SMA", "crosses_below", 20), closes).met

    def test_price_above_and_below(self):
        closes = [10.0, 11.0, 12.0]
        assert evaluate_condition(_cond("PRICE", "price_above", value=11.5), closes).met
        assert not evaluate_condition(_cond("PRICE", "price_below", value=11.5), closes).met

    def test_price_touches_within_half_percent(self):
        assert evaluate_condition(_cond("PRICE", "price_touches", value=100.0), [100.4]).met
        assert not evaluate_condition(_cond("PRICE", "price_touches", value=100.0), [100.6]).met

    def test_price_requires_value(self):
        with pytest.raises(StrategyConfigError):
            evaluate_condition(_cond("PRICE", "price_above"), [1.0, 2.0])

    def test_undefined_indicator_never_triggers(self):
        closes = [1.0] * 10
        assert not evaluate_condition(_cond("EMA", "price_below", 50), closes).met

    def test_default_period_is_20(self):
        closes = [1.0] * 19 + [0.5]
        # EMA(20) first defined on the 20th close
        check = evaluate_condition(_cond("EMA", "price_below"), closes)
        assert check.met


# ── RSI: RSI vs threshold ────────────────────────────────────────────────


class TestRSIFamily:
    RISING = [float(i) for i in range(1, 30)]
    FALLING = [float(i) for i in range(30, 1, -1)]

    def test_rsi_compares_rsi_not_price(self):
        # last close is 29, below 70; RSI is 100
        assert evaluate_condition(_cond("RSI", "price_above", 14, 70), self.RISING).met
        assert not evaluate_condition(_cond("RSI", "price_below", 14, 70), self.RISING).met

    def test_default_threshold_is_30(self):
        assert evaluate_condition(_cond("RSI", "price_below", 14), self.FALLING).met

    def test_touches_within_two_points(self):
        closes = [10.0, 11.0] * 10
        rsi = calculate_rsi(closes, 4)[-1]
        assert rsi == pytest.approx(50.0)
        assert evaluate_condition(_cond("RSI", "price_touches", 4, 51.5), closes).met
        assert not evaluate_condition(_cond("RSI", "price_touches", 4, 53), closes).met

    def test_crosses_above_uses_previous_rsi(self):
        # steady decline then a sharp rally pushes RSI(4) through 50
        closes = [10.0, 9.0, 8.0, 7.0, 6.0, 5.0, 9.0]
        rsi = calculate_rsi(closes, 4)
        assert rsi[-2] <= 50 < rsi[-1]
        assert evaluate_condition(_cond("RSI", "crosses_above", 4, 50), closes).met
        assert not evaluate_condition(_cond("RSI", "crosses_below", 4, 50), closes).met

    def test_insufficient_history(self):
        check = evaluate_condition(_cond("RSI", "price_above", 14, 10), [1.0, 2.0, 3.0])
        assert not check.met


def test_empty_closes():
    assert not evaluate_condition(_cond("EMA", "price_above", 5), []).met


def test_description_mentions_indicator():
    check = evaluate_condition(_cond("EMA", "price_above", 3), [1.0, 2.0, 3.0, 4.0])
    assert "EMA(3)" in check.description
    assert check.description.startswith("price_above")
