"""Tests for autotrader.strategy.indicators — closed-form reference values."""

import math

import pytest

from autotrader.market.models import Candle
from autotrader.strategy.indicators import (
    calculate_bollinger,
    calculate_ema,
    calculate_macd,
    calculate_rsi,
    calculate_sma,
    calculate_vwap,
    latest_indicators,
)


def _nan_count(series: list[float]) -> int:
    return sum(1 for v in series if math.isnan(v))


class TestSMA:
    def test_known_values(self):
        result = calculate_sma([1.0, 2.0, 3.0, 4.0, 5.0], 3)
        assert _nan_count(result) == 2
        assert result[2:] == pytest.approx([2.0, 3.0, 4.0])

    def test_short_input_all_nan(self):
        result = calculate_sma([1.0, 2.0], 5)
        assert len(result) == 2
        assert _nan_count(result) == 2

    def test_empty(self):
        assert calculate_sma([], 3) == []


class TestEMA:
    def test_ema_period_one_equals_input(self):
        values = [3.0, 1.5, 4.0, 1.0, 5.9, 2.6]
        assert calculate_ema(values, 1) == pytest.approx(values)

    def test_seed_is_simple_average(self):
        result = calculate_ema([2.0, 4.0, 6.0, 8.0], 3)
        assert _nan_count(result) == 2
        assert result[2] == pytest.approx(4.0)
        # k = 0.5 → (8 - 4) * 0.5 + 4
        assert result[3] == pytest.approx(6.0)

    def test_constant_series(self):
        result = calculate_ema([7.0] * 30, 10)
        assert result[-1] == pytest.approx(7.0)

    def test_short_input_all_nan(self):
        result = calculate_ema([1.0, 2.0, 3.0], 10)
        assert len(result) == 3
        assert _nan_count(result) == 3


class TestRSI:
    def test_monotonic_increase_is_100(self):
        values = [float(i) for i in range(1, 40)]
        result = calculate_rsi(values, 14)
        assert _nan_count(result) == 14
        assert all(v == 100.0 for v in result[14:])

    def test_monotonic_decrease_is_0(self):
        values = [float(i) for i in range(40, 1, -1)]
        result = calculate_rsi(values, 14)
        assert result[-1] == pytest.approx(0.0)

    def test_known_value(self):
        # Deltas: +1, -1, +2, -1 → gains 3, losses 2 over 4 periods
        result = calculate_rsi([10.0, 11.0, 10.0, 12.0, 11.0], 4)
        rs = (3 / 4) / (2 / 4)
        assert result[4] == pytest.approx(100 - 100 / (1 + rs))

    def test_alternating_is_50(self):
        values = [10.0, 11.0] * 10
        result = calculate_rsi(values, 4)
        assert result[-1] == pytest.approx(50.0)

    def test_short_input_all_nan(self):
        result = calculate_rsi([1.0, 2.0, 3.0], 14)
        assert len(result) == 3
        assert _nan_count(result) == 3


class TestMACD:
    def test_lengths_and_histogram(self):
        values = [100 + math.sin(i / 3) * 5 for i in range(60)]
        result = calculate_macd(values)
        assert len(result.macd) == len(result.signal) == len(result.histogram) == 60
        i = 59
        assert result.histogram[i] == pytest.approx(result.macd[i] - result.signal[i])

    def test_macd_undefined_until_slow_fills(self):
        values = [float(i) for i in range(40)]
        result = calculate_macd(values, 12, 26, 9)
        assert math.isnan(result.macd[24])
        assert not math.isnan(result.macd[25])
        # signal needs 9 defined MACD values
        assert math.isnan(result.signal[32])
        assert not math.isnan(result.signal[33])

    def test_short_input(self):
        result = calculate_macd([1.0, 2.0])
        assert _nan_count(result.macd) == 2


class TestBollinger:
    def test_population_std(self):
        upper, middle, lower = calculate_bollinger([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0], 8, 2.0)
        # population sd of this classic sample is exactly 2
        assert middle[-1] == pytest.approx(5.0)
        assert upper[-1] == pytest.approx(9.0)
        assert lower[-1] == pytest.approx(1.0)

    def test_short_input(self):
        upper, middle, lower = calculate_bollinger([1.0], 20)
        assert _nan_count(upper + middle + lower) == 3


class TestVWAP:
    def test_cumulative(self):
        candles = [
            Candle(0, 1.0, 3.0, 1.0, 2.0, 10.0),   # typical 2
            Candle(1, 2.0, 6.0, 2.0, 4.0, 30.0),   # typical 4
        ]
        result = calculate_vwap(candles)
        assert result[0] == pytest.approx(2.0)
        assert result[1] == pytest.approx((2 * 10 + 4 * 30) / 40)

    def test_zero_volume(self):
        candles = [Candle(0, 1.0, 1.0, 1.0, 1.0, 0.0)]
        assert calculate_vwap(candles) == [0.0]


class TestLatestIndicators:
    def test_undefined_reported_as_zero(self):
        candles = [Candle(i, 1.0, 1.0, 1.0, 1.0 + i, 1.0) for i in range(30)]
        snapshot = latest_indicators(candles)
        assert snapshot["price"] == pytest.approx(30.0)
        assert snapshot["ema200"] == 0.0
        assert snapshot["rsi14"] == 100.0
        assert snapshot["sma20"] == pytest.approx(sum(range(11, 31)) / 20)
