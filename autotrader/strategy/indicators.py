"""Technical indicators — SMA, EMA, RSI, MACD, Bollinger Bands, VWAP. Pure functions, no I/O.

Every series function is total over its input: the result has the same
length as the input and positions whose window has not filled yet are
``float('nan')``.
"""

import math
from dataclasses import dataclass

from autotrader.market.models import Candle

_NAN = float("nan")


def calculate_sma(values: list[float], period: int) -> list[float]:
    """Simple Moving Average over a trailing *period* window.

    The first ``period - 1`` entries are ``nan``.
    """
    result: list[float] = [_NAN] * len(values)
    for i in range(period - 1, len(values)):
        window = values[i - period + 1 : i + 1]
        result[i] = sum(window) / period
    return result


def calculate_ema(values: list[float], period: int) -> list[float]:
    """Exponential Moving Average series.

    Seeded with the simple average of the first *period* values at index
    ``period - 1``, then:
        ``ema[i] = (price[i] - ema[i-1]) × k + ema[i-1]``
    where ``k = 2 / (period + 1)``.
    """
    result: list[float] = [_NAN] * len(values)
    if len(values) < period:
        return result

    k = 2.0 / (period + 1)
    ema = sum(values[:period]) / period
    result[period - 1] = ema

    for i in range(period, len(values)):
        ema = (values[i] - ema) * k + ema
        result[i] = ema

    return result


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(values: list[float], period: int = 14) -> list[float]:
    """Relative Strength Index using simple (not Wilder-smoothed) averages.

    Algorithm:
        1. delta = close[i] - close[i-1]
        2. Separate gains (positive) and losses (|negative|).
        3. At index i, average the *period* deltas ending at close[i].
        4. RSI = 100 if avg_loss == 0 else 100 - 100 / (1 + avg_gain / avg_loss)

    The first *period* entries are ``nan`` since *period* deltas are needed.
    """
    result: list[float] = [_NAN] * len(values)
    gains: list[float] = []
    losses: list[float] = []
    for i in range(1, len(values)):
        delta = values[i] - values[i - 1]
        gains.append(max(delta, 0.0))
        losses.append(abs(min(delta, 0.0)))

    for i in range(period, len(values)):
        # gains[i - period : i] covers closes[i - period] .. closes[i]
        avg_gain = sum(gains[i - period : i]) / period
        avg_loss = sum(losses[i - period : i]) / period
        if avg_loss == 0:
            result[i] = 100.0
            continue
        rs = avg_gain / avg_loss
        result[i] = 100.0 - 100.0 / (1.0 + rs)

    return result


# ── MACD ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MACDResult:
    """MACD line, signal line, and histogram (all full-length series)."""

    macd: list[float]
    signal: list[float]
    histogram: list[float]


def calculate_macd(
    values: list[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """Moving Average Convergence Divergence.

    MACD   = EMA(fast) − EMA(slow)
    Signal = EMA(signal_period) of the defined MACD values, re-aligned
             to the full series.
    Histogram = MACD − Signal
    """
    fast = calculate_ema(values, fast_period)
    slow = calculate_ema(values, slow_period)
    macd = [f - s for f, s in zip(fast, slow)]

    defined = [m for m in macd if not math.isnan(m)]
    signal_defined = calculate_ema(defined, signal_period)

    signal: list[float] = []
    j = 0
    for m in macd:
        if math.isnan(m):
            signal.append(_NAN)
        else:
            signal.append(signal_defined[j])
            j += 1

    histogram = [m - s for m, s in zip(macd, signal)]
    return MACDResult(macd=macd, signal=signal, histogram=histogram)


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    values: list[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> tuple[list[float], list[float], list[float]]:
    """Calculate Bollinger Bands.

    Middle = SMA(close, *period*)
    Upper  = middle + *std_dev* × σ
    Lower  = middle − *std_dev* × σ

    σ is the population standard deviation of the window.

    Returns ``(upper, middle, lower)`` — each list has the same length
    as *values*.
    """
    n = len(values)
    middle = calculate_sma(values, period)
    upper: list[float] = [_NAN] * n
    lower: list[float] = [_NAN] * n

    for i in range(period - 1, n):
        window = values[i - period + 1 : i + 1]
        mean = middle[i]
        variance = sum((x - mean) ** 2 for x in window) / period
        sigma = math.sqrt(variance)
        upper[i] = mean + std_dev * sigma
        lower[i] = mean - std_dev * sigma

    return upper, middle, lower


# ── VWAP ─────────────────────────────────────────────────────────────────


def calculate_vwap(candles: list[Candle]) -> list[float]:
    """Cumulative Volume Weighted Average Price.

    typical = (high + low + close) / 3
    VWAP[i] = Σ typical·volume / Σ volume, or 0.0 while Σ volume is zero.
    """
    result: list[float] = []
    cumulative_tpv = 0.0
    cumulative_volume = 0.0
    for c in candles:
        typical = (c.high + c.low + c.close) / 3
        cumulative_tpv += typical * c.volume
        cumulative_volume += c.volume
        result.append(
            cumulative_tpv / cumulative_volume if cumulative_volume > 0 else 0.0
        )
    return result


# ── Snapshot ─────────────────────────────────────────────────────────────


def _last_or_zero(series: list[float]) -> float:
    if not series or math.isnan(series[-1]):
        return 0.0
    return series[-1]


def latest_indicators(candles: list[Candle]) -> dict[str, float]:
    """Latest value of the commonly quoted indicators; undefined values are 0.0."""
    closes = [c.close for c in candles]
    return {
        "price": closes[-1] if closes else 0.0,
        "ema20": _last_or_zero(calculate_ema(closes, 20)),
        "ema50": _last_or_zero(calculate_ema(closes, 50)),
        "ema100": _last_or_zero(calculate_ema(closes, 100)),
        "ema200": _last_or_zero(calculate_ema(closes, 200)),
        "rsi14": _last_or_zero(calculate_rsi(closes, 14)),
        "sma20": _last_or_zero(calculate_sma(closes, 20)),
        "vwap": _last_or_zero(calculate_vwap(candles)),
    }
