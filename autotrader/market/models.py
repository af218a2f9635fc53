"""Market data models — typed representations of Birdeye API objects."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Candle:
    """A single OHLCV bar."""

    timestamp: int  # unix milliseconds
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class CandidatePair:
    """A newly listed token observed during one evaluation cycle."""

    address: str
    symbol: str
    name: str
    price: float
    liquidity: float
    volume_24h: float
    market_cap: float
    listed_at: int  # unix milliseconds
    age_minutes: float
    dex: Optional[str] = None


@dataclass(frozen=True)
class TokenOverview:
    """Token summary from the overview endpoint."""

    address: str
    symbol: str
    name: str
    decimals: int
    price: float
    price_change_24h: float
    volume_24h: float
    liquidity: float
    market_cap: float
    holders: int


@dataclass(frozen=True)
class PairCriteria:
    """Conjunctive new-pair filter. ``None`` bounds are not applied."""

    max_age_minutes: Optional[float] = None
    min_liquidity: Optional[float] = None
    max_liquidity: Optional[float] = None
    min_volume: Optional[float] = None
    min_market_cap: Optional[float] = None
    max_market_cap: Optional[float] = None
    limit: int = 20


# ── Timeframes ───────────────────────────────────────────────────────────

TIMEFRAME_SECONDS: dict[str, int] = {
    "1m": 60,
    "3m": 3 * 60,
    "5m": 5 * 60,
    "15m": 15 * 60,
    "30m": 30 * 60,
    "1H": 60 * 60,
    "2H": 2 * 60 * 60,
    "4H": 4 * 60 * 60,
    "6H": 6 * 60 * 60,
    "8H": 8 * 60 * 60,
    "12H": 12 * 60 * 60,
    "1D": 24 * 60 * 60,
    "3D": 3 * 24 * 60 * 60,
    "1W": 7 * 24 * 60 * 60,
    "1M": 30 * 24 * 60 * 60,
}
