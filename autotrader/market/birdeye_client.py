"""Birdeye REST API async client — the market data gateway.

Fetches OHLCV candles, newly listed tokens, and token overviews. Responses
are cached per query family for a short TTL to stay under the upstream
rate limit. Any upstream failure degrades to an empty result: "no
opportunities this cycle" is always a safe answer.
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Optional

import httpx

from autotrader.config import Config
from autotrader.errors import MarketDataError
from autotrader.http_retry import RETRY_BASE_DELAY, request_with_retry
from autotrader.market.cache import TTLCache
from autotrader.market.filters import filter_pairs
from autotrader.market.models import (
    TIMEFRAME_SECONDS,
    Candle,
    CandidatePair,
    PairCriteria,
    TokenOverview,
)

logger = logging.getLogger("autotrader.market")

# The new-listing endpoint returns at most this many items per page.
_NEW_LISTING_PAGE_SIZE = 20
# Raw listings scanned per filtered query before bounds are applied.
_FILTER_SCAN_SIZE = 60


class BirdeyeClient:
    """Async client wrapping the Birdeye public API.

    Args:
        config: Application configuration.
        cache: Response cache. Defaults to a ``TTLCache`` using the
            configured TTL.
        now: Wall-clock source in seconds, used for listing age.
    """

    def __init__(
        self,
        config: Config,
        cache: Optional[TTLCache] = None,
        now: Callable[[], float] = time.time,
    ) -> None:
        self._base_url = config.birdeye_api_url
        self._api_key = config.birdeye_api_key
        self._cache = cache if cache is not None else TTLCache(
            config.market_cache_ttl_seconds
        )
        self._now = now
        self._retry_base_delay = RETRY_BASE_DELAY

    @property
    def _headers(self) -> dict:
        return {
            "X-API-KEY": self._api_key,
            "x-chain": "solana",
            "accept": "application/json",
        }

    async def _get_data(self, path: str, params: dict) -> Any:
        """GET *path* and return the ``data`` member of a successful payload.

        Raises ``MarketDataError`` on any failure so callers can degrade.
        """
        if not self._api_key:
            raise MarketDataError("BIRDEYE_API_KEY is not set")
        url = f"{self._base_url}{path}"
        try:
            resp = await request_with_retry(
                "get", url,
                service="Birdeye",
                headers=self._headers,
                base_delay=self._retry_base_delay,
                params=params,
            )
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise MarketDataError(f"Birdeye request failed: {exc}") from exc

        if not payload.get("success") or payload.get("data") is None:
            raise MarketDataError(f"Birdeye returned no data for {path}")
        return payload["data"]

    # ── Candles ──────────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        token: str,
        timeframe: str = "1H",
        limit: int = 100,
    ) -> list[Candle]:
        """Fetch OHLCV candles for *token*, oldest first.

        Returns an empty list when the provider is unavailable.
        """
        key = ("candles", token, timeframe, limit)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        step = TIMEFRAME_SECONDS.get(timeframe)
        if step is None:
            logger.warning("Unknown timeframe %r — no candles fetched", timeframe)
            return []

        time_to = int(self._now())
        params = {
            "address": token,
            "type": timeframe,
            "time_from": time_to - limit * step,
            "time_to": time_to,
        }
        try:
            data = await self._get_data("/defi/ohlcv", params)
        except MarketDataError as exc:
            logger.warning("Candles unavailable for %s %s: %s", token, timeframe, exc)
            return []

        candles: list[Candle] = []
        for item in data.get("items") or []:
            try:
                candles.append(
                    Candle(
                        timestamp=int(item["unixTime"]) * 1000,
                        open=float(item["o"]),
                        high=float(item["h"]),
                        low=float(item["l"]),
                        close=float(item["c"]),
                        volume=float(item.get("v") or 0.0),
                    )
                )
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed candle: %r", item)
        candles.sort(key=lambda c: c.timestamp)
        candles = candles[-limit:]

        if candles:
            self._cache.set(key, candles)
        return candles

    # ── New listings ─────────────────────────────────────────────────────

    async def fetch_new_pairs(self, limit: int = 20) -> list[CandidatePair]:
        """Fetch the most recent token listings, newest first.

        Pages through the listing endpoint (``time_to`` cursor) until *limit*
        pairs are collected or the feed runs out. Returns whatever was
        collected before a failure, possibly nothing.
        """
        key = ("new_pairs", limit)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        pairs: list[CandidatePair] = []
        seen: set[str] = set()
        time_to: Optional[int] = None

        while len(pairs) < limit:
            params: dict = {
                "limit": min(_NEW_LISTING_PAGE_SIZE, limit - len(pairs)),
                "meme_platform_enabled": "true",
            }
            if time_to is not None:
                params["time_to"] = time_to
            try:
                data = await self._get_data("/defi/v2/tokens/new_listing", params)
            except MarketDataError as exc:
                logger.warning("New listings unavailable: %s", exc)
                break

            items = data.get("items") or []
            page = [p for p in (self._parse_listing(i) for i in items) if p]
            page = [p for p in page if p.address not in seen]
            if not page:
                break
            for p in page:
                seen.add(p.address)
            pairs.extend(page)
            # Next page: strictly older than the oldest listing seen.
            time_to = min(p.listed_at for p in page) // 1000 - 1
            if len(items) < params["limit"]:
                break

        pairs = pairs[:limit]
        if pairs:
            self._cache.set(key, pairs)
        return pairs

    async def fetch_filtered_new_pairs(
        self,
        criteria: PairCriteria,
    ) -> list[CandidatePair]:
        """Return new pairs satisfying every bound in *criteria*."""
        scan = max(criteria.limit, _FILTER_SCAN_SIZE)
        pairs = await self.fetch_new_pairs(limit=scan)
        matched = filter_pairs(pairs, criteria)
        logger.debug(
            "Filtered new pairs: %d of %d match %s", len(matched), len(pairs), criteria,
        )
        return matched

    def _parse_listing(self, item: dict) -> Optional[CandidatePair]:
        address = item.get("address")
        if not address:
            return None
        listed_at = _parse_timestamp_ms(
            item.get("liquidityAddedAt") or item.get("listingTime")
        )
        if listed_at is None:
            listed_at = int(self._now() * 1000)
        age_minutes = max(0.0, (self._now() * 1000 - listed_at) / 60_000)
        return CandidatePair(
            address=address,
            symbol=item.get("symbol") or "???",
            name=item.get("name") or "Unknown",
            price=float(item.get("price") or 0.0),
            liquidity=float(item.get("liquidity") or 0.0),
            volume_24h=float(item.get("v24hUSD") or item.get("volume24h") or 0.0),
            market_cap=float(item.get("mc") or item.get("marketcap") or 0.0),
            listed_at=listed_at,
            age_minutes=age_minutes,
            dex=item.get("source"),
        )

    # ── Token overview ───────────────────────────────────────────────────

    async def fetch_token_overview(self, token: str) -> Optional[TokenOverview]:
        """Return price/liquidity/volume/market-cap/holders, or ``None``."""
        key = ("overview", token)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            data = await self._get_data("/defi/token_overview", {"address": token})
            overview = TokenOverview(
                address=data.get("address", token),
                symbol=data.get("symbol") or "???",
                name=data.get("name") or "Unknown",
                decimals=int(data.get("decimals") or 0),
                price=float(data.get("price") or 0.0),
                price_change_24h=float(data.get("priceChange24hPercent") or 0.0),
                volume_24h=float(data.get("v24hUSD") or 0.0),
                liquidity=float(data.get("liquidity") or 0.0),
                market_cap=float(data.get("mc") or data.get("marketCap") or 0.0),
                holders=int(data.get("holder") or 0),
            )
        except (MarketDataError, TypeError, ValueError) as exc:
            logger.warning("Token overview unavailable for %s: %s", token, exc)
            return None

        self._cache.set(key, overview)
        return overview


def _parse_timestamp_ms(value: Any) -> Optional[int]:
    """Accept unix seconds, unix milliseconds, or an ISO-8601 string."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        # Seconds vs milliseconds by magnitude
        return int(value * 1000) if value < 1e12 else int(value)
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return int(dt.timestamp() * 1000)
