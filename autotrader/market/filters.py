"""New-pair filters — criteria bounds and name matching. Pure functions, no I/O."""

from typing import Optional

from autotrader.market.models import CandidatePair, PairCriteria


def passes_criteria(pair: CandidatePair, criteria: PairCriteria) -> bool:
    """Return ``True`` when *pair* satisfies every bound set on *criteria*."""
    if criteria.max_age_minutes is not None and pair.age_minutes > criteria.max_age_minutes:
        return False
    if criteria.min_liquidity is not None and pair.liquidity < criteria.min_liquidity:
        return False
    if criteria.max_liquidity is not None and pair.liquidity > criteria.max_liquidity:
        return False
    if criteria.min_volume is not None and pair.volume_24h < criteria.min_volume:
        return False
    if criteria.min_market_cap is not None and pair.market_cap < criteria.min_market_cap:
        return False
    if criteria.max_market_cap is not None and pair.market_cap > criteria.max_market_cap:
        return False
    return True


def filter_pairs(
    pairs: list[CandidatePair],
    criteria: PairCriteria,
) -> list[CandidatePair]:
    """Apply *criteria* and truncate to ``criteria.limit``, preserving order."""
    matched = [p for p in pairs if passes_criteria(p, criteria)]
    return matched[: criteria.limit]


def matches_name(pair: CandidatePair, name_filter: str) -> bool:
    """Case-insensitive symbol/name match.

    A single-character filter matches as a prefix ("starts with P"); a
    longer filter matches anywhere in the symbol or name.
    """
    needle = name_filter.lower()
    symbol = pair.symbol.lower()
    name = pair.name.lower()
    if len(needle) == 1:
        return symbol.startswith(needle) or name.startswith(needle)
    return needle in symbol or needle in name


def filter_by_name(
    pairs: list[CandidatePair],
    name_filter: Optional[str],
) -> list[CandidatePair]:
    """Keep pairs matching *name_filter*; an empty filter keeps everything."""
    if not name_filter:
        return list(pairs)
    return [p for p in pairs if matches_name(p, name_filter)]
