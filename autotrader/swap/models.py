"""Swap data models — typed representations of aggregator and ledger objects."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class Quote:
    """An aggregator quote. Amounts are in base units."""

    input_mint: str
    output_mint: str
    input_amount: int
    output_amount: int
    price_impact: float  # percent
    route: str
    slippage_bps: int
    raw: dict = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class SwapResult:
    """A confirmed swap. Amounts are in base units."""

    signature: str
    input_amount: int
    output_amount: int
    price_impact: float


@dataclass(frozen=True)
class BlockhashInfo:
    """Latest blockhash and the last block height at which it is valid."""

    blockhash: str
    last_valid_block_height: int


@dataclass(frozen=True)
class SignatureStatus:
    """Status of a broadcast transaction as reported by the ledger."""

    confirmation_status: Optional[str]  # "processed" | "confirmed" | "finalized"
    err: Optional[Any] = None
    slot: Optional[int] = None
