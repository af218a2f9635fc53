"""Exception taxonomy for strategy execution.

Four families, each handled differently by the evaluator:

- ``MarketDataError``   — upstream data unavailable; recovered as "no opportunity".
- ``ExecutionError``    — a swap was attempted and did not provably succeed.
- ``StrategyConfigError`` — the saved configuration cannot be executed.
- ``WalletError``       — no usable signing key for the owner.
"""

from typing import Optional


class TradeError(Exception):
    """Base class carrying a machine-readable ``code``."""

    code = "TRADE_ERROR"

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


# ── Upstream data ────────────────────────────────────────────────────────


class MarketDataError(TradeError):
    code = "MARKET_DATA_UNAVAILABLE"


class QuoteError(MarketDataError):
    """The aggregator could not quote the pair; nothing was broadcast."""

    code = "QUOTE_UNAVAILABLE"


# ── Execution ────────────────────────────────────────────────────────────


class ExecutionError(TradeError):
    code = "EXECUTION_ERROR"


class SwapBuildError(ExecutionError):
    code = "SWAP_BUILD_FAILED"


class BroadcastError(ExecutionError):
    code = "BROADCAST_FAILED"


class RpcError(ExecutionError):
    """The ledger node rejected or failed a JSON-RPC call."""

    code = "RPC_ERROR"


class TransactionFailedError(ExecutionError):
    """The transaction landed on-chain with an error."""

    code = "TRANSACTION_FAILED"

    def __init__(self, signature: str, err: object) -> None:
        super().__init__(
            f"Transaction failed: {err}",
            {"signature": signature, "err": err},
        )
        self.signature = signature


class BlockhashExpiredError(ExecutionError):
    """The chain advanced past the transaction's last valid block height."""

    code = "BLOCKHASH_EXPIRED"

    def __init__(self, signature: str, last_valid_block_height: int) -> None:
        super().__init__(
            "Transaction expired: blockhash no longer valid",
            {
                "signature": signature,
                "last_valid_block_height": last_valid_block_height,
            },
        )
        self.signature = signature


class ConfirmationTimeoutError(ExecutionError):
    """Confirmation could not be resolved; the swap may still have landed."""

    code = "TRANSACTION_TIMEOUT"

    def __init__(self, signature: str, attempts: Optional[int] = None) -> None:
        waited = f"after {attempts} attempts " if attempts is not None else ""
        super().__init__(
            f"Transaction confirmation timeout {waited}"
            f"(signature {signature}); outcome unknown",
            {"signature": signature, "attempts": attempts},
        )
        self.signature = signature


# ── Configuration / authorization ────────────────────────────────────────


class StrategyConfigError(TradeError):
    code = "INVALID_STRATEGY_CONFIG"


class WalletError(TradeError):
    code = "WALLET_NOT_FOUND"
