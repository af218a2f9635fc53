"""Transaction confirmation by polling.

Each round checks the signature status first, then whether the chain has
moved past the blockhash's validity window, then sleeps.  The three outcomes
other than success are kept distinct: a failed transaction and an expired
blockhash are definitive, a timeout is not.
"""

import asyncio
import logging

from autotrader.errors import (
    BlockhashExpiredError,
    ConfirmationTimeoutError,
    RpcError,
    TransactionFailedError,
)
from autotrader.swap.models import BlockhashInfo

logger = logging.getLogger("autotrader.chain")

CONFIRMED_STATES = {"confirmed", "finalized"}


async def confirm_transaction(
    rpc,
    signature: str,
    blockhash: BlockhashInfo,
    max_polls: int = 30,
    poll_interval: float = 1.0,
) -> int:
    """Poll until *signature* is confirmed.

    Args:
        rpc: Anything exposing ``get_signature_status`` and ``get_block_height``.
        signature: Transaction signature returned by the broadcast.
        blockhash: Blockhash the transaction was built against.
        max_polls: Number of status checks before giving up.
        poll_interval: Seconds between checks.

    Returns:
        The number of polls it took.

    Raises:
        TransactionFailedError: Status reported an on-chain error.
        BlockhashExpiredError: Block height passed ``last_valid_block_height``.
        ConfirmationTimeoutError: Budget exhausted; the outcome is unknown.
    """
    for attempt in range(1, max_polls + 1):
        try:
            status = await rpc.get_signature_status(signature)
            # An error is final at any commitment level.
            if status is not None and status.err:
                raise TransactionFailedError(signature, status.err)
            if status is not None and status.confirmation_status in CONFIRMED_STATES:
                logger.info(
                    "Transaction %s %s after %d poll(s)",
                    signature, status.confirmation_status, attempt,
                )
                return attempt

            height = await rpc.get_block_height()
            if height > blockhash.last_valid_block_height:
                raise BlockhashExpiredError(signature, blockhash.last_valid_block_height)
        except RpcError as exc:
            # Transient node failure: this poll is spent, the outcome is still open.
            logger.warning(
                "Confirmation poll %d/%d for %s failed: %s",
                attempt, max_polls, signature, exc,
            )

        if attempt < max_polls:
            await asyncio.sleep(poll_interval)

    raise ConfirmationTimeoutError(signature, max_polls)
