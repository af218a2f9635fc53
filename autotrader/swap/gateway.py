"""Swap Gateway — quote, build, sign, broadcast, confirm.

``execute`` receives the owner's key encrypted at rest and decrypts it only
around building and signing; nothing on the gateway keeps a reference to it.
"""

import asyncio
import logging
from typing import Optional

from autotrader.chain.confirmation import confirm_transaction
from autotrader.chain.keys import load_keypair, sign_transaction
from autotrader.config import Config
from autotrader.errors import (
    BroadcastError,
    ConfirmationTimeoutError,
    RpcError,
    SwapBuildError,
)
from autotrader.swap.models import Quote, SwapResult
from autotrader.swap.tokens import DEFAULT_DECIMALS, known_decimals, to_smallest_unit

logger = logging.getLogger("autotrader.swap")


class SwapGateway:
    """Drives a swap through the aggregator and the ledger.

    Args:
        config: Application configuration.
        jupiter: Aggregator client (``get_quote``, ``build_swap_transaction``).
        rpc: Ledger client (broadcast, status, block height, blockhash, decimals).
        poll_interval: Seconds between confirmation polls.
        max_polls: Confirmation poll budget.
    """

    def __init__(
        self,
        config: Config,
        jupiter,
        rpc,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
    ) -> None:
        self._config = config
        self._jupiter = jupiter
        self._rpc = rpc
        self._poll_interval = (
            config.confirm_poll_interval if poll_interval is None else poll_interval
        )
        self._max_polls = config.confirm_max_polls if max_polls is None else max_polls
        self._decimals: dict[str, int] = {}

    async def quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int,
    ) -> Quote:
        """Price *amount* base units of *input_mint*. No side effects."""
        return await self._jupiter.get_quote(input_mint, output_mint, amount, slippage_bps)

    async def resolve_decimals(self, mint: str) -> int:
        """Decimals for *mint*: known table, then on-chain mint, then 9."""
        decimals = known_decimals(mint)
        if decimals is not None:
            return decimals
        if mint in self._decimals:
            return self._decimals[mint]
        try:
            decimals = await self._rpc.get_mint_decimals(mint)
        except RpcError as exc:
            logger.warning(
                "Could not read decimals for %s (%s); assuming %d",
                mint, exc, DEFAULT_DECIMALS,
            )
            return DEFAULT_DECIMALS
        self._decimals[mint] = decimals
        return decimals

    async def execute(
        self,
        encrypted_key: str,
        input_mint: str,
        output_mint: str,
        amount: float,
        slippage_bps: int,
        timeout: Optional[float] = None,
    ) -> SwapResult:
        """Swap *amount* (UI units of *input_mint*) into *output_mint*.

        Args:
            encrypted_key: Owner's signing key as stored (encrypted at rest).
            input_mint: Mint being spent.
            output_mint: Mint being bought.
            amount: Amount of *input_mint* in UI units.
            slippage_bps: Slippage tolerance in basis points.
            timeout: Optional deadline (seconds) for the confirmation step.

        Returns:
            The confirmed ``SwapResult``.

        Raises:
            QuoteError: Nothing was broadcast.
            WalletError: The key could not be decrypted; nothing was broadcast.
            SwapBuildError, BroadcastError: Nothing landed.
            TransactionFailedError, BlockhashExpiredError: Definitively failed.
            ConfirmationTimeoutError: Broadcast but unresolved; funds may be spent.
        """
        input_decimals = await self.resolve_decimals(input_mint)
        base_amount = to_smallest_unit(amount, input_decimals)

        quote = await self.quote(input_mint, output_mint, base_amount, slippage_bps)
        logger.info(
            "Quote %s → %s: in=%d out=%d impact=%.4f%% via %s",
            input_mint, output_mint, quote.input_amount, quote.output_amount,
            quote.price_impact, quote.route or "?",
        )

        keypair = load_keypair(encrypted_key, self._config.encryption_key)
        try:
            unsigned = await self._jupiter.build_swap_transaction(quote, str(keypair.pubkey()))
            try:
                signed = sign_transaction(unsigned, keypair)
            except ValueError as exc:
                raise SwapBuildError(f"Could not sign swap transaction: {exc}") from exc
        finally:
            del keypair

        try:
            blockhash = await self._rpc.get_latest_blockhash()
            signature = await self._rpc.send_transaction(signed)
        except RpcError as exc:
            raise BroadcastError(f"Broadcast failed: {exc}") from exc
        logger.info("Broadcast %s (valid until height %d)",
                    signature, blockhash.last_valid_block_height)

        confirming = confirm_transaction(
            self._rpc, signature, blockhash,
            max_polls=self._max_polls,
            poll_interval=self._poll_interval,
        )
        if timeout is None:
            await confirming
        else:
            try:
                await asyncio.wait_for(confirming, timeout)
            except asyncio.TimeoutError as exc:
                raise ConfirmationTimeoutError(signature) from exc

        return SwapResult(
            signature=signature,
            input_amount=quote.input_amount,
            output_amount=quote.output_amount,
            price_impact=quote.price_impact,
        )
