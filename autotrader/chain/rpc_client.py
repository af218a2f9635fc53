"""Solana JSON-RPC async client.

Covers the ledger calls the swap gateway needs: broadcast, signature status,
block height, latest blockhash, and mint decimals.
"""

import base64
import itertools
import logging
from typing import Any, Optional

import httpx

from autotrader.config import Config
from autotrader.errors import RpcError
from autotrader.http_retry import RETRY_BASE_DELAY, request_with_retry
from autotrader.swap.models import BlockhashInfo, SignatureStatus

logger = logging.getLogger("autotrader.chain")

_COMMITMENT = "confirmed"


class SolanaRpcClient:
    """Async JSON-RPC client for a Solana node.

    Args:
        config: Application configuration (``solana_rpc_url``).
    """

    def __init__(self, config: Config) -> None:
        self._url = config.solana_rpc_url
        self._headers = {"Content-Type": "application/json"}
        self._ids = itertools.count(1)
        self._retry_base_delay = RETRY_BASE_DELAY

    async def _call(self, method: str, params: list) -> Any:
        """Invoke *method* and return its ``result``.

        Raises ``RpcError`` on transport failure or a JSON-RPC error object.
        """
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            resp = await request_with_retry(
                "post", self._url,
                service="Solana RPC",
                headers=self._headers,
                base_delay=self._retry_base_delay,
                json=body,
            )
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RpcError(f"{method} failed: {exc}") from exc

        if payload.get("error"):
            err = payload["error"]
            message = err.get("message", err) if isinstance(err, dict) else err
            raise RpcError(f"{method} failed: {message}", {"error": err})
        return payload.get("result")

    # ── Broadcast ────────────────────────────────────────────────────────

    async def send_transaction(self, signed_tx: bytes) -> str:
        """Submit a signed, serialized transaction and return its signature."""
        encoded = base64.b64encode(signed_tx).decode("ascii")
        return await self._call(
            "sendTransaction",
            [
                encoded,
                {
                    "encoding": "base64",
                    "skipPreflight": False,
                    "preflightCommitment": _COMMITMENT,
                    "maxRetries": 3,
                },
            ],
        )

    # ── Status ───────────────────────────────────────────────────────────

    async def get_signature_status(self, signature: str) -> Optional[SignatureStatus]:
        """Return the status of *signature*, or ``None`` if the node has not seen it."""
        result = await self._call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": False}],
        )
        values = (result or {}).get("value") or []
        if not values or values[0] is None:
            return None
        status = values[0]
        return SignatureStatus(
            confirmation_status=status.get("confirmationStatus"),
            err=status.get("err"),
            slot=status.get("slot"),
        )

    async def get_block_height(self) -> int:
        result = await self._call("getBlockHeight", [{"commitment": _COMMITMENT}])
        try:
            return int(result)
        except (TypeError, ValueError) as exc:
            raise RpcError(f"getBlockHeight returned {result!r}") from exc

    async def get_latest_blockhash(self) -> BlockhashInfo:
        result = await self._call(
            "getLatestBlockhash", [{"commitment": _COMMITMENT}]
        )
        try:
            value = result["value"]
            return BlockhashInfo(
                blockhash=value["blockhash"],
                last_valid_block_height=int(value["lastValidBlockHeight"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcError(f"getLatestBlockhash returned no blockhash: {result!r}") from exc

    # ── Token metadata ───────────────────────────────────────────────────

    async def get_mint_decimals(self, mint: str) -> int:
        """Return the decimals configured on the SPL mint account.

        Raises ``RpcError`` when the node has no mint data for *mint*.
        """
        result = await self._call("getTokenSupply", [mint])
        try:
            return int(result["value"]["decimals"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcError(f"getTokenSupply returned no decimals for {mint}") from exc
