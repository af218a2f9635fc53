"""Jupiter swap aggregator async client.

Two stateless endpoints: ``/quote`` prices a route, ``/swap`` turns that
exact quote into an unsigned, serialized transaction for a given wallet.
"""

import base64
import logging

import httpx

from autotrader.config import Config
from autotrader.errors import QuoteError, SwapBuildError
from autotrader.http_retry import RETRY_BASE_DELAY, request_with_retry
from autotrader.swap.models import Quote

logger = logging.getLogger("autotrader.swap")


class JupiterClient:
    """Async client wrapping the Jupiter Swap API v1.

    Args:
        config: Application configuration.
    """

    def __init__(self, config: Config) -> None:
        self._base_url = config.jupiter_api_url
        self._headers = {"Content-Type": "application/json"}
        self._retry_base_delay = RETRY_BASE_DELAY

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int = 50,
    ) -> Quote:
        """Request a quote for *amount* base units of *input_mint*.

        Raises ``QuoteError`` if the aggregator cannot route the pair.
        """
        url = f"{self._base_url}/quote"
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
        }
        try:
            resp = await request_with_retry(
                "get", url,
                service="Jupiter",
                headers=self._headers,
                base_delay=self._retry_base_delay,
                params=params,
            )
            data = resp.json()
            return Quote(
                input_mint=data["inputMint"],
                output_mint=data["outputMint"],
                input_amount=int(data["inAmount"]),
                output_amount=int(data["outAmount"]),
                price_impact=float(data.get("priceImpactPct") or 0.0),
                route=" → ".join(
                    step.get("swapInfo", {}).get("label", "?")
                    for step in data.get("routePlan", [])
                ),
                slippage_bps=int(data.get("slippageBps", slippage_bps)),
                raw=data,
            )
        except httpx.HTTPStatusError as exc:
            raise QuoteError(
                f"Jupiter quote error: {exc.response.text or exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            raise QuoteError(f"Jupiter quote error: {exc}") from exc

    async def build_swap_transaction(self, quote: Quote, user_public_key: str) -> bytes:
        """Return the serialized unsigned transaction for *quote*.

        Raises ``SwapBuildError`` on failure.
        """
        url = f"{self._base_url}/swap"
        body = {
            "quoteResponse": quote.raw,
            "userPublicKey": user_public_key,
            "wrapAndUnwrapSol": True,
            "dynamicComputeUnitLimit": True,
            "prioritizationFeeLamports": "auto",
        }
        try:
            resp = await request_with_retry(
                "post", url,
                service="Jupiter",
                headers=self._headers,
                base_delay=self._retry_base_delay,
                json=body,
            )
            swap_tx = resp.json()["swapTransaction"]
            return base64.b64decode(swap_tx)
        except httpx.HTTPStatusError as exc:
            raise SwapBuildError(
                f"Jupiter swap error: {exc.response.text or exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            raise SwapBuildError(f"Jupiter swap error: {exc}") from exc
