"""Shared HTTP retry helper for the upstream REST / JSON-RPC clients."""

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger("autotrader.http")

# Retry settings
MAX_RETRIES = 3
RETRY_BASE_DELAY = 1.0  # seconds; doubles each attempt
RETRYABLE_STATUS_CODES = {502, 503, 504, 429}


async def request_with_retry(
    method: str,
    url: str,
    *,
    service: str,
    headers: Optional[dict] = None,
    timeout: float = 15.0,
    base_delay: float = RETRY_BASE_DELAY,
    **kwargs,
) -> httpx.Response:
    """Execute an HTTP request with exponential-backoff retry.

    Retries on transient server errors (502, 503, 504) and rate-limits
    (429).  Non-retryable errors are raised immediately.

    Args:
        method: ``"get"`` or ``"post"``.
        url: Absolute URL.
        service: Upstream name used in log lines.
        headers: Request headers.
        timeout: Per-attempt timeout in seconds.
        base_delay: First backoff delay; doubles each attempt.
    """
    last_exc: Optional[Exception] = None

    for attempt in range(MAX_RETRIES):
        try:
            async with httpx.AsyncClient() as client:
                resp = await getattr(client, method)(
                    url,
                    headers=headers,
                    timeout=timeout,
                    **kwargs,
                )

            if resp.status_code in RETRYABLE_STATUS_CODES:
                delay = base_delay * (2 ** attempt)
                logger.warning(
                    "%s %s %s returned %d — retry %d/%d in %.1fs",
                    service, method.upper(), url, resp.status_code,
                    attempt + 1, MAX_RETRIES, delay,
                )
                await asyncio.sleep(delay)
                last_exc = httpx.HTTPStatusError(
                    f"Server error '{resp.status_code}'",
                    request=resp.request,
                    response=resp,
                )
                continue

            resp.raise_for_status()
            return resp

        except httpx.TransportError as exc:
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "%s %s %s transport error (%s) — retry %d/%d in %.1fs",
                service, method.upper(), url, exc,
                attempt + 1, MAX_RETRIES, delay,
            )
            last_exc = exc
            await asyncio.sleep(delay)

    # All retries exhausted — raise the last error
    raise last_exc  # type: ignore[misc]
