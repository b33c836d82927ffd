"""
Resilient fetcher: retry one async RPC call with exponential backoff on rate limits.

Only rate-limit failures (HTTP / JSON-RPC 429) are retried; anything else propagates
on the first failure. Each call has its own retry budget: no jitter, no shared state.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from backend_trustchain.trustchain_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

RATE_LIMIT_STATUS = 429
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 500.0


def _is_429(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return int(value) == RATE_LIMIT_STATUS
    except (TypeError, ValueError):
        return False


def _carries_rate_limit(exc: BaseException) -> bool:
    if _is_429(getattr(exc, "code", None)):
        return True
    if _is_429(getattr(exc, "status", None)) or _is_429(getattr(exc, "status_code", None)):
        return True
    response = getattr(exc, "response", None)
    if response is not None:
        if _is_429(getattr(response, "status_code", None)) or _is_429(getattr(response, "status", None)):
            return True
    return str(RATE_LIMIT_STATUS) in str(exc)


def is_rate_limit_error(exc: BaseException) -> bool:
    """
    True when exc signals rate limiting: code 429, a 429 response status, or "429" in the message.

    solana-py wraps transport errors (e.g. httpx.HTTPStatusError) in SolanaRpcException,
    so the explicit cause is checked too.
    """
    if _carries_rate_limit(exc):
        return True
    cause = exc.__cause__
    return cause is not None and _carries_rate_limit(cause)


def backoff_delay_ms(retry_count: int, base_delay_ms: float = DEFAULT_BASE_DELAY_MS) -> float:
    """Delay before retry number retry_count (1-based): base * 2^(retry_count - 1)."""
    return base_delay_ms * (2 ** (retry_count - 1))


async def fetch_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Await operation(), retrying rate-limited failures up to max_retries times.

    Total attempts when every call is rate limited: max_retries + 1. The last
    rate-limit error is re-raised once retries are exhausted.
    """
    retries = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if not is_rate_limit_error(e):
                raise
            retries += 1
            if retries > max_retries:
                logger.warning("rpc_rate_limit_retries_exhausted", max_retries=max_retries, error=str(e))
                raise
            wait_ms = backoff_delay_ms(retries, base_delay_ms)
            logger.warning(
                "rpc_rate_limited",
                attempt=retries,
                max_retries=max_retries,
                backoff_ms=wait_ms,
            )
            await sleep(wait_ms / 1000.0)
