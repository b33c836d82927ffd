"""
Reputation cache: time-boxed FairScale score lookups per wallet.

A hit younger than the TTL (60 s) returns without I/O. A miss calls the FairScale
API (3 s timeout) and normalizes the score to 0-100. Any failure, including the
404 expected for never-seen wallets, falls back to DEFAULT_FAIR_SCORE. Successful
and fallback results are cached alike so a failing upstream is not hammered.

Each write schedules an eviction on the running event loop. Loop timers never keep
the process alive, so eviction is best-effort cleanup; expiry is enforced on read.
Concurrent misses for the same wallet may both fetch; the last write wins.
"""

from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from backend_trustchain.trustchain_logging import get_logger, short_wallet

logger = get_logger(__name__)

DEFAULT_FAIR_SCORE = 50.0
CACHE_TTL_SEC = 60.0
REQUEST_TIMEOUT_SEC = 3.0
SCORE_MIN = 0.0
SCORE_MAX = 100.0

ScoreFetcher = Callable[[str], Awaitable[Any]]


@dataclass(frozen=True)
class ReputationRecord:
    score: float
    cached_at: float


@dataclass(frozen=True)
class ReputationOutcome:
    """Result of one upstream lookup; converted to a plain score at the cache boundary."""

    score: float
    ok: bool
    error: str | None = None
    status_code: int | None = None


def normalize_fair_score(raw: Any) -> float | None:
    """
    Map a raw FairScale score to 0-100, or None when it is not a finite number.

    Values in (0, 1] are fractions and are scaled by 100; everything else is clamped.
    """
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    score = float(raw)
    if not math.isfinite(score):
        return None
    if 0 < score <= 1:
        score *= 100
    return min(max(score, SCORE_MIN), SCORE_MAX)


class FairScaleClient:
    """GET {base_url}/api/score/{address} -> JSON payload ({"score": number})."""

    def __init__(
        self,
        base_url: str,
        timeout_sec: float = REQUEST_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_sec
        self._transport = transport

    async def fetch_score(self, address: str) -> Any:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            r = await client.get(f"{self._base_url}/api/score/{address}")
            r.raise_for_status()
            return r.json()


class ReputationCache:
    """Address -> ReputationRecord with per-entry TTL. Inject one instance per service."""

    def __init__(
        self,
        fetch_score: ScoreFetcher,
        ttl_sec: float = CACHE_TTL_SEC,
        timeout_sec: float = REQUEST_TIMEOUT_SEC,
        default_score: float = DEFAULT_FAIR_SCORE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch_score = fetch_score
        self._ttl = ttl_sec
        self._timeout = timeout_sec
        self._default = default_score
        self._clock = clock
        self._records: dict[str, ReputationRecord] = {}
        self._evictions: dict[str, asyncio.TimerHandle] = {}

    def __len__(self) -> int:
        return len(self._records)

    def peek(self, address: str) -> ReputationRecord | None:
        """Return the live record for address, dropping it if expired. No I/O."""
        record = self._records.get(address)
        if record is None:
            return None
        if self._clock() - record.cached_at < self._ttl:
            return record
        self._drop(address)
        return None

    async def get_fair_score(self, address: str) -> float:
        """FairScale score 0-100 for address; DEFAULT_FAIR_SCORE on any upstream failure."""
        record = self.peek(address)
        if record is not None:
            return record.score

        outcome = await self._lookup(address)
        self._store(address, outcome.score)
        return outcome.score

    async def _lookup(self, address: str) -> ReputationOutcome:
        try:
            payload = await asyncio.wait_for(self._fetch_score(address), timeout=self._timeout)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                # Unseen wallet: expected, not worth a warning
                logger.debug("reputation_not_found", wallet_id=short_wallet(address))
            else:
                logger.warning("reputation_fetch_failed", wallet_id=short_wallet(address), status=status, error=str(e))
            return ReputationOutcome(score=self._default, ok=False, error=str(e), status_code=status)
        except Exception as e:
            logger.warning(
                "reputation_fetch_failed",
                wallet_id=short_wallet(address),
                status="UNKNOWN",
                error=str(e) or type(e).__name__,
            )
            return ReputationOutcome(score=self._default, ok=False, error=str(e) or type(e).__name__)

        raw = payload.get("score") if isinstance(payload, dict) else None
        score = normalize_fair_score(raw)
        if score is None:
            logger.warning("reputation_unexpected_score", wallet_id=short_wallet(address), raw_score=repr(raw)[:64])
            return ReputationOutcome(score=self._default, ok=False, error="non-finite or missing score")
        return ReputationOutcome(score=score, ok=True)

    def _store(self, address: str, score: float) -> None:
        cached_at = self._clock()
        self._records[address] = ReputationRecord(score=score, cached_at=cached_at)
        self._schedule_eviction(address, cached_at)

    def _schedule_eviction(self, address: str, cached_at: float) -> None:
        previous = self._evictions.pop(address, None)
        if previous is not None:
            previous.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._evictions[address] = loop.call_later(self._ttl, self._evict, address, cached_at)

    def _evict(self, address: str, cached_at: float) -> None:
        self._evictions.pop(address, None)
        record = self._records.get(address)
        # A refresh since scheduling owns the slot now
        if record is not None and record.cached_at == cached_at:
            del self._records[address]

    def _drop(self, address: str) -> None:
        self._records.pop(address, None)
        handle = self._evictions.pop(address, None)
        if handle is not None:
            handle.cancel()

    def clear(self) -> None:
        for handle in self._evictions.values():
            handle.cancel()
        self._evictions.clear()
        self._records.clear()
