"""
Transaction history: signatures + parsed transactions -> ObservationSet.

Uses getSignaturesForAddress (limit 15 by default) and getTransaction with
encoding="jsonParsed". Transactions are fetched in batches of FETCH_CONCURRENCY
with a fixed delay between batches: public RPCs rate limit and reorder responses
under full parallelism. Every RPC call goes through fetch_with_retry.

Amount of a record = |preBalance - postBalance| for the wallet's account index.
Records where the wallet's balance did not change (or the tx could not be
fetched) still count toward sample_count but yield no amount.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Protocol

from backend_trustchain.analytics.models import ObservationSet, TransactionSample
from backend_trustchain.core.exceptions import HistoryFetchError
from backend_trustchain.ingestion.rpc import (
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_MAX_RETRIES,
    fetch_with_retry,
)
from backend_trustchain.trustchain_logging import get_logger, short_wallet

logger = get_logger(__name__)

SIGNATURES_LIMIT = 15
FETCH_CONCURRENCY = 3
BATCH_DELAY_SEC = 0.2


class HistorySource(Protocol):
    """Upstream transaction history. Errors may carry a 429 marker (see ingestion.rpc)."""

    async def get_signatures(self, address: str, limit: int) -> list[dict[str, Any]]:
        """Return [{"signature": str, "blockTime": int | None}, ...], newest first."""
        ...

    async def get_transaction(self, signature: str) -> dict[str, Any] | None:
        """Return the jsonParsed transaction as a dict, or None if unknown."""
        ...


def _to_plain(value: Any) -> Any:
    """solders response objects -> plain JSON-like dicts."""
    if value is None or isinstance(value, (dict, list)):
        return value
    to_json = getattr(value, "to_json", None)
    if callable(to_json):
        return json.loads(to_json())
    return value


class SolanaHistorySource:
    """HistorySource backed by solana-py's AsyncClient."""

    def __init__(self, rpc_url: str) -> None:
        self._rpc_url = rpc_url
        self._client: Any = None

    def _client_ensure(self) -> Any:
        if self._client is None:
            from solana.rpc.async_api import AsyncClient
            from solana.rpc.commitment import Confirmed

            self._client = AsyncClient(self._rpc_url, commitment=Confirmed)
        return self._client

    async def get_signatures(self, address: str, limit: int) -> list[dict[str, Any]]:
        from solders.pubkey import Pubkey

        client = self._client_ensure()
        resp = await client.get_signatures_for_address(Pubkey.from_string(address), limit=limit)
        out: list[dict[str, Any]] = []
        for info in getattr(resp, "value", None) or []:
            out.append({
                "signature": str(info.signature),
                "blockTime": getattr(info, "block_time", None),
            })
        return out

    async def get_transaction(self, signature: str) -> dict[str, Any] | None:
        from solders.signature import Signature

        client = self._client_ensure()
        resp = await client.get_transaction(
            Signature.from_string(signature),
            encoding="jsonParsed",
            max_supported_transaction_version=0,
        )
        return _to_plain(getattr(resp, "value", None))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


def _account_key(entry: Any) -> str | None:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        key = entry.get("pubkey")
        return str(key) if key is not None else None
    return None


def extract_balance_delta(tx: dict[str, Any] | None, address: str) -> float | None:
    """
    |preBalance - postBalance| for address in a jsonParsed transaction, or None if absent.

    Accepts both the raw RPC result shape ({"transaction": {"message": ...}, "meta": ...})
    and the solders JSON shape ({"transaction": {"transaction": ..., "meta": ...}}).
    """
    if not tx:
        return None
    outer = tx.get("transaction") or {}
    meta = tx.get("meta") or outer.get("meta")
    if not meta:
        return None
    message_holder = outer.get("transaction") if isinstance(outer.get("transaction"), dict) else outer
    message = (message_holder or {}).get("message") or {}
    keys = [_account_key(k) for k in message.get("accountKeys") or []]
    if address not in keys:
        return None
    idx = keys.index(address)
    pre = meta.get("preBalances") or []
    post = meta.get("postBalances") or []
    pre_val = pre[idx] if idx < len(pre) else 0
    post_val = post[idx] if idx < len(post) else 0
    return float(abs((pre_val or 0) - (post_val or 0)))


@dataclass
class FetchPolicy:
    signature_limit: int = SIGNATURES_LIMIT
    concurrency: int = FETCH_CONCURRENCY
    batch_delay_sec: float = BATCH_DELAY_SEC
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS


class HistoryFetcher:
    """Fetch and reduce one wallet's recent history to an ObservationSet."""

    def __init__(self, source: HistorySource, policy: FetchPolicy | None = None) -> None:
        self._source = source
        self._policy = policy or FetchPolicy()

    async def _retrying(self, operation: Any) -> Any:
        return await fetch_with_retry(
            operation,
            max_retries=self._policy.max_retries,
            base_delay_ms=self._policy.base_delay_ms,
        )

    async def _sample_for(self, address: str, sig_info: dict[str, Any]) -> TransactionSample | None:
        signature = sig_info.get("signature")
        if not signature:
            return None
        try:
            tx = await self._retrying(lambda: self._source.get_transaction(signature))
        except Exception as e:
            logger.warning("history_tx_fetch_failed", signature=str(signature)[:16], error=str(e))
            return None
        amount = extract_balance_delta(tx, address)
        if not amount or amount <= 0:
            return None
        return TransactionSample(amount=amount, timestamp=sig_info.get("blockTime"))

    async def fetch_observations(self, address: str) -> ObservationSet:
        """
        Raise HistoryFetchError when the signature listing fails (retries exhausted
        or a non-rate-limit error). Single transaction failures are logged and skipped.
        """
        policy = self._policy
        try:
            signatures = await self._retrying(
                lambda: self._source.get_signatures(address, policy.signature_limit)
            )
        except Exception as e:
            logger.warning("history_signatures_failed", wallet_id=short_wallet(address), error=str(e))
            raise HistoryFetchError(address, str(e)) from e

        signatures = list(signatures or [])
        logger.info("history_signatures_fetched", wallet_id=short_wallet(address), count=len(signatures))

        amounts: list[float] = []
        step = max(1, policy.concurrency)
        for i in range(0, len(signatures), step):
            batch = signatures[i : i + step]
            samples = await asyncio.gather(*(self._sample_for(address, s) for s in batch))
            amounts.extend(s.amount for s in samples if s is not None)
            if i + step < len(signatures) and policy.batch_delay_sec > 0:
                await asyncio.sleep(policy.batch_delay_sec)

        timestamps = tuple(
            float(s["blockTime"]) for s in signatures if s.get("blockTime") is not None
        )
        observations = ObservationSet(
            amounts=tuple(amounts),
            timestamps=timestamps,
            sample_count=len(signatures),
        )
        logger.debug(
            "history_observations_built",
            wallet_id=short_wallet(address),
            sample_count=observations.sample_count,
            value_samples=len(observations.amounts),
            timestamps=len(observations.timestamps),
        )
        return observations

    async def close(self) -> None:
        close = getattr(self._source, "close", None)
        if close is not None:
            await close()
