"""
Pytest fixtures for TrustChain tests.

Solana RPC, FairScale and the notary are always faked; nothing touches the network.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

VALID_WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"


class RateLimited(Exception):
    """Stand-in for an RPC error carrying a 429 code."""

    code = 429


def make_tx(address: str, pre: int, post: int) -> dict[str, Any]:
    """Minimal jsonParsed getTransaction result touching address."""
    return {
        "transaction": {
            "message": {
                "accountKeys": [
                    {"pubkey": "11111111111111111111111111111111"},
                    {"pubkey": address},
                ],
            },
        },
        "meta": {"preBalances": [5000, pre], "postBalances": [0, post]},
    }


class FakeHistorySource:
    """In-memory HistorySource. signature_errors are raised (in order) before listing succeeds."""

    def __init__(
        self,
        signatures: list[dict[str, Any]] | None = None,
        transactions: dict[str, Any] | None = None,
        signature_errors: list[Exception] | None = None,
        tx_errors: dict[str, Exception] | None = None,
    ) -> None:
        self.signatures = signatures or []
        self.transactions = transactions or {}
        self.signature_errors = list(signature_errors or [])
        self.tx_errors = tx_errors or {}
        self.signature_calls = 0
        self.tx_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_signatures(self, address: str, limit: int) -> list[dict[str, Any]]:
        self.signature_calls += 1
        if self.signature_errors:
            raise self.signature_errors.pop(0)
        return self.signatures[:limit]

    async def get_transaction(self, signature: str) -> dict[str, Any] | None:
        self.tx_calls.append(signature)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if signature in self.tx_errors:
                raise self.tx_errors[signature]
            return self.transactions.get(signature)
        finally:
            self.in_flight -= 1


def build_history(address: str, deltas: list[int], timestamps: list[int | None]) -> FakeHistorySource:
    """One signature per delta; delta 0 means the wallet's balance did not change."""
    signatures = []
    transactions = {}
    for i, (delta, ts) in enumerate(zip(deltas, timestamps)):
        sig = f"sig{i}"
        signatures.append({"signature": sig, "blockTime": ts})
        transactions[sig] = make_tx(address, 1_000_000, 1_000_000 - delta)
    return FakeHistorySource(signatures=signatures, transactions=transactions)


class FakeNotary:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, str, float, float]] = []

    async def notarize(self, address: str, status: Any, gini: float, hhi: float) -> str:
        self.calls.append((address, status.value, gini, hhi))
        if self.error is not None:
            raise self.error
        return "5igNaTuRe"


class CountingScoreFetcher:
    def __init__(self, payload: Any = None, error: Exception | None = None) -> None:
        self.payload = {"score": 60} if payload is None else payload
        self.error = error
        self.calls = 0

    async def __call__(self, address: str) -> Any:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def wallet() -> str:
    return VALID_WALLET


@pytest.fixture
def fakes():
    """Namespace of fake collaborators and helpers."""

    class _Fakes:
        RateLimited = RateLimited
        FakeHistorySource = FakeHistorySource
        FakeNotary = FakeNotary
        CountingScoreFetcher = CountingScoreFetcher
        make_tx = staticmethod(make_tx)
        build_history = staticmethod(build_history)

    return _Fakes


@pytest.fixture
def make_service():
    """Factory: IntegrityService over fake history / reputation / notary, no delays."""
    from backend_trustchain.analytics.integrity_pipeline import IntegrityService
    from backend_trustchain.analytics.reputation import ReputationCache
    from backend_trustchain.ingestion.history import FetchPolicy, HistoryFetcher

    def _make(source, score_fetcher=None, notary=None, thresholds=None):
        policy = FetchPolicy(batch_delay_sec=0.0, base_delay_ms=1.0)
        reputation = ReputationCache(score_fetcher or CountingScoreFetcher())
        kwargs = {"notary": notary}
        if thresholds is not None:
            kwargs["thresholds"] = thresholds
        return IntegrityService(HistoryFetcher(source, policy), reputation, **kwargs)

    return _make


@pytest.fixture
def organic_history(wallet):
    """Four similar transfers, no timestamps: low gini, no timing signal."""
    return build_history(wallet, [10, 12, 11, 9], [None, None, None, None])


@pytest.fixture
def client(make_service, organic_history):
    """FastAPI TestClient with the IntegrityService dependency overridden."""
    from fastapi.testclient import TestClient

    from backend_trustchain.api_server.server import app, get_integrity_service

    notary = FakeNotary()
    service = make_service(organic_history, notary=notary)
    app.dependency_overrides[get_integrity_service] = lambda: service
    try:
        with TestClient(app) as c:
            c.notary = notary
            yield c
    finally:
        app.dependency_overrides.clear()
