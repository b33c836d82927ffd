"""
Tests for IntegrityService: end-to-end verification over fake collaborators.
"""

from __future__ import annotations

import asyncio

import pytest

from backend_trustchain.analytics import IntegrityStatus
from backend_trustchain.analytics.integrity_pipeline import build_notary
from backend_trustchain.config import Settings
from backend_trustchain.core.exceptions import HistoryFetchError, InvalidAddressError


def test_verify_organic_wallet(make_service, organic_history, wallet, fakes):
    notary = fakes.FakeNotary()
    service = make_service(organic_history, notary=notary)
    result = asyncio.run(service.verify(wallet, notarize=True))

    assert result.wallet == wallet
    assert result.decision.status == IntegrityStatus.VERIFIED
    assert result.decision.total_score == 84
    assert result.decision.governance_weight == 1.5
    assert result.signature == "5igNaTuRe"
    assert len(notary.calls) == 1
    assert result.latency_ms >= 0


def test_verify_without_notarize_flag_skips_notary(make_service, organic_history, wallet, fakes):
    notary = fakes.FakeNotary()
    result = asyncio.run(make_service(organic_history, notary=notary).verify(wallet))
    assert result.signature is None
    assert notary.calls == []


def test_sybil_wallet_notarized(make_service, wallet, fakes):
    source = fakes.build_history(wallet, [1000, 1, 1, 1], [None] * 4)
    notary = fakes.FakeNotary()
    result = asyncio.run(make_service(source, notary=notary).verify(wallet, notarize=True))
    assert result.decision.status == IntegrityStatus.SYBIL
    assert notary.calls[0][1] == "SYBIL"


def test_synchronized_wallet_is_sybil(make_service, wallet, fakes):
    source = fakes.build_history(wallet, [10, 12, 11, 9], [1000, 1005, 1010, 1015])
    decision = asyncio.run(make_service(source).evaluate(wallet))
    assert decision.status == IntegrityStatus.SYBIL
    assert decision.score_vector.sync_index == pytest.approx(1.0)


def test_thin_history_is_probationary(make_service, wallet, fakes):
    source = fakes.build_history(wallet, [10, 12], [None, None])
    notary = fakes.FakeNotary()
    result = asyncio.run(make_service(source, notary=notary).verify(wallet, notarize=True))
    assert result.decision.status == IntegrityStatus.PROBATIONARY
    assert result.signature is None
    assert notary.calls == []


def test_notary_failure_does_not_fail_verification(make_service, organic_history, wallet, fakes):
    notary = fakes.FakeNotary(error=RuntimeError("rpc down"))
    result = asyncio.run(make_service(organic_history, notary=notary).verify(wallet, notarize=True))
    assert result.decision.status == IntegrityStatus.VERIFIED
    assert result.signature is None


def test_reputation_shared_across_checks(make_service, organic_history, wallet, fakes):
    fetcher = fakes.CountingScoreFetcher({"score": 70})
    service = make_service(organic_history, score_fetcher=fetcher)

    async def run():
        first = await service.verify(wallet)
        second = await service.verify(wallet)
        return first, second

    first, second = asyncio.run(run())
    assert fetcher.calls == 1
    assert first.decision.fair_score == second.decision.fair_score == 70.0


def test_reputation_failure_uses_default(make_service, organic_history, wallet, fakes):
    fetcher = fakes.CountingScoreFetcher(error=ConnectionError("fairscale down"))
    decision = asyncio.run(make_service(organic_history, score_fetcher=fetcher).evaluate(wallet))
    assert decision.fair_score == 50.0


@pytest.mark.parametrize("address", ["", "   ", "0OIl" * 10, "short", "x" * 45])
def test_invalid_address_rejected_before_io(make_service, fakes, address):
    source = fakes.FakeHistorySource()
    with pytest.raises(InvalidAddressError):
        asyncio.run(make_service(source).verify(address))
    assert source.signature_calls == 0


def test_address_whitespace_stripped(make_service, organic_history, wallet):
    result = asyncio.run(make_service(organic_history).verify(f"  {wallet}\n"))
    assert result.wallet == wallet


def test_history_failure_propagates(make_service, wallet, fakes):
    source = fakes.FakeHistorySource(signature_errors=[ConnectionError("rpc down")])
    with pytest.raises(HistoryFetchError):
        asyncio.run(make_service(source).verify(wallet))


def test_response_contract(make_service, organic_history, wallet):
    body = asyncio.run(make_service(organic_history).verify(wallet)).to_response()
    assert body["wallet"] == wallet
    assert body["status"] == "VERIFIED"
    assert body["signature"] is None
    assert body["txCount"] == 4
    assert "latencyMs" in body


def test_close_closes_history_source(make_service, wallet, fakes):
    source = fakes.FakeHistorySource()
    closed = []

    async def close():
        closed.append(True)

    source.close = close
    asyncio.run(make_service(source).close())
    assert closed == [True]


def test_build_notary_requires_secret_or_dry_run():
    settings = Settings(notary_secret="", notary_dry_run=False)
    assert build_notary(settings) is None
    dry = build_notary(Settings(notary_secret="", notary_dry_run=True))
    assert dry is not None
    assert dry.notary_pubkey is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"notary_secret": "not-a-keypair"},
        {"notary_secret": "[1, 2, 3]"},
        {"notary_secret": "", "notary_dry_run": True, "solana_program_id": "not-a-program"},
    ],
)
def test_build_notary_bad_configuration_disables_notary(overrides):
    assert build_notary(Settings(**overrides)) is None
