"""
Integrity pipeline: validate -> fetch history -> score -> reputation -> decide -> notarize.

IntegrityService owns its collaborators (history fetcher, reputation cache, optional
notary) so tests and the API can build isolated instances. Callers get a
VerificationResult or one of two errors: InvalidAddressError for malformed
addresses and HistoryFetchError when history cannot be retrieved.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from backend_trustchain.analytics.decision_engine import DEFAULT_THRESHOLDS, DecisionThresholds, evaluate_integrity
from backend_trustchain.analytics.models import IntegrityDecision
from backend_trustchain.analytics.reputation import FairScaleClient, ReputationCache
from backend_trustchain.config import Settings, get_settings
from backend_trustchain.config.env import mask_rpc_url
from backend_trustchain.core.exceptions import NotaryError
from backend_trustchain.ingestion.history import FetchPolicy, HistoryFetcher, SolanaHistorySource
from backend_trustchain.oracle.notary import Notary, NotaryConfig, SolanaNotary, notarize_decision
from backend_trustchain.trustchain_logging import bind_wallet, get_logger
from backend_trustchain.utils.wallet_utils import require_valid_wallet

logger = get_logger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    wallet: str
    decision: IntegrityDecision
    signature: str | None = None
    latency_ms: int = 0

    def to_response(self) -> dict[str, Any]:
        body = {"wallet": self.wallet}
        body.update(self.decision.to_response())
        body["signature"] = self.signature
        body["latencyMs"] = self.latency_ms
        return body


class IntegrityService:
    """Runs integrity checks for single wallets."""

    def __init__(
        self,
        history: HistoryFetcher,
        reputation: ReputationCache,
        notary: Notary | None = None,
        thresholds: DecisionThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self._history = history
        self._reputation = reputation
        self._notary = notary
        self._thresholds = thresholds

    @property
    def reputation(self) -> ReputationCache:
        return self._reputation

    @property
    def notary(self) -> Notary | None:
        return self._notary

    async def evaluate(self, address: str) -> IntegrityDecision:
        """Decision for address, without notarization."""
        address = require_valid_wallet(address)
        observations = await self._history.fetch_observations(address)
        fair_score = await self._reputation.get_fair_score(address)
        return evaluate_integrity(observations, fair_score, self._thresholds)

    async def verify(self, address: str, notarize: bool = False) -> VerificationResult:
        """
        Full check. With notarize=True, VERIFIED and SYBIL decisions are sent to the
        notary; a notary failure only leaves signature as None.
        """
        start = time.perf_counter()
        address = require_valid_wallet(address)
        log = bind_wallet(address)

        decision = await self.evaluate(address)
        signature: str | None = None
        if notarize:
            outcome = await notarize_decision(self._notary, address, decision)
            signature = outcome.signature

        latency_ms = int(round((time.perf_counter() - start) * 1000))
        log.info(
            "integrity_decided",
            status=decision.status.value,
            total_score=decision.total_score,
            governance_weight=decision.governance_weight,
            tx_count=decision.tx_count,
            notarized=signature is not None,
            latency_ms=latency_ms,
        )
        return VerificationResult(wallet=address, decision=decision, signature=signature, latency_ms=latency_ms)

    async def close(self) -> None:
        for collaborator in (self._history, self._notary):
            close = getattr(collaborator, "close", None)
            if close is not None:
                await close()


def build_notary(settings: Settings) -> SolanaNotary | None:
    """
    SolanaNotary from settings, or None when notarization cannot be configured.

    A missing or malformed NOTARY_SECRET (or a bad program id) disables
    notarization; verification keeps serving with signature always null.
    """
    if not settings.notary_secret and not settings.notary_dry_run:
        logger.warning("notary_not_configured", reason="NOTARY_SECRET unset")
        return None
    try:
        return SolanaNotary(
            NotaryConfig(
                rpc_url=settings.solana_rpc_url,
                program_id=settings.solana_program_id,
                notary_secret=settings.notary_secret,
                dry_run=settings.notary_dry_run,
            )
        )
    except (NotaryError, ValueError) as e:
        logger.error("notary_not_configured", reason=str(e))
        return None


def build_integrity_service(settings: Settings | None = None) -> IntegrityService:
    """Wire an IntegrityService against Solana RPC and FairScale using settings (env by default)."""
    settings = settings or get_settings()
    policy = FetchPolicy(
        signature_limit=settings.signature_limit,
        concurrency=settings.fetch_concurrency,
        batch_delay_sec=settings.fetch_batch_delay_sec,
        max_retries=settings.rpc_max_retries,
        base_delay_ms=settings.rpc_base_delay_ms,
    )
    history = HistoryFetcher(SolanaHistorySource(settings.solana_rpc_url), policy)
    fairscale = FairScaleClient(settings.fairscale_api_url, timeout_sec=settings.reputation_timeout_sec)
    reputation = ReputationCache(
        fairscale.fetch_score,
        ttl_sec=settings.reputation_cache_ttl_sec,
        timeout_sec=settings.reputation_timeout_sec,
    )
    logger.info(
        "integrity_service_built",
        rpc=mask_rpc_url(settings.solana_rpc_url),
        program_id=settings.solana_program_id,
        thresholds=vars(settings.thresholds),
    )
    return IntegrityService(history, reputation, notary=build_notary(settings), thresholds=settings.thresholds)
