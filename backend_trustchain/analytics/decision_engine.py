"""
Decision engine: fuse concentration, synchronization and reputation into an IntegrityDecision.

Pure functions, no I/O. Rules are evaluated in order, first match wins:
1. PROBATIONARY  sample_count < min_sample_count or fewer than min_value_samples amounts
2. SYBIL         sync_index > sybil_sync_index or gini > sybil_gini
3. VERIFIED      gini < verified_gini
4. PROBATIONARY  everything in between

Scores: trust_chain = round((1 - gini) * 100), 0 without enough value samples;
total = round(0.7 * trust_chain + 0.3 * fair_score). Governance weight is a step
function of total score, capped at 0.1 for whale wallets (hhi > whale_hhi).
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from backend_trustchain.analytics.concentration import calculate_gini, calculate_hhi
from backend_trustchain.analytics.models import (
    IntegrityDecision,
    IntegrityStatus,
    ObservationSet,
    ScoreVector,
)
from backend_trustchain.analytics.sync_index import BURST_THRESHOLD_SEC, calculate_sync_index
from backend_trustchain.trustchain_logging import get_logger

logger = get_logger(__name__)

REASON_INSUFFICIENT_HISTORY = "Insufficient transaction history for full analysis."
REASON_SYBIL = "Behavioral anomaly: high temporal synchronization or extreme inequality detected."
REASON_VERIFIED = "Behavior aligns with organic patterns."
REASON_AMBIGUOUS = "Ambiguous concentration profile; held for further observation."

WEIGHT_STEWARD = 1.5
WEIGHT_VERIFIED = 1.0
WEIGHT_PROBATIONARY = 0.1
WEIGHT_BLOCKED = 0.0


@dataclass(frozen=True)
class DecisionThresholds:
    """
    Every cut-off the engine uses. Defaults are the strict agent regime
    (gini > 0.7 or sync_index > 0.35 is SYBIL).
    """

    min_sample_count: int = 3
    min_value_samples: int = 2
    sybil_gini: float = 0.7
    sybil_sync_index: float = 0.35
    verified_gini: float = 0.3
    whale_hhi: float = 0.8
    steward_score: int = 80
    verified_score: int = 40
    behavior_weight: float = 0.7
    reputation_weight: float = 0.3
    burst_threshold_sec: float = BURST_THRESHOLD_SEC


DEFAULT_THRESHOLDS = DecisionThresholds()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_score_vector(
    observations: ObservationSet,
    burst_threshold: float = BURST_THRESHOLD_SEC,
) -> ScoreVector:
    """Reduce an ObservationSet to gini, hhi and sync index."""
    sync = calculate_sync_index(observations.timestamps, burst_threshold=burst_threshold)
    return ScoreVector(
        gini=calculate_gini(observations.amounts),
        hhi=calculate_hhi(observations.amounts),
        sync_index=sync.sync_index,
        burst_ratio=sync.burst_ratio,
    )


def calculate_trust_chain_score(gini: float, value_samples: int, min_value_samples: int = 2) -> int:
    """Local-behavior sub-score 0-100. No usable value samples means no credit."""
    if value_samples < min_value_samples:
        return 0
    return _round_half_up(max(0.0, 1.0 - min(gini, 1.0)) * 100)


def calculate_total_score(
    trust_chain_score: float,
    fair_score: float,
    thresholds: DecisionThresholds = DEFAULT_THRESHOLDS,
) -> int:
    """Weighted fusion: behavior 70%, external reputation 30%."""
    weighted = trust_chain_score * thresholds.behavior_weight + fair_score * thresholds.reputation_weight
    return _round_half_up(weighted)


def calculate_voter_weight(
    total_score: float,
    hhi: float,
    thresholds: DecisionThresholds = DEFAULT_THRESHOLDS,
) -> float:
    """Governance multiplier: 1.5 Steward, 1.0 Verified, 0.1 Probationary, 0.0 blocked."""
    if hhi > thresholds.whale_hhi:
        return WEIGHT_PROBATIONARY
    if total_score >= thresholds.steward_score:
        return WEIGHT_STEWARD
    if total_score >= thresholds.verified_score:
        return WEIGHT_VERIFIED
    if total_score > 0:
        return WEIGHT_PROBATIONARY
    return WEIGHT_BLOCKED


def classify(
    sample_count: int,
    value_samples: int,
    scores: ScoreVector,
    thresholds: DecisionThresholds = DEFAULT_THRESHOLDS,
) -> tuple[IntegrityStatus, str]:
    """Run the ordered rules; return (status, reason)."""
    if sample_count < thresholds.min_sample_count or value_samples < thresholds.min_value_samples:
        return IntegrityStatus.PROBATIONARY, REASON_INSUFFICIENT_HISTORY
    if scores.sync_index > thresholds.sybil_sync_index or scores.gini > thresholds.sybil_gini:
        return IntegrityStatus.SYBIL, REASON_SYBIL
    if scores.gini < thresholds.verified_gini:
        return IntegrityStatus.VERIFIED, REASON_VERIFIED
    return IntegrityStatus.PROBATIONARY, REASON_AMBIGUOUS


def evaluate_integrity(
    observations: ObservationSet,
    fair_score: float,
    thresholds: DecisionThresholds = DEFAULT_THRESHOLDS,
    score_vector: ScoreVector | None = None,
) -> IntegrityDecision:
    """
    Build the IntegrityDecision for one wallet.

    score_vector may be passed when already computed; otherwise it is derived
    from observations. fair_score is the (cached) reputation score 0-100.
    """
    scores = score_vector or compute_score_vector(observations, thresholds.burst_threshold_sec)
    value_samples = len(observations.amounts)

    status, reason = classify(observations.sample_count, value_samples, scores, thresholds)
    trust_chain_score = calculate_trust_chain_score(scores.gini, value_samples, thresholds.min_value_samples)
    total_score = calculate_total_score(trust_chain_score, fair_score, thresholds)
    weight = calculate_voter_weight(total_score, scores.hhi, thresholds)

    logger.debug(
        "decision_engine_result",
        status=status.value,
        gini=round(scores.gini, 4),
        hhi=round(scores.hhi, 4),
        sync_index=round(scores.sync_index, 4),
        trust_chain_score=trust_chain_score,
        fair_score=fair_score,
        total_score=total_score,
        governance_weight=weight,
    )
    return IntegrityDecision(
        status=status,
        score_vector=scores,
        trust_chain_score=trust_chain_score,
        fair_score=fair_score,
        total_score=total_score,
        governance_weight=weight,
        reason=reason,
        tx_count=observations.sample_count,
    )
