"""
Tests for the decision engine: ordered rules, score fusion, governance weights.
"""

from __future__ import annotations

import dataclasses

import pytest

from backend_trustchain.analytics import (
    DecisionThresholds,
    IntegrityStatus,
    ObservationSet,
    ScoreVector,
    evaluate_integrity,
)
from backend_trustchain.analytics.decision_engine import (
    REASON_AMBIGUOUS,
    REASON_INSUFFICIENT_HISTORY,
    REASON_SYBIL,
    REASON_VERIFIED,
    calculate_total_score,
    calculate_trust_chain_score,
    calculate_voter_weight,
)
from backend_trustchain.analytics.models import governance_tier


def _obs(amounts, timestamps=(), sample_count=None):
    return ObservationSet(
        amounts=tuple(float(a) for a in amounts),
        timestamps=tuple(float(t) for t in timestamps),
        sample_count=len(amounts) if sample_count is None else sample_count,
    )


@pytest.mark.parametrize(
    "total,hhi,expected",
    [
        (90, 0.2, 1.5),
        (50, 0.2, 1.0),
        (20, 0.2, 0.1),
        (0, 0.2, 0.0),
        (90, 0.85, 0.1),
        (80, 0.2, 1.5),
        (40, 0.2, 1.0),
        (90, 0.8, 1.5),
    ],
)
def test_voter_weight(total, hhi, expected):
    assert calculate_voter_weight(total, hhi) == expected


def test_total_score_fusion():
    assert calculate_total_score(80, 60) == 74
    assert calculate_total_score(94, 50) == 81
    assert calculate_total_score(0, 50) == 15


def test_trust_chain_score_rounds_half_up():
    assert calculate_trust_chain_score(0.375, value_samples=4) == 63
    assert calculate_trust_chain_score(0.0, value_samples=4) == 100


def test_trust_chain_score_zero_without_value_samples():
    assert calculate_trust_chain_score(0.0, value_samples=1) == 0
    assert calculate_trust_chain_score(0.0, value_samples=0) == 0


def test_insufficient_sample_count():
    decision = evaluate_integrity(_obs([5, 6], sample_count=2), fair_score=50)
    assert decision.status == IntegrityStatus.PROBATIONARY
    assert decision.reason == REASON_INSUFFICIENT_HISTORY


def test_insufficient_value_samples():
    """Many records but only one balance change: no behavioral credit."""
    decision = evaluate_integrity(_obs([5], sample_count=6), fair_score=50)
    assert decision.status == IntegrityStatus.PROBATIONARY
    assert decision.reason == REASON_INSUFFICIENT_HISTORY
    assert decision.trust_chain_score == 0
    assert decision.total_score == 15
    assert decision.governance_weight == 0.1
    assert decision.tx_count == 6


def test_sybil_by_inequality():
    decision = evaluate_integrity(_obs([1000, 1, 1, 1]), fair_score=50)
    assert decision.score_vector.gini > 0.7
    assert decision.status == IntegrityStatus.SYBIL
    assert decision.reason == REASON_SYBIL


def test_sybil_by_synchronization():
    """Even amounts but metronomic timing."""
    decision = evaluate_integrity(_obs([10, 12, 11, 9], timestamps=[0, 60, 120, 180]), fair_score=90)
    assert decision.score_vector.gini < 0.3
    assert decision.score_vector.sync_index == pytest.approx(1.0)
    assert decision.status == IntegrityStatus.SYBIL


def test_verified_organic():
    decision = evaluate_integrity(_obs([10, 12, 11, 9]), fair_score=50)
    assert decision.status == IntegrityStatus.VERIFIED
    assert decision.reason == REASON_VERIFIED
    assert decision.trust_chain_score == 94
    assert decision.total_score == 81
    assert decision.governance_weight == 1.5
    assert decision.tier == "Steward"
    assert decision.is_qualified


def test_gray_zone_is_probationary():
    decision = evaluate_integrity(_obs([1, 1, 10, 10]), fair_score=50)
    assert 0.3 <= decision.score_vector.gini <= 0.7
    assert decision.status == IntegrityStatus.PROBATIONARY
    assert decision.reason == REASON_AMBIGUOUS
    assert decision.total_score == 56
    assert decision.governance_weight == 1.0


@pytest.mark.parametrize(
    "scores,expected",
    [
        (ScoreVector(gini=0.7, hhi=0.2, sync_index=0.0), IntegrityStatus.PROBATIONARY),
        (ScoreVector(gini=0.3, hhi=0.2, sync_index=0.0), IntegrityStatus.PROBATIONARY),
        (ScoreVector(gini=0.1, hhi=0.2, sync_index=0.35), IntegrityStatus.VERIFIED),
        (ScoreVector(gini=0.1, hhi=0.2, sync_index=0.3501), IntegrityStatus.SYBIL),
        (ScoreVector(gini=0.7001, hhi=0.2, sync_index=0.0), IntegrityStatus.SYBIL),
    ],
)
def test_threshold_boundaries_are_strict(scores, expected):
    decision = evaluate_integrity(_obs([1, 2, 3, 4]), fair_score=50, score_vector=scores)
    assert decision.status == expected


def test_whale_capped_even_when_verified_by_score():
    scores = ScoreVector(gini=0.1, hhi=0.9, sync_index=0.0)
    decision = evaluate_integrity(_obs([1, 2, 3, 4]), fair_score=100, score_vector=scores)
    assert decision.status == IntegrityStatus.VERIFIED
    assert decision.governance_weight == 0.1
    assert decision.tier == "Probationary"


def test_lenient_thresholds_override():
    lenient = DecisionThresholds(sybil_gini=0.9, sybil_sync_index=0.5)
    decision = evaluate_integrity(_obs([1000, 1, 1, 1]), fair_score=50, thresholds=lenient)
    assert decision.status == IntegrityStatus.PROBATIONARY


def test_decision_is_frozen():
    decision = evaluate_integrity(_obs([10, 12, 11, 9]), fair_score=50)
    with pytest.raises(dataclasses.FrozenInstanceError):
        decision.status = IntegrityStatus.SYBIL


def test_to_response_contract():
    body = evaluate_integrity(_obs([10, 12, 11, 9]), fair_score=50).to_response()
    assert body["status"] == "VERIFIED"
    assert set(body["scores"]) == {"gini", "hhi", "syncIndex", "totalScore", "fairScore", "trustChainScore"}
    assert body["governance"] == {"voterWeightMultiplier": 1.5, "isQualified": True, "tier": "Steward"}
    assert body["txCount"] == 4


def test_blocked_wallet_not_qualified():
    decision = evaluate_integrity(_obs([5], sample_count=6), fair_score=0)
    assert decision.total_score == 0
    assert decision.governance_weight == 0.0
    assert not decision.is_qualified


@pytest.mark.parametrize("weight,tier", [(1.5, "Steward"), (1.0, "Verified"), (0.1, "Probationary"), (0.0, "Probationary")])
def test_governance_tier(weight, tier):
    assert governance_tier(weight) == tier


def test_observation_set_rejects_more_amounts_than_samples():
    with pytest.raises(ValueError):
        ObservationSet(amounts=(1.0, 2.0), sample_count=1)
