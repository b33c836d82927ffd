"""
Integrity analytics: concentration and synchronization kernels plus the decision engine.

The orchestration layer (fetch -> score -> decide -> notarize) lives in
analytics.integrity_pipeline and is imported from there directly.
"""

from backend_trustchain.analytics.concentration import calculate_gini, calculate_hhi
from backend_trustchain.analytics.decision_engine import (
    DecisionThresholds,
    calculate_total_score,
    calculate_voter_weight,
    evaluate_integrity,
)
from backend_trustchain.analytics.models import IntegrityDecision, IntegrityStatus, ObservationSet, ScoreVector
from backend_trustchain.analytics.sync_index import calculate_sync_index

__all__ = [
    "calculate_gini",
    "calculate_hhi",
    "calculate_sync_index",
    "calculate_total_score",
    "calculate_voter_weight",
    "evaluate_integrity",
    "DecisionThresholds",
    "IntegrityDecision",
    "IntegrityStatus",
    "ObservationSet",
    "ScoreVector",
]
