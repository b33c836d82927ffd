"""
Data model for integrity scoring.

TransactionSample and ObservationSet are transient per fetch. ScoreVector and
IntegrityDecision are frozen: built once per scoring pass and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence


class IntegrityStatus(str, Enum):
    VERIFIED = "VERIFIED"
    PROBATIONARY = "PROBATIONARY"
    SYBIL = "SYBIL"

    @property
    def on_chain_code(self) -> int:
        """u8 status stored by the notary program: 0 safe, 1 suspicious, 2 sybil."""
        return _STATUS_CODES[self]


_STATUS_CODES = {
    IntegrityStatus.VERIFIED: 0,
    IntegrityStatus.PROBATIONARY: 1,
    IntegrityStatus.SYBIL: 2,
}


@dataclass(frozen=True)
class TransactionSample:
    """One balance-changing event for the subject address."""

    amount: float
    timestamp: float | None = None


@dataclass(frozen=True)
class ObservationSet:
    """Aggregate scoring input for one address."""

    amounts: tuple[float, ...] = ()
    timestamps: tuple[float, ...] = ()
    sample_count: int = 0

    def __post_init__(self) -> None:
        if self.sample_count < len(self.amounts):
            raise ValueError(
                f"sample_count ({self.sample_count}) must be >= number of amounts ({len(self.amounts)})"
            )

    @classmethod
    def from_samples(cls, samples: Sequence[TransactionSample], sample_count: int | None = None) -> ObservationSet:
        amounts = tuple(float(s.amount) for s in samples)
        timestamps = tuple(float(s.timestamp) for s in samples if s.timestamp is not None)
        return cls(
            amounts=amounts,
            timestamps=timestamps,
            sample_count=len(samples) if sample_count is None else sample_count,
        )


@dataclass(frozen=True)
class ScoreVector:
    gini: float = 0.0
    hhi: float = 0.0
    sync_index: float = 0.0
    burst_ratio: float = 0.0

    @property
    def gini_u16(self) -> int:
        """Gini scaled to basis points for on-chain storage (0-10000, capped at u16)."""
        return _to_u16(self.gini)

    @property
    def hhi_u16(self) -> int:
        return _to_u16(self.hhi)


def _to_u16(value: float) -> int:
    return max(0, min(int(value * 10000), 65535))


@dataclass(frozen=True)
class IntegrityDecision:
    """Decision Engine output. Serialize with to_response()."""

    status: IntegrityStatus
    score_vector: ScoreVector
    trust_chain_score: int
    fair_score: float
    total_score: int
    governance_weight: float
    reason: str
    tx_count: int = 0

    @property
    def tier(self) -> str:
        return governance_tier(self.governance_weight)

    @property
    def is_qualified(self) -> bool:
        return self.governance_weight > 0

    def to_response(self) -> dict[str, Any]:
        """Serialize to the public verification contract (camelCase keys)."""
        sv = self.score_vector
        return {
            "status": self.status.value,
            "reason": self.reason,
            "scores": {
                "gini": sv.gini,
                "hhi": sv.hhi,
                "syncIndex": sv.sync_index,
                "totalScore": self.total_score,
                "fairScore": self.fair_score,
                "trustChainScore": self.trust_chain_score,
            },
            "governance": {
                "voterWeightMultiplier": self.governance_weight,
                "isQualified": self.is_qualified,
                "tier": self.tier,
            },
            "txCount": self.tx_count,
        }


TIER_STEWARD = "Steward"
TIER_VERIFIED = "Verified"
TIER_PROBATIONARY = "Probationary"


def governance_tier(weight: float) -> str:
    if weight >= 1.5:
        return TIER_STEWARD
    if weight >= 1.0:
        return TIER_VERIFIED
    return TIER_PROBATIONARY
