"""
Temporal synchronization kernel: detect bot-like timing in transaction timestamps.

Two signals over the gaps between sorted timestamps:
- regularity: 1 / (1 + cv), cv = population stddev / mean gap. Regular cadence -> near 1.
- burst ratio: share of gaps <= BURST_THRESHOLD_SEC.
The index is the larger of the two; either one alone marks non-organic timing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

BURST_THRESHOLD_SEC = 10.0
MIN_TIMESTAMPS = 3


@dataclass(frozen=True)
class SyncResult:
    sync_index: float = 0.0
    burst_ratio: float = 0.0


def _gaps(timestamps: Sequence[float]) -> list[float]:
    ordered = sorted(float(t) for t in timestamps)
    return [b - a for a, b in zip(ordered, ordered[1:])]


def regularity_signal(gaps: Sequence[float]) -> float:
    """1 / (1 + coefficient of variation). A zero mean gap (same instant) is maximal: 1."""
    if not gaps:
        return 0.0
    mean = sum(gaps) / len(gaps)
    if mean == 0:
        return 1.0
    variance = sum((g - mean) ** 2 for g in gaps) / len(gaps)
    cv = math.sqrt(variance) / mean
    return 1.0 / (1.0 + cv)


def burst_ratio(gaps: Sequence[float], threshold: float = BURST_THRESHOLD_SEC) -> float:
    """Fraction of gaps that are <= threshold. Denominator is the number of gaps."""
    if not gaps:
        return 0.0
    clustered = sum(1 for g in gaps if g <= threshold)
    return clustered / len(gaps)


def calculate_sync_index(
    timestamps: Sequence[float] | None,
    burst_threshold: float = BURST_THRESHOLD_SEC,
) -> SyncResult:
    """
    Synchronization index in [0, 1] plus the burst ratio it was derived from.

    Fewer than MIN_TIMESTAMPS timestamps is "no signal": SyncResult(0, 0), never an error.
    """
    if not timestamps or len(timestamps) < MIN_TIMESTAMPS:
        return SyncResult()

    gaps = _gaps(timestamps)
    burst = burst_ratio(gaps, burst_threshold)
    index = max(regularity_signal(gaps), burst)
    return SyncResult(sync_index=index, burst_ratio=burst)
