"""
Concentration kernel: Gini coefficient and Herfindahl-Hirschman Index over transfer magnitudes.

Gini uses the population normalization D / (2 * n * S), where D is the full
double sum of absolute pairwise differences. Its maximum for n values is (n - 1) / n,
so [10000, 0, 0, 0] scores 0.75 and [0, 0, 10] scores 2/3.
"""

from __future__ import annotations

from typing import Sequence

# Returned for an all-zero distribution so callers can tell it apart from 0 ("no data")
ALL_ZERO_GINI = 0.0001


def calculate_gini(values: Sequence[float]) -> float:
    """
    Gini coefficient of values: 0 = perfectly equal, towards 1 = one value holds everything.

    Fewer than 2 values -> 0. All values zero -> ALL_ZERO_GINI.
    """
    if not values or len(values) < 2:
        return 0.0

    values = [float(v) for v in values]
    n = len(values)
    total = sum(values)
    if total == 0:
        return ALL_ZERO_GINI

    # Direct double sum over ordered pairs; equal values contribute exactly 0
    abs_diff_sum = 0.0
    for x in values:
        for y in values:
            abs_diff_sum += abs(x - y)

    return min(max(abs_diff_sum / (2 * n * total), 0.0), 1.0)


def calculate_hhi(values: Sequence[float]) -> float:
    """
    HHI normalized to 0-1: sum of squared percentage shares / 10000.

    One value holding the whole total -> 1.0; k equal shares -> 1/k. Empty or zero total -> 0.
    """
    if not values:
        return 0.0
    total = sum(float(v) for v in values)
    if total == 0:
        return 0.0

    hhi = 0.0
    for v in values:
        share = float(v) / total * 100
        hhi += share * share
    return min(hhi / 10000, 1.0)
