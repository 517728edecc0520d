"""Aggregation helpers for herbivore_dynamics.

Weighted averaging (used when cohorts merge and when output records are
combined) and a fixed-length rolling average (used for the body condition
over the gestation window).
"""

from __future__ import annotations

import math
from typing import List


def average(a: float, b: float, weight_a: float = 1.0, weight_b: float = 1.0) -> float:
    """Weighted average of two values.

    (a * weight_a + b * weight_b) / (weight_a + weight_b)

    Raises:
        ValueError: If a weight is negative, NaN or infinite, or if both
            weights are zero.
    """
    for w in (weight_a, weight_b):
        if math.isnan(w):
            raise ValueError("average(): weight is NaN")
        if math.isinf(w):
            raise ValueError("average(): weight is infinite")
        if w < 0.0:
            raise ValueError(f"average(): weight must be >= 0, got {w}")
    if weight_a + weight_b == 0.0:
        raise ValueError("average(): sum of weights is zero")
    return (a * weight_a + b * weight_b) / (weight_a + weight_b)


class PeriodAverage:
    """Rolling mean over the last ``count`` values.

    The buffer fills up first; once full, the oldest value is overwritten.
    """

    def __init__(self, count: int):
        if count <= 0:
            raise ValueError(f"PeriodAverage: count must be > 0, got {count}")
        self.count = count
        self._values: List[float] = []
        self._index = 0

    def add_value(self, value: float) -> None:
        if len(self._values) < self.count:
            self._values.append(value)
        else:
            self._values[self._index] = value
        self._index = (self._index + 1) % self.count

    def get_average(self) -> float:
        if not self._values:
            raise RuntimeError(
                "PeriodAverage.get_average(): no values have been added yet"
            )
        return sum(self._values) / len(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def _chronological(self) -> List[float]:
        if len(self._values) < self.count:
            return list(self._values)
        return self._values[self._index:] + self._values[:self._index]

    def merge(self, other: 'PeriodAverage', weight_self: float,
              weight_other: float) -> None:
        """Weighted average with another series, aligned by the newest value.

        Where one series is longer, its older values are kept as they are.
        """
        if other.count != self.count:
            raise ValueError(
                f"PeriodAverage.merge(): counts differ ({self.count} vs {other.count})"
            )
        mine = self._chronological()
        theirs = other._chronological()
        n = min(len(mine), len(theirs))
        longer = mine if len(mine) >= len(theirs) else theirs
        merged = longer[:len(longer) - n]
        for a, b in zip(mine[len(mine) - n:], theirs[len(theirs) - n:]):
            merged.append(average(a, b, weight_self, weight_other))
        self._values = merged
        self._index = len(merged) % self.count
