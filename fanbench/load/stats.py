from __future__ import annotations

import math
from collections.abc import Sequence
from fractions import Fraction


def percentile(samples: Sequence[float], p: float) -> float:
    """Nearest-rank percentile: ``sorted(samples)[ceil(n * p) - 1]``.

    ``p`` is a fraction in (0, 1]. It goes through ``Fraction(str(p))`` so that
    0.95 * 100 lands on rank 95 rather than 96 because of float rounding.
    Returns 0.0 for an empty sample.
    """
    if not 0 < p <= 1:
        raise ValueError(f"percentile must be in (0, 1], got {p}")
    if not samples:
        return 0.0

    ordered = sorted(samples)
    rank = math.ceil(Fraction(str(p)) * len(ordered))
    index = min(max(rank, 1), len(ordered)) - 1
    return ordered[index]


def mean(samples: Sequence[float]) -> float:
    if not samples:
        return 0.0
    return math.fsum(samples) / len(samples)
