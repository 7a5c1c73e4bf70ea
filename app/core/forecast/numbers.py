from __future__ import annotations

import math
from typing import Iterable


def round_half_up(value: float, digits: int = 2) -> float:
    """Round with ties going up, matching the rounding of stored forecasts."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean, 0.0 for an empty input."""
    total = 0.0
    count = 0
    for value in values:
        total += value
        count += 1
    return total / count if count else 0.0
