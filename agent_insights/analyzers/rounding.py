"""Half-up rounding, matching what dashboard consumers expect for percentages."""
from __future__ import annotations

import math


def round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def percentage(count: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(round_half_up(count / total * 100))
