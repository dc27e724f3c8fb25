"""KPI-count rubric: 3 pts = 3+ KPIs, 2 pts = 2, 1 pt = 1, 0 pts = none."""

from __future__ import annotations


def score_for(detected_count: int) -> int:
    """Map the number of detected KPIs to a score in ``0..3``."""
    if detected_count < 0:
        raise ValueError(f"detected_count must not be negative: {detected_count}")
    if detected_count >= 3:
        return 3
    return detected_count
