"""
Score comparator: baseline vs current score for one concern.

Scores come from the skin analysis service as integers in [0, 100]. They are
compared exactly and never clamped; an out-of-range score is passed through.
"""

import math
from typing import Optional

from app.schemas import ImprovementStatus, ScoreComparison

# Status tokens used by older routine service payloads
_LEGACY_STATUS = {
    "improving": ImprovementStatus.IMPROVED,
    "declining": ImprovementStatus.WORSENED,
    "stable": ImprovementStatus.NO_CHANGE,
}

STATUS_LABELS = {
    ImprovementStatus.IMPROVED: "Improving",
    ImprovementStatus.WORSENED: "Declining",
    ImprovementStatus.NO_CHANGE: "Stable",
    ImprovementStatus.INSUFFICIENT_DATA: "No Data",
}


def _missing(score: Optional[float]) -> bool:
    return score is None or (isinstance(score, float) and math.isnan(score))


def compare(baseline: Optional[float], current: Optional[float]) -> ScoreComparison:
    if _missing(baseline) or _missing(current):
        return ScoreComparison(difference=None, status=ImprovementStatus.INSUFFICIENT_DATA)

    difference = current - baseline
    if difference > 0:
        status = ImprovementStatus.IMPROVED
    elif difference < 0:
        status = ImprovementStatus.WORSENED
    else:
        status = ImprovementStatus.NO_CHANGE
    return ScoreComparison(difference=difference, status=status)


def parse_improvement_status(value: Optional[str]) -> ImprovementStatus:
    """Read a status token from any payload version; unknown means no data."""
    if not value:
        return ImprovementStatus.INSUFFICIENT_DATA
    token = value.strip().lower()
    if token in _LEGACY_STATUS:
        return _LEGACY_STATUS[token]
    try:
        return ImprovementStatus(token)
    except ValueError:
        return ImprovementStatus.INSUFFICIENT_DATA


def _format_score(score: float) -> str:
    return str(int(score)) if float(score).is_integer() else f"{score:g}"


def score_change_label(baseline: Optional[float], current: Optional[float]) -> Optional[str]:
    """`40 -> 65`, or None unless both scores are known."""
    if _missing(baseline) or _missing(current):
        return None
    return f"{_format_score(baseline)} -> {_format_score(current)}"
