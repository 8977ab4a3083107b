from math import exp, floor
from typing import NamedTuple, Optional

from .constants import ENCOURAGEMENTS, PERFECTIONIST_NOTE

# (decisions, percent) knots of the linear part of the curve
PROGRESS_KNOTS = [(0, 0.0), (120, 80.0), (300, 95.0), (500, 98.0)]
TAIL_SPAN = 500.0
MAX_PERCENT = 99


class ProgressReport(NamedTuple):
    percent: int
    message: str
    note: Optional[str] = None


def estimate_progress(total_decisions: int) -> int:
    """
    Map a decision count onto a completion percentage in [0, 100).

    Three linear segments up to 500 decisions, then an exponential approach
    that never reaches 100. Purely cosmetic; nothing stops at any value.
    """
    total = max(0, total_decisions)
    for (start, low), (end, high) in zip(PROGRESS_KNOTS, PROGRESS_KNOTS[1:]):
        if total < end:
            pct = low + (total - start) / (end - start) * (high - low)
            return int(floor(pct))

    last_count, last_pct = PROGRESS_KNOTS[-1]
    pct = last_pct + (1 - exp(-(total - last_count) / TAIL_SPAN)) * (100 - last_pct)
    return min(MAX_PERCENT, int(floor(pct)))


def encouragement_for(percent: int) -> str:
    """Message of the highest threshold reached"""
    message = ENCOURAGEMENTS[0][1]
    for threshold, text in ENCOURAGEMENTS:
        if percent >= threshold:
            message = text
    return message


def progress_report(total_decisions: int) -> ProgressReport:
    percent = estimate_progress(total_decisions)
    note = PERFECTIONIST_NOTE if percent >= 95 else None
    return ProgressReport(percent, encouragement_for(percent), note)
