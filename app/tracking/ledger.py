"""
Effectiveness rating ledger.

Keeps every verdict a user gave for a concern as history, and derives the one
*current* verdict per (item, concern, cycle): the entry with the latest
`rated_at`, ties going to the later write. Rating is refused until the cycle
is complete, and a refused rating leaves the ledger untouched.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from app.errors import NotCompletedError
from app.schemas import ConcernTracking, EffectivenessRating, RatingResult

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def current_entry(entries: Sequence[EffectivenessRating]) -> Optional[EffectivenessRating]:
    """Last-write-wins on rated_at; equal timestamps resolve to the later entry."""
    best: Optional[EffectivenessRating] = None
    for entry in entries:
        if best is None or entry.rated_at >= best.rated_at:
            best = entry
    return best


def ensure_can_rate(tracking: ConcernTracking) -> None:
    """Raise NotCompletedError unless the cycle is complete and still open."""
    if not tracking.is_active:
        raise NotCompletedError(tracking.concern_name, paused=True)
    if not tracking.is_completed:
        raise NotCompletedError(
            tracking.concern_name, tracking.weeks_completed, tracking.total_weeks
        )


class EffectivenessLedger:
    """In-memory ledger over an item's stored ratings; the routine service persists new entries."""

    def __init__(self, entries: Iterable[EffectivenessRating] = ()):
        self._entries: dict[tuple[int, str], list[EffectivenessRating]] = {}
        for entry in entries:
            self._entries.setdefault((entry.routine_item_id, entry.concern_name), []).append(entry)

    def rate(
        self,
        item_id: int,
        concern: str,
        is_effective: bool,
        *,
        is_completed: bool,
        cycle: int = 1,
        rated_at: Optional[datetime] = None,
    ) -> RatingResult:
        if not is_completed:
            raise NotCompletedError(concern)

        previous = self.current_rating(item_id, concern, cycle)
        entry = EffectivenessRating(
            routine_item_id=item_id,
            concern_name=concern,
            cycle=cycle,
            is_effective=is_effective,
            rated_at=rated_at or utcnow(),
        )
        self._entries.setdefault((item_id, concern), []).append(entry)

        current = current_entry(self._cycle_entries(item_id, concern, cycle))
        logger.info(
            f"Rated item {item_id} / {concern} (cycle {cycle}): "
            f"{previous} -> {current.is_effective}"
        )
        return RatingResult(
            routine_item_id=item_id,
            concern_name=concern,
            cycle=cycle,
            is_effective=current.is_effective,
            previous=previous,
            rated_at=current.rated_at,
        )

    def rate_tracking(
        self,
        item_id: int,
        tracking: ConcernTracking,
        is_effective: bool,
        rated_at: Optional[datetime] = None,
    ) -> RatingResult:
        """Rate using a tracking snapshot for the completion check."""
        ensure_can_rate(tracking)
        return self.rate(
            item_id,
            tracking.concern_name,
            is_effective,
            is_completed=True,
            cycle=tracking.cycle,
            rated_at=rated_at,
        )

    def current_rating(self, item_id: int, concern: str, cycle: Optional[int] = None) -> Optional[bool]:
        entries = self._entries.get((item_id, concern), [])
        if not entries:
            return None
        if cycle is None:
            cycle = max(e.cycle for e in entries)
        current = current_entry(self._cycle_entries(item_id, concern, cycle))
        return current.is_effective if current else None

    def history(self, item_id: int, concern: str) -> list[EffectivenessRating]:
        return list(self._entries.get((item_id, concern), []))

    def _cycle_entries(self, item_id: int, concern: str, cycle: int) -> list[EffectivenessRating]:
        return [e for e in self._entries.get((item_id, concern), []) if e.cycle == cycle]
