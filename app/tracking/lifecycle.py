"""
Tracking lifecycle controller: the entry point the screens call.

Per (item, concern) a cycle moves through

    ACTIVE -> COMPLETED -> RATED (-> RATED on re-rating)
    ACTIVE | COMPLETED | RATED -> PAUSED

ACTIVE -> COMPLETED happens on its own as weeks accrue. RATED needs a
successful rating, PAUSED a confirmed stop-tracking or an end date on the item.
PAUSED is terminal for the cycle; resuming opens a new cycle.

State lives in the routine service. This controller keeps the last snapshot it
fetched per item and swaps it in whole, so an abandoned fetch never leaves a
half-applied transition behind.
"""

import logging
from datetime import date
from typing import Any, Optional, Protocol

from app.errors import StaleStateError, UnknownConcernError
from app.schemas import (
    ConcernReview,
    ConcernTracking,
    RatingRequest,
    RatingResult,
    RoutineItemRead,
    StateChange,
    ToggleAction,
    TrackingState,
    UsageConsistencyResponse,
)
from app.tracking.ledger import ensure_can_rate
from app.tracking.progress import round_half_up
from app.tracking.scores import STATUS_LABELS, parse_improvement_status, score_change_label
from app.vocabulary import normalize

logger = logging.getLogger(__name__)


class TrackingStore(Protocol):
    """The routine service as seen by the controller."""

    async def get_concern_tracking(self, item_id: int) -> list[ConcernTracking]: ...

    async def rate_effectiveness(
        self, item_id: int, ratings: list[RatingRequest]
    ) -> list[RatingResult]: ...

    async def toggle_tracking(
        self, item_id: int, action: ToggleAction, concerns: Optional[list[str]] = None
    ) -> list[ConcernTracking]: ...

    async def update_routine_item(self, item_id: int, fields: dict[str, Any]) -> RoutineItemRead: ...


# ── Pure helpers ─────────────────────────────────────────────────────────────


def tracking_state(tracking: ConcernTracking) -> TrackingState:
    if not tracking.is_active:
        return TrackingState.PAUSED
    if not tracking.is_completed:
        return TrackingState.ACTIVE
    if tracking.effectiveness_rating is None:
        return TrackingState.COMPLETED
    return TrackingState.RATED


def status_label(tracking: ConcernTracking) -> Optional[str]:
    """Badge text; None while the cycle is still in progress."""
    if not tracking.is_completed:
        return None
    if tracking.effectiveness_rating is None:
        return "Ready to Review"
    return "Proven" if tracking.effectiveness_rating else "Unproven"


def can_rate(tracking: ConcernTracking) -> bool:
    return tracking.is_active and tracking.is_completed


def needs_photo(tracking: ConcernTracking) -> bool:
    """Completed but no scores yet: ask for a photo instead of a verdict."""
    return tracking.is_completed and not tracking.has_scores


def usage_response_text(response: Optional[UsageConsistencyResponse]) -> Optional[str]:
    if response == UsageConsistencyResponse.YES:
        return "Yes, I've been using it consistently - Missing once or twice is okay"
    if response == UsageConsistencyResponse.NO:
        return "No, I haven't been using it consistently - I've missed multiple times per week"
    return None


def review_concern(tracking: ConcernTracking) -> ConcernReview:
    word = "complete" if tracking.is_completed else "incomplete"
    percent = round_half_up(100 * tracking.weeks_completed / tracking.total_weeks)
    return ConcernReview(
        concern_name=tracking.concern_name,
        label=normalize(tracking.concern_name),
        state=tracking_state(tracking),
        weeks_completed=tracking.weeks_completed,
        total_weeks=tracking.total_weeks,
        percent=max(0, min(100, percent)),
        week_label=f"Review {word} week {tracking.weeks_completed}/{tracking.total_weeks}",
        baseline_score=tracking.baseline_score,
        current_score=tracking.current_score,
        score_difference=tracking.score_difference,
        score_change=score_change_label(tracking.baseline_score, tracking.current_score),
        improvement_status=tracking.improvement_status,
        improvement_label=STATUS_LABELS[tracking.improvement_status],
        effectiveness_rating=tracking.effectiveness_rating,
        status_label=status_label(tracking),
        can_rate=can_rate(tracking),
        needs_photo=needs_photo(tracking),
    )


# ── Controller ───────────────────────────────────────────────────────────────


class TrackingLifecycle:
    def __init__(self, store: TrackingStore):
        self.store = store
        self._snapshots: dict[int, dict[str, ConcernTracking]] = {}

    def snapshot(self, item_id: int) -> dict[str, ConcernTracking]:
        return dict(self._snapshots.get(item_id, {}))

    def state(self, item_id: int, concern: str) -> Optional[TrackingState]:
        tracking = self._snapshots.get(item_id, {}).get(concern)
        return tracking_state(tracking) if tracking else None

    async def refresh(self, item_id: int) -> list[StateChange]:
        """Fetch fresh tracking and report every state that moved."""
        fresh = await self.store.get_concern_tracking(item_id)
        return self._apply(item_id, fresh)

    async def review(self, item_id: int, status: Optional[str] = None) -> list[ConcernReview]:
        """Review every concern, or only those whose scores moved as `status` says.

        `status` accepts the canonical tokens and the older improving/declining/stable ones.
        """
        await self.refresh(item_id)
        reviews = [review_concern(t) for t in self._snapshots[item_id].values()]
        if status is None:
            return reviews
        wanted = parse_improvement_status(status)
        return [r for r in reviews if r.improvement_status == wanted]

    async def rate(
        self,
        item_id: int,
        concern: str,
        is_effective: bool,
        *,
        displayed: Optional[ConcernTracking] = None,
    ) -> RatingResult:
        """Record a verdict, re-checking completion against fresh state first.

        `displayed` is what the caller showed the user; it defaults to the last
        snapshot this controller fetched. If that said "ready to rate" but fresh
        state disagrees, StaleStateError is raised instead of NotCompletedError.
        """
        if displayed is None:
            displayed = self._snapshots.get(item_id, {}).get(concern)

        self._apply(item_id, await self.store.get_concern_tracking(item_id))
        tracking = self._snapshots[item_id].get(concern)
        if tracking is None:
            raise UnknownConcernError(item_id, concern)

        if not can_rate(tracking) and displayed is not None and can_rate(displayed):
            logger.warning(f"Stale rating attempt for item {item_id} / {concern}")
            raise StaleStateError(concern)
        ensure_can_rate(tracking)

        results = await self.store.rate_effectiveness(
            item_id, [RatingRequest(concern_name=concern, is_effective=is_effective)]
        )
        result = next(r for r in results if r.concern_name == concern)

        updated = dict(self._snapshots[item_id])
        updated[concern] = tracking.model_copy(update={"effectiveness_rating": result.is_effective})
        self._apply(item_id, list(updated.values()))
        return result

    async def stop_tracking(
        self,
        item_id: int,
        usage_response: Optional[UsageConsistencyResponse],
        *,
        confirmed: bool,
        concerns: Optional[list[str]] = None,
    ) -> list[StateChange]:
        """Pause only after the user said they weren't using it and confirmed."""
        if usage_response != UsageConsistencyResponse.NO or not confirmed:
            logger.info(f"Stop tracking not confirmed for item {item_id}, nothing to do")
            return []
        return await self.pause(item_id, concerns)

    async def pause(self, item_id: int, concerns: Optional[list[str]] = None) -> list[StateChange]:
        await self.refresh(item_id)
        current = self._snapshots[item_id]
        targets = concerns if concerns is not None else list(current)
        for concern in targets:
            if concern not in current:
                raise UnknownConcernError(item_id, concern)

        to_pause = [c for c in targets if current[c].is_active]
        if not to_pause:
            return []
        updated = await self.store.toggle_tracking(item_id, ToggleAction.PAUSE, to_pause)
        return self._apply(item_id, updated)

    async def resume(self, item_id: int, concerns: Optional[list[str]] = None) -> list[StateChange]:
        """Open a fresh cycle for paused concerns."""
        if item_id not in self._snapshots:
            await self.refresh(item_id)
        updated = await self.store.toggle_tracking(item_id, ToggleAction.RESUME, concerns)
        return self._apply(item_id, updated)

    async def end_item(self, item_id: int, end_date: date) -> list[StateChange]:
        """Setting an end date pauses every concern on the item."""
        if item_id not in self._snapshots:
            await self.refresh(item_id)
        await self.store.update_routine_item(item_id, {"end_date": end_date})
        return await self.refresh(item_id)

    def forget(self, item_id: int) -> None:
        self._snapshots.pop(item_id, None)

    def _apply(self, item_id: int, trackings: list[ConcernTracking]) -> list[StateChange]:
        previous = self._snapshots.get(item_id, {})
        current = {t.concern_name: t for t in trackings}

        changes = []
        for name, tracking in current.items():
            before = tracking_state(previous[name]) if name in previous else None
            after = tracking_state(tracking)
            if before != after:
                changes.append(StateChange(concern_name=name, previous=before, current=after))
                logger.info(f"Item {item_id} / {name}: {before} -> {after.value}")

        self._snapshots[item_id] = current
        return changes
