"""
RoutineService: the routine service the tracking lifecycle talks to.

Owns routine items and their concern tracking rows. Progress is never stored:
weeks are recomputed from each cycle's start date on every read, frozen at the
item's end date or the cycle's pause date. Ratings are appended to a history
table and the current verdict is derived with the ledger's last-write-wins rule.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.errors import RoutineItemNotFoundError, UnknownConcernError
from app.models.db import ConcernTrackingRecord, EffectivenessRatingRecord, RoutineItemRecord
from app.repository import RoutineRepository
from app.schemas import (
    AnalysisScores,
    ConcernScores,
    ConcernTracking,
    EffectivenessRating,
    ItemStatus,
    LinkedProduct,
    RatingRequest,
    RatingResult,
    RoutineItemCreate,
    RoutineItemRead,
    RoutineItemUpdate,
    ToggleAction,
)
from app.services.routine_items import (
    describe_usage,
    kind_label,
    tracking_start,
    usage_pills,
    validate_routine_item,
)
from app.tracking.ledger import EffectivenessLedger, ensure_can_rate, utcnow
from app.tracking.progress import compute_progress, tracking_as_of
from app.vocabulary import score_key_to_concern

logger = logging.getLogger(__name__)

repo = RoutineRepository()


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _current_cycles(item: RoutineItemRecord) -> dict[str, ConcernTrackingRecord]:
    """Latest cycle per concern."""
    current: dict[str, ConcernTrackingRecord] = {}
    for record in item.trackings:
        existing = current.get(record.concern_name)
        if existing is None or record.cycle > existing.cycle:
            current[record.concern_name] = record
    return current


def _ledger(item: RoutineItemRecord) -> EffectivenessLedger:
    """The item's rating history loaded into a ledger."""
    return EffectivenessLedger(
        EffectivenessRating(
            routine_item_id=item.id,
            concern_name=r.concern_name,
            cycle=r.cycle,
            is_effective=r.is_effective,
            rated_at=_aware(r.rated_at),
        )
        for r in item.ratings
    )


class RoutineService:
    """Routine items, concern tracking, ratings and score ingestion."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Optional[Settings] = None,
        today: Callable[[], date] = date.today,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.today = today

    # ── Items ────────────────────────────────────────────────────────────────

    async def list_routine_items(self, status: Optional[ItemStatus] = None) -> list[RoutineItemRead]:
        """All items, or only the active or archived ones."""
        items = await repo.list_items(self.db, status, self.today())
        return [self._to_read(item) for item in items]

    async def get_routine_item(self, item_id: int) -> RoutineItemRead:
        return self._to_read(await self._load(item_id))

    async def create_routine_item(
        self, data: Union[RoutineItemCreate, dict[str, Any]]
    ) -> RoutineItemRead:
        item = validate_routine_item(data, self.today(), self._required_days(data))

        record = RoutineItemRecord(
            name=item.name,
            kind=item.kind,
            usage=item.usage,
            frequency=item.frequency,
            concerns=list(item.concerns),
            start_date=item.start_date,
            treatment_date=item.treatment_date,
            end_date=item.end_date,
            stop_reason=item.stop_reason,
            upc=item.product.upc if item.product else None,
            product_json=item.product.model_dump(mode="json") if item.product else None,
            extra_json=dict(item.extra),
            trackings=[],
            ratings=[],
        )
        self._sync_trackings(record, tracking_start(item))
        await repo.add_item(self.db, record)
        return self._to_read(record)

    async def update_routine_item(
        self, item_id: int, fields: Union[RoutineItemUpdate, dict[str, Any]]
    ) -> RoutineItemRead:
        record = await self._load(item_id)
        if isinstance(fields, dict):
            fields = RoutineItemUpdate.model_validate(fields)
        changes = fields.model_dump(exclude_unset=True)

        merged = self._to_create_fields(record)
        merged.update(changes)
        item = validate_routine_item(merged, self.today(), self._required_days(merged))

        previous_anchor = record.anchor_date
        record.name = item.name
        record.kind = item.kind
        record.usage = item.usage
        record.frequency = item.frequency
        record.concerns = list(item.concerns)
        record.start_date = item.start_date
        record.treatment_date = item.treatment_date
        record.end_date = item.end_date
        record.stop_reason = item.stop_reason
        record.upc = item.product.upc if item.product else None
        record.product_json = item.product.model_dump(mode="json") if item.product else None
        record.extra_json = dict(item.extra)

        anchor = tracking_start(item)
        if anchor != previous_anchor:
            # First cycles follow the item's start date while they are still running
            for tracking in record.trackings:
                if tracking.cycle == 1 and tracking.is_active:
                    tracking.started_on = anchor

        self._sync_trackings(record, anchor)
        await repo.save(self.db, record)
        logger.info(f"Updated routine item {item_id}: {sorted(changes)}")
        return self._to_read(record)

    async def delete_routine_item(self, item_id: int) -> None:
        record = await self._load(item_id)
        await repo.delete_item(self.db, record)

    # ── Tracking ─────────────────────────────────────────────────────────────

    async def get_concern_tracking(self, item_id: int) -> list[ConcernTracking]:
        record = await self._load(item_id)
        return self._snapshots(record)

    async def rate_effectiveness(
        self, item_id: int, ratings: list[RatingRequest]
    ) -> list[RatingResult]:
        """Record verdicts for completed cycles. All-or-nothing per call."""
        record = await self._load(item_id)
        current = _current_cycles(record)

        checked: list[tuple[RatingRequest, ConcernTrackingRecord, ConcernTracking]] = []
        for rating in ratings:
            tracking = current.get(rating.concern_name)
            if tracking is None:
                raise UnknownConcernError(item_id, rating.concern_name)
            snapshot = self._snapshot(record, tracking)
            ensure_can_rate(snapshot)
            checked.append((rating, tracking, snapshot))

        ledger = _ledger(record)
        results = []
        for rating, tracking, snapshot in checked:
            rated_at = utcnow()
            result = ledger.rate_tracking(record.id, snapshot, rating.is_effective, rated_at=rated_at)
            await repo.add_rating(
                self.db,
                record,
                EffectivenessRatingRecord(
                    routine_item_id=record.id,
                    concern_name=tracking.concern_name,
                    cycle=tracking.cycle,
                    is_effective=rating.is_effective,
                    rated_at=rated_at,
                ),
            )
            tracking.effectiveness_rating = result.is_effective
            results.append(result)

        await repo.save(self.db, record)
        return results

    async def get_rating_history(self, item_id: int, concern: str) -> list[EffectivenessRating]:
        record = await self._load(item_id)
        return _ledger(record).history(item_id, concern)

    async def toggle_tracking(
        self,
        item_id: int,
        action: ToggleAction,
        concerns: Optional[list[str]] = None,
    ) -> list[ConcernTracking]:
        """Pause open cycles, or open a new cycle for paused ones."""
        record = await self._load(item_id)
        current = _current_cycles(record)
        targets = concerns if concerns is not None else list(current)
        for concern in targets:
            if concern not in current:
                raise UnknownConcernError(item_id, concern)

        today = self.today()
        if action == ToggleAction.PAUSE:
            for concern in targets:
                tracking = current[concern]
                if tracking.is_active:
                    tracking.is_active = False
                    tracking.paused_on = tracking_as_of(today, record.end_date)
                    logger.info(f"Paused tracking for item {item_id} / {concern}")
        else:
            resumed = False
            for concern in targets:
                tracking = current[concern]
                if tracking.is_active:
                    continue
                record.trackings.append(
                    ConcernTrackingRecord(
                        routine_item_id=record.id,
                        concern_name=concern,
                        cycle=tracking.cycle + 1,
                        required_days=self.settings.required_days_for(concern),
                        started_on=today,
                        is_active=True,
                    )
                )
                resumed = True
                logger.info(
                    f"Started cycle {tracking.cycle + 1} for item {item_id} / {concern}"
                )
            if resumed and record.end_date is not None:
                record.end_date = None
                record.stop_reason = None

        await repo.save(self.db, record)
        return self._snapshots(record)

    async def record_scores(self, item_id: int, scores: list[ConcernScores]) -> list[ConcernTracking]:
        """Store scores pushed by the analysis provider for open cycles."""
        record = await self._load(item_id)
        current = _current_cycles(record)

        for score in scores:
            tracking = current.get(score.concern_name)
            if tracking is None:
                logger.warning(
                    f"Ignoring scores for untracked concern '{score.concern_name}' on item {item_id}"
                )
                continue
            if not tracking.is_active:
                logger.info(
                    f"Ignoring scores for paused concern '{score.concern_name}' on item {item_id}"
                )
                continue
            if score.baseline_score is not None:
                tracking.baseline_score = score.baseline_score
            if score.current_score is not None:
                tracking.current_score = score.current_score

        await repo.save(self.db, record)
        return self._snapshots(record)

    async def record_analysis(self, item_id: int, analysis: AnalysisScores) -> list[ConcernTracking]:
        """Map provider score keys onto concerns, then store them like record_scores."""
        by_concern: dict[str, dict[str, float]] = {}
        for field, values in (("baseline_score", analysis.baseline), ("current_score", analysis.current)):
            for key, value in values.items():
                concern = score_key_to_concern(key)
                if concern is None or value is None:
                    continue
                by_concern.setdefault(concern, {})[field] = value
        scores = [ConcernScores(concern_name=c, **fields) for c, fields in by_concern.items()]
        return await self.record_scores(item_id, scores)

    # ── Internals ────────────────────────────────────────────────────────────

    async def _load(self, item_id: int) -> RoutineItemRecord:
        record = await repo.get_item(self.db, item_id)
        if record is None:
            raise RoutineItemNotFoundError(item_id)
        return record

    def _required_days(self, data: Union[RoutineItemCreate, dict[str, Any]]) -> Optional[int]:
        if isinstance(data, RoutineItemCreate):
            concerns = data.concerns
        else:
            concerns = data.get("concerns") or data.get("concern") or []
        return min((self.settings.required_days_for(c) for c in concerns), default=None)

    def _sync_trackings(self, record: RoutineItemRecord, anchor: date) -> None:
        """Match tracking rows to the item's concerns and end date."""
        wanted = list(record.concerns)
        tracked = {t.concern_name for t in record.trackings}

        for tracking in list(record.trackings):
            if tracking.concern_name not in wanted:
                record.trackings.remove(tracking)
        for rating in list(record.ratings):
            if rating.concern_name not in wanted:
                record.ratings.remove(rating)

        for concern in wanted:
            if concern not in tracked:
                record.trackings.append(
                    ConcernTrackingRecord(
                        concern_name=concern,
                        cycle=1,
                        required_days=self.settings.required_days_for(concern),
                        started_on=anchor,
                        is_active=True,
                    )
                )

        if record.end_date is not None:
            for tracking in _current_cycles(record).values():
                if tracking.is_active:
                    tracking.is_active = False
                    tracking.paused_on = record.end_date

    def _snapshot(self, item: RoutineItemRecord, tracking: ConcernTrackingRecord) -> ConcernTracking:
        as_of = tracking_as_of(self.today(), item.end_date, tracking.paused_on)
        progress = compute_progress(tracking.started_on, tracking.required_days, as_of)
        return ConcernTracking(
            concern_name=tracking.concern_name,
            cycle=tracking.cycle,
            required_days=tracking.required_days,
            weeks_completed=progress.weeks_completed,
            total_weeks=progress.total_weeks,
            is_active=tracking.is_active,
            started_on=tracking.started_on,
            paused_on=tracking.paused_on,
            baseline_score=tracking.baseline_score,
            current_score=tracking.current_score,
            effectiveness_rating=tracking.effectiveness_rating,
        )

    def _snapshots(self, item: RoutineItemRecord) -> list[ConcernTracking]:
        current = _current_cycles(item)
        return [self._snapshot(item, current[c]) for c in item.concerns if c in current]

    def _to_create_fields(self, record: RoutineItemRecord) -> dict[str, Any]:
        return {
            "name": record.name,
            "kind": record.kind,
            "usage": record.usage,
            "frequency": record.frequency,
            "concerns": list(record.concerns or []),
            "start_date": record.start_date,
            "treatment_date": record.treatment_date,
            "end_date": record.end_date,
            "stop_reason": record.stop_reason,
            "product": record.product_json,
            "extra": dict(record.extra_json or {}),
        }

    def _to_read(self, record: RoutineItemRecord) -> RoutineItemRead:
        trackings = self._snapshots(record)
        usage = record.usage.value if record.usage else None
        frequency = record.frequency.value if record.frequency else None
        concerns = list(record.concerns or [])
        return RoutineItemRead(
            id=record.id,
            name=record.name,
            kind=record.kind,
            usage=record.usage,
            frequency=record.frequency,
            concerns=concerns,
            start_date=record.start_date,
            treatment_date=record.treatment_date,
            end_date=record.end_date,
            stop_reason=record.stop_reason,
            product=LinkedProduct.model_validate(record.product_json) if record.product_json else None,
            extra=dict(record.extra_json or {}),
            kind_label=kind_label(record.kind),
            usage_pills=usage_pills(usage),
            usage_summary=describe_usage(usage, frequency, concerns) if usage else None,
            is_tracking_paused=bool(trackings) and not any(t.is_active for t in trackings),
            concern_tracking=trackings,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
