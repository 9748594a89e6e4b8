"""
Pydantic schemas: the single source of truth for all data contracts.

RoutineItemCreate/Update are what the client sends, ConcernTracking is the
per-concern snapshot the routine service hands back, and the remaining models
are the results produced by the tracking engine.
"""

from __future__ import annotations

import enum
import math
from datetime import date, datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, computed_field, field_validator, model_validator

from app.vocabulary import Vocabulary, coerce_frequency, coerce_kind, coerce_usage, normalize_all


# ── Enums ────────────────────────────────────────────────────────────────────


class ItemKind(str, enum.Enum):
    PRODUCT = "product"
    ACTIVITY = "activity"
    NUTRITION = "nutrition"
    TREATMENT_FACIAL = "treatment_facial"
    TREATMENT_INJECTION = "treatment_injection"
    TREATMENT_OTHER = "treatment_other"

    @property
    def is_treatment(self) -> bool:
        return self.value.startswith("treatment_")


class Usage(str, enum.Enum):
    AM = "am"
    PM = "pm"
    BOTH = "both"
    AS_NEEDED = "as_needed"


class Frequency(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    AS_NEEDED = "as_needed"


class ImprovementStatus(str, enum.Enum):
    IMPROVED = "improved"
    WORSENED = "worsened"
    NO_CHANGE = "no_change"
    INSUFFICIENT_DATA = "insufficient_data"


class TrackingState(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    RATED = "rated"
    PAUSED = "paused"


class UsageConsistencyResponse(str, enum.Enum):
    YES = "yes"
    NO = "no"


class ToggleAction(str, enum.Enum):
    PAUSE = "pause"
    RESUME = "resume"


class ItemStatus(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


# ── Routine items ────────────────────────────────────────────────────────────


class LinkedProduct(BaseModel):
    """Catalog product a routine item was scanned from (cached attributes)."""

    upc: str
    product_id: Optional[str] = None
    brand: Optional[str] = None
    good_for: list[str] = Field(default_factory=list)
    free_of: list[str] = Field(default_factory=list)
    ingredients: list[str] = Field(default_factory=list)
    total_ingredients: Optional[int] = None

    @computed_field
    @property
    def good_for_labels(self) -> list[str]:
        return normalize_all(self.good_for, Vocabulary.CONCERN)

    @computed_field
    @property
    def free_of_labels(self) -> list[str]:
        return normalize_all(self.free_of, Vocabulary.FREE_OF)


class _RoutineItemFields(BaseModel):
    """Shared coercion of the form labels into canonical tokens."""

    @field_validator("kind", mode="before", check_fields=False)
    @classmethod
    def _coerce_kind(cls, value: Any) -> Any:
        return coerce_kind(value) if isinstance(value, str) else value

    @field_validator("usage", mode="before", check_fields=False)
    @classmethod
    def _coerce_usage(cls, value: Any) -> Any:
        if isinstance(value, (str, list, tuple)) and value:
            return coerce_usage(value)
        return value or None

    @field_validator("frequency", mode="before", check_fields=False)
    @classmethod
    def _coerce_frequency(cls, value: Any) -> Any:
        if isinstance(value, str):
            return coerce_frequency(value) or None
        return value

    @field_validator("end_date", mode="before", check_fields=False)
    @classmethod
    def _blank_end_date(cls, value: Any) -> Any:
        # The client sends "" when no end date is set
        return None if value == "" else value


class RoutineItemCreate(_RoutineItemFields):
    name: str
    kind: ItemKind = Field(validation_alias=AliasChoices("kind", "type"))
    usage: Optional[Usage] = None
    frequency: Optional[Frequency] = None
    concerns: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("concerns", "concern")
    )
    start_date: Optional[date] = None
    treatment_date: Optional[date] = None
    end_date: Optional[date] = None
    stop_reason: Optional[str] = None
    product: Optional[LinkedProduct] = None
    extra: dict[str, Any] = Field(default_factory=dict)


class RoutineItemUpdate(_RoutineItemFields):
    """Partial update; only fields that were sent are applied."""

    name: Optional[str] = None
    kind: Optional[ItemKind] = Field(
        default=None, validation_alias=AliasChoices("kind", "type")
    )
    usage: Optional[Usage] = None
    frequency: Optional[Frequency] = None
    concerns: Optional[list[str]] = Field(
        default=None, validation_alias=AliasChoices("concerns", "concern")
    )
    start_date: Optional[date] = None
    treatment_date: Optional[date] = None
    end_date: Optional[date] = None
    stop_reason: Optional[str] = None
    product: Optional[LinkedProduct] = None
    extra: Optional[dict[str, Any]] = None


class RoutineItemRead(BaseModel):
    id: int
    name: str
    kind: ItemKind
    usage: Optional[Usage] = None
    frequency: Optional[Frequency] = None
    concerns: list[str] = Field(default_factory=list)
    start_date: Optional[date] = None
    treatment_date: Optional[date] = None
    end_date: Optional[date] = None
    stop_reason: Optional[str] = None
    product: Optional[LinkedProduct] = None
    extra: dict[str, Any] = Field(default_factory=dict)
    kind_label: str = ""
    usage_pills: list[str] = Field(default_factory=list)
    usage_summary: Optional[str] = None
    is_tracking_paused: bool = False
    concern_tracking: list[ConcernTracking] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ── Tracking ─────────────────────────────────────────────────────────────────


class CycleProgress(BaseModel):
    weeks_completed: int
    total_weeks: int
    is_completed: bool
    percent: int


class ScoreComparison(BaseModel):
    difference: Optional[float] = None
    status: ImprovementStatus


class ConcernTracking(BaseModel):
    """One concern's tracking cycle on one routine item.

    Derived fields (is_completed, score_difference, improvement_status) are
    computed from the stored ones so they can never disagree with them.
    """

    concern_name: str
    cycle: int = Field(default=1, ge=1)
    required_days: int = Field(gt=0)
    weeks_completed: int = Field(default=0, ge=0)
    total_weeks: int = Field(gt=0)
    is_active: bool = True
    started_on: Optional[date] = None
    paused_on: Optional[date] = None
    baseline_score: Optional[float] = None
    current_score: Optional[float] = None
    effectiveness_rating: Optional[bool] = Field(
        default=None,
        validation_alias=AliasChoices("effectiveness_rating", "is_effective"),
    )

    @model_validator(mode="before")
    @classmethod
    def _flatten_scores(cls, data: Any) -> Any:
        # Older payloads nest the scores: {"scores": {"baseline_score": .., "current_score": ..}}
        if isinstance(data, dict) and isinstance(data.get("scores"), dict):
            data = dict(data)
            scores = data.pop("scores")
            data.setdefault("baseline_score", scores.get("baseline_score"))
            data.setdefault("current_score", scores.get("current_score"))
        return data

    @model_validator(mode="after")
    def _cap_weeks(self) -> "ConcernTracking":
        if self.weeks_completed > self.total_weeks:
            self.weeks_completed = self.total_weeks
        return self

    @computed_field
    @property
    def is_completed(self) -> bool:
        return self.weeks_completed >= self.total_weeks

    @computed_field
    @property
    def score_difference(self) -> Optional[float]:
        return self._comparison().difference

    @computed_field
    @property
    def improvement_status(self) -> ImprovementStatus:
        return self._comparison().status

    def _comparison(self) -> ScoreComparison:
        from app.tracking.scores import compare

        return compare(self.baseline_score, self.current_score)

    @property
    def has_scores(self) -> bool:
        return self.baseline_score is not None or self.current_score is not None


class ConcernScores(BaseModel):
    """Scores pushed by the skin analysis provider for one concern."""

    concern_name: str
    baseline_score: Optional[float] = None
    current_score: Optional[float] = None

    @field_validator("baseline_score", "current_score")
    @classmethod
    def _nan_is_missing(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and math.isnan(value):
            return None
        return value


class AnalysisScores(BaseModel):
    """Raw analysis metrics keyed by the provider's score keys (`acneScore`, ...)."""

    baseline: dict[str, Optional[float]] = Field(default_factory=dict)
    current: dict[str, Optional[float]] = Field(default_factory=dict)


# ── Ratings ──────────────────────────────────────────────────────────────────


class RatingRequest(BaseModel):
    concern_name: str
    is_effective: bool


class EffectivenessRating(BaseModel):
    """Ledger entry. Only the latest per (item, concern, cycle) is current."""

    routine_item_id: int
    concern_name: str
    cycle: int = 1
    is_effective: bool
    rated_at: datetime


class RatingResult(BaseModel):
    routine_item_id: int
    concern_name: str
    cycle: int = 1
    is_effective: bool
    previous: Optional[bool] = None
    rated_at: datetime

    @property
    def changed(self) -> bool:
        return self.previous != self.is_effective


class StopTrackingRequest(BaseModel):
    usage_response: Optional[UsageConsistencyResponse] = None
    confirmed: bool = False
    concerns: Optional[list[str]] = None


class StateChange(BaseModel):
    concern_name: str
    previous: Optional[TrackingState] = None
    current: TrackingState


class ConcernReview(BaseModel):
    """Everything the review screen shows for one concern."""

    concern_name: str
    label: str
    state: TrackingState
    weeks_completed: int
    total_weeks: int
    percent: int
    week_label: str
    baseline_score: Optional[float] = None
    current_score: Optional[float] = None
    score_difference: Optional[float] = None
    score_change: Optional[str] = None
    improvement_status: ImprovementStatus
    improvement_label: str
    effectiveness_rating: Optional[bool] = None
    status_label: Optional[str] = None
    can_rate: bool
    needs_photo: bool


RoutineItemRead.model_rebuild()
