"""
Routine item rules: validation before save, and the display strings the
routine screens build from an item.
"""

import logging
from datetime import date
from typing import Any, Optional, Union

from pydantic import ValidationError

from app.errors import RoutineValidationError
from app.schemas import ItemKind, RoutineItemCreate, Usage
from app.vocabulary import FREQUENCY_LABELS, KIND_LABELS, USAGE_LABELS, concerns_from_good_for

logger = logging.getLogger(__name__)


def _problem(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message}


def _parse(data: Union[RoutineItemCreate, dict[str, Any]]) -> RoutineItemCreate:
    if isinstance(data, RoutineItemCreate):
        return data
    try:
        return RoutineItemCreate.model_validate(data)
    except ValidationError as e:
        problems = [
            _problem(".".join(str(p) for p in err["loc"]) or "item", err["msg"])
            for err in e.errors()
        ]
        raise RoutineValidationError(problems) from e


def _dedupe_concerns(concerns: list[str]) -> list[str]:
    cleaned: list[str] = []
    for concern in concerns:
        concern = concern.strip()
        if concern and concern not in cleaned:
            cleaned.append(concern)
    return cleaned


def validate_routine_item(
    data: Union[RoutineItemCreate, dict[str, Any]],
    today: date,
    required_days: Optional[int] = None,
) -> RoutineItemCreate:
    """Check an item before any tracking is created for it.

    Returns a cleaned copy (trimmed name, de-duplicated concerns prefilled from a
    linked product when none were picked, usage and frequency dropped for
    treatments). Raises RoutineValidationError listing every problem found.
    """
    item = _parse(data)
    problems: list[dict[str, str]] = []

    name = item.name.strip()
    if not name:
        problems.append(_problem("name", "Please enter a name for your routine item."))

    concerns = _dedupe_concerns(item.concerns)
    if not concerns and item.product is not None:
        # Scanned products suggest concerns from their good-for attributes
        concerns = _dedupe_concerns(concerns_from_good_for(item.product.good_for))
    if not concerns:
        problems.append(
            _problem("concerns", "Please select at least one concern to help track your progress.")
        )

    if required_days is not None and required_days <= 0:
        problems.append(_problem("required_days", "Tracking window must be at least one day."))

    updates: dict[str, Any] = {"name": name, "concerns": concerns}

    if item.kind.is_treatment:
        if item.treatment_date is None:
            problems.append(_problem("treatment_date", "Please select the treatment date."))
        elif item.treatment_date > today:
            problems.append(
                _problem("treatment_date", "Cannot select future date for treatment date.")
            )
        if item.start_date is not None or item.end_date is not None:
            problems.append(
                _problem("start_date", "Treatments are tracked from their treatment date only.")
            )
        updates.update(usage=None, frequency=None)
    else:
        if item.usage is None:
            problems.append(_problem("usage", "Please select a time of day."))
        if item.frequency is None:
            problems.append(_problem("frequency", "Please select a usage frequency."))
        if item.treatment_date is not None:
            problems.append(
                _problem("treatment_date", "Only treatments have a treatment date.")
            )
        if item.start_date is None:
            problems.append(
                _problem("start_date", "Please select when you started using this item.")
            )
        elif item.start_date > today:
            problems.append(_problem("start_date", "Cannot select future date for start date."))
        if item.end_date is not None:
            if item.end_date > today:
                problems.append(_problem("end_date", "Cannot select future date for end date."))
            if item.start_date is not None and item.end_date < item.start_date:
                problems.append(
                    _problem("end_date", "The end date cannot be before the start date.")
                )

    if problems:
        logger.info(f"Rejected routine item '{item.name}': {len(problems)} problem(s)")
        raise RoutineValidationError(problems)

    return item.model_copy(update=updates)


def tracking_start(item: RoutineItemCreate) -> date:
    """The date a validated item's first tracking cycle starts on."""
    if item.kind.is_treatment:
        return item.treatment_date
    return item.start_date


# ── Display ──────────────────────────────────────────────────────────────────


def usage_pills(usage: Optional[str]) -> list[str]:
    if not usage:
        return []
    if usage == Usage.BOTH.value:
        return ["AM", "PM"]
    return [USAGE_LABELS.get(usage, usage)]


def describe_usage(
    usage: Optional[str], frequency: Optional[str], concerns: list[str]
) -> str:
    """`Using AM / PM / Daily for breakouts, redness` as shown in the review prompt."""
    if usage == Usage.BOTH.value:
        usage_text = "AM / PM"
    else:
        usage_text = USAGE_LABELS.get(usage or "", usage or "")
    frequency_text = FREQUENCY_LABELS.get(frequency or "", frequency or "")
    concerns_text = ", ".join(c.lower() for c in concerns)

    text = f"Using {usage_text} / {frequency_text}"
    if concerns_text:
        text += f" for {concerns_text}"
    return text


def kind_label(kind: Union[ItemKind, str]) -> str:
    value = kind.value if isinstance(kind, ItemKind) else kind
    return KIND_LABELS.get(value, value)
