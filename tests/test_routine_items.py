"""
Tests for routine item validation and the display strings built from an item.
"""

from datetime import date, timedelta

import pytest

from app.errors import RoutineValidationError
from app.schemas import Frequency, ItemKind, RoutineItemCreate, Usage
from app.services.routine_items import (
    describe_usage,
    kind_label,
    tracking_start,
    usage_pills,
    validate_routine_item,
)

TODAY = date(2026, 3, 1)


def _product(**overrides) -> dict:
    data = dict(
        name="Niacinamide Serum",
        type="Product",
        usage=["AM", "PM"],
        frequency="Daily",
        concern=["Redness", "Breakouts"],
        start_date=TODAY - timedelta(days=10),
    )
    data.update(overrides)
    return data


def _treatment(**overrides) -> dict:
    data = dict(
        name="Hydrafacial",
        type="Treatment / Facial",
        concerns=["Dewiness"],
        treatment_date=TODAY - timedelta(days=3),
    )
    data.update(overrides)
    return data


def _fields(exc: pytest.ExceptionInfo) -> set[str]:
    return {e["field"] for e in exc.value.errors}


# ── Valid items ─────────────────────────────────────────────────────────────


class TestValidItems:
    def test_form_labels_are_coerced(self):
        item = validate_routine_item(_product(), TODAY)
        assert item.kind == ItemKind.PRODUCT
        assert item.usage == Usage.BOTH
        assert item.frequency == Frequency.DAILY
        assert item.concerns == ["Redness", "Breakouts"]

    def test_name_trimmed_and_concerns_deduped(self):
        item = validate_routine_item(
            _product(name="  Serum ", concern=["Redness", " Redness", ""]), TODAY
        )
        assert item.name == "Serum"
        assert item.concerns == ["Redness"]

    def test_blank_end_date_means_none(self):
        item = validate_routine_item(_product(end_date=""), TODAY)
        assert item.end_date is None

    def test_end_date_today(self):
        item = validate_routine_item(_product(end_date=TODAY), TODAY)
        assert item.end_date == TODAY

    def test_treatment_drops_usage(self):
        item = validate_routine_item(_treatment(usage="AM", frequency="Daily"), TODAY)
        assert item.kind == ItemKind.TREATMENT_FACIAL
        assert item.usage is None
        assert item.frequency is None

    def test_scanned_product_prefills_concerns(self):
        item = validate_routine_item(
            _product(concern=[], product={"upc": "0123456789", "good_for": ["aging", "aging"]}),
            TODAY,
        )
        assert item.concerns == ["Anti-Aging (Face)"]

    def test_picked_concerns_win_over_product(self):
        item = validate_routine_item(
            _product(concern=["Redness"], product={"upc": "0123456789", "good_for": ["aging"]}),
            TODAY,
        )
        assert item.concerns == ["Redness"]

    def test_accepts_a_model(self):
        model = RoutineItemCreate.model_validate(_product())
        assert validate_routine_item(model, TODAY).name == "Niacinamide Serum"

    def test_tracking_starts_at_anchor_date(self):
        assert tracking_start(validate_routine_item(_product(), TODAY)) == TODAY - timedelta(days=10)
        assert tracking_start(validate_routine_item(_treatment(), TODAY)) == TODAY - timedelta(days=3)


# ── Rejected items ──────────────────────────────────────────────────────────


class TestRejectedItems:
    def test_empty_name_and_concerns(self):
        with pytest.raises(RoutineValidationError) as exc:
            validate_routine_item(_product(name=" ", concern=[]), TODAY)
        assert _fields(exc) == {"name", "concerns"}

    def test_product_missing_usage_fields(self):
        data = _product()
        del data["usage"], data["frequency"], data["start_date"]
        with pytest.raises(RoutineValidationError) as exc:
            validate_routine_item(data, TODAY)
        assert _fields(exc) == {"usage", "frequency", "start_date"}

    def test_future_start_date(self):
        with pytest.raises(RoutineValidationError) as exc:
            validate_routine_item(_product(start_date=TODAY + timedelta(days=1)), TODAY)
        assert "future" in exc.value.message

    def test_end_before_start(self):
        with pytest.raises(RoutineValidationError) as exc:
            validate_routine_item(_product(end_date=TODAY - timedelta(days=20)), TODAY)
        assert _fields(exc) == {"end_date"}

    def test_future_end_date(self):
        with pytest.raises(RoutineValidationError):
            validate_routine_item(_product(end_date=TODAY + timedelta(days=2)), TODAY)

    def test_product_with_treatment_date(self):
        with pytest.raises(RoutineValidationError) as exc:
            validate_routine_item(_product(treatment_date=TODAY), TODAY)
        assert _fields(exc) == {"treatment_date"}

    def test_treatment_without_date(self):
        data = _treatment()
        del data["treatment_date"]
        with pytest.raises(RoutineValidationError) as exc:
            validate_routine_item(data, TODAY)
        assert _fields(exc) == {"treatment_date"}

    def test_treatment_with_start_date(self):
        with pytest.raises(RoutineValidationError) as exc:
            validate_routine_item(_treatment(start_date=TODAY), TODAY)
        assert _fields(exc) == {"start_date"}

    def test_future_treatment_date(self):
        with pytest.raises(RoutineValidationError):
            validate_routine_item(_treatment(treatment_date=TODAY + timedelta(days=1)), TODAY)

    def test_non_positive_window(self):
        with pytest.raises(RoutineValidationError) as exc:
            validate_routine_item(_product(), TODAY, required_days=0)
        assert _fields(exc) == {"required_days"}

    def test_malformed_payload(self):
        with pytest.raises(RoutineValidationError) as exc:
            validate_routine_item({"type": "Product", "start_date": "soon"}, TODAY)
        assert exc.value.status_code == 422
        assert "name" in _fields(exc)


# ── Display tests ───────────────────────────────────────────────────────────


class TestDisplay:
    def test_usage_pills(self):
        assert usage_pills("both") == ["AM", "PM"]
        assert usage_pills("pm") == ["PM"]
        assert usage_pills(None) == []

    def test_describe_usage(self):
        assert (
            describe_usage("both", "daily", ["Redness", "Breakouts"])
            == "Using AM / PM / Daily for redness, breakouts"
        )
        assert describe_usage("am", "weekly", []) == "Using AM / Weekly"

    def test_kind_label(self):
        assert kind_label(ItemKind.TREATMENT_INJECTION) == "Treatment / Injection"
        assert kind_label("activity") == "Activity"
