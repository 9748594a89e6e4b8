"""
Tests for the tracking cycle calculator and score comparator.
"""

from datetime import date, datetime, timedelta

import pytest

from app.schemas import ConcernTracking, ImprovementStatus
from app.tracking.progress import compute_progress, round_half_up, tracking_as_of
from app.tracking.scores import (
    STATUS_LABELS,
    compare,
    parse_improvement_status,
    score_change_label,
)

TODAY = date(2026, 3, 1)


# ── Calculator tests ────────────────────────────────────────────────────────


class TestComputeProgress:
    def test_full_cycle_is_complete(self):
        progress = compute_progress(TODAY - timedelta(days=28), 28, TODAY)
        assert progress.total_weeks == 4
        assert progress.weeks_completed == 4
        assert progress.is_completed
        assert progress.percent == 100

    def test_partial_cycle(self):
        progress = compute_progress(TODAY - timedelta(days=10), 28, TODAY)
        assert progress.total_weeks == 4
        assert progress.weeks_completed == 1
        assert not progress.is_completed
        assert progress.percent == 25

    def test_future_start_counts_as_zero(self):
        progress = compute_progress(TODAY + timedelta(days=5), 28, TODAY)
        assert progress.weeks_completed == 0
        assert progress.percent == 0

    def test_weeks_capped_long_after_completion(self):
        progress = compute_progress(TODAY - timedelta(days=400), 28, TODAY)
        assert progress.weeks_completed == 4
        assert progress.percent == 100

    def test_partial_week_rounds_total_up(self):
        progress = compute_progress(TODAY - timedelta(days=14), 10, TODAY)
        assert progress.total_weeks == 2
        assert progress.is_completed

    def test_percent_rounds_half_up(self):
        # 1 of 8 weeks is 12.5%
        progress = compute_progress(TODAY - timedelta(days=7), 56, TODAY)
        assert progress.percent == 13

    def test_zero_required_days_is_total(self):
        progress = compute_progress(TODAY, 0, TODAY)
        assert progress.total_weeks == 0
        assert progress.percent == 0
        assert progress.is_completed

    def test_mixed_date_and_datetime(self):
        now = datetime(2026, 3, 1, 18, 30)
        progress = compute_progress(TODAY - timedelta(days=21), 28, now)
        assert progress.weeks_completed == 3

    def test_monotone_and_bounded(self):
        start = TODAY - timedelta(days=60)
        previous = -1
        for offset in range(0, 61):
            progress = compute_progress(start, 42, start + timedelta(days=offset))
            assert progress.weeks_completed >= previous
            assert 0 <= progress.weeks_completed <= progress.total_weeks
            assert 0 <= progress.percent <= 100
            previous = progress.weeks_completed

    def test_round_half_up(self):
        assert round_half_up(12.5) == 13
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2


class TestTrackingAsOf:
    def test_defaults_to_today(self):
        assert tracking_as_of(TODAY) == TODAY

    def test_frozen_at_end_date(self):
        assert tracking_as_of(TODAY, end_date=TODAY - timedelta(days=3)) == TODAY - timedelta(days=3)

    def test_earliest_of_end_and_pause(self):
        paused = TODAY - timedelta(days=9)
        assert tracking_as_of(TODAY, TODAY - timedelta(days=2), paused) == paused


# ── Comparator tests ────────────────────────────────────────────────────────


class TestCompare:
    @pytest.mark.parametrize(
        "baseline, current, difference, status",
        [
            (40, 65, 25, ImprovementStatus.IMPROVED),
            (65, 40, -25, ImprovementStatus.WORSENED),
            (50, 50, 0, ImprovementStatus.NO_CHANGE),
        ],
    )
    def test_classification(self, baseline, current, difference, status):
        result = compare(baseline, current)
        assert result.difference == difference
        assert result.status == status

    @pytest.mark.parametrize("score", [0, 37, 100, 140])
    def test_reflexive(self, score):
        result = compare(score, score)
        assert result.difference == 0
        assert result.status == ImprovementStatus.NO_CHANGE

    @pytest.mark.parametrize(
        "baseline, current",
        [(None, 50), (50, None), (None, None), (float("nan"), 50)],
    )
    def test_missing_score_means_no_data(self, baseline, current):
        result = compare(baseline, current)
        assert result.difference is None
        assert result.status == ImprovementStatus.INSUFFICIENT_DATA

    def test_exact_comparison(self):
        assert compare(50, 50.5).status == ImprovementStatus.IMPROVED


class TestScoreHelpers:
    def test_legacy_tokens(self):
        assert parse_improvement_status("improving") == ImprovementStatus.IMPROVED
        assert parse_improvement_status("Declining") == ImprovementStatus.WORSENED
        assert parse_improvement_status("stable") == ImprovementStatus.NO_CHANGE

    def test_canonical_and_unknown_tokens(self):
        assert parse_improvement_status("worsened") == ImprovementStatus.WORSENED
        assert parse_improvement_status("sparkly") == ImprovementStatus.INSUFFICIENT_DATA
        assert parse_improvement_status(None) == ImprovementStatus.INSUFFICIENT_DATA

    def test_change_label(self):
        assert score_change_label(40, 65) == "40 -> 65"
        assert score_change_label(40.0, 62.5) == "40 -> 62.5"
        assert score_change_label(None, 65) is None

    def test_every_status_has_a_label(self):
        assert set(STATUS_LABELS) == set(ImprovementStatus)


# ── Tracking snapshot tests ─────────────────────────────────────────────────


class TestConcernTracking:
    def test_derived_fields(self):
        tracking = ConcernTracking(
            concern_name="Redness",
            required_days=28,
            weeks_completed=4,
            total_weeks=4,
            baseline_score=40,
            current_score=65,
        )
        assert tracking.is_completed
        assert tracking.score_difference == 25
        assert tracking.improvement_status == ImprovementStatus.IMPROVED

    def test_weeks_capped_at_total(self):
        tracking = ConcernTracking(
            concern_name="Redness", required_days=28, weeks_completed=9, total_weeks=4
        )
        assert tracking.weeks_completed == 4

    def test_nested_scores_and_legacy_rating_alias(self):
        tracking = ConcernTracking.model_validate(
            {
                "concern_name": "Breakouts",
                "required_days": 28,
                "weeks_completed": 2,
                "total_weeks": 4,
                "scores": {"baseline_score": 70, "current_score": 60},
                "is_effective": False,
            }
        )
        assert tracking.baseline_score == 70
        assert tracking.current_score == 60
        assert tracking.effectiveness_rating is False
        assert tracking.improvement_status == ImprovementStatus.WORSENED

    def test_dump_includes_computed_fields(self):
        dumped = ConcernTracking(
            concern_name="Redness", required_days=28, weeks_completed=1, total_weeks=4
        ).model_dump()
        assert dumped["is_completed"] is False
        assert dumped["improvement_status"] == ImprovementStatus.INSUFFICIENT_DATA
