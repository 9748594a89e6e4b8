"""
Tests for the concern vocabulary: label normalization, catalog mappings and
form label coercion.
"""

import pytest

from app.vocabulary import (
    CONCERN_LABELS,
    CONCERN_OPTIONS,
    Vocabulary,
    coerce_frequency,
    coerce_kind,
    coerce_usage,
    concerns_from_good_for,
    humanize,
    normalize,
    normalize_all,
    score_key_to_concern,
)


# ── Normalization tests ─────────────────────────────────────────────────────


class TestNormalize:
    def test_known_concern_token(self):
        assert normalize("dry_skin") == "Dry Skin"

    def test_unknown_token_is_humanized(self):
        assert normalize("unknown_token_xyz") == "Unknown Token Xyz"

    def test_lookup_is_case_insensitive(self):
        assert normalize("ANTI_AGING") == "Anti-Aging"

    def test_empty_token(self):
        assert normalize("") == ""

    def test_free_of_vocabulary(self):
        assert normalize("non comedogenic", Vocabulary.FREE_OF) == "Non-Comedogenic"
        assert normalize("fragrance free", Vocabulary.FREE_OF) == "Fragrance Free"

    def test_vocabularies_are_independent(self):
        # A free-of token is not a concern token, so it only gets title-cased
        assert normalize("non comedogenic") == "Non Comedogenic"

    def test_normalize_all_skips_blanks(self):
        assert normalize_all(["dry_skin", "", "hydration"]) == ["Dry Skin", "Hydration"]

    def test_humanize_collapses_separators(self):
        assert humanize("  very__oily skin ") == "Very Oily Skin"

    def test_humanize_keeps_inner_capitals(self):
        assert humanize("eyeLines") == "EyeLines"

    @pytest.mark.parametrize(
        "token, vocabulary",
        [
            ("anti_aging", Vocabulary.CONCERN),
            ("unknown_token_xyz", Vocabulary.CONCERN),
            ("Anti-Aging (Face)", Vocabulary.CONCERN),
            ("Pigmented spots", Vocabulary.CONCERN),
            ("non comedogenic", Vocabulary.FREE_OF),
            ("Non-Comedogenic", Vocabulary.FREE_OF),
        ],
    )
    def test_normalize_is_idempotent(self, token, vocabulary):
        once = normalize(token, vocabulary)
        assert normalize(once, vocabulary) == once

    def test_display_labels_pass_through(self):
        assert normalize("Anti-Aging (Face)") == "Anti-Aging (Face)"
        assert normalize("Visible Pores") == "Visible Pores"

    def test_tables_are_immutable(self):
        with pytest.raises(TypeError):
            CONCERN_LABELS["dry_skin"] = "Parched"


# ── Catalog mapping tests ───────────────────────────────────────────────────


class TestCatalogMappings:
    def test_good_for_prefills_concerns(self):
        assert concerns_from_good_for(["aging", "pore_minimizing"]) == [
            "Anti-Aging (Face)",
            "Visible Pores",
        ]

    def test_good_for_dedupes_and_passes_unknown_through(self):
        assert concerns_from_good_for(["aging", "aging", "", "glow"]) == [
            "Anti-Aging (Face)",
            "glow",
        ]

    def test_score_key_maps_to_concern(self):
        assert score_key_to_concern("rednessScore") == "Redness"
        assert score_key_to_concern("eyeBagsScore") == "Under eye puff"

    def test_unknown_score_key_logs_warning(self, caplog):
        with caplog.at_level("WARNING"):
            assert score_key_to_concern("glowScore") is None
        assert "glowScore" in caplog.text


# ── Form label coercion tests ───────────────────────────────────────────────


class TestFormCoercion:
    @pytest.mark.parametrize(
        "label, expected",
        [
            ("Product", "product"),
            ("activity", "activity"),
            ("Treatment / Facial", "treatment_facial"),
            ("Treatment / Injection", "treatment_injection"),
            ("Treatment / Other", "treatment_other"),
        ],
    )
    def test_kind_labels(self, label, expected):
        assert coerce_kind(label) == expected

    def test_usage_multi_select(self):
        assert coerce_usage(["AM", "PM"]) == "both"
        assert coerce_usage(["PM"]) == "pm"

    def test_usage_labels(self):
        assert coerce_usage("AM + PM") == "both"
        assert coerce_usage("As needed") == "as_needed"
        assert coerce_usage("am") == "am"

    def test_frequency_labels(self):
        assert coerce_frequency("Daily") == "daily"
        assert coerce_frequency("As needed") == "as_needed"

    def test_form_offers_scanned_concerns(self):
        assert "Visible Pores" in CONCERN_OPTIONS
        assert "Anti-Aging (Face)" in CONCERN_OPTIONS
