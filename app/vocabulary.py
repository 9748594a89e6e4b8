"""
Concern vocabulary: one shared set of immutable label tables.

Two catalog vocabularies are normalized independently:
  * concerns / "good for" attributes (`dry_skin`, `anti_aging`)
  * "free of" attributes (`fragrance free`, `non comedogenic`)

Anything not in a table falls back to word-wise title casing, so unknown
tokens always come out readable. Every function here is pure.
"""

from __future__ import annotations

import enum
import logging
import re
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

logger = logging.getLogger(__name__)


class Vocabulary(str, enum.Enum):
    CONCERN = "concern"
    FREE_OF = "free_of"


# ── Label tables ─────────────────────────────────────────────────────────────

CONCERN_LABELS: Mapping[str, str] = MappingProxyType({
    "dry_skin": "Dry Skin",
    "oily_skin": "Oily Skin",
    "combination_skin": "Combination Skin",
    "normal_skin": "Normal Skin",
    "sensitive_skin": "Sensitive Skin",
    "hydration": "Hydration",
    "fine_lines": "Fine Lines",
    "anti_aging": "Anti-Aging",
})

FREE_OF_LABELS: Mapping[str, str] = MappingProxyType({
    "maybe vegan": "Maybe Vegan",
    "silicone free": "Silicone Free",
    "oil free": "Oil Free",
    "non comedogenic": "Non-Comedogenic",
    "fragrance free": "Fragrance Free",
    "paraben free": "Paraben Free",
    "sulfate free": "Sulfate Free",
})

_TABLES: Mapping[Vocabulary, Mapping[str, str]] = MappingProxyType({
    Vocabulary.CONCERN: CONCERN_LABELS,
    Vocabulary.FREE_OF: FREE_OF_LABELS,
})

# Options offered by the routine item form
CONCERN_OPTIONS: tuple[str, ...] = (
    "Breakouts",
    "Evenness",
    "Redness",
    "Visible Pores",
    "Lines",
    "Eye Area Condition",
    "Pigmentation",
    "Dewiness",
    "Anti-Aging (Face)",
    "Anti-Aging (Eyes)",
)

# Catalog good-for token -> concern option, used to pre-fill a scanned product
GOOD_FOR_TO_CONCERN: Mapping[str, str] = MappingProxyType({
    "dry_skin": "Dry Skin",
    "oily_skin": "Oily Skin",
    "combination_skin": "Combination Skin",
    "normal_skin": "Normal Skin",
    "sensitive_skin": "Sensitive Skin",
    "acne_prone": "Acne Prone",
    "aging": "Anti-Aging (Face)",
    "hydration": "Hydration",
    "brightening": "Brightening",
    "pore_minimizing": "Visible Pores",
})

# Skin analysis metric key -> profile concern name
SCORE_KEY_TO_CONCERN: Mapping[str, str] = MappingProxyType({
    "acneScore": "Breakouts",
    "pigmentationScore": "Pigmented spots",
    "uniformnessScore": "Uneven skin tone",
    "rednessScore": "Redness",
    "linesScore": "Wrinkles",
    "saggingScore": "Sagging",
    "poresScore": "Pores",
    "eyeLinesScore": "Under eye lines",
    "darkCirclesScore": "Dark circles",
    "eyeBagsScore": "Under eye puff",
    "aging": "Aging",
    "fineLines": "Fine Lines",
    "postAcneMarks": "Post-Acne Marks",
    "translucencyScore": "Translucency",
    "hydrationScore": "Hydration",
})

# Canonical kind/usage/frequency token -> form label
KIND_LABELS: Mapping[str, str] = MappingProxyType({
    "product": "Product",
    "activity": "Activity",
    "nutrition": "Nutrition",
    "treatment_facial": "Treatment / Facial",
    "treatment_injection": "Treatment / Injection",
    "treatment_other": "Treatment / Other",
})

USAGE_LABELS: Mapping[str, str] = MappingProxyType({
    "am": "AM",
    "pm": "PM",
    "both": "AM + PM",
    "as_needed": "As needed",
})

FREQUENCY_LABELS: Mapping[str, str] = MappingProxyType({
    "daily": "Daily",
    "weekly": "Weekly",
    "as_needed": "As needed",
})

# Labels that are already display-ready and pass through normalize unchanged
_DISPLAY_LABELS: Mapping[Vocabulary, frozenset[str]] = MappingProxyType({
    Vocabulary.CONCERN: frozenset(
        [*CONCERN_LABELS.values(), *GOOD_FOR_TO_CONCERN.values(), *CONCERN_OPTIONS]
    ),
    Vocabulary.FREE_OF: frozenset(FREE_OF_LABELS.values()),
})

_WORD_SPLIT = re.compile(r"[_ ]+")


# ── Normalization ────────────────────────────────────────────────────────────


def humanize(token: str) -> str:
    """`unknown_token_xyz` -> `Unknown Token Xyz`."""
    words = [w for w in _WORD_SPLIT.split(token.strip()) if w]
    return " ".join(w[:1].upper() + w[1:] for w in words)


def normalize(token: str, vocabulary: Vocabulary = Vocabulary.CONCERN) -> str:
    """Display label for a catalog token. Never raises, and normalize(normalize(t)) == normalize(t)."""
    if not token:
        return ""
    if token.strip() in _DISPLAY_LABELS[vocabulary]:
        return token.strip()
    label = _TABLES[vocabulary].get(token.strip().lower())
    if label is not None:
        return label
    return humanize(token)


def normalize_all(tokens: Iterable[str], vocabulary: Vocabulary = Vocabulary.CONCERN) -> list[str]:
    return [normalize(t, vocabulary) for t in tokens if t]


def concerns_from_good_for(good_for: Iterable[str]) -> list[str]:
    """Concern options suggested by a scanned product's good-for attributes."""
    concerns: list[str] = []
    for token in good_for:
        if not token:
            continue
        concern = GOOD_FOR_TO_CONCERN.get(token, token)
        if concern not in concerns:
            concerns.append(concern)
    return concerns


def score_key_to_concern(key: str) -> Optional[str]:
    concern = SCORE_KEY_TO_CONCERN.get(key)
    if concern is None:
        logger.warning(f"No concern found for score key: {key}")
    return concern


# ── Form label coercion ──────────────────────────────────────────────────────


def coerce_kind(value: str) -> str:
    """Accept `product`, `Product`, `Treatment / Facial` ... and return the token."""
    lower = value.strip().lower()
    if lower in KIND_LABELS:
        return lower
    if "treatment" in lower:
        if "facial" in lower:
            return "treatment_facial"
        if "injection" in lower:
            return "treatment_injection"
        return "treatment_other"
    return lower


def coerce_usage(value: str | Iterable[str]) -> str:
    """Accept a token, a label, or the form's multi-select list of labels."""
    if isinstance(value, str):
        selected = [value]
    else:
        selected = list(value)
    lowered = [s.strip().lower() for s in selected]

    if len(lowered) == 1 and lowered[0] in USAGE_LABELS:
        return lowered[0]
    has_am = any(s in ("am", "am + pm", "am & pm") for s in lowered)
    has_pm = any(s in ("pm", "am + pm", "am & pm") for s in lowered)
    if has_am and has_pm:
        return "both"
    if has_pm:
        return "pm"
    if has_am:
        return "am"
    if any(s.replace(" ", "_") == "as_needed" for s in lowered):
        return "as_needed"
    return lowered[0] if lowered else ""


def coerce_frequency(value: str) -> str:
    return value.strip().lower().replace(" ", "_")
