"""
Onboarding Response Parser.

Turns a visitor's answer into a partial profile update for one step.
Every function here is pure and never raises on user input: None means
"could not interpret", and the caller re-prompts.
"""

import logging
import re
from typing import Callable

from .lexicon import Lexicon, get_lexicon
from .state import STEP_ORDER, ProfileUpdate, QuestionStep

logger = logging.getLogger(__name__)

AGE_RANGE = (1, 120)
WEIGHT_RANGE_KG = (1.0, 500.0)
HEIGHT_RANGE_CM = (50.0, 250.0)

# Unmatched goal answers at least this long fall back to "wellness".
GOALS_FALLBACK_MIN_CHARS = 4
GOALS_FALLBACK_TAG = "wellness"

_AGE_PHRASE = re.compile(r"(?:i am|i'm|j'ai|je suis)\s*(\d+)")
_FIRST_INT = re.compile(r"\d+")
_DECIMAL = re.compile(r"(\d+(?:[.,]\d+)?)")
_WEIGHT_IMPERIAL = re.compile(r"\b(?:lbs?|pounds?)\b", re.IGNORECASE)
_HEIGHT_IMPERIAL = re.compile(r"\b(?:ft|feet|foot|in|inch|inches)\b|['\"]", re.IGNORECASE)


def _contains_word(text: str, word: str) -> bool:
    """Whole-word match (multi-word phrases allowed)."""
    return re.search(rf"(?<!\w){re.escape(word)}(?!\w)", text) is not None


def _contains_any_word(text: str, words) -> bool:
    return any(_contains_word(text, w) for w in words)


def _slugify(label: str) -> str:
    return re.sub(r"\s+", "_", label.strip().lower())


# =============================================================================
# Per-step handlers
# =============================================================================
# Each handler receives the stripped original text, its lowercased form and
# the lexicon.


def _parse_age(text: str, lower: str, lexicon: Lexicon) -> ProfileUpdate | None:
    match = _AGE_PHRASE.search(lower) or _FIRST_INT.search(lower)
    if not match:
        return None
    age = int(match.group(1) if match.groups() else match.group(0))
    low, high = AGE_RANGE
    if low <= age <= high:
        return {"age": age}
    return None


def _parse_gender(text: str, lower: str, lexicon: Lexicon) -> ProfileUpdate | None:
    for value, synonyms in lexicon.gender.items():
        if any(s in lower for s in synonyms):
            return {"gender": value}
    return None


def _parse_measure(
    field_name: str,
    lower: str,
    lexicon: Lexicon,
    imperial: re.Pattern,
    bounds: tuple[float, float],
) -> ProfileUpdate | None:
    if _contains_any_word(lower, lexicon.skip_words):
        return {field_name: None}
    if imperial.search(lower):
        # Ask again in metric
        return None
    match = _DECIMAL.search(lower)
    if not match:
        return None
    value = float(match.group(1).replace(",", "."))
    low, high = bounds
    if low <= value <= high:
        return {field_name: value}
    return None


def _parse_weight(text: str, lower: str, lexicon: Lexicon) -> ProfileUpdate | None:
    return _parse_measure("weight", lower, lexicon, _WEIGHT_IMPERIAL, WEIGHT_RANGE_KG)


def _parse_height(text: str, lower: str, lexicon: Lexicon) -> ProfileUpdate | None:
    return _parse_measure("height", lower, lexicon, _HEIGHT_IMPERIAL, HEIGHT_RANGE_CM)


def _scan_keywords(lower: str, table: dict[str, str]) -> list[str]:
    tags: list[str] = []
    for keyword, tag in table.items():
        if keyword in lower and tag not in tags:
            tags.append(tag)
    return tags


def _parse_goals(text: str, lower: str, lexicon: Lexicon) -> ProfileUpdate | None:
    goals = _scan_keywords(lower, lexicon.goals)
    if goals:
        return {"goals": goals}
    if len(lower) >= GOALS_FALLBACK_MIN_CHARS:
        logger.info(f"No goal keyword in {text!r}, falling back to '{GOALS_FALLBACK_TAG}'")
        return {"goals": [GOALS_FALLBACK_TAG]}
    return None


def _parse_allergies(text: str, lower: str, lexicon: Lexicon) -> ProfileUpdate | None:
    allergies = _scan_keywords(lower, lexicon.allergies)
    if allergies:
        return {"allergies": allergies}
    if _contains_any_word(lower, lexicon.no_allergy_words):
        return {"allergies": []}
    return None


def _parse_activity_level(text: str, lower: str, lexicon: Lexicon) -> ProfileUpdate | None:
    levels = lexicon.activity_levels
    # Exact label, then prefix, then label contained in the answer
    for level in levels:
        if lower in level.labels:
            return {"activity_level": level.value}
    if len(lower) >= 3:
        for level in levels:
            if any(label.startswith(lower) or lower.startswith(label) for label in level.labels):
                return {"activity_level": level.value}
    for level in levels:
        if any(label in lower for label in level.labels):
            return {"activity_level": level.value}
    return None


def _parse_additional_info(text: str, lower: str, lexicon: Lexicon) -> ProfileUpdate | None:
    if _contains_any_word(lower, lexicon.additional_info_skip_words):
        return {"additional_info": ""}
    return {"additional_info": text}


Handler = Callable[[str, str, Lexicon], ProfileUpdate | None]

_HANDLERS: dict[QuestionStep, Handler] = {
    QuestionStep.AGE: _parse_age,
    QuestionStep.GENDER: _parse_gender,
    QuestionStep.WEIGHT: _parse_weight,
    QuestionStep.HEIGHT: _parse_height,
    QuestionStep.GOALS: _parse_goals,
    QuestionStep.ALLERGIES: _parse_allergies,
    QuestionStep.ACTIVITY_LEVEL: _parse_activity_level,
    QuestionStep.ADDITIONAL_INFO: _parse_additional_info,
}

_unhandled = [s for s in STEP_ORDER if s is not QuestionStep.COMPLETE and s not in _HANDLERS]
if _unhandled:
    raise RuntimeError(f"No response handler for steps: {[s.value for s in _unhandled]}")


# =============================================================================
# Public API
# =============================================================================


def parse_response(
    text: str,
    step: QuestionStep,
    lexicon: Lexicon | None = None,
) -> ProfileUpdate | None:
    """
    Interpret a free-text answer for `step`.

    Returns:
        Partial profile update, or None if the answer could not be understood.
    """
    handler = _HANDLERS.get(step)
    if handler is None or not text or not text.strip():
        return None
    stripped = text.strip()
    return handler(stripped, stripped.lower(), lexicon or get_lexicon())


def parse_selection(
    selections: list[str],
    step: QuestionStep,
    lexicon: Lexicon | None = None,
) -> ProfileUpdate | None:
    """
    Interpret suggestion-bubble picks (plus any custom entries) for `step`.

    Known labels map through the lexicon; custom entries are kept as
    lowercase slugs on multi-select steps.
    """
    lexicon = lexicon or get_lexicon()
    picks = [s.strip() for s in selections if s and s.strip()]
    if not picks:
        return None
    mapping = lexicon.selections.get(step.value, {})

    if step is QuestionStep.GENDER:
        value = mapping.get(picks[0])
        return {"gender": value} if value else _parse_gender(picks[0], picks[0].lower(), lexicon)

    if step is QuestionStep.ACTIVITY_LEVEL:
        value = mapping.get(picks[0])
        if value:
            return {"activity_level": value}
        return _parse_activity_level(picks[0], picks[0].lower(), lexicon)

    if step is QuestionStep.GOALS:
        goals: list[str] = []
        for pick in picks:
            goal = mapping.get(pick) or _slugify(pick)
            if goal not in goals:
                goals.append(goal)
        return {"goals": goals}

    if step is QuestionStep.ALLERGIES:
        allergies: list[str] = []
        for pick in picks:
            allergy = mapping[pick] if pick in mapping else _slugify(pick)
            if allergy and allergy not in allergies:
                allergies.append(allergy)
        return {"allergies": allergies}

    logger.debug(f"Selection submitted for non-bubble step {step.value}")
    return None


def is_back_command(text: str, lexicon: Lexicon | None = None) -> bool:
    return text.strip().lower() in (lexicon or get_lexicon()).back_commands


def is_summary_command(text: str, lexicon: Lexicon | None = None) -> bool:
    return text.strip().lower() in (lexicon or get_lexicon()).summary_commands
