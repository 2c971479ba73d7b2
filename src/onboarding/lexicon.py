"""
Onboarding Lexicon.

Synonym tables used to interpret free-text answers (gender, goals,
allergies, activity levels, navigation commands). The tables are data, not
code: they live in lexicon.yaml next to this module and can be replaced by
pointing CONCIERGE_LEXICON_PATH at another file.
"""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_LEXICON_PATH = Path(__file__).parent / "lexicon.yaml"


@dataclass(frozen=True)
class ActivityLevel:
    """One entry of the ordered activity-level scale."""
    value: str
    labels: tuple[str, ...]


@dataclass(frozen=True)
class Lexicon:
    """Parsed synonym tables. All match keys are lowercase."""
    back_commands: frozenset[str]
    summary_commands: frozenset[str]
    gender: dict[str, tuple[str, ...]]  # value -> synonyms, checked in order
    skip_words: tuple[str, ...]
    goals: dict[str, str]  # keyword -> goal tag
    allergies: dict[str, str]  # keyword -> allergy tag
    no_allergy_words: tuple[str, ...]
    additional_info_skip_words: tuple[str, ...]
    activity_levels: tuple[ActivityLevel, ...]
    selections: dict[str, dict[str, str]] = field(default_factory=dict)


def _lower_all(values) -> tuple[str, ...]:
    return tuple(str(v).lower().strip() for v in values or [])


def parse_lexicon(data: dict) -> Lexicon:
    """Build a Lexicon from the raw YAML mapping."""
    commands = data.get("commands", {})
    return Lexicon(
        back_commands=frozenset(_lower_all(commands.get("back"))),
        summary_commands=frozenset(_lower_all(commands.get("summary"))),
        gender={
            value: _lower_all(synonyms)
            for value, synonyms in (data.get("gender") or {}).items()
        },
        skip_words=_lower_all(data.get("skip_words")),
        goals={str(k).lower(): str(v) for k, v in (data.get("goals") or {}).items()},
        allergies={str(k).lower(): str(v) for k, v in (data.get("allergies") or {}).items()},
        no_allergy_words=_lower_all(data.get("no_allergy_words")),
        additional_info_skip_words=_lower_all(data.get("additional_info_skip_words")),
        activity_levels=tuple(
            ActivityLevel(value=entry["value"], labels=_lower_all(entry.get("labels")))
            for entry in data.get("activity_levels") or []
        ),
        selections={
            step: {str(label): str(value) for label, value in (mapping or {}).items()}
            for step, mapping in (data.get("selections") or {}).items()
        },
    )


def load_lexicon(path: str | Path | None = None) -> Lexicon:
    """Load a lexicon file from disk (defaults to the bundled lexicon.yaml)."""
    lexicon_path = Path(path) if path else DEFAULT_LEXICON_PATH
    with open(lexicon_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    lexicon = parse_lexicon(data)
    logger.debug(
        f"Loaded lexicon from {lexicon_path}: {len(lexicon.goals)} goal keywords, "
        f"{len(lexicon.allergies)} allergy keywords, "
        f"{len(lexicon.activity_levels)} activity levels"
    )
    return lexicon


@lru_cache
def get_lexicon() -> Lexicon:
    """Get the cached process-wide lexicon, honouring the configured override path."""
    from concierge.config import settings

    return load_lexicon(settings.lexicon_path)
