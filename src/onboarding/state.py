"""
Onboarding State Management.

Tracks progress through the intake interview and accumulates the profile.
State is owned by the caller (one instance per visitor session) and can be
serialized to JSON for storage between requests.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal
import json


class QuestionStep(Enum):
    """Interview steps, in the order they are asked."""
    AGE = "age"
    GENDER = "gender"
    WEIGHT = "weight"
    HEIGHT = "height"
    GOALS = "goals"
    ALLERGIES = "allergies"
    ACTIVITY_LEVEL = "activity_level"
    ADDITIONAL_INFO = "additional_info"
    COMPLETE = "complete"


STEP_ORDER: list[QuestionStep] = list(QuestionStep)

Gender = Literal["male", "female", "other", "prefer-not-to-say"]
GENDER_VALUES: tuple[str, ...] = ("male", "female", "other", "prefer-not-to-say")

# A parser result: profile field name -> value, for exactly one step.
ProfileUpdate = dict[str, Any]


@dataclass
class Profile:
    """
    Profile collected by the interview.

    None means "not answered yet". An empty list or empty string means the
    visitor answered and had nothing to declare.
    """
    age: int | None = None
    gender: Gender | None = None
    weight: float | None = None
    height: float | None = None
    goals: list[str] | None = None
    allergies: list[str] | None = None
    activity_level: str | None = None
    additional_info: str | None = None

    def merge(self, update: ProfileUpdate) -> None:
        """Apply a parser update. Unknown keys are rejected."""
        for key, value in update.items():
            if not hasattr(self, key):
                raise KeyError(f"Unknown profile field: {key}")
            if isinstance(value, list):
                value = list(value)
            setattr(self, key, value)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Profile":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class OnboardingState:
    """
    Interview session state.

    Invariant: history is never empty and history[-1] is current_step.
    """
    user_id: str = ""
    current_step: QuestionStep = QuestionStep.AGE
    history: list[QuestionStep] = field(default_factory=lambda: [QuestionStep.AGE])
    profile: Profile = field(default_factory=Profile)
    complete: bool = False

    # Set while the visitor is typing an off-menu answer on a bubble step
    custom_input_active: bool = False

    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        """Set timestamps if not provided."""
        now = _utc_now()
        if not self.created_at:
            self.created_at = now
        if not self.updated_at:
            self.updated_at = now
        if not self.history:
            self.history = [self.current_step]

    def touch(self) -> None:
        self.updated_at = _utc_now()

    def to_dict(self) -> dict:
        """Serialize state to dict for JSON storage."""
        data = asdict(self)
        data["current_step"] = self.current_step.value
        data["history"] = [step.value for step in self.history]
        data["profile"] = self.profile.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "OnboardingState":
        """Deserialize state from dict."""
        data = dict(data)
        if "current_step" in data:
            data["current_step"] = QuestionStep(data["current_step"])
        if "history" in data:
            data["history"] = [QuestionStep(s) for s in data["history"]]
        if isinstance(data.get("profile"), dict):
            data["profile"] = Profile.from_dict(data["profile"])
        return cls(**data)

    def to_json(self) -> str:
        """Serialize state to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> "OnboardingState":
        """Deserialize state from JSON string."""
        return cls.from_dict(json.loads(json_str))


def next_step(step: QuestionStep) -> QuestionStep:
    """
    Step that follows `step` in the fixed sequence.

    COMPLETE has no successor and maps to itself.
    """
    if step is QuestionStep.COMPLETE:
        return QuestionStep.COMPLETE
    return STEP_ORDER[STEP_ORDER.index(step) + 1]


def can_skip_step(step: QuestionStep) -> bool:
    """Check if a step accepts an explicit skip answer."""
    skippable = {
        QuestionStep.WEIGHT,
        QuestionStep.HEIGHT,
        QuestionStep.ADDITIONAL_INFO,
    }
    return step in skippable
