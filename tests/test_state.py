"""
Tests for onboarding state, question catalogue and summaries.
"""

import pytest

from onboarding.questions import QUESTIONS, get_next_question, get_question_info, get_question_options
from onboarding.state import (
    STEP_ORDER,
    OnboardingState,
    Profile,
    QuestionStep,
    can_skip_step,
    next_step,
)
from onboarding.summary import NONE_DECLARED, NOT_PROVIDED, render_summary, summary_lines


class TestQuestionSequence:

    def test_next_question_is_deterministic(self):
        for step in STEP_ORDER:
            assert get_next_question(step) == get_next_question(step)

    def test_strictly_advancing(self):
        for current, following in zip(STEP_ORDER, STEP_ORDER[1:]):
            step, info = get_next_question(current)
            assert step is following
            assert STEP_ORDER.index(step) > STEP_ORDER.index(current)

    def test_complete_has_no_successor(self):
        assert next_step(QuestionStep.COMPLETE) is QuestionStep.COMPLETE
        assert get_next_question(QuestionStep.COMPLETE) == (QuestionStep.COMPLETE, None)

    def test_every_question_step_has_info(self):
        for step in STEP_ORDER[:-1]:
            assert get_question_info(step) is not None
        assert get_question_info(QuestionStep.COMPLETE) is None

    def test_progress_markers(self):
        markers = [QUESTIONS[step].progress for step in STEP_ORDER[:-1]]
        assert markers == [f"[{i}/8]" for i in range(1, 9)]

    def test_skippable_steps(self):
        skippable = [step for step in STEP_ORDER if can_skip_step(step)]
        assert skippable == [QuestionStep.WEIGHT, QuestionStep.HEIGHT, QuestionStep.ADDITIONAL_INFO]
        for step in skippable:
            assert QUESTIONS[step].skippable

    def test_bubble_flags(self):
        assert QUESTIONS[QuestionStep.GENDER].selection_only
        assert not QUESTIONS[QuestionStep.GENDER].allow_custom_input
        assert QUESTIONS[QuestionStep.GOALS].allow_multiple
        assert QUESTIONS[QuestionStep.ALLERGIES].allow_custom_input
        assert not QUESTIONS[QuestionStep.AGE].has_bubbles

    def test_allergies_hint_points_at_bubble(self):
        info = QUESTIONS[QuestionStep.ALLERGIES]
        assert "'Aucune'" in info.examples
        assert "taper" not in info.examples
        assert "Aucune" in info.suggestions

    def test_question_options(self):
        options = get_question_options()
        assert list(options) == [step.value for step in STEP_ORDER[:-1]]
        assert options["gender"]["suggestions"] == ["Homme", "Femme", "Autre", "Préfère ne pas dire"]


class TestProfile:

    def test_merge(self):
        profile = Profile()
        profile.merge({"age": 30})
        profile.merge({"goals": ["energy"]})
        assert profile.age == 30
        assert profile.goals == ["energy"]
        assert profile.gender is None

    def test_merge_explicit_unset(self):
        profile = Profile(weight=70.0)
        profile.merge({"weight": None})
        assert profile.weight is None

    def test_merge_unknown_field(self):
        with pytest.raises(KeyError):
            Profile().merge({"budget": 100})

    def test_empty_list_distinct_from_unanswered(self):
        answered = Profile(allergies=[])
        assert answered.allergies == []
        assert Profile().allergies is None


class TestOnboardingState:

    def test_defaults(self):
        state = OnboardingState(user_id="u1")
        assert state.current_step is QuestionStep.AGE
        assert state.history == [QuestionStep.AGE]
        assert not state.complete
        assert state.created_at and state.updated_at

    def test_json_round_trip(self):
        state = OnboardingState(user_id="u1")
        state.profile.merge({"age": 40, "allergies": []})
        state.current_step = QuestionStep.GENDER
        state.history.append(QuestionStep.GENDER)

        restored = OnboardingState.from_json(state.to_json())

        assert restored.user_id == "u1"
        assert restored.current_step is QuestionStep.GENDER
        assert restored.history == [QuestionStep.AGE, QuestionStep.GENDER]
        assert restored.profile == state.profile

    def test_to_dict_uses_step_values(self):
        data = OnboardingState(user_id="u1").to_dict()
        assert data["current_step"] == "age"
        assert data["history"] == ["age"]
        assert data["profile"]["age"] is None


class TestSummary:

    def test_placeholders(self):
        lines = dict(summary_lines(Profile()))
        assert lines["Âge"] == NOT_PROVIDED
        assert lines["Allergies/Régimes"] == NONE_DECLARED
        assert lines["Informations supplémentaires"] == NONE_DECLARED

    def test_filled_profile(self):
        profile = Profile(
            age=30,
            gender="female",
            weight=62.5,
            height=168.0,
            goals=["energy", "better_sleep"],
            allergies=["lactose"],
            activity_level="moderate",
            additional_info="Végétarienne",
        )
        text = render_summary(profile)
        assert "• Âge: 30" in text
        assert "• Poids: 62.5 kg" in text
        assert "• Taille: 168 cm" in text
        assert "• Objectifs: energy, better_sleep" in text
        assert "• Niveau d'activité: Modérément actif" in text

    def test_field_order(self):
        labels = [label for label, _ in summary_lines(Profile())]
        assert labels == [
            "Âge",
            "Sexe",
            "Poids",
            "Taille",
            "Objectifs",
            "Allergies/Régimes",
            "Niveau d'activité",
            "Informations supplémentaires",
        ]
