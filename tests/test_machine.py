"""
Tests for the onboarding state machine.

Covers advance / reject / redirect / back / summary, completion with a
profile store, and recovery after a failed save.
"""

import asyncio
from unittest.mock import MagicMock

from onboarding.errors import NetworkFailure, ServiceUnavailable, ValidationFailure
from onboarding.machine import (
    BACK_BLOCKED_TEXT,
    REDIRECT_CUSTOM_TEXT,
    REDIRECT_TEXT,
    SELECTION_FAILED_TEXT,
    OnboardingMachine,
)
from onboarding.state import OnboardingState, QuestionStep


def _machine(lexicon, store=None, **kwargs) -> OnboardingMachine:
    return OnboardingMachine(state=OnboardingState(user_id="u1"), store=store, lexicon=lexicon, **kwargs)


async def _answer_until_additional_info(machine: OnboardingMachine) -> None:
    await machine.handle_text("j'ai 70 ans")
    await machine.handle_selection(["Femme"])
    await machine.handle_text("62 kg")
    await machine.handle_text("passer")
    await machine.handle_selection(["Énergie"])
    await machine.handle_selection(["Aucune"])
    await machine.handle_selection(["Modérément actif"])


class TestStart:

    def test_greets_with_first_question(self, lexicon):
        result = _machine(lexicon).start()
        assert result.kind == "started"
        assert result.step is QuestionStep.AGE
        assert "[1/8]" in result.message

    def test_completed_session_welcomes_back(self, lexicon):
        machine = _machine(lexicon)
        machine.resume_from_profile({"age": 40, "gender": "male"})
        assert machine.start().kind == "already_complete"


class TestAdvance:

    def test_valid_answer_advances(self, lexicon):
        machine = _machine(lexicon)
        result = asyncio.run(machine.handle_text("j'ai 30 ans"))

        assert result.kind == "advanced"
        assert result.step is QuestionStep.GENDER
        assert result.message.startswith("Merci! [2/8]")
        assert machine.profile.age == 30
        assert machine.state.history == [QuestionStep.AGE, QuestionStep.GENDER]

    def test_invalid_answer_is_rejected(self, lexicon):
        machine = _machine(lexicon)
        result = asyncio.run(machine.handle_text("bonjour"))

        assert result.kind == "rejected"
        assert result.step is QuestionStep.AGE
        assert "[1/8]" in result.message
        assert machine.profile.age is None

    def test_skip_weight(self, lexicon):
        machine = _machine(lexicon)
        asyncio.run(machine.handle_text("30"))
        asyncio.run(machine.handle_selection(["Homme"]))
        result = asyncio.run(machine.handle_text("passer"))

        assert result.kind == "advanced"
        assert result.step is QuestionStep.HEIGHT
        assert machine.profile.weight is None

    def test_selection_on_text_step_is_rejected(self, lexicon):
        machine = _machine(lexicon)
        result = asyncio.run(machine.handle_selection(["Femme"]))
        assert result.kind == "rejected"
        assert result.message == SELECTION_FAILED_TEXT
        assert result.step is QuestionStep.AGE

    def test_single_choice_step_keeps_first_pick(self, lexicon):
        machine = _machine(lexicon)
        asyncio.run(machine.handle_text("30"))
        asyncio.run(machine.handle_selection(["Femme", "Homme"]))
        assert machine.profile.gender == "female"


class TestRedirect:

    def test_text_on_selection_only_step(self, lexicon):
        machine = _machine(lexicon)
        asyncio.run(machine.handle_text("30"))
        result = asyncio.run(machine.handle_text("femme"))

        assert result.kind == "redirect"
        assert result.message == REDIRECT_TEXT + "."
        assert machine.profile.gender is None

    def test_redirect_mentions_custom_answer(self, lexicon):
        machine = _machine(lexicon)
        machine.state.current_step = QuestionStep.GOALS
        machine.state.history = [QuestionStep.GOALS]

        result = asyncio.run(machine.handle_text("plus d'énergie"))
        assert result.kind == "redirect"
        assert result.message.endswith(REDIRECT_CUSTOM_TEXT)

    def test_custom_input_accepts_text(self, lexicon):
        machine = _machine(lexicon)
        machine.state.current_step = QuestionStep.GOALS
        machine.state.history = [QuestionStep.GOALS]

        assert machine.enable_custom_input()
        result = asyncio.run(machine.handle_text("plus d'énergie"))

        assert result.kind == "advanced"
        assert machine.profile.goals == ["energy"]
        assert not machine.state.custom_input_active

    def test_custom_input_not_offered_for_gender(self, lexicon):
        machine = _machine(lexicon)
        asyncio.run(machine.handle_text("30"))
        assert not machine.enable_custom_input()


class TestBack:

    def test_back_restores_previous_step(self, lexicon):
        machine = _machine(lexicon)
        asyncio.run(machine.handle_text("30"))
        result = asyncio.run(machine.handle_text("retour"))

        assert result.kind == "back"
        assert result.step is QuestionStep.AGE
        assert machine.state.history == [QuestionStep.AGE]
        # Answer kept until it is replaced; the abandoned step stays unanswered
        assert machine.profile.age == 30
        assert machine.profile.gender is None

    def test_amend_after_back(self, lexicon):
        machine = _machine(lexicon)
        asyncio.run(machine.handle_text("30"))
        asyncio.run(machine.handle_text("retour"))
        result = asyncio.run(machine.handle_text("31"))

        assert result.step is QuestionStep.GENDER
        assert machine.profile.age == 31
        assert machine.state.history == [QuestionStep.AGE, QuestionStep.GENDER]

    def test_back_blocked_at_first_question(self, lexicon):
        machine = _machine(lexicon)
        result = asyncio.run(machine.handle_text("back"))

        assert result.kind == "back_blocked"
        assert result.message == BACK_BLOCKED_TEXT
        assert result.step is QuestionStep.AGE

    def test_back_works_on_selection_only_step(self, lexicon):
        machine = _machine(lexicon)
        asyncio.run(machine.handle_text("30"))
        result = asyncio.run(machine.handle_text("retour"))
        assert result.kind == "back"


class TestSummaryCommand:

    def test_summary_does_not_change_state(self, lexicon):
        machine = _machine(lexicon)
        asyncio.run(machine.handle_text("30"))
        before = machine.state.to_dict()

        result = asyncio.run(machine.handle_text("résumé"))

        assert result.kind == "summary"
        assert "• Âge: 30" in result.message
        assert result.step is QuestionStep.GENDER
        assert machine.state.to_dict()["history"] == before["history"]


class TestCompletion:

    def test_completes_and_saves(self, lexicon, fake_store):
        store = fake_store()
        machine = _machine(lexicon, store=store)

        async def run():
            await _answer_until_additional_info(machine)
            return await machine.handle_text("rien")

        result = asyncio.run(run())

        assert result.kind == "completed"
        assert result.complete
        assert machine.is_complete
        assert machine.step is QuestionStep.COMPLETE
        assert machine.state.history[-1] is QuestionStep.COMPLETE
        assert len(store.saved) == 1
        user_id, saved = store.saved[0]
        assert user_id == "u1"
        assert saved["age"] == 70
        assert saved["gender"] == "female"
        assert saved["height"] is None
        assert saved["allergies"] == []
        assert saved["activity_level"] == "moderate"
        assert saved["additional_info"] == ""

    def test_completes_locally_without_store(self, lexicon):
        machine = _machine(lexicon)

        async def run():
            await _answer_until_additional_info(machine)
            return await machine.handle_text("Je prends un anticoagulant")

        result = asyncio.run(run())
        assert result.kind == "completed"
        assert machine.profile.additional_info == "Je prends un anticoagulant"

    def test_input_after_completion(self, lexicon):
        machine = _machine(lexicon)

        async def run():
            await _answer_until_additional_info(machine)
            await machine.handle_text("rien")
            return await machine.handle_text("30")

        result = asyncio.run(run())
        assert result.kind == "already_complete"
        assert result.step is QuestionStep.COMPLETE


class TestPersistenceFailure:

    def test_failure_keeps_last_question(self, lexicon, fake_store):
        store = fake_store(failures=[ServiceUnavailable("down", 503)])
        machine = _machine(lexicon, store=store)

        async def run():
            await _answer_until_additional_info(machine)
            return await machine.handle_text("rien")

        result = asyncio.run(run())

        assert result.kind == "persist_failed"
        assert result.error == "ServiceUnavailable"
        assert result.step is QuestionStep.ADDITIONAL_INFO
        assert ServiceUnavailable.user_message in result.message
        assert not machine.is_complete
        assert store.saved == []

    def test_each_failure_has_its_own_message(self, lexicon, fake_store):
        messages = set()
        for error in (ValidationFailure(), ServiceUnavailable(), NetworkFailure()):
            machine = _machine(lexicon, store=fake_store(failures=[error]))

            async def run():
                await _answer_until_additional_info(machine)
                return await machine.handle_text("rien")

            messages.add(asyncio.run(run()).message.split("\n\n")[-1])
        assert len(messages) == 3

    def test_resend_retries_save(self, lexicon, fake_store):
        store = fake_store(failures=[NetworkFailure("timeout")])
        machine = _machine(lexicon, store=store)

        async def run():
            await _answer_until_additional_info(machine)
            first = await machine.handle_text("rien")
            second = await machine.handle_text("rien")
            return first, second

        first, second = asyncio.run(run())

        assert first.kind == "persist_failed"
        assert second.kind == "completed"
        assert len(store.saved) == 1
        assert machine.state.history.count(QuestionStep.ADDITIONAL_INFO) == 1


class TestResume:

    def test_stored_profile_skips_interview(self, lexicon):
        machine = _machine(lexicon)
        resumed = machine.resume_from_profile(
            {"age": 40, "gender": "male", "goals": ["fitness"], "activityLevel": "light"}
        )
        assert resumed
        assert machine.is_complete
        assert machine.profile.goals == ["fitness"]
        assert machine.profile.activity_level == "light"

    def test_incomplete_profile_does_not_resume(self, lexicon):
        machine = _machine(lexicon)
        assert not machine.resume_from_profile({"age": 40})
        assert not machine.resume_from_profile(None)
        assert machine.step is QuestionStep.AGE


class TestSessionLogging:

    def test_turns_are_logged(self, lexicon, fake_store):
        session_logger = MagicMock()
        machine = _machine(lexicon, store=fake_store(), session_logger=session_logger)

        async def run():
            await _answer_until_additional_info(machine)
            await machine.handle_text("rien")

        asyncio.run(run())

        session_logger.turn_start.assert_any_call("j'ai 70 ans", step="age")
        assert session_logger.turn_end.call_count == 8
        session_logger.profile_save.assert_called_once_with("u1", True)
