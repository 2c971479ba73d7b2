"""
Onboarding State Machine.

Drives the intake interview one visitor message at a time:
- Advance: a parsed answer is merged and the next question is asked
- Reject: an unparseable answer re-asks the same question
- Back / Summary: navigation commands typed instead of an answer
- Completion: the last answer triggers the profile save

The machine wraps a caller-owned OnboardingState, so concurrent sessions
never share anything. Only completion awaits (the profile save).
"""

import logging
from dataclasses import dataclass
from typing import Literal

from .errors import PersistenceError
from .lexicon import Lexicon, get_lexicon
from .parser import is_back_command, is_summary_command, parse_response, parse_selection
from .persistence import ProfileStore, profile_is_complete
from .questions import (
    GREETING_TEXT,
    TIP_TEXT,
    WELCOME_BACK_TEXT,
    QuestionInfo,
    get_next_question,
    get_question_info,
)
from .state import OnboardingState, Profile, ProfileUpdate, QuestionStep
from .summary import render_completion_recap, render_summary

logger = logging.getLogger(__name__)

TurnKind = Literal[
    "started",
    "advanced",
    "rejected",
    "redirect",
    "back",
    "back_blocked",
    "summary",
    "completed",
    "persist_failed",
    "already_complete",
]

COMPLETION_TEXT = (
    "Parfait! ✅ J'ai enregistré toutes vos informations. Maintenant, je peux vous "
    "donner des conseils personnalisés! Comment puis-je vous aider aujourd'hui?"
)
BACK_BLOCKED_TEXT = (
    "Vous êtes déjà à la première question. Vous ne pouvez pas revenir en arrière."
)
REDIRECT_TEXT = (
    "Veuillez utiliser les bulles de suggestion ci-dessus pour répondre à cette question"
)
REDIRECT_CUSTOM_TEXT = ", ou cliquez sur 'Ajouter une réponse personnalisée'."
SELECTION_FAILED_TEXT = "Je n'ai pas pu traiter votre sélection. Veuillez réessayer."


@dataclass
class TurnResult:
    """What the machine decided for one visitor input."""
    kind: TurnKind
    message: str
    step: QuestionStep
    question: QuestionInfo | None = None
    error: str | None = None

    @property
    def complete(self) -> bool:
        return self.step is QuestionStep.COMPLETE

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "step": self.step.value,
            "suggestions": list(self.question.suggestions) if self.question else [],
            "allow_multiple": self.question.allow_multiple if self.question else False,
            "allow_custom_input": self.question.allow_custom_input if self.question else False,
            "error": self.error,
        }


class OnboardingMachine:
    """
    Interview controller for one session.

    Args:
        state: Session state owned by the caller (created fresh if omitted)
        store: Profile persistence; without one, completion is local only
        lexicon: Synonym tables (defaults to the process-wide lexicon)
        session_logger: Optional JSONL logger for turn tracing
    """

    def __init__(
        self,
        state: OnboardingState | None = None,
        store: ProfileStore | None = None,
        lexicon: Lexicon | None = None,
        session_logger=None,
    ):
        self.state = state or OnboardingState()
        self.store = store
        self.lexicon = lexicon or get_lexicon()
        self.session_logger = session_logger

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def step(self) -> QuestionStep:
        return self.state.current_step

    @property
    def profile(self) -> Profile:
        return self.state.profile

    @property
    def is_complete(self) -> bool:
        return self.state.complete

    def current_question(self) -> QuestionInfo | None:
        return get_question_info(self.state.current_step)

    # =========================================================================
    # Session start
    # =========================================================================

    def start(self) -> TurnResult:
        """Greeting plus the current question (or a welcome back)."""
        if self.state.complete:
            return self._result("already_complete", WELCOME_BACK_TEXT)
        info = self.current_question()
        return self._result("started", f"{GREETING_TEXT}\n\n{info.render()}")

    def resume_from_profile(self, stored: dict | None) -> bool:
        """
        Skip the interview for a visitor whose stored profile has age and gender.

        Returns True if the session was moved straight to COMPLETE.
        """
        if not profile_is_complete(stored):
            return False
        self.state.profile = Profile(
            age=stored.get("age"),
            gender=stored.get("gender"),
            weight=stored.get("weight"),
            height=stored.get("height"),
            goals=stored.get("goals"),
            allergies=stored.get("allergies"),
            activity_level=stored.get("activityLevel"),
            additional_info=stored.get("additionalInfo"),
        )
        self._mark_complete()
        logger.info(f"Stored profile found for {self.state.user_id}, skipping interview")
        return True

    # =========================================================================
    # Visitor input
    # =========================================================================

    async def handle_text(self, text: str) -> TurnResult:
        """Process a typed message."""
        self._log_turn_start(text)
        result = await self._handle_text(text)
        self._log_turn_end(result)
        return result

    async def handle_selection(self, selections: list[str]) -> TurnResult:
        """Process suggestion-bubble picks (and any custom entries)."""
        self._log_turn_start(", ".join(selections))
        result = await self._handle_selection(selections)
        self._log_turn_end(result)
        return result

    async def _handle_text(self, text: str) -> TurnResult:
        if self.state.complete:
            return self._result("already_complete", WELCOME_BACK_TEXT)

        if is_back_command(text, self.lexicon):
            return self.go_back()
        if is_summary_command(text, self.lexicon):
            return self.summary()

        info = self.current_question()
        custom_open = info.allow_custom_input and self.state.custom_input_active
        if info.selection_only and not custom_open:
            message = REDIRECT_TEXT + (REDIRECT_CUSTOM_TEXT if info.allow_custom_input else ".")
            return self._result("redirect", message)

        update = parse_response(text, self.state.current_step, self.lexicon)
        if update is None:
            return self._reject()
        return await self._accept(update)

    async def _handle_selection(self, selections: list[str]) -> TurnResult:
        if self.state.complete:
            return self._result("already_complete", WELCOME_BACK_TEXT)

        info = self.current_question()
        if info is None or not info.has_bubbles:
            return self._result("rejected", SELECTION_FAILED_TEXT)

        picks = selections if info.allow_multiple else selections[:1]
        update = parse_selection(picks, self.state.current_step, self.lexicon)
        if update is None:
            return self._result("rejected", SELECTION_FAILED_TEXT)
        return await self._accept(update)

    # =========================================================================
    # Commands
    # =========================================================================

    def go_back(self) -> TurnResult:
        """Return to the previous question so its answer can be amended."""
        history = self.state.history
        if len(history) <= 1:
            return self._result("back_blocked", BACK_BLOCKED_TEXT)

        history.pop()
        self.state.current_step = history[-1]
        self.state.custom_input_active = False
        self.state.touch()

        info = self.current_question()
        message = (
            "⬅️ Retour à la question précédente:\n\n"
            f"{info.render()}\n\n"
            "Vous pouvez modifier votre réponse."
        )
        return self._result("back", message)

    def summary(self) -> TurnResult:
        """Render the answers collected so far. No state change."""
        return self._result("summary", render_summary(self.state.profile))

    def enable_custom_input(self) -> bool:
        """Open the off-menu answer box, if the current step allows one."""
        info = self.current_question()
        if info is None or not info.allow_custom_input:
            return False
        self.state.custom_input_active = True
        return True

    def disable_custom_input(self) -> None:
        self.state.custom_input_active = False

    # =========================================================================
    # Transitions
    # =========================================================================

    def _reject(self) -> TurnResult:
        info = self.current_question()
        examples = f"\n\n💡 {info.examples}" if info.examples else ""
        message = (
            f"Je n'ai pas compris votre réponse.{examples}\n\n"
            f"{info.progress} {info.prompt}\n\n"
            "💡 Vous pouvez aussi taper 'retour' pour revenir en arrière ou 'passer' "
            "pour ignorer cette question (si applicable)."
        )
        return self._result("rejected", message)

    async def _accept(self, update: ProfileUpdate) -> TurnResult:
        state = self.state
        state.profile.merge(update)
        state.custom_input_active = False
        state.touch()

        if state.history[-1] is not state.current_step:
            state.history.append(state.current_step)

        if state.current_step is QuestionStep.ADDITIONAL_INFO:
            return await self._complete()

        following, info = get_next_question(state.current_step)
        state.history.append(following)
        state.current_step = following
        return self._result("advanced", f"Merci! {info.render()}\n\n{TIP_TEXT}")

    async def _complete(self) -> TurnResult:
        """Save the profile; stay on the last question if the save fails."""
        recap = render_completion_recap(self.state.profile)

        if self.store is None:
            logger.info("No profile store configured, completing interview locally")
        else:
            try:
                await self.store.save_profile(self.state.user_id, self.state.profile)
            except PersistenceError as e:
                logger.warning(f"Profile save failed for {self.state.user_id}: {e!r}")
                if self.session_logger:
                    self.session_logger.profile_save(self.state.user_id, False, type(e).__name__)
                return self._result(
                    "persist_failed",
                    f"{recap}\n\n{e.user_message}",
                    error=type(e).__name__,
                )
            if self.session_logger:
                self.session_logger.profile_save(self.state.user_id, True)

        self._mark_complete()
        return self._result("completed", f"{recap}\n\n{COMPLETION_TEXT}")

    def _mark_complete(self) -> None:
        state = self.state
        state.complete = True
        state.current_step = QuestionStep.COMPLETE
        if state.history[-1] is not QuestionStep.COMPLETE:
            state.history.append(QuestionStep.COMPLETE)
        state.custom_input_active = False
        state.touch()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _result(self, kind: TurnKind, message: str, error: str | None = None) -> TurnResult:
        return TurnResult(
            kind=kind,
            message=message,
            step=self.state.current_step,
            question=get_question_info(self.state.current_step),
            error=error,
        )

    def _log_turn_start(self, text: str) -> None:
        if self.session_logger:
            self.session_logger.turn_start(text, step=self.state.current_step.value)

    def _log_turn_end(self, result: TurnResult) -> None:
        logger.debug(f"Onboarding turn for {self.state.user_id}: {result.kind} -> {result.step.value}")
        if self.session_logger:
            self.session_logger.turn_end(result.kind, step=result.step.value, profile=self.state.profile)
