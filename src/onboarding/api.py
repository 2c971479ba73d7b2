"""
Onboarding API Endpoints.

Separate router from the recommendation endpoints. Drives one
OnboardingMachine per visitor; session state lives in an in-memory store
keyed by user id and is serialized with OnboardingState.to_dict().
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from .errors import PersistenceError
from .machine import OnboardingMachine, TurnResult
from .persistence import ProfileClient, ProfileStore
from .questions import get_question_options
from .state import OnboardingState

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


# =============================================================================
# Request/Response Models
# =============================================================================


class StartRequest(BaseModel):
    user_id: str = Field(min_length=1)


class MessageRequest(BaseModel):
    """Free-text answer or command ('retour', 'résumé', ...)."""
    user_id: str = Field(min_length=1)
    text: str


class SelectionRequest(BaseModel):
    """Suggestion-bubble picks, plus any custom entries typed in the box."""
    user_id: str = Field(min_length=1)
    selections: list[str] = Field(default_factory=list)


class CustomInputRequest(BaseModel):
    user_id: str = Field(min_length=1)
    enabled: bool = True


class TurnResponse(BaseModel):
    """What the chat frontend renders after one visitor input."""
    kind: str
    message: str
    step: str
    complete: bool
    suggestions: list[str] = Field(default_factory=list)
    allow_multiple: bool = False
    allow_custom_input: bool = False
    error: str | None = None

    @classmethod
    def from_turn(cls, result: TurnResult) -> "TurnResponse":
        return cls(complete=result.complete, **result.to_dict())


class StateResponse(BaseModel):
    """Current onboarding progress, for frontend resume logic."""
    user_id: str
    step: str
    complete: bool
    custom_input_active: bool
    history: list[str]
    profile: dict


class CustomInputResponse(BaseModel):
    step: str
    custom_input_active: bool


class SummaryResponse(BaseModel):
    step: str
    message: str


# =============================================================================
# Session Management
# =============================================================================


class SessionStore:
    """In-memory onboarding sessions, one per user id."""

    def __init__(self):
        self._states: dict[str, OnboardingState] = {}

    def get(self, user_id: str) -> OnboardingState | None:
        return self._states.get(user_id)

    def get_or_create(self, user_id: str) -> OnboardingState:
        state = self._states.get(user_id)
        if state is None:
            state = OnboardingState(user_id=user_id)
            self._states[user_id] = state
            logger.info(f"New onboarding session for {user_id}")
        return state

    def save(self, state: OnboardingState) -> None:
        state.touch()
        self._states[state.user_id] = state

    def clear(self, user_id: str) -> None:
        self._states.pop(user_id, None)


_session_store = SessionStore()
_profile_client: ProfileClient | None = None


def get_session_store() -> SessionStore:
    return _session_store


def get_profile_store() -> ProfileStore:
    """Shared profile service client, created on first use."""
    global _profile_client
    if _profile_client is None:
        _profile_client = ProfileClient()
    return _profile_client


def _require_session(sessions: SessionStore, user_id: str) -> OnboardingState:
    state = sessions.get(user_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"No onboarding session for {user_id}")
    return state


# =============================================================================
# Endpoints: Session
# =============================================================================


@router.post("/start", response_model=TurnResponse)
async def start_onboarding(
    request: StartRequest,
    sessions: SessionStore = Depends(get_session_store),
    store: ProfileStore = Depends(get_profile_store),
) -> TurnResponse:
    """
    Open (or reopen) a session.

    A visitor whose stored profile already has age and gender skips straight
    to COMPLETE. A failed lookup is not fatal: the interview just starts.
    """
    state = sessions.get_or_create(request.user_id)
    machine = OnboardingMachine(state=state, store=store)

    if not state.complete and hasattr(store, "fetch_profile"):
        try:
            stored = await store.fetch_profile(request.user_id)
        except PersistenceError as e:
            logger.warning(f"Profile lookup failed for {request.user_id}, starting interview: {e!r}")
            stored = None
        machine.resume_from_profile(stored)

    sessions.save(state)
    return TurnResponse.from_turn(machine.start())


@router.get("/state", response_model=StateResponse)
async def get_onboarding_state(
    user_id: str,
    sessions: SessionStore = Depends(get_session_store),
) -> StateResponse:
    """Get current onboarding progress."""
    state = _require_session(sessions, user_id)
    data = state.to_dict()
    return StateResponse(
        user_id=state.user_id,
        step=data["current_step"],
        complete=state.complete,
        custom_input_active=state.custom_input_active,
        history=data["history"],
        profile=data["profile"],
    )


@router.get("/options")
async def get_onboarding_options():
    """Question metadata (prompts, bubbles, flags) for every step."""
    return get_question_options()


# =============================================================================
# Endpoints: Answers
# =============================================================================


@router.post("/message", response_model=TurnResponse)
async def post_message(
    request: MessageRequest,
    sessions: SessionStore = Depends(get_session_store),
    store: ProfileStore = Depends(get_profile_store),
) -> TurnResponse:
    """Answer the current question in free text (or send a command)."""
    state = sessions.get_or_create(request.user_id)
    machine = OnboardingMachine(state=state, store=store)
    result = await machine.handle_text(request.text)
    sessions.save(state)
    return TurnResponse.from_turn(result)


@router.post("/selection", response_model=TurnResponse)
async def post_selection(
    request: SelectionRequest,
    sessions: SessionStore = Depends(get_session_store),
    store: ProfileStore = Depends(get_profile_store),
) -> TurnResponse:
    """Answer the current question with suggestion bubbles."""
    state = sessions.get_or_create(request.user_id)
    machine = OnboardingMachine(state=state, store=store)
    result = await machine.handle_selection(request.selections)
    sessions.save(state)
    return TurnResponse.from_turn(result)


@router.post("/custom-input", response_model=CustomInputResponse)
async def toggle_custom_input(
    request: CustomInputRequest,
    sessions: SessionStore = Depends(get_session_store),
) -> CustomInputResponse:
    """Open or close the off-menu answer box for the current question."""
    state = _require_session(sessions, request.user_id)
    machine = OnboardingMachine(state=state)

    if request.enabled:
        if not machine.enable_custom_input():
            raise HTTPException(
                status_code=400,
                detail=f"Question {state.current_step.value} does not accept custom answers",
            )
    else:
        machine.disable_custom_input()

    sessions.save(state)
    return CustomInputResponse(
        step=state.current_step.value,
        custom_input_active=state.custom_input_active,
    )


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    user_id: str,
    sessions: SessionStore = Depends(get_session_store),
) -> SummaryResponse:
    """Answers collected so far."""
    state = _require_session(sessions, user_id)
    result = OnboardingMachine(state=state).summary()
    return SummaryResponse(step=result.step.value, message=result.message)
