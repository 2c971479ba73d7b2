"""
Profile Persistence.

HTTP client for the profile service:
- POST /api/user      save the completed interview
- GET  /api/user      look up an existing profile (returning visitors skip
                      the interview)

No retries here: a failed save is surfaced to the visitor, who retries by
sending again.
"""

import logging
from typing import Any, Protocol

import httpx

from .errors import (
    NetworkFailure,
    PersistenceError,
    ServerFailure,
    ServiceUnavailable,
    ValidationFailure,
)
from .state import Profile

logger = logging.getLogger(__name__)

PROFILE_PATH = "/api/user"


class ProfileStore(Protocol):
    """What the state machine needs to finish an interview."""

    async def save_profile(self, user_id: str, profile: Profile) -> None: ...


def build_profile_payload(user_id: str, profile: Profile) -> dict[str, Any]:
    """Request body for POST /api/user (camelCase, lists never null)."""
    payload: dict[str, Any] = {
        "userId": user_id,
        "age": profile.age,
        "gender": profile.gender,
        "goals": list(profile.goals or []),
        "allergies": list(profile.allergies or []),
        "activityLevel": profile.activity_level,
        "additionalInfo": profile.additional_info or "",
    }
    if profile.weight is not None:
        payload["weight"] = profile.weight
    if profile.height is not None:
        payload["height"] = profile.height
    return payload


def profile_is_complete(data: dict | None) -> bool:
    """A stored profile with truthy age and gender skips the interview."""
    return bool(data and data.get("age") and data.get("gender"))


def _error_for_status(response: httpx.Response) -> PersistenceError:
    try:
        body = response.json()
        detail = body.get("error", "") if isinstance(body, dict) else ""
    except ValueError:
        detail = response.text
    status = response.status_code
    if status in (400, 422):
        return ValidationFailure(detail, status)
    if status == 503:
        return ServiceUnavailable(detail, status)
    return ServerFailure(detail, status)


class ProfileClient:
    """
    Async client for the profile service.

    Pass `client` to share a connection pool or to inject a mock transport.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        if client is None:
            from concierge.config import settings

            client = httpx.AsyncClient(
                base_url=base_url or settings.profile_api_base_url,
                timeout=timeout or settings.http_timeout_seconds,
            )
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def save_profile(self, user_id: str, profile: Profile) -> None:
        """
        Persist a completed profile.

        HTTP 409 (profile already exists) counts as success.

        Raises:
            ValidationFailure, ServiceUnavailable, ServerFailure, NetworkFailure
        """
        payload = build_profile_payload(user_id, profile)
        try:
            response = await self._client.post(PROFILE_PATH, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Profile save for {user_id} failed before a response: {e}")
            raise NetworkFailure(str(e)) from e

        if response.is_success:
            logger.info(f"Profile saved for {user_id} (HTTP {response.status_code})")
            return
        if response.status_code == 409:
            logger.info(f"Profile for {user_id} already exists, treating as saved")
            return

        error = _error_for_status(response)
        logger.warning(
            f"Profile save for {user_id} rejected: HTTP {response.status_code} "
            f"({type(error).__name__}) {error.detail}"
        )
        raise error

    async def fetch_profile(self, user_id: str) -> dict | None:
        """
        Look up a stored profile.

        Returns None when no profile exists (HTTP 404).

        Raises:
            ServiceUnavailable, ServerFailure, NetworkFailure
        """
        try:
            response = await self._client.get(PROFILE_PATH, params={"userId": user_id})
        except httpx.HTTPError as e:
            logger.error(f"Profile lookup for {user_id} failed: {e}")
            raise NetworkFailure(str(e)) from e

        if response.status_code == 404:
            return None
        if not response.is_success:
            raise _error_for_status(response)
        return response.json()
