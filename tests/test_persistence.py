"""
Tests for the profile service client (httpx.MockTransport).
"""

import asyncio
import json

import httpx
import pytest

from onboarding.errors import NetworkFailure, ServerFailure, ServiceUnavailable, ValidationFailure
from onboarding.persistence import ProfileClient, build_profile_payload, profile_is_complete
from onboarding.state import Profile

BASE_URL = "http://profiles.test"


def _client(handler) -> ProfileClient:
    transport = httpx.MockTransport(handler)
    return ProfileClient(client=httpx.AsyncClient(transport=transport, base_url=BASE_URL))


def _save(handler, profile: Profile | None = None) -> None:
    client = _client(handler)

    async def run():
        try:
            await client.save_profile("u1", profile or Profile(age=30, gender="male"))
        finally:
            await client.aclose()

    asyncio.run(run())


def _fetch(handler):
    client = _client(handler)

    async def run():
        try:
            return await client.fetch_profile("u1")
        finally:
            await client.aclose()

    return asyncio.run(run())


class TestPayload:

    def test_camel_case_and_defaults(self):
        payload = build_profile_payload("u1", Profile(age=30, gender="female"))
        assert payload == {
            "userId": "u1",
            "age": 30,
            "gender": "female",
            "goals": [],
            "allergies": [],
            "activityLevel": None,
            "additionalInfo": "",
        }

    def test_measures_only_when_answered(self):
        payload = build_profile_payload("u1", Profile(age=30, weight=70.0))
        assert payload["weight"] == 70.0
        assert "height" not in payload

    def test_profile_is_complete(self):
        assert profile_is_complete({"age": 30, "gender": "male"})
        assert not profile_is_complete({"age": 30, "gender": ""})
        assert not profile_is_complete({})
        assert not profile_is_complete(None)


class TestSaveProfile:

    def test_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"ok": True})

        _save(handler, Profile(age=30, gender="male", goals=["energy"]))

        assert seen["method"] == "POST"
        assert seen["path"] == "/api/user"
        assert seen["body"]["userId"] == "u1"
        assert seen["body"]["goals"] == ["energy"]

    def test_conflict_counts_as_saved(self):
        _save(lambda request: httpx.Response(409, json={"error": "exists"}))

    @pytest.mark.parametrize("status", [400, 422])
    def test_validation_failure(self, status):
        with pytest.raises(ValidationFailure) as exc_info:
            _save(lambda request: httpx.Response(status, json={"error": "age is required"}))
        assert exc_info.value.status_code == status
        assert exc_info.value.detail == "age is required"

    def test_service_unavailable(self):
        with pytest.raises(ServiceUnavailable):
            _save(lambda request: httpx.Response(503, text="database down"))

    def test_server_failure(self):
        with pytest.raises(ServerFailure) as exc_info:
            _save(lambda request: httpx.Response(500, json=["unexpected"]))
        assert exc_info.value.detail == ""

    def test_network_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkFailure):
            _save(handler)


class TestFetchProfile:

    def test_found(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["user_id"] = request.url.params.get("userId")
            return httpx.Response(200, json={"age": 40, "gender": "female"})

        assert _fetch(handler) == {"age": 40, "gender": "female"}
        assert seen["user_id"] == "u1"

    def test_not_found(self):
        assert _fetch(lambda request: httpx.Response(404)) is None

    def test_unavailable(self):
        with pytest.raises(ServiceUnavailable):
            _fetch(lambda request: httpx.Response(503))
