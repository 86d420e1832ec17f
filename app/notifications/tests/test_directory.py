"""
Tests for the HTTP user directory client.

Requests never leave the process: each test hands HttpUserDirectory an
httpx.MockTransport that answers like the directory service would.
"""

import uuid

import httpx
import pytest

from core.exceptions import ExternalServiceError
from notifications.directory import HttpUserDirectory, UserProfile, get_user_directory
from notifications.exceptions import RecipientNotFoundError

BASE_URL = "http://directory.test/api/v1"


def make_directory(handler, token="secret-token"):
    return HttpUserDirectory(
        base_url=BASE_URL,
        service_token=token,
        transport=httpx.MockTransport(handler),
    )


def profile_response(**data):
    payload = {
        "fullName": "Ann Perera",
        "email": "ann@example.com",
        "codeNumber": "X1",
        "whatsappNumber": "+94770000001",
    }
    payload.update(data)
    return httpx.Response(200, json={"success": True, "data": payload})


class TestResolve:
    """Tests for HttpUserDirectory.resolve."""

    def test_maps_public_fields(self):
        user_id = uuid.uuid4()
        directory = make_directory(lambda request: profile_response())

        profile = directory.resolve(user_id)

        assert profile == UserProfile(
            user_id=user_id,
            full_name="Ann Perera",
            email="ann@example.com",
            identifier_code="X1",
            phone_number="+94770000001",
        )

    def test_request_path_and_token(self):
        user_id = uuid.uuid4()
        seen = []

        def handler(request):
            seen.append(request)
            return profile_response()

        make_directory(handler).resolve(user_id)

        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == f"/api/v1/users/{user_id}/public"
        assert request.headers["X-Service-Token"] == "secret-token"

    def test_no_token_header_without_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return profile_response()

        make_directory(handler, token="").resolve(uuid.uuid4())

        assert "X-Service-Token" not in seen[0].headers

    def test_missing_email(self):
        directory = make_directory(lambda request: profile_response(email=None))

        profile = directory.resolve(uuid.uuid4())

        assert profile.email is None
        assert not profile.has_email

    @pytest.mark.parametrize("status", [400, 404])
    def test_client_error_is_not_found(self, status):
        directory = make_directory(lambda request: httpx.Response(status))

        with pytest.raises(RecipientNotFoundError) as exc_info:
            directory.resolve(uuid.uuid4())

        assert exc_info.value.error_code == "RECIPIENT_NOT_FOUND"

    def test_empty_data_is_not_found(self):
        directory = make_directory(
            lambda request: httpx.Response(200, json={"success": False, "data": None})
        )

        with pytest.raises(RecipientNotFoundError):
            directory.resolve(uuid.uuid4())

    def test_server_error(self):
        directory = make_directory(lambda request: httpx.Response(503))

        with pytest.raises(ExternalServiceError) as exc_info:
            directory.resolve(uuid.uuid4())

        assert exc_info.value.error_code == "USER_DIRECTORY_ERROR"
        assert exc_info.value.details["status"] == 503

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ExternalServiceError):
            make_directory(handler).resolve(uuid.uuid4())

    def test_invalid_json(self):
        directory = make_directory(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(ExternalServiceError):
            directory.resolve(uuid.uuid4())


class TestUserProfile:
    """Tests for UserProfile helpers."""

    @pytest.mark.parametrize(
        ("email", "expected"),
        [
            ("ann@example.com", True),
            ("", False),
            ("   ", False),
            ("ann.example.com", False),
            (None, False),
        ],
    )
    def test_has_email(self, email, expected):
        assert UserProfile(email=email).has_email is expected

    def test_for_address(self):
        profile = UserProfile.for_address("a@example.com")

        assert profile.user_id is None
        assert profile.email == "a@example.com"


def test_get_user_directory_uses_settings(settings):
    settings.NOTIFICATIONS_USER_DIRECTORY_URL = "http://users.internal/api/"

    directory = get_user_directory()

    assert isinstance(directory, HttpUserDirectory)
    assert str(directory._client.base_url) == "http://users.internal/api/"
    assert directory._client.headers["X-Service-Token"] == "test-service-token"
