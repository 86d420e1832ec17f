"""
User directory client.

Users are owned by another service. The dispatcher only needs a few public
fields per recipient, which it fetches through a UserDirectory
(see toolkit.protocols.UserDirectory).

Classes:
    UserProfile: The public profile fields the dispatcher renders with
    HttpUserDirectory: UserDirectory backed by the directory's HTTP API

Configuration:
    NOTIFICATIONS_USER_DIRECTORY_URL: Base URL of the directory API
    NOTIFICATIONS_SERVICE_TOKEN: Token sent in the X-Service-Token header
    NOTIFICATIONS_USER_DIRECTORY_TIMEOUT: Seconds per request

Usage:
    from notifications.directory import get_user_directory

    profile = get_user_directory().resolve(user_id)
    if profile.has_email:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx
from django.conf import settings

from core.exceptions import ExternalServiceError
from notifications.exceptions import RecipientNotFoundError

if TYPE_CHECKING:
    from typing import Any
    from uuid import UUID

logger = logging.getLogger(__name__)

SERVICE_TOKEN_HEADER = "X-Service-Token"


@dataclass(frozen=True)
class UserProfile:
    """
    Public profile of a notification recipient.

    Attributes:
        user_id: Directory id (None for address-only recipients)
        full_name: Display name
        email: Email address, if the user has one
        identifier_code: Registration code shown to the user
        phone_number: Chat-messaging number, if the user has one
    """

    user_id: UUID | None = None
    full_name: str | None = None
    email: str | None = None
    identifier_code: str | None = None
    phone_number: str | None = None

    @property
    def has_email(self) -> bool:
        """Whether the profile has an address EMAIL delivery can use."""
        return bool(self.email and self.email.strip() and "@" in self.email)

    @classmethod
    def from_payload(cls, user_id: UUID, data: dict[str, Any]) -> UserProfile:
        """Build a profile from the directory's public-data payload."""
        return cls(
            user_id=user_id,
            full_name=data.get("fullName"),
            email=data.get("email"),
            identifier_code=data.get("codeNumber"),
            phone_number=data.get("whatsappNumber"),
        )

    @classmethod
    def for_address(cls, email: str) -> UserProfile:
        """Profile for a recipient known only by email address."""
        return cls(email=email)


class HttpUserDirectory:
    """
    UserDirectory that calls the directory service over HTTP.

    Request:
        GET {base_url}/users/{user_id}/public
        X-Service-Token: <token>

    Response:
        {"success": true, "data": {"fullName": ..., "email": ...,
         "codeNumber": ..., "whatsappNumber": ...}}

    Errors:
        4xx or an empty payload -> RecipientNotFoundError
        5xx, timeouts and transport errors -> ExternalServiceError
    """

    def __init__(
        self,
        base_url: str,
        service_token: str = "",
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if service_token:
            headers[SERVICE_TOKEN_HEADER] = service_token
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def resolve(self, user_id: UUID) -> UserProfile:
        """
        Fetch the public profile of a user.

        Args:
            user_id: Directory id of the user

        Returns:
            UserProfile for the user

        Raises:
            RecipientNotFoundError: Directory doesn't know the user
            ExternalServiceError: Directory unavailable or misbehaving
        """
        try:
            response = self._client.get(f"/users/{user_id}/public")
        except httpx.HTTPError as e:
            logger.warning(f"User directory request for {user_id} failed: {e}")
            raise ExternalServiceError(
                "User directory unavailable",
                error_code="USER_DIRECTORY_ERROR",
                details={"user_id": str(user_id), "original_error": str(e)},
            ) from e

        if response.is_client_error:
            raise RecipientNotFoundError(
                f"User {user_id} not found",
                details={"user_id": str(user_id), "status": response.status_code},
            )
        if response.is_error:
            raise ExternalServiceError(
                f"User directory returned {response.status_code}",
                error_code="USER_DIRECTORY_ERROR",
                details={"user_id": str(user_id), "status": response.status_code},
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ExternalServiceError(
                "User directory returned invalid JSON",
                error_code="USER_DIRECTORY_ERROR",
                details={"user_id": str(user_id)},
            ) from e

        data = body.get("data") if isinstance(body, dict) else None
        if not data:
            raise RecipientNotFoundError(
                f"User {user_id} not found",
                details={"user_id": str(user_id)},
            )
        return UserProfile.from_payload(user_id, data)

    def close(self) -> None:
        self._client.close()


def get_user_directory() -> HttpUserDirectory:
    """Build the configured HTTP user directory."""
    return HttpUserDirectory(
        base_url=settings.NOTIFICATIONS_USER_DIRECTORY_URL,
        service_token=settings.NOTIFICATIONS_SERVICE_TOKEN,
        timeout=settings.NOTIFICATIONS_USER_DIRECTORY_TIMEOUT,
    )
