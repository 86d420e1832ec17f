"""
Test configuration and fixtures for notification tests.

This module provides:
- An in-memory user directory with a few known profiles
- A dispatcher wired to that directory and the test database
- An outbox worker wired to a mocked email sender
- Log capture for the notifications logger, which does not propagate

Usage:
    def test_example(dispatcher, ann, bob_without_email):
        result = dispatcher.send_direct(
            [ann.user_id, bob_without_email.user_id],
            ["in_app", "email"],
            "Title",
            "Body",
        )
        assert result.success
"""

import logging
import uuid

import pytest

from notifications.delivery import ChannelRouter
from notifications.directory import UserProfile
from notifications.exceptions import RecipientNotFoundError
from notifications.services import NotificationDispatcher
from notifications.worker import OutboxWorker


class StaticUserDirectory:
    """UserDirectory double backed by a dict of profiles."""

    def __init__(self, profiles=None):
        self.profiles = {profile.user_id: profile for profile in profiles or []}
        self.calls = []

    def resolve(self, user_id):
        self.calls.append(user_id)
        try:
            return self.profiles[user_id]
        except KeyError:
            raise RecipientNotFoundError(
                f"User {user_id} not found",
                details={"user_id": str(user_id)},
            ) from None


# =============================================================================
# Profile Fixtures
# =============================================================================


@pytest.fixture
def ann():
    """Profile with every field filled in."""
    return UserProfile(
        user_id=uuid.uuid4(),
        full_name="Ann",
        email="ann@example.com",
        identifier_code="X1",
        phone_number="+94770000001",
    )


@pytest.fixture
def bob_without_email():
    """Profile without an email address."""
    return UserProfile(
        user_id=uuid.uuid4(),
        full_name="Bob",
        email=None,
        identifier_code="X2",
    )


@pytest.fixture
def directory(ann, bob_without_email):
    """Directory that knows ann and bob_without_email."""
    return StaticUserDirectory([ann, bob_without_email])


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def dispatcher(db, directory):
    """Dispatcher using the static directory and the real repositories."""
    return NotificationDispatcher(directory=directory)


@pytest.fixture
def email_sender(mocker):
    """EmailSender double that accepts every message."""
    sender = mocker.Mock()
    sender.send.return_value = True
    return sender


@pytest.fixture
def router(email_sender):
    return ChannelRouter(email_sender=email_sender)


@pytest.fixture
def worker(db, router):
    """Outbox worker delivering through the mocked email sender."""
    return OutboxWorker(router=router)


@pytest.fixture
def notification_logs(caplog, monkeypatch):
    """caplog that also sees records from the notifications logger."""
    monkeypatch.setattr(logging.getLogger("notifications"), "propagate", True)
    caplog.set_level(logging.WARNING)
    return caplog
