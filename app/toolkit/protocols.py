"""
Protocol definitions (interfaces) for the collaborators of the notification core.

Protocols define the contracts the dispatcher and the outbox worker depend on,
so concrete collaborators can be swapped (or mocked in tests) without
touching the core:

Available Protocols:
    EmailSender: Email sending interface
    UserDirectory: Resolves a user id to a public profile
    TemplateStore: Read access to stored notification templates

Usage:
    from toolkit.protocols import EmailSender, UserDirectory

    class ConsoleEmailSender:
        def send(self, to, subject, body_text, body_html=None, **kwargs) -> bool:
            print(to, subject)
            return True

    # ConsoleEmailSender is a valid EmailSender
    # even without explicit inheritance (duck typing)
    sender: EmailSender = ConsoleEmailSender()

Note:
    - @runtime_checkable allows isinstance() checks
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any
    from uuid import UUID

    from notifications.directory import UserProfile
    from notifications.models import NotificationTemplate


@runtime_checkable
class EmailSender(Protocol):
    """
    Protocol for email sending services.

    Implementations either return True or raise; a False return is
    treated as a provider rejection by callers.

    Example:
        def send_welcome_email(sender: EmailSender, email: str):
            sender.send(email, "Welcome!", "Thanks for signing up")
    """

    def send(
        self,
        to: str | list[str],
        subject: str,
        body_text: str,
        body_html: str | None = None,
        **kwargs: Any,
    ) -> bool:
        """
        Send an email.

        Args:
            to: Recipient email address(es)
            subject: Email subject
            body_text: Plain text body
            body_html: Optional HTML body
            **kwargs: Additional options (from_email, reply_to, etc.)

        Returns:
            True if the email was accepted by the provider
        """
        ...


@runtime_checkable
class UserDirectory(Protocol):
    """
    Protocol for resolving users to their public profile.

    Example:
        class StaticDirectory:
            def __init__(self, profiles):
                self.profiles = profiles

            def resolve(self, user_id):
                try:
                    return self.profiles[user_id]
                except KeyError:
                    raise RecipientNotFoundError(f"User {user_id} not found")
    """

    def resolve(self, user_id: UUID) -> UserProfile:
        """
        Resolve a user id.

        Raises:
            RecipientNotFoundError: If the user doesn't exist
        """
        ...


@runtime_checkable
class TemplateStore(Protocol):
    """Protocol for reading stored templates and counting their use."""

    def get(self, template_id: str) -> NotificationTemplate:
        """
        Fetch a template by its programmatic id.

        Raises:
            TemplateNotFoundError: If no template has that id
        """
        ...

    def increment_sent_times(self, template_id: str) -> None:
        """Record one more send that used the template."""
        ...
