"""
Email service for notification delivery.

This module provides the EmailService class, the EmailSender
(see toolkit.protocols) used by the delivery outbox worker.

Configuration:
    Email settings are read from Django settings:
    - EMAIL_BACKEND
    - EMAIL_HOST, EMAIL_PORT, EMAIL_TIMEOUT
    - DEFAULT_FROM_EMAIL

Usage:
    from toolkit.services.email import EmailService

    EmailService.send(
        to="user@example.com",
        subject="Payment Status Updated",
        body_text="Your payment status has been changed to approved.",
    )

Note:
    Failures are raised, not swallowed: the outbox worker needs the
    exception message to record last_error and schedule a retry.
    An SMTP timeout (EMAIL_TIMEOUT) surfaces as an OSError subclass.
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives

logger = logging.getLogger(__name__)


class EmailService:
    """
    Sends plain text (optionally multipart HTML) emails through Django's
    configured email backend.

    Usage:
        success = EmailService.send(
            to="user@example.com",
            subject="Quick note",
            body_text="Plain text content",
            body_html="<p>HTML content</p>",
        )
    """

    @staticmethod
    def send(
        to: str | list[str],
        subject: str,
        body_text: str,
        body_html: str | None = None,
        from_email: str | None = None,
        reply_to: str | None = None,
        **kwargs,
    ) -> bool:
        """
        Send email with raw content.

        Args:
            to: Recipient email address(es)
            subject: Email subject line
            body_text: Plain text email body
            body_html: HTML email body (optional)
            from_email: Sender email (defaults to DEFAULT_FROM_EMAIL)
            reply_to: Reply-to address

        Returns:
            True if the backend accepted the message, False if it sent nothing

        Raises:
            Exception: Whatever the email backend raises (SMTP errors, timeouts)
        """
        if isinstance(to, str):
            to = [to]

        email = EmailMultiAlternatives(
            subject=subject,
            body=body_text,
            from_email=from_email or settings.DEFAULT_FROM_EMAIL,
            to=to,
            reply_to=[reply_to] if reply_to else None,
        )

        if body_html:
            email.attach_alternative(body_html, "text/html")

        sent = email.send(fail_silently=False)
        if sent:
            logger.info(f"Email sent to {to}: {subject}")
        else:
            logger.warning(f"Email backend sent nothing to {to}: {subject}")
        return bool(sent)
