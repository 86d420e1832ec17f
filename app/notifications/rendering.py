"""
Placeholder rendering for notification content.

Content strings use {{token}} placeholders. Each token is resolved in order,
first match wins:

    1. Caller-supplied placeholders ({"newStatus": "approved"})
    2. Recipient profile fields:
         name          -> full name
         email         -> email address
         registration  -> registration / identifier code
    3. Derived date fields:
         date          -> day of month ("7")
         month         -> month name ("March")
    4. Otherwise the token is left in the output unchanged

Rendering never fails: malformed or unknown tokens pass through as-is.

Usage:
    from notifications.rendering import TemplateRenderer

    renderer = TemplateRenderer()
    renderer.render("Hi {{name}}, code {{registration}}", {}, profile)
    # "Hi Ann, code X1"
"""

from __future__ import annotations

import calendar
import re
from typing import TYPE_CHECKING

from django.utils import timezone

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime
    from typing import Any

    from notifications.directory import UserProfile

TOKEN_PATTERN = re.compile(r"\{\{([^}]+)\}\}")

# Token name -> UserProfile attribute
PROFILE_FIELDS = {
    "name": "full_name",
    "email": "email",
    "registration": "identifier_code",
}


def stringify(value: Any) -> str:
    """Coerce a payload leaf (str, number, bool, None) to its rendered text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class TemplateRenderer:
    """
    Renders {{token}} templates against placeholders and a recipient profile.

    Stateless; the only input that isn't an argument is the clock, and
    that can be pinned with ``now``.
    """

    def render(
        self,
        template: str | None,
        placeholders: Mapping[str, Any] | None = None,
        subject: UserProfile | None = None,
        now: datetime | None = None,
    ) -> str:
        """
        Render a template string.

        Args:
            template: Text with {{token}} placeholders
            placeholders: Explicit token values, checked first
            subject: Recipient profile for name/email/registration tokens
            now: Reference time for date/month tokens (defaults to now)

        Returns:
            Rendered text, with unresolved tokens left verbatim
        """
        if not template:
            return ""

        placeholders = placeholders or {}
        now = now or timezone.now()

        def _replace(match: re.Match) -> str:
            value = self._resolve(match.group(1).strip(), placeholders, subject, now)
            return match.group(0) if value is None else value

        return TOKEN_PATTERN.sub(_replace, template)

    def _resolve(
        self,
        key: str,
        placeholders: Mapping[str, Any],
        subject: UserProfile | None,
        now: datetime,
    ) -> str | None:
        if key in placeholders:
            return stringify(placeholders[key])

        attribute = PROFILE_FIELDS.get(key)
        if attribute and subject is not None:
            value = getattr(subject, attribute, None)
            if value is not None:
                return stringify(value)

        if key == "date":
            return str(now.day)
        if key == "month":
            return calendar.month_name[now.month]

        return None
