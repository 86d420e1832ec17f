"""
Tests for {{token}} template rendering.

Tests cover:
- Resolution order (placeholders, profile fields, date fields)
- Lenient handling of unknown and malformed tokens
- Coercion of non-string placeholder values
"""

from datetime import datetime, timezone

import pytest
from freezegun import freeze_time

from notifications.directory import UserProfile
from notifications.rendering import TemplateRenderer, stringify

MARCH_7 = datetime(2026, 3, 7, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def renderer():
    return TemplateRenderer()


@pytest.fixture
def profile():
    return UserProfile(full_name="Ann", email="ann@example.com", identifier_code="X1")


class TestResolutionOrder:
    """Tests for which source wins for a token."""

    def test_profile_fields(self, renderer, profile):
        """Profile fields fill name and registration tokens."""
        result = renderer.render("Hi {{name}}, code {{registration}}", {}, profile)

        assert result == "Hi Ann, code X1"

    def test_email_token(self, renderer, profile):
        assert renderer.render("Sent to {{email}}", {}, profile) == "Sent to ann@example.com"

    def test_placeholders_win_over_profile(self, renderer, profile):
        """An explicit placeholder shadows the profile field of the same name."""
        result = renderer.render("Hi {{name}}", {"name": "Dr. Ann"}, profile)

        assert result == "Hi Dr. Ann"

    def test_placeholders_win_over_date(self, renderer, profile):
        result = renderer.render("Due {{date}}", {"date": "tomorrow"}, profile, MARCH_7)

        assert result == "Due tomorrow"

    def test_date_and_month(self, renderer, profile):
        """Date tokens come from the reference time."""
        result = renderer.render("{{date}} {{month}}", {}, profile, MARCH_7)

        assert result == "7 March"

    @freeze_time("2026-11-21 12:00:00")
    def test_date_defaults_to_now(self, renderer):
        assert renderer.render("{{month}} {{date}}") == "November 21"

    def test_missing_profile_field_left_verbatim(self, renderer):
        """A profile without the field doesn't resolve the token."""
        result = renderer.render("Code {{registration}}", {}, UserProfile(full_name="Ann"))

        assert result == "Code {{registration}}"

    def test_whitespace_inside_braces_ignored(self, renderer, profile):
        assert renderer.render("Hi {{ name }}", {}, profile) == "Hi Ann"


class TestLenientRendering:
    """Tests that rendering never fails."""

    def test_unknown_token_passes_through(self, renderer, profile):
        result = renderer.render("Status: {{newStatus}}", {}, profile)

        assert result == "Status: {{newStatus}}"

    def test_malformed_tokens_pass_through(self, renderer, profile):
        template = "Broken {{name} and {name}} and {{}}"

        assert renderer.render(template, {}, profile) == template

    def test_no_subject(self, renderer):
        """Without a profile, profile tokens are left verbatim."""
        assert renderer.render("Hi {{name}}", {}, None) == "Hi {{name}}"

    def test_empty_template(self, renderer, profile):
        assert renderer.render("", {}, profile) == ""
        assert renderer.render(None, {}, profile) == ""

    def test_text_without_tokens_unchanged(self, renderer, profile):
        assert renderer.render("Plain text.", {"x": "y"}, profile) == "Plain text."


class TestValueCoercion:
    """Tests for placeholder values that aren't strings."""

    def test_numbers(self, renderer):
        assert renderer.render("{{count}} of {{total}}", {"count": 3, "total": 4.5}) == "3 of 4.5"

    def test_booleans(self, renderer):
        assert renderer.render("{{flag}}", {"flag": True}) == "true"

    def test_none_renders_empty(self, renderer):
        """A null placeholder resolves to an empty string, not the token."""
        assert renderer.render("[{{note}}]", {"note": None}) == "[]"

    def test_stringify(self):
        assert stringify(None) == ""
        assert stringify(False) == "false"
        assert stringify(12) == "12"
        assert stringify("text") == "text"
