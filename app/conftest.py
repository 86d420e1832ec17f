"""
Project-wide pytest configuration.

Auto-marks tests by file name and provides fixtures shared across apps.
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import pytest


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full dispatch-then-deliver workflows)
    - test_services.py, test_worker.py, test_tasks.py, etc. → integration
    - test_models.py, test_rendering.py, test_events.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_services.py",
        "test_worker.py",
        "test_tasks.py",
        "test_directory.py",
        "test_repositories.py",
        "test_email.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_rendering.py",
        "test_events.py",
        "test_delivery.py",
        "test_exceptions.py",
        "test_service_result.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def _email_outbox(settings):
    """Route Django email through the in-memory backend for every test."""
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
