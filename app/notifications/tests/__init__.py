"""
Tests for notifications app.

This package contains test modules for:
- test_rendering.py: {{token}} template rendering
- test_events.py: Event default channels and content
- test_models.py: Model defaults and invariants
- test_services.py: Dispatcher, read-marking and broadcast lookup
- test_delivery.py: Per-channel delivery strategies
- test_worker.py: Outbox retry state machine
- test_tasks.py: Celery outbox task
- test_directory.py: HTTP user directory client
- test_integration.py: Dispatch followed by outbox delivery

Usage:
    pytest app/notifications/tests/
    pytest app/notifications/tests/test_worker.py
"""
