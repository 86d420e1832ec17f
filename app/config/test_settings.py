"""
Settings for the test suite.

Loads the regular settings with safe defaults for the variables they
require, then swaps in an in-memory SQLite database, the locmem email
backend and eager Celery so tests need no external services.
"""

import os
import tempfile

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://:memory:")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "notifications-logs"))

from config.settings import *  # noqa: E402,F401,F403

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

NOTIFICATIONS_USER_DIRECTORY_URL = "http://directory.test/api/v1"
NOTIFICATIONS_SERVICE_TOKEN = "test-service-token"
NOTIFICATIONS_OUTBOX_MAX_RETRIES = 3
NOTIFICATIONS_OUTBOX_BATCH_SIZE = 100
