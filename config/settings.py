"""
Memoflow – Django Settings
==========================
Django is the container for the durable memo store and the
configuration source for the workflow engine (MEMO_WORKFLOW).

Environment:
- MEMOFLOW_SECRET_KEY: overrides the development key
- MEMOFLOW_DB_PATH:    sqlite file path (default: <root>/db.sqlite3)
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get(
    "MEMOFLOW_SECRET_KEY",
    "memoflow-dev-key-replace-before-deployment",
)

DEBUG = True

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    # ── Memoflow ──────────────────────────────────────────
    "core.memo_store",
]

# ── Database ──────────────────────────────────────────────────
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("MEMOFLOW_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Memo Workflow ─────────────────────────────────────────────
# Read by core.config.load_workflow_settings().
MEMO_WORKFLOW = {
    "STORE_BACKEND": "django",
    "NOTIFICATIONS_ENABLED": True,
    "PENDING_QUEUE_LIMIT": 50,
}

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "memoflow": {
            "handlers": ["console"],
            "level": os.environ.get("MEMOFLOW_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
