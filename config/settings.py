"""
Night Audit - Django Settings (Infrastructure Only)
====================================================
Django serves as the framework container for the night audit engine.
The engine is the authority; Django hosts persistence, mail and HTTP.

NIGHT_AUDIT holds the operator-tunable closure settings. It is read
through core.config.load_night_audit_config(), never directly by
engine code.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get(
    "NIGHT_AUDIT_SECRET_KEY", "night-audit-dev-key-replace-before-deployment"
)

DEBUG = os.environ.get("NIGHT_AUDIT_DEBUG", "1") == "1"

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "engines.hotel_night_audit.persistence",
]

# ── Middleware ────────────────────────────────────────────────
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

# ── URL & WSGI ────────────────────────────────────────────────
ROOT_URLCONF = "config.urls"

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Mail ──────────────────────────────────────────────────────
# Closure reports are dispatched by mail. Console backend for dev.
EMAIL_BACKEND = os.environ.get(
    "NIGHT_AUDIT_EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend"
)
DEFAULT_FROM_EMAIL = "night-audit@localhost"

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "night_audit": {"handlers": ["console"], "level": "INFO"},
    },
}

# ── Night Audit ───────────────────────────────────────────────
NIGHT_AUDIT = {
    "TIME_ZONE": "UTC",
    # First business date the property ever closes. None = no anchor.
    "AUDIT_START_DATE": None,
    "VAT_RATE": "0.18",
    "CITY_TAX_RATE": "0.01",
    "REOPEN_MIN_REASON_LENGTH": 10,
    "FORCE_LOGOUT_SECONDS": 30,
    "REPORT_RECIPIENTS": [],
    "CHECKLIST": [
        ("arrivals", "All arrivals processed"),
        ("departures", "All departures processed"),
        ("payments", "Payments verified"),
        ("cash", "Cash drawer counted"),
        ("housekeeping", "Housekeeping status checked"),
        ("no_shows", "No-shows reviewed"),
        ("next_day", "Next day reservations reviewed"),
        ("backup", "Backup created"),
    ],
}
