# appointment_platform/settings.py
#
# Purpose:
# - Django settings for the multi-tenant appointment platform.
# - Every deploy-specific value is read from the environment with a
#   development-friendly default (SQLite, console email backend).
#
# Notes for developers:
# - Scheduling knobs live in SCHEDULING and are read through
#   booking.conf.scheduling_setting(); a Business row can override the slot
#   granularity, day start and auto-confirm behaviour per tenant.
# - The identity provider sits in front of this service and forwards the
#   authenticated actor in X-* headers (see booking/identity.py).
#
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-insecure-key-change-me")
DEBUG = _env_bool("DJANGO_DEBUG", True)
ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "businesses.apps.BusinessesConfig",
    "booking.apps.BookingConfig",
    "staff.apps.StaffConfig",
    "notifications.apps.NotificationsConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "appointment_platform.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "appointment_platform.wsgi.application"

# -------------------------
# Database
# -------------------------
# SQLite for development and tests; set DATABASE_ENGINE=django.db.backends.postgresql
# (plus the DATABASE_* variables) for production. On PostgreSQL the booking
# transaction serialises on SELECT ... FOR UPDATE. SQLite ignores row locks, so
# every transaction starts IMMEDIATE and writers queue on the database lock for
# up to SQLITE_TIMEOUT seconds. Tests use a file database because threads
# cannot wait on a shared-cache in-memory one.
DATABASE_ENGINE = os.environ.get("DATABASE_ENGINE", "django.db.backends.sqlite3")
if DATABASE_ENGINE.endswith("sqlite3"):
    DATABASES = {
        "default": {
            "ENGINE": DATABASE_ENGINE,
            "NAME": os.environ.get("DATABASE_NAME", str(BASE_DIR / "db.sqlite3")),
            "OPTIONS": {
                "transaction_mode": "IMMEDIATE",
                "timeout": int(os.environ.get("SQLITE_TIMEOUT", "20")),
            },
            "TEST": {"NAME": str(BASE_DIR / "test_db.sqlite3")},
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": DATABASE_ENGINE,
            "NAME": os.environ.get("DATABASE_NAME", "appointments"),
            "USER": os.environ.get("DATABASE_USER", ""),
            "PASSWORD": os.environ.get("DATABASE_PASSWORD", ""),
            "HOST": os.environ.get("DATABASE_HOST", "localhost"),
            "PORT": os.environ.get("DATABASE_PORT", "5432"),
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
# Each business operates in this one local time; no per-business conversion.
TIME_ZONE = os.environ.get("TIME_ZONE", "America/Jamaica")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# -------------------------
# Django REST Framework
# -------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "booking.identity.TrustedHeaderAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "booking.identity.IsBusinessMember",
    ],
    "EXCEPTION_HANDLER": "booking.api_errors.scheduling_exception_handler",
    "UNAUTHENTICATED_USER": None,
}

# -------------------------
# Email (notifications)
# -------------------------
EMAIL_BACKEND = os.environ.get(
    "EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend"
)
DEFAULT_FROM_EMAIL = os.environ.get("DEFAULT_FROM_EMAIL", "bookings@example.com")
EMAIL_HOST = os.environ.get("EMAIL_HOST", "localhost")
EMAIL_PORT = int(os.environ.get("EMAIL_PORT", "25"))
EMAIL_HOST_USER = os.environ.get("EMAIL_HOST_USER", "")
EMAIL_HOST_PASSWORD = os.environ.get("EMAIL_HOST_PASSWORD", "")
EMAIL_USE_TLS = _env_bool("EMAIL_USE_TLS", False)

# -------------------------
# Scheduling
# -------------------------
SCHEDULING = {
    "SLOT_MINUTES": int(os.environ.get("SCHEDULING_SLOT_MINUTES", "30")),
    "DAY_START": os.environ.get("SCHEDULING_DAY_START", "09:00"),
    "DEFAULT_OPEN": os.environ.get("SCHEDULING_DEFAULT_OPEN", "09:00"),
    "DEFAULT_CLOSE": os.environ.get("SCHEDULING_DEFAULT_CLOSE", "17:00"),
    "RECURRENCE_HORIZON_DAYS": int(os.environ.get("SCHEDULING_RECURRENCE_HORIZON_DAYS", "365")),
    "CANCEL_CUTOFF_MINUTES": int(os.environ.get("SCHEDULING_CANCEL_CUTOFF_MINUTES", "120")),
}

# -------------------------
# Logging
# -------------------------
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "booking": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "notifications": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "staff": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "businesses": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}
