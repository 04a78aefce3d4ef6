import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

VERSION = "0.3.0"

# Load .env from persistent data volume (shared with the snapshot collector)
DATA_DIR = Path(os.environ.get("DATA_DIR", BASE_DIR / "data"))
DATA_DIR.mkdir(parents=True, exist_ok=True)

env_file = DATA_DIR / ".env"
if env_file.exists():
    load_dotenv(env_file)

SECRET_KEY = os.environ.get(
    "SECRET_KEY",
    "django-insecure-dev-key-change-me-in-production",
)

DEBUG = os.environ.get("DEBUG", "True").lower() in ("true", "1", "yes")

ALLOWED_HOSTS = [
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "rankwatch.private",
]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "standings",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "core.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "core.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": DATA_DIR / "db.sqlite3",
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# CSRF trusted origins for local Docker access
CSRF_TRUSTED_ORIGINS = [
    "http://localhost",
    "http://127.0.0.1",
    "http://rankwatch.private",
    "http://localhost:9090",
    "http://127.0.0.1:9090",
    "http://rankwatch.private:9090",
]

# ── Standings engine ──────────────────────────────────────────────────────

# Item whose ahead-set bounds the competitive zone population.
STANDINGS_REFERENCE_CATEGORY = os.environ.get("STANDINGS_REFERENCE_CATEGORY", "mystery")
STANDINGS_REFERENCE_POSITION = int(os.environ.get("STANDINGS_REFERENCE_POSITION", "50"))

# Batches younger than this may still be written by the collector.
STANDINGS_SNAPSHOT_SETTLE_SECONDS = int(os.environ.get("STANDINGS_SNAPSHOT_SETTLE_SECONDS", "300"))
# 0 keeps every category at its own latest snapshot, however old.
STANDINGS_CATEGORY_STALE_HOURS = int(os.environ.get("STANDINGS_CATEGORY_STALE_HOURS", "0"))

STANDINGS_MOVEMENT_LOOKBACK_DAYS = int(os.environ.get("STANDINGS_MOVEMENT_LOOKBACK_DAYS", "3"))
STANDINGS_SNAPSHOT_RETENTION_DAYS = int(os.environ.get("STANDINGS_SNAPSHOT_RETENTION_DAYS", "30"))

STANDINGS_CONTEXT_RADIUS = int(os.environ.get("STANDINGS_CONTEXT_RADIUS", "7"))
# One position lookup per item per window, tracked in Django's cache. 0 disables.
STANDINGS_LOOKUP_COOLDOWN_SECONDS = int(os.environ.get("STANDINGS_LOOKUP_COOLDOWN_SECONDS", "60"))

STANDINGS_SCHEDULER_ENABLED = os.environ.get("STANDINGS_SCHEDULER_ENABLED", "True").lower() in ("true", "1", "yes")
STANDINGS_REBUILD_INTERVAL_SECONDS = int(os.environ.get("STANDINGS_REBUILD_INTERVAL_SECONDS", "900"))

STANDINGS_LOG_LEVEL = os.environ.get("STANDINGS_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "{asctime} {levelname} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "standings": {
            "handlers": ["console"],
            "level": STANDINGS_LOG_LEVEL,
            "propagate": False,
        },
    },
}
