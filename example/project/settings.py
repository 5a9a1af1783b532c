"""
Settings for the example inventory project.

PostgreSQL is used when DATABASE_URL is set (row locks via SELECT ... FOR
UPDATE); otherwise a local SQLite file keeps the demo self-contained.
"""

import os
from pathlib import Path
from urllib.parse import urlparse

from record_lock.conf import LOCK_EXPIRY_SECONDS

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-not-secret")
DEBUG = os.environ.get("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "stock",
]

MIDDLEWARE = [
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "project.urls"
WSGI_APPLICATION = "project.wsgi.application"


def _database_from_url(url: str) -> dict:
    u = urlparse(url)
    return {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": (u.path or "").lstrip("/"),
        "USER": u.username or "",
        "PASSWORD": u.password or "",
        "HOST": u.hostname or "localhost",
        "PORT": str(u.port or 5432),
    }


if os.environ.get("DATABASE_URL"):
    DATABASES = {"default": _database_from_url(os.environ["DATABASE_URL"])}
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

TIME_ZONE = "UTC"
USE_TZ = True

RECORD_LOCK = {
    "EXPIRY_SECONDS": {
        "product": LOCK_EXPIRY_SECONDS,
        "transaction": LOCK_EXPIRY_SECONDS,
    },
    "DEFAULT_EXPIRY_SECONDS": LOCK_EXPIRY_SECONDS,
    "AUTO_RELEASE_ON_MUTATE": False,
}

STOCK_PRODUCT_ID_STYLE = os.environ.get("STOCK_PRODUCT_ID_STYLE", "random")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "{asctime} {levelname} {name}: {message}", "style": "{"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "record_lock": {"handlers": ["console"], "level": "INFO"},
        "stock": {"handlers": ["console"], "level": "INFO"},
    },
}
