"""Django settings for the credentialing service.

Values come from ``CHECKIN_*`` environment variables with development
defaults.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("CHECKIN_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.environ.get("CHECKIN_DEBUG", "false").lower() in ("1", "true", "yes")
ALLOWED_HOSTS = [
    host
    for host in os.environ.get(
        "CHECKIN_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver"
    ).split(",")
    if host
]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "credentialing",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

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

DATABASES = {
    "default": {
        "ENGINE": os.environ.get("CHECKIN_DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("CHECKIN_DB_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.environ.get("CHECKIN_DB_USER", ""),
        "PASSWORD": os.environ.get("CHECKIN_DB_PASSWORD", ""),
        "HOST": os.environ.get("CHECKIN_DB_HOST", ""),
        "PORT": os.environ.get("CHECKIN_DB_PORT", ""),
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "credentialing",
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [],
}

CREDENTIALING = {
    "LOCK_TIMEOUT_SECONDS": float(
        os.environ.get("CHECKIN_LOCK_TIMEOUT_SECONDS", "2.0")
    ),
    "BUSY_RETRIES": int(os.environ.get("CHECKIN_BUSY_RETRIES", "3")),
    "BUSY_BACKOFF_SECONDS": 0.05,
    "TOKEN_TTL_HOURS": 24,
    "STATS_CACHE_SECONDS": 30,
    "BULK_MAX_CODES": 500,
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "credentialing": {
            "handlers": ["console"],
            "level": os.environ.get("CHECKIN_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
}
