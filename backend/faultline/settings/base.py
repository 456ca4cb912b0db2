# backend/faultline/settings/base.py
from __future__ import annotations

import os
from pathlib import Path


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "insecure-dev-key")
DEBUG = env_flag("DJANGO_DEBUG", "0")
ALLOWED_HOSTS = [
    host.strip()
    for host in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")
    if host.strip()
]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "core",
    "failures",
    "records",
    "api",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "failures.middleware.FailureCaptureMiddleware",
]

ROOT_URLCONF = "faultline.urls"
ASGI_APPLICATION = "faultline.asgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("DJANGO_SQLITE_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
USE_TZ = True
TIME_ZONE = "UTC"

# Celery
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://127.0.0.1:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_ALWAYS_EAGER = env_flag("CELERY_TASK_ALWAYS_EAGER", "0")

# Failure reporting
FAULTLINE_ENABLED = env_flag("FAULTLINE_ENABLED", "1")
FAULTLINE_NOTION_API_KEY = os.getenv("NOTION_API_KEY")
FAULTLINE_NOTION_DATABASE_ID = os.getenv("NOTION_DATABASE_ID")
FAULTLINE_NOTION_VERSION = os.getenv("NOTION_VERSION", "2022-06-28")
FAULTLINE_NOTION_BASE_URL = os.getenv("NOTION_BASE_URL", "https://api.notion.com/v1")
FAULTLINE_NOTION_TIMEOUT = float(os.getenv("NOTION_TIMEOUT_SECONDS", "10"))
FAULTLINE_FIELDS = {
    "title": "Title",
    "first_seen": "First Seen",
    "last_seen": "Last Seen",
    "occurrences": "Occurrences",
    "environment": "Environment",
    "fingerprint": "Fingerprint",
    "exception_class": "Exception Class",
    "file": "File",
    "line": "Line",
}
FAULTLINE_RATE_LIMIT_ENABLED = env_flag("FAULTLINE_RATE_LIMIT_ENABLED", "1")
FAULTLINE_RATE_LIMIT_MAX = int(os.getenv("FAULTLINE_RATE_LIMIT_MAX", "10"))
FAULTLINE_RATE_LIMIT_WINDOW = 60
FAULTLINE_REDIS_URL = os.getenv("FAULTLINE_REDIS_URL", CELERY_BROKER_URL)
FAULTLINE_QUOTA_NAMESPACE = "faultline:rate_limit"
FAULTLINE_CONTEXT = {
    "request": env_flag("FAULTLINE_CONTEXT_REQUEST", "1"),
    "headers": env_flag("FAULTLINE_CONTEXT_HEADERS", "1"),
    "user": env_flag("FAULTLINE_CONTEXT_USER", "1"),
}
FAULTLINE_IGNORED_EXCEPTIONS = [
    "django.http.response.Http404",
    "django.core.exceptions.PermissionDenied",
]
FAULTLINE_ENVIRONMENT = os.getenv("FAULTLINE_ENVIRONMENT") or os.getenv("DJANGO_ENV", "production")
FAULTLINE_ASYNC = env_flag("FAULTLINE_ASYNC", "1")
FAULTLINE_QUEUE_NAME = os.getenv("FAULTLINE_QUEUE_NAME", "default")
CELERY_TASK_DEFAULT_QUEUE = FAULTLINE_QUEUE_NAME
FAULTLINE_TASK_MAX_RETRIES = int(os.getenv("FAULTLINE_TASK_MAX_RETRIES", "3"))
FAULTLINE_TASK_RETRY_DELAY = int(os.getenv("FAULTLINE_TASK_RETRY_DELAY", "30"))

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "standard"},
    },
    "loggers": {
        "core": {"handlers": ["console"], "level": os.getenv("FAULTLINE_LOG_LEVEL", "INFO")},
        "failures": {"handlers": ["console"], "level": os.getenv("FAULTLINE_LOG_LEVEL", "INFO")},
        "records": {"handlers": ["console"], "level": os.getenv("FAULTLINE_LOG_LEVEL", "INFO")},
    },
}
