from .base import *  # noqa: F401,F403

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

FAULTLINE_ENABLED = True
FAULTLINE_NOTION_API_KEY = "secret_test"
FAULTLINE_NOTION_DATABASE_ID = "db-test"
FAULTLINE_NOTION_BASE_URL = "https://notion.test/v1"
FAULTLINE_RATE_LIMIT_ENABLED = True
FAULTLINE_RATE_LIMIT_MAX = 10
FAULTLINE_REDIS_URL = "redis://127.0.0.1:6379/15"
FAULTLINE_ENVIRONMENT = "testing"
FAULTLINE_ASYNC = False
FAULTLINE_IGNORED_EXCEPTIONS = []
