from __future__ import annotations

from typing import Any, Dict, List, Optional

from django.conf import settings
from pydantic import BaseModel, Field, field_validator

DEFAULT_FIELDS: Dict[str, str] = {
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

_SETTINGS_MAP = {
    "enabled": "FAULTLINE_ENABLED",
    "api_key": "FAULTLINE_NOTION_API_KEY",
    "database_id": "FAULTLINE_NOTION_DATABASE_ID",
    "notion_version": "FAULTLINE_NOTION_VERSION",
    "notion_base_url": "FAULTLINE_NOTION_BASE_URL",
    "notion_timeout": "FAULTLINE_NOTION_TIMEOUT",
    "fields": "FAULTLINE_FIELDS",
    "redis_url": "FAULTLINE_REDIS_URL",
    "quota_namespace": "FAULTLINE_QUOTA_NAMESPACE",
    "context": "FAULTLINE_CONTEXT",
    "ignored_exceptions": "FAULTLINE_IGNORED_EXCEPTIONS",
    "environment": "FAULTLINE_ENVIRONMENT",
    "use_queue": "FAULTLINE_ASYNC",
    "queue_name": "FAULTLINE_QUEUE_NAME",
    "task_max_retries": "FAULTLINE_TASK_MAX_RETRIES",
    "task_retry_delay": "FAULTLINE_TASK_RETRY_DELAY",
}


class RateLimitConfig(BaseModel):
    enabled: bool = True
    max_per_minute: int = Field(default=10, ge=0)
    window_seconds: int = Field(default=60, ge=1)


class ContextConfig(BaseModel):
    request: bool = True
    headers: bool = True
    user: bool = True


class ReportingConfig(BaseModel):
    enabled: bool = True
    api_key: Optional[str] = None
    database_id: Optional[str] = None
    notion_version: str = "2022-06-28"
    notion_base_url: str = "https://api.notion.com/v1"
    notion_timeout: float = Field(default=10.0, gt=0)
    fields: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_FIELDS))
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    redis_url: Optional[str] = None
    quota_namespace: str = "faultline:rate_limit"
    context: ContextConfig = Field(default_factory=ContextConfig)
    ignored_exceptions: List[str] = Field(default_factory=list)
    environment: str = "production"
    use_queue: bool = True
    queue_name: str = "default"
    task_max_retries: int = Field(default=3, ge=0)
    task_retry_delay: int = Field(default=30, ge=0)

    @field_validator("api_key", "database_id", mode="before")
    def blank_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("fields", mode="before")
    def merge_default_fields(cls, value: Any) -> Any:
        if value is None:
            return dict(DEFAULT_FIELDS)
        return {**DEFAULT_FIELDS, **dict(value)}

    @field_validator("ignored_exceptions", mode="before")
    def ignored_as_names(cls, value: Any) -> List[str]:
        names: List[str] = []
        for item in value or []:
            if isinstance(item, type):
                names.append(f"{item.__module__}.{item.__qualname__}")
            else:
                names.append(str(item))
        return names

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.database_id)

    @classmethod
    def from_settings(cls) -> "ReportingConfig":
        raw: Dict[str, Any] = {}
        for field_name, setting_name in _SETTINGS_MAP.items():
            if hasattr(settings, setting_name):
                raw[field_name] = getattr(settings, setting_name)
        if not raw.get("redis_url"):
            raw["redis_url"] = getattr(settings, "CELERY_BROKER_URL", None)
        raw["rate_limit"] = {
            "enabled": getattr(settings, "FAULTLINE_RATE_LIMIT_ENABLED", True),
            "max_per_minute": getattr(settings, "FAULTLINE_RATE_LIMIT_MAX", 10),
            "window_seconds": getattr(settings, "FAULTLINE_RATE_LIMIT_WINDOW", 60),
        }
        return cls(**raw)
