from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

import redis
from pydantic import ValidationError

from core.services.limits import LimitConfig, QuotaManager
from failures.conf import ReportingConfig
from failures.errors import ConfigurationError
from failures.services.context import CommonContextCollector, RequestContextCollector
from failures.services.reporter import ExceptionReporter
from records.services.store import DatabaseManager, build_database_manager

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_reporter: Optional[ExceptionReporter] = None
_database_manager: Optional[DatabaseManager] = None


def get_config() -> ReportingConfig:
    try:
        return ReportingConfig.from_settings()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid failure reporting settings: {exc}") from exc


def build_quota_manager(config: ReportingConfig) -> QuotaManager:
    client = redis.Redis.from_url(config.redis_url) if config.redis_url else None
    return QuotaManager(
        client,
        limit=LimitConfig(
            enabled=config.rate_limit.enabled,
            max_per_window=config.rate_limit.max_per_minute,
            window_seconds=config.rate_limit.window_seconds,
        ),
        namespace=config.quota_namespace,
    )


def build_reporter(config: Optional[ReportingConfig] = None) -> ExceptionReporter:
    config = config or get_config()
    return ExceptionReporter(
        config,
        quota_manager=build_quota_manager(config),
        context_collector=CommonContextCollector(
            request_collector=RequestContextCollector(config.context),
            environment=config.environment,
        ),
    )


def get_reporter() -> ExceptionReporter:
    global _reporter
    with _lock:
        if _reporter is None:
            _reporter = build_reporter()
        return _reporter


def get_database_manager() -> DatabaseManager:
    """Per-process store used by the Celery task; owns its own database handle cache."""
    global _database_manager
    with _lock:
        if _database_manager is None:
            _database_manager = build_database_manager(get_config())
        return _database_manager


def reset() -> None:
    global _reporter, _database_manager
    with _lock:
        _reporter = None
        _database_manager = None


def capture_exception(exc: BaseException) -> bool:
    """Report ``exc``; never raises, even when the reporter cannot be built."""
    try:
        return get_reporter().report(exc)
    except Exception as error:  # noqa: BLE001
        logger.warning("Failure reporting unavailable: %s", error)
        return False


def is_configured() -> bool:
    try:
        return get_reporter().is_configured()
    except Exception:  # noqa: BLE001
        return False


def get_status() -> Dict[str, Any]:
    try:
        return get_reporter().status()
    except Exception as exc:  # noqa: BLE001
        return {"error": str(exc), "configured": False}
