from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from core.services.limits import GLOBAL_KEY, AdmissionDenied, LimitScope, QuotaManager
from failures.conf import ReportingConfig
from failures.events import FailureEvent, as_event, qualified_name, safe_message
from failures.services.context import CommonContextCollector, ContextCollector
from failures.services.fingerprints import FingerprintGenerator
from failures.services.serialization import ExceptionSerializer
from records.services.store import DatabaseManager, build_database_manager

logger = logging.getLogger(__name__)


class ExceptionReporter:
    """
    Entry point of the reporting pipeline.

    ``report`` runs gate -> fingerprint -> admission -> dispatch and answers
    True when the failure was handed off for persistence, False when it was
    dropped. It never raises into the caller.
    """

    def __init__(
        self,
        config: ReportingConfig,
        *,
        quota_manager: QuotaManager,
        fingerprint_generator: Optional[FingerprintGenerator] = None,
        context_collector: Optional[ContextCollector] = None,
        serializer: Optional[ExceptionSerializer] = None,
        database_manager: Optional[DatabaseManager] = None,
    ):
        self.config = config
        self.quota_manager = quota_manager
        self.fingerprint_generator = fingerprint_generator or FingerprintGenerator()
        self.context_collector = context_collector or CommonContextCollector(environment=config.environment)
        self.serializer = serializer or ExceptionSerializer()
        self._database_manager = database_manager

    @property
    def database_manager(self) -> DatabaseManager:
        if self._database_manager is None:
            self._database_manager = build_database_manager(self.config)
        return self._database_manager

    def report(self, failure: Union[BaseException, FailureEvent]) -> bool:
        if not self.config.enabled:
            return False
        if not self.config.database_id:
            logger.warning("Failure reporting: Notion database id is not configured")
            return False

        event: Optional[FailureEvent] = None
        try:
            event = as_event(failure)
            if self.is_ignored(event):
                return False

            fingerprint = self.fingerprint_generator.generate(event)
            if not self._admit(event, fingerprint):
                return False

            context = self.context_collector.collect()
            if self.config.use_queue:
                self.dispatch_to_queue(event, fingerprint, context)
            else:
                self.database_manager.record_exception(
                    self.config.database_id,
                    event,
                    fingerprint,
                    self.config.environment,
                    context,
                )
            return True
        except Exception as exc:  # noqa: BLE001
            self._log_reporting_error(exc, event, failure)
            return False

    def is_ignored(self, event: FailureEvent) -> bool:
        ignored = set(self.config.ignored_exceptions)
        return any(name in ignored for name in event.lineage or (event.kind,))

    def _admit(self, event: FailureEvent, fingerprint: str) -> bool:
        try:
            self.quota_manager.check(GLOBAL_KEY, scope=LimitScope.GLOBAL)
            self.quota_manager.check(fingerprint, scope=LimitScope.FINGERPRINT)
        except AdmissionDenied as exc:
            logger.debug(
                "Failure reporting: rate limited (%s) %s: %s",
                exc.scope,
                event.kind,
                event.message,
                extra={"limit_type": exc.scope, "fingerprint": fingerprint},
            )
            return False
        return True

    def dispatch_to_queue(self, event: FailureEvent, fingerprint: str, context: Dict[str, Any]) -> None:
        from failures.tasks import record_failure

        record_failure.apply_async(
            args=[
                self.config.database_id,
                self.serializer.to_dict(event),
                fingerprint,
                context,
                self.config.environment,
            ],
            queue=self.config.queue_name,
        )

    def _log_reporting_error(
        self,
        error: Exception,
        event: Optional[FailureEvent],
        failure: Union[BaseException, FailureEvent],
    ) -> None:
        if event is not None:
            original_kind, original_message = event.kind, event.message
        else:
            original_kind, original_message = qualified_name(type(failure)), safe_message(failure)
        logger.error(
            "Failure reporting: failed to report %s: %s",
            original_kind,
            error,
            extra={
                "reporting_error": str(error),
                "original_exception": original_kind,
                "original_message": original_message,
            },
        )

    def is_configured(self) -> bool:
        return self.config.is_configured

    def status(self) -> Dict[str, Any]:
        return {
            "enabled": self.config.enabled,
            "database_id": "***configured***" if self.config.database_id else None,
            "environment": self.config.environment,
            "queue": self.config.queue_name if self.config.use_queue else None,
            "rate_limit": self.quota_manager.summary(),
            "ignored_exceptions_count": len(self.config.ignored_exceptions),
        }
