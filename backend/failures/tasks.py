# backend/failures/tasks.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from faultline.celery import app

from failures.errors import PersistenceFailure
from failures.integration import get_config, get_database_manager
from failures.services.serialization import ExceptionSerializer

logger = logging.getLogger(__name__)


@app.task(bind=True, name="failures.tasks.record_failure")
def record_failure(
    self,
    database_id: str,
    exception_data: Dict[str, Any],
    fingerprint: str,
    context: Dict[str, Any],
    environment: Optional[str] = None,
):
    """Celery entry point: rebuild the failure and persist it in Notion."""
    config = get_config()
    event = ExceptionSerializer().from_dict(exception_data)
    try:
        record = get_database_manager().record_exception(
            database_id,
            event,
            fingerprint,
            environment or config.environment,
            context,
        )
    except PersistenceFailure as exc:
        if self.request.retries < config.task_max_retries:
            raise self.retry(
                exc=exc,
                countdown=config.task_retry_delay,
                max_retries=config.task_max_retries,
            )
        logger.error(
            "Failure reporting: failed to report %s (queued job): %s",
            event.kind,
            exc,
            extra={
                "reporting_error": str(exc),
                "original_exception": exception_data.get("class"),
                "original_message": exception_data.get("message"),
            },
        )
        raise
    return {"page_id": record.page_id, "occurrences": record.occurrences}
