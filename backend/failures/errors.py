from __future__ import annotations

from typing import Any, Dict, Optional

from core.services.limits import AdmissionDenied

__all__ = [
    "AdmissionDenied",
    "ConfigurationError",
    "PersistenceFailure",
    "ReportingError",
]


class ReportingError(RuntimeError):
    """Base class for failures raised by the reporting pipeline itself."""


class ConfigurationError(ReportingError):
    """Missing/invalid database id or credentials, or an unreachable database."""


class PersistenceFailure(ReportingError):
    """The record store could not complete a query, create or update."""

    def __init__(self, message: str, *, original: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.original = original or {}
