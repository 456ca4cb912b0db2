from __future__ import annotations

import sys
from contextvars import ContextVar
from typing import Any, Dict, Optional

from failures.conf import ContextConfig

current_request: ContextVar[Optional[Any]] = ContextVar("faultline_current_request", default=None)

SAFE_HEADERS = {
    "user_agent": "User-Agent",
    "referer": "Referer",
    "accept": "Accept",
    "content_type": "Content-Type",
}


class ContextCollector:
    def collect(self) -> Dict[str, Any]:
        raise NotImplementedError


class RequestContextCollector(ContextCollector):
    """Request URI/method/IP, a few non-sensitive headers and the user id."""

    def __init__(self, config: Optional[ContextConfig] = None):
        self.config = config or ContextConfig()

    def collect(self) -> Dict[str, Any]:
        request = current_request.get()
        if request is None:
            return {}

        context: Dict[str, Any] = {}
        if self.config.request:
            context["request"] = self._request_data(request)
        if self.config.headers:
            context["headers"] = self._headers_data(request)
        if self.config.user:
            context["user"] = self._user_data(request)
        return context

    def _request_data(self, request) -> Dict[str, Any]:
        data = {
            "uri": request.build_absolute_uri(),
            "method": request.method,
            "ip": request.META.get("REMOTE_ADDR"),
        }
        return {key: value for key, value in data.items() if value is not None}

    def _headers_data(self, request) -> Dict[str, Any]:
        data = {key: request.headers.get(header) for key, header in SAFE_HEADERS.items()}
        return {key: value for key, value in data.items() if value}

    def _user_data(self, request) -> Dict[str, Any]:
        user = getattr(request, "user", None)
        if user is not None and getattr(user, "is_authenticated", False):
            return {"id": user.pk}
        return {}


class ConsoleContextCollector(ContextCollector):
    def collect(self) -> Dict[str, Any]:
        context: Dict[str, Any] = {"type": "console"}
        if sys.argv:
            context["command"] = " ".join(sys.argv)
        return context


class CommonContextCollector(ContextCollector):
    """Request context inside a request, console context otherwise, plus the environment."""

    def __init__(
        self,
        request_collector: Optional[RequestContextCollector] = None,
        console_collector: Optional[ConsoleContextCollector] = None,
        environment: str = "production",
    ):
        self.request_collector = request_collector or RequestContextCollector()
        self.console_collector = console_collector or ConsoleContextCollector()
        self.environment = environment

    def collect(self) -> Dict[str, Any]:
        if current_request.get() is not None:
            context = self.request_collector.collect()
        else:
            context = self.console_collector.collect()
        context["environment"] = self.environment
        return context
