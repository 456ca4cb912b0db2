import sys
from types import SimpleNamespace

import pytest

from failures.conf import ContextConfig
from failures.services.context import (
    CommonContextCollector,
    ConsoleContextCollector,
    RequestContextCollector,
    current_request,
)


@pytest.fixture
def active_request(rf):
    request = rf.get(
        "/orders/42",
        HTTP_USER_AGENT="pytest-agent",
        HTTP_AUTHORIZATION="Bearer hidden",
        HTTP_COOKIE="session=hidden",
        REMOTE_ADDR="10.1.2.3",
    )
    request.user = SimpleNamespace(pk=7, is_authenticated=True)
    token = current_request.set(request)
    yield request
    current_request.reset(token)


def test_request_context_collects_safe_data(active_request):
    context = RequestContextCollector().collect()

    assert context["request"] == {"uri": "http://testserver/orders/42", "method": "GET", "ip": "10.1.2.3"}
    assert context["headers"] == {"user_agent": "pytest-agent"}
    assert context["user"] == {"id": 7}


def test_request_context_respects_toggles(active_request):
    context = RequestContextCollector(ContextConfig(headers=False, user=False)).collect()

    assert set(context) == {"request"}


def test_anonymous_user_has_empty_user_context(active_request):
    active_request.user = SimpleNamespace(pk=None, is_authenticated=False)

    assert RequestContextCollector().collect()["user"] == {}


def test_request_context_is_empty_outside_requests():
    assert RequestContextCollector().collect() == {}


def test_console_context(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["manage.py", "import_orders", "--dry-run"])

    assert ConsoleContextCollector().collect() == {"type": "console", "command": "manage.py import_orders --dry-run"}


def test_common_collector_switches_on_request(active_request):
    context = CommonContextCollector(environment="staging").collect()

    assert context["environment"] == "staging"
    assert "request" in context
    assert "type" not in context


def test_common_collector_falls_back_to_console():
    context = CommonContextCollector(environment="staging").collect()

    assert context["type"] == "console"
    assert context["environment"] == "staging"
