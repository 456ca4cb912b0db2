# backend/conftest.py
import json
import uuid

import httpx
import pytest

from core.services.limits import LimitConfig, QuotaManager
from failures import integration
from failures.conf import ReportingConfig
from failures.services.reporter import ExceptionReporter
from records.services.client import NotionClient
from records.services.store import DatabaseManager


class SimpleRedis:
    """In-process stand-in for the handful of Redis commands the quota manager uses."""

    def __init__(self):
        self.storage: dict[str, int] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key):
        value = self.storage.get(key)
        if value is None:
            return None
        return str(value).encode("utf-8")

    def set(self, key, value, ex=None):
        self.storage[key] = int(value)
        if ex is not None:
            self.ttls[key] = ex
        return True

    def incr(self, key):
        value = self.storage.get(key, 0) + 1
        self.storage[key] = value
        return value

    def exists(self, key):
        return 1 if key in self.storage else 0

    def delete(self, key):
        self.ttls.pop(key, None)
        return 1 if self.storage.pop(key, None) is not None else 0

    def expire_all(self):
        """Simulate every window running out."""
        self.storage.clear()
        self.ttls.clear()


class FakeNotion:
    """In-memory Notion database served through httpx.MockTransport."""

    def __init__(self, database_id="db-test", fingerprint_field="Fingerprint"):
        self.databases = {database_id}
        self.fingerprint_field = fingerprint_field
        self.pages: dict[str, dict] = {}
        self.requests: list[tuple[str, str]] = []
        self.fail_writes = False

    def _fingerprint_of(self, page):
        prop = page["properties"].get(self.fingerprint_field) or {}
        return "".join(item["text"]["content"] for item in prop.get("rich_text", []))

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        body = json.loads(request.content) if request.content else {}

        if request.method == "GET" and "/databases/" in path and path.rsplit("/", 1)[-1] in self.databases:
            return httpx.Response(
                200,
                json={"object": "database", "id": path.rsplit("/", 1)[-1], "title": [{"plain_text": "Exceptions"}]},
            )
        if request.method == "GET" and "/databases/" in path:
            return httpx.Response(404, json={"code": "object_not_found", "message": "Could not find database"})

        if request.method == "POST" and path.endswith("/query"):
            wanted = body.get("filter", {}).get("rich_text", {}).get("equals")
            results = [page for page in self.pages.values() if self._fingerprint_of(page) == wanted]
            return httpx.Response(200, json={"results": results[: body.get("page_size", 100)]})

        if self.fail_writes:
            return httpx.Response(502, json={"code": "service_unavailable", "message": "Notion is down"})

        if request.method == "POST" and path.endswith("/pages"):
            page_id = str(uuid.uuid4())
            page = {
                "object": "page",
                "id": page_id,
                "url": f"https://notion.test/{page_id}",
                "properties": body["properties"],
                "children": body.get("children", []),
            }
            self.pages[page_id] = page
            return httpx.Response(200, json=page)

        if request.method == "PATCH" and "/pages/" in path:
            page_id = path.rsplit("/", 1)[-1]
            page = self.pages[page_id]
            page["properties"].update(body.get("properties", {}))
            return httpx.Response(200, json=page)

        return httpx.Response(400, json={"code": "invalid_request", "message": "unexpected request"})

    def count(self, method, suffix=""):
        return sum(1 for m, path in self.requests if m == method and path.endswith(suffix))


@pytest.fixture
def fake_redis():
    return SimpleRedis()


@pytest.fixture
def fake_notion():
    return FakeNotion()


@pytest.fixture
def notion_client(fake_notion):
    return NotionClient(
        "secret_test",
        base_url="https://notion.test/v1",
        transport=httpx.MockTransport(fake_notion.handler),
    )


@pytest.fixture
def database_manager(notion_client):
    return DatabaseManager(notion_client)


@pytest.fixture
def reporting_config():
    def _factory(**overrides):
        values = {
            "enabled": True,
            "api_key": "secret_test",
            "database_id": "db-test",
            "environment": "testing",
            "use_queue": False,
        }
        values.update(overrides)
        return ReportingConfig(**values)

    return _factory


@pytest.fixture
def make_reporter(fake_redis, database_manager, reporting_config):
    def _factory(max_per_window=10, rate_limit_enabled=True, **overrides):
        config = reporting_config(**overrides)
        quota_manager = QuotaManager(
            redis_client=fake_redis,
            limit=LimitConfig(enabled=rate_limit_enabled, max_per_window=max_per_window),
        )
        return ExceptionReporter(config, quota_manager=quota_manager, database_manager=database_manager)

    return _factory


@pytest.fixture(autouse=True)
def _reset_reporting_singletons():
    integration.reset()
    yield
    integration.reset()
