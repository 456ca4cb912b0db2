import json

import httpx
import pytest

from records.services.client import NotionAPIError, NotionClient
from records.types import ExternalRecord, number_value


def _client(handler):
    return NotionClient("secret_test", base_url="https://notion.test/v1", transport=httpx.MockTransport(handler))


def test_requests_carry_auth_and_version_headers():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["version"] = request.headers["Notion-Version"]
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"id": "db"})

    _client(handler).find_database("db")

    assert seen == {
        "auth": "Bearer secret_test",
        "version": "2022-06-28",
        "url": "https://notion.test/v1/databases/db",
    }


def test_query_sends_filter_and_page_size():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={"results": [{"id": "p1"}]})

    results = _client(handler).query_database("db", filter={"property": "Fingerprint"}, page_size=1)

    assert results == [{"id": "p1"}]
    assert seen == {"page_size": 1, "filter": {"property": "Fingerprint"}}


def test_create_page_targets_database():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={"id": "p1"})

    _client(handler).create_page("db", {"Title": {}}, [{"type": "divider"}])

    assert seen["parent"] == {"database_id": "db"}
    assert seen["children"] == [{"type": "divider"}]


def test_error_response_becomes_notion_api_error():
    def handler(request):
        return httpx.Response(401, json={"code": "unauthorized", "message": "API token is invalid."})

    with pytest.raises(NotionAPIError) as exc_info:
        _client(handler).find_page("p1")

    assert exc_info.value.status_code == 401
    assert exc_info.value.code == "unauthorized"
    assert "API token is invalid." in str(exc_info.value)


def test_transport_error_becomes_notion_api_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NotionAPIError, match="request failed"):
        _client(handler).update_page("p1", {})


def test_client_requires_api_key():
    with pytest.raises(ValueError):
        NotionClient("")


@pytest.mark.parametrize("prop, expected", [({"number": 3}, 3), ({"number": None}, 0), ({"number": True}, 0), (None, 0)])
def test_number_value(prop, expected):
    assert number_value(prop) == expected


def test_external_record_from_page():
    page = {
        "id": "p1",
        "url": "https://notion.so/p1",
        "properties": {
            "Title": {"title": [{"plain_text": "KeyError: 'sku'"}]},
            "Fingerprint": {"rich_text": [{"text": {"content": "abc"}}]},
            "Occurrences": {"number": 4},
            "Environment": {"select": {"name": "production"}},
            "First Seen": {"date": {"start": "2024-01-15T10:30:00+00:00"}},
        },
    }
    fields = {
        "title": "Title",
        "fingerprint": "Fingerprint",
        "exception_class": "Exception Class",
        "file": "File",
        "line": "Line",
        "first_seen": "First Seen",
        "last_seen": "Last Seen",
        "occurrences": "Occurrences",
        "environment": "Environment",
    }

    record = ExternalRecord.from_page(page, fields)

    assert record.title == "KeyError: 'sku'"
    assert record.fingerprint == "abc"
    assert record.occurrences == 4
    assert record.environment == "production"
    assert record.first_seen == "2024-01-15T10:30:00+00:00"
    assert record.last_seen is None
    assert record.line == 0
