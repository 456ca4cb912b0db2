from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


def plain_text(prop: Mapping[str, Any]) -> str:
    """Flatten a Notion title/rich_text property value to a string."""
    items = prop.get("title")
    if items is None:
        items = prop.get("rich_text")
    parts = []
    for item in items or []:
        if not isinstance(item, Mapping):
            continue
        text = item.get("plain_text")
        if text is None:
            text = (item.get("text") or {}).get("content", "")
        parts.append(str(text))
    return "".join(parts)


def number_value(prop: Optional[Mapping[str, Any]]) -> int:
    """Integer from a Notion number property; absent or malformed values count as 0."""
    if not isinstance(prop, Mapping):
        return 0
    value = prop.get("number")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def date_value(prop: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not isinstance(prop, Mapping):
        return None
    date = prop.get("date")
    if isinstance(date, Mapping):
        return date.get("start")
    return None


def select_value(prop: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not isinstance(prop, Mapping):
        return None
    select = prop.get("select")
    if isinstance(select, Mapping):
        return select.get("name")
    return None


@dataclass(frozen=True)
class ExternalRecord:
    """One grouped failure as stored in the Notion database."""

    page_id: str
    title: str
    fingerprint: str
    exception_class: str = ""
    file: str = ""
    line: int = 0
    first_seen: Optional[str] = None
    last_seen: Optional[str] = None
    occurrences: int = 0
    environment: Optional[str] = None
    url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_page(cls, page: Mapping[str, Any], fields: Mapping[str, str]) -> "ExternalRecord":
        properties = page.get("properties") or {}

        def prop(key: str) -> Mapping[str, Any]:
            value = properties.get(fields[key])
            return value if isinstance(value, Mapping) else {}

        return cls(
            page_id=str(page.get("id") or ""),
            title=plain_text(prop("title")),
            fingerprint=plain_text(prop("fingerprint")),
            exception_class=plain_text(prop("exception_class")),
            file=plain_text(prop("file")),
            line=number_value(prop("line")),
            first_seen=date_value(prop("first_seen")),
            last_seen=date_value(prop("last_seen")),
            occurrences=number_value(prop("occurrences")),
            environment=select_value(prop("environment")),
            url=page.get("url"),
            raw=dict(page),
        )
