from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from django.conf import settings

from failures.conf import DEFAULT_FIELDS
from failures.events import FailureEvent

TITLE_LIMIT = 100
FILE_LIMIT = 200
TRACE_LIMIT = 2000
TRACE_MARKER = "\n\n... (truncated)"
ELLIPSIS = "..."
# Notion rejects text objects over 2000 chars and requests with over 100 children.
RICH_TEXT_LIMIT = 2000
MAX_BLOCKS = 100

Block = Dict[str, Any]


def iso_utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _humanize(key: Any) -> str:
    text = str(key).replace("_", " ")
    return text[:1].upper() + text[1:]


def _display(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def rich_text(content: str) -> List[Dict[str, Any]]:
    chunks = [content[i : i + RICH_TEXT_LIMIT] for i in range(0, len(content), RICH_TEXT_LIMIT)] or [""]
    return [{"type": "text", "text": {"content": chunk}} for chunk in chunks]


def _block(block_type: str, content: Optional[str] = None, **extra: Any) -> Block:
    body: Dict[str, Any] = dict(extra)
    if content is not None:
        body["rich_text"] = rich_text(content)
    return {"object": "block", "type": block_type, block_type: body}


def heading(level: int, content: str) -> Block:
    return _block(f"heading_{level}", content)


def paragraph(content: str) -> Block:
    return _block("paragraph", content)


def bullet(content: str) -> Block:
    return _block("bulleted_list_item", content)


def divider() -> Block:
    return _block("divider")


def code(content: str, language: str = "python") -> Block:
    return _block("code", content, language=language)


class ContextFormatter:
    def format(self, context: Mapping[str, Any]) -> List[Block]:
        if not context:
            return []

        blocks: List[Block] = []
        for category, data in context.items():
            if isinstance(data, Mapping):
                if not data:
                    continue
                blocks.append(heading(3, _humanize(category)))
                for key, value in data.items():
                    blocks.append(bullet(f"{_humanize(key)}: {_display(value)}"))
            else:
                blocks.append(bullet(f"{_humanize(category)}: {_display(data)}"))
        return blocks


class PageBuilder:
    """Builds Notion page properties and body blocks for a failure."""

    def __init__(self, field_names: Optional[Mapping[str, str]] = None):
        self.field_names = {**DEFAULT_FIELDS, **dict(field_names or {})}
        self.context_formatter = ContextFormatter()

    def field(self, key: str) -> str:
        return self.field_names.get(key) or _humanize(key)

    def build_properties(self, event: FailureEvent, fingerprint: str, environment: str) -> Dict[str, Any]:
        now = iso_utc_now()
        return {
            self.field("title"): {"title": rich_text(self.create_title(event))},
            self.field("first_seen"): {"date": {"start": now}},
            self.field("last_seen"): {"date": {"start": now}},
            self.field("occurrences"): {"number": 1},
            self.field("environment"): {"select": {"name": environment}},
            self.field("exception_class"): {"rich_text": rich_text(event.kind)},
            self.field("file"): {"rich_text": rich_text(self.truncate_file(event.file))},
            self.field("line"): {"number": event.line},
            self.field("fingerprint"): {"rich_text": rich_text(fingerprint)},
        }

    def occurrence_properties(self, current_occurrences: int) -> Dict[str, Any]:
        return {
            self.field("last_seen"): {"date": {"start": iso_utc_now()}},
            self.field("occurrences"): {"number": current_occurrences + 1},
        }

    def fingerprint_filter(self, fingerprint: str) -> Dict[str, Any]:
        return {"property": self.field("fingerprint"), "rich_text": {"equals": fingerprint}}

    def build_page_content(self, event: FailureEvent, context: Mapping[str, Any]) -> List[Block]:
        blocks: List[Block] = [
            heading(2, "Exception Message"),
            paragraph(event.message or "No message"),
            divider(),
            heading(2, "Stack Trace"),
            code(self.truncate_trace(event.trace_as_string())),
            divider(),
        ]
        context_blocks = self.context_formatter.format(context or {})
        if context_blocks:
            blocks.append(heading(2, "Context"))
            blocks.extend(context_blocks)
        return blocks[:MAX_BLOCKS]

    def create_title(self, event: FailureEvent) -> str:
        if not event.message:
            return event.short_kind
        title = f"{event.short_kind}: {event.message}"
        if len(title) > TITLE_LIMIT:
            title = title[: TITLE_LIMIT - len(ELLIPSIS)] + ELLIPSIS
        return title

    def truncate_file(self, file: str) -> str:
        base_dir = getattr(settings, "BASE_DIR", None)
        if base_dir:
            base = str(Path(base_dir))
            if file.startswith(base + "/"):
                file = file[len(base) + 1 :]
        if len(file) > FILE_LIMIT:
            file = ELLIPSIS + file[-(FILE_LIMIT - len(ELLIPSIS)) :]
        return file

    def truncate_trace(self, trace: str) -> str:
        if len(trace) > TRACE_LIMIT:
            trace = trace[: TRACE_LIMIT - 50] + TRACE_MARKER
        return trace
