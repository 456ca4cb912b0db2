from failures.events import FailureEvent, StackFrame
from records.services.content import (
    MAX_BLOCKS,
    TRACE_MARKER,
    ContextFormatter,
    PageBuilder,
    rich_text,
)


def _event(message="boom", kind="app.errors.ImportFailed", file="/srv/app/jobs.py"):
    return FailureEvent(
        kind=kind,
        message=message,
        file=file,
        line=12,
        frames=[StackFrame(file=file, line=12, function="run", enclosing_type="Importer", call_type="->")],
    )


def test_title_uses_short_kind_and_message():
    assert PageBuilder().create_title(_event("Row 3 is invalid")) == "ImportFailed: Row 3 is invalid"


def test_long_title_is_cut_to_limit():
    title = PageBuilder().create_title(_event("x" * 150))

    assert len(title) == 100
    assert title.endswith("...")
    assert title.startswith("ImportFailed: xxx")


def test_empty_message_title_is_kind():
    assert PageBuilder().create_title(_event("")) == "ImportFailed"


def test_file_is_relative_to_base_dir(settings):
    settings.BASE_DIR = "/srv/app"

    assert PageBuilder().truncate_file("/srv/app/jobs/importer.py") == "jobs/importer.py"
    assert PageBuilder().truncate_file("/usr/lib/python3/json/decoder.py") == "/usr/lib/python3/json/decoder.py"


def test_long_file_keeps_tail(settings):
    settings.BASE_DIR = None
    path = "/" + "d" * 300 + "/module.py"

    truncated = PageBuilder().truncate_file(path)

    assert len(truncated) == 200
    assert truncated.startswith("...")
    assert truncated.endswith("/module.py")


def test_long_trace_is_marked():
    trace = PageBuilder().truncate_trace("t" * 5000)

    assert trace.endswith(TRACE_MARKER)
    assert len(trace) <= 2000


def test_short_trace_is_untouched():
    assert PageBuilder().truncate_trace("short") == "short"


def test_build_properties_uses_field_names():
    properties = PageBuilder({"title": "Name"}).build_properties(_event(), "f" * 64, "staging")

    assert properties["Name"]["title"][0]["text"]["content"] == "ImportFailed: boom"
    assert properties["Occurrences"] == {"number": 1}
    assert properties["Environment"] == {"select": {"name": "staging"}}
    assert properties["Line"] == {"number": 12}
    assert properties["First Seen"] == properties["Last Seen"]


def test_occurrence_properties_increment():
    properties = PageBuilder().occurrence_properties(4)

    assert properties["Occurrences"] == {"number": 5}
    assert "date" in properties["Last Seen"]


def test_page_content_sections():
    blocks = PageBuilder().build_page_content(_event(), {"request": {"method": "POST"}, "environment": "staging"})
    types = [block["type"] for block in blocks]

    assert types[:6] == ["heading_2", "paragraph", "divider", "heading_2", "code", "divider"]
    assert blocks[4]["code"]["language"] == "python"
    assert "in Importer.run" in blocks[4]["code"]["rich_text"][0]["text"]["content"]
    assert blocks[6]["heading_2"]["rich_text"][0]["text"]["content"] == "Context"


def test_page_content_without_context_or_message():
    blocks = PageBuilder().build_page_content(_event(""), {})

    assert blocks[1]["paragraph"]["rich_text"][0]["text"]["content"] == "No message"
    assert len(blocks) == 6


def test_page_content_is_capped():
    context = {"request": {f"key_{i}": i for i in range(200)}}

    assert len(PageBuilder().build_page_content(_event(), context)) == MAX_BLOCKS


def test_context_formatter_renders_nested_values():
    blocks = ContextFormatter().format({"user": {"id": 7, "roles": ["admin"]}, "environment": "staging", "empty": {}})

    texts = [block[block["type"]]["rich_text"][0]["text"]["content"] for block in blocks]
    assert texts == ["User", "Id: 7", 'Roles: ["admin"]', "Environment: staging"]


def test_rich_text_splits_long_content():
    chunks = rich_text("a" * 4500)

    assert [len(chunk["text"]["content"]) for chunk in chunks] == [2000, 2000, 500]
