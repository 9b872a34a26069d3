import json
from pathlib import Path

import pytest

from ingestor import config_loader
from ingestor.dispatch import (
    detect_format,
    diagnose,
    is_valid_format,
    list_formats,
    load_parser_config,
    parse_content,
    parse_content_auto,
    parse_content_regexp,
    parse_file,
    unload_parser,
)
from ingestor.registry import ParserRegistry, build_registry
from parsers.base import EventStatus, EventType, ParseContext, Parser, ValidationEvent
from parsers.config_based import ParserConfigError

GCC_LINE = "src/main.c:10:5: error: expected ';' before '}' token"

FOO_CONFIG = {
    "name": "foo_tool",
    "detection": {"contains": ["FOO"]},
    "patterns": [{"regex": "FOO: (?P<message>.+)", "event_type": "BUILD_ERROR"}],
}


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def ctx(registry):
    return ParseContext(registry=registry)


def assert_gcc_event(events):
    assert len(events) == 1
    ev = events[0]
    assert ev.event_type == EventType.BUILD_ERROR
    assert ev.status == EventStatus.ERROR
    assert ev.ref_file == "src/main.c"
    assert ev.ref_line == 10
    assert ev.ref_column == 5
    assert ev.message == "expected ';' before '}' token"


def test_gcc_end_to_end(ctx):
    assert_gcc_event(parse_content(ctx, GCC_LINE, "gcc_text"))
    assert_gcc_event(parse_content(ctx, GCC_LINE, "auto"))
    assert_gcc_event(parse_content(ctx, GCC_LINE, "gcc"))
    assert_gcc_event(parse_content_auto(ctx, GCC_LINE))


def test_comma_list_falls_back(ctx):
    direct = parse_content(ctx, GCC_LINE, "gcc_text")
    fallback = parse_content(ctx, GCC_LINE, "nonexistent_format,gcc_text")
    assert [e.to_dict() for e in fallback] == [e.to_dict() for e in direct]


def test_empty_unknown_and_missing_formats(ctx):
    assert parse_content(ctx, GCC_LINE, "") == []
    assert parse_content(ctx, GCC_LINE, "unknown") == []
    assert parse_content(ctx, GCC_LINE, "no_such_format") == []
    assert parse_content_auto(ctx, "") == []


def test_event_ids_restart_per_call(ctx):
    content = GCC_LINE + "\n" + GCC_LINE
    for _ in range(2):
        assert [e.event_id for e in parse_content(ctx, content, "gcc_text")] == [1, 2]


def test_group_dispatch(ctx):
    content = "tests/test_a.py::test_one PASSED\ntests/test_a.py::test_two FAILED\n"
    events = parse_content(ctx, content, "python")
    assert [e.test_name for e in events] == ["test_one", "test_two"]
    assert events[1].status == EventStatus.FAIL


def test_group_requires_events():
    class Greedy(Parser):
        format_name = "greedy"
        priority = 90
        groups = ("g",)

        def can_parse(self, content):
            return True

        def parse(self, content):
            return []

    class Useful(Parser):
        format_name = "useful"
        priority = 10
        groups = ("g",)

        def can_parse(self, content):
            return True

        def parse(self, content):
            return [ValidationEvent(event_id=1, message="found")]

    registry = ParserRegistry()
    registry.register_parser(Greedy())
    registry.register_parser(Useful())
    events = parse_content(ParseContext(registry=registry), "x", "g")
    assert [e.message for e in events] == ["found"]
    # auto-detect only asks can_parse
    assert detect_format(registry, "x") == "greedy"



def test_auto_runs_the_detected_parser_even_when_its_name_is_shadowed():
    class Detected(Parser):
        format_name = "detected"
        priority = 90

        def can_parse(self, content):
            return True

        def parse(self, content):
            return [ValidationEvent(event_id=1, message="from detected")]

    class Shadow(Parser):
        format_name = "shadow"
        aliases = ("detected",)
        priority = 10

        def can_parse(self, content):
            return False

        def parse(self, content):
            return [ValidationEvent(event_id=1, message="from shadow")]

    registry = ParserRegistry()
    registry.register_parser(Detected())
    registry.register_parser(Shadow())
    ctx = ParseContext(registry=registry)
    assert [e.message for e in parse_content_auto(ctx, "x")] == ["from detected"]
    assert [e.message for e in parse_content(ctx, "x", "auto")] == ["from detected"]

def test_is_valid_format(registry):
    assert is_valid_format(registry, "gcc_text")
    assert is_valid_format(registry, "gcc")
    assert is_valid_format(registry, "python")
    assert is_valid_format(registry, "auto")
    assert is_valid_format(registry, "nonexistent_format,gcc_text")
    assert is_valid_format(registry, "config:rules.json")
    assert is_valid_format(registry, "https://example.com/rules.json")
    assert is_valid_format(registry, "regexp:(?P<message>.+)")
    assert not is_valid_format(registry, "")
    assert not is_valid_format(registry, "unknown")
    assert not is_valid_format(registry, "nonexistent_format")
    assert not is_valid_format(registry, "regexp:")


def test_regexp_format(ctx):
    events = parse_content(ctx, "ERROR: x\nok", "regexp:(?P<severity>ERROR): (?P<message>.+)")
    assert [e.message for e in events] == ["x"]
    assert len(parse_content_regexp("ERROR: x\nok", "(?P<message>ok)", include_unparsed=True)) == 2


def test_config_file_reference(ctx, tmp_path: Path):
    cfg = tmp_path / "foo.json"
    cfg.write_text(json.dumps(FOO_CONFIG))
    for spec in (f"config:{cfg}", str(cfg)):
        events = parse_content(ctx, "FOO: disk full", spec)
        assert [e.message for e in events] == ["disk full"]
    # applied once, not registered
    assert not ctx.registry.has_format("foo_tool")


def test_config_reference_relative_to_base_dir(registry, tmp_path: Path):
    (tmp_path / "foo.json").write_text(json.dumps(FOO_CONFIG))
    ctx = ParseContext(registry=registry, base_dir=tmp_path)
    assert len(parse_content(ctx, "FOO: disk full", "config:foo.json")) == 1


def test_config_url_reference(ctx, monkeypatch):
    class FakeResponse:
        text = json.dumps(FOO_CONFIG)

        def raise_for_status(self):
            pass

    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return FakeResponse()

    monkeypatch.setattr(config_loader.requests, "get", fake_get)
    events = parse_content(ctx, "FOO: disk full", "https://example.com/foo.json")
    assert calls == ["https://example.com/foo.json"]
    assert len(events) == 1


def test_missing_config_file_raises(ctx, tmp_path: Path):
    with pytest.raises(ParserConfigError):
        parse_content(ctx, "FOO", f"config:{tmp_path / 'missing.json'}")


def test_load_and_replace_config_parser(registry):
    before = len(registry)
    assert load_parser_config(registry, json.dumps(FOO_CONFIG)) == "foo_tool"
    assert detect_format(registry, "FOO: disk full") == "foo_tool"

    v2 = dict(FOO_CONFIG, priority=5, display_name="Foo v2")
    load_parser_config(registry, json.dumps(v2))
    assert len(registry) == before + 1
    assert registry.get_parser("foo_tool").name == "Foo v2"


def test_builtin_cannot_be_replaced(registry):
    with pytest.raises(ParserConfigError, match="Cannot replace built-in parser: gcc_text"):
        load_parser_config(registry, json.dumps(dict(FOO_CONFIG, name="gcc_text")))
    with pytest.raises(ParserConfigError):
        load_parser_config(registry, json.dumps(dict(FOO_CONFIG, aliases=["gcc"])))
    assert registry.get_parser("gcc_text").is_builtin


def test_unload(registry):
    assert unload_parser(registry, "gcc_text") is False
    assert registry.get_parser("gcc_text") is not None
    assert unload_parser(registry, "no_such_parser") is False

    load_parser_config(registry, json.dumps(FOO_CONFIG))
    assert unload_parser(registry, "foo_tool") is True
    assert not registry.has_format("foo_tool")


def test_diagnose(registry):
    rows = diagnose(registry, GCC_LINE)
    assert len(rows) == len(registry)
    priorities = [r["priority"] for r in rows]
    assert priorities == sorted(priorities, reverse=True)
    selected = [r for r in rows if r["is_selected"]]
    assert [r["format"] for r in selected] == ["gcc_text"]
    gcc = next(r for r in rows if r["format"] == "gcc_text")
    assert gcc["can_parse"] and gcc["events_produced"] == 1


def test_diagnose_survives_broken_parser():
    class Broken(Parser):
        format_name = "broken"

        def can_parse(self, content):
            return True

        def parse(self, content):
            raise RuntimeError("boom")

    registry = ParserRegistry()
    registry.register_parser(Broken())
    assert diagnose(registry, "x") == [
        {"format": "broken", "priority": 50, "can_parse": False, "events_produced": 0, "is_selected": True}
    ]


def test_list_formats(registry):
    rows = list_formats(registry)
    assert rows[0]["format"] == "auto"
    assert rows[0]["category"] == "meta"
    by_name = {r["format"]: r for r in rows}
    assert by_name["github_actions_text"]["supports_workflow"]
    assert not by_name["gcc_text"]["supports_workflow"]
    assert {"pattern": "gcc", "type": "literal"} in by_name["gcc_text"]["command_patterns"]
    assert by_name["junit_xml"]["required_extension"] == ".xml"


def test_parse_file_streams_text(ctx, tmp_path: Path):
    f = tmp_path / "build.log"
    f.write_bytes(b"make: entering\r\n" + GCC_LINE.encode() + b"\r\n")
    events = parse_file(ctx, f, "gcc_text")
    assert len(events) == 1
    assert events[0].log_line_start == 2
    assert events[0].message == "expected ';' before '}' token"
    assert_gcc_event(parse_file(ctx, f, "auto"))


def test_parse_file_missing(ctx, tmp_path: Path):
    assert parse_file(ctx, tmp_path / "nope.log", "gcc_text") == []


def test_context_line_limit_applies_to_in_memory_content(registry):
    ctx = ParseContext(registry=registry, max_line_length=40)
    (record,) = parse_content(ctx, "ERROR:myapp:" + "x" * 100, "python_logging")
    assert len(record.log_content) == 40
    assert record.log_content.endswith("...")

    (diag,) = parse_content(ctx, "src/a.c:1:2: error: " + "y" * 100, "gcc_text")
    assert len(diag.log_content) == 40
    assert diag.ref_file == "src/a.c"

    load_parser_config(registry, json.dumps(FOO_CONFIG))
    (foo,) = parse_content(ctx, "FOO: " + "z" * 100, "foo_tool")
    assert foo.message == "z" * 32 + "..."
