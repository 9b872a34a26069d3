import json

import pytest

from ingestor.dispatch import detect_format, parse_content
from ingestor.registry import build_registry
from parsers.base import EventStatus, EventType, ParseContext
from parsers.gcc import GccTextParser
from parsers.plaintext import GenericErrorParser, GenericLintParser


@pytest.fixture(scope="module")
def registry():
    return build_registry()


@pytest.fixture
def ctx(registry):
    return ParseContext(registry=registry)


def test_gcc_function_context_flags_and_notes():
    content = (
        "src/main.c: In function 'main':\n"
        "src/main.c:4:9: warning: unused variable 'x' [-Wunused-variable]\n"
        "src/main.c:9:1: note: declared here\n"
    )
    warn, note = GccTextParser().parse(content)
    assert warn.status == EventStatus.WARNING
    assert warn.error_code == "-Wunused-variable"
    assert warn.message == "unused variable 'x'"
    assert warn.function_name == "main"
    assert warn.category == "compilation"
    assert warn.tool_name == "compiler"
    assert note.status == EventStatus.INFO
    assert note.severity == "info"


def test_gcc_skips_python_and_clang_tidy():
    parser = GccTextParser()
    assert not parser.can_parse("app.py:3:1: error: not a compiler")
    assert parser.parse("src/a.cpp:3:4: warning: use auto [modernize-use-auto]") == []


def test_flake8(registry, ctx):
    content = (
        "app.py:1:1: F401 'os' imported but unused\n"
        "app.py:2:80: E501 line too long (88 > 79 characters)\n"
        "app.py:3:1: W391 blank line at end of file\n"
    )
    assert detect_format(registry, content) == "flake8_text"
    events = parse_content(ctx, content, "flake8")
    f401, e501, w391, summary = events
    assert f401.event_type == EventType.BUILD_ERROR
    assert f401.error_code == "F401"
    assert (e501.status, e501.ref_line, e501.ref_column) == (EventStatus.ERROR, 2, 80)
    assert w391.status == EventStatus.WARNING
    assert summary.event_type == EventType.SUMMARY
    assert summary.message == "Flake8 found 2 errors and 1 warnings"


def test_pytest_text(registry, ctx):
    content = (
        "tests/test_a.py::test_one PASSED\n"
        "tests/test_a.py::test_two FAILED\n"
        "tests/test_a.py::test_three SKIPPED\n"
        "==== 1 passed, 1 failed, 1 skipped in 0.12s ====\n"
    )
    assert detect_format(registry, content) == "pytest_text"
    events = parse_content(ctx, content, "pytest")
    assert [e.status for e in events[:3]] == [EventStatus.PASS, EventStatus.FAIL, EventStatus.SKIP]
    assert events[0].ref_file == "tests/test_a.py"
    summary = events[3]
    assert summary.event_type == EventType.SUMMARY
    assert summary.status == EventStatus.FAIL
    assert summary.execution_time == pytest.approx(0.12)


def test_eslint_json_after_banner(registry, ctx):
    report = [
        {
            "filePath": "/app/src/index.js",
            "messages": [
                {"ruleId": "no-unused-vars", "severity": 2, "message": "'a' is unused", "line": 3, "column": 7},
                {"ruleId": "semi", "severity": 1, "message": "Missing semicolon", "line": 5, "column": 2},
            ],
        }
    ]
    content = "> app@1.0.0 lint\n> eslint -f json src\n\n" + json.dumps(report)
    assert detect_format(registry, content) == "eslint_json"
    err, warn = parse_content(ctx, content, "auto")
    assert (err.status, err.error_code, err.ref_line, err.ref_column) == (EventStatus.ERROR, "no-unused-vars", 3, 7)
    assert warn.status == EventStatus.WARNING
    assert err.ref_file == "/app/src/index.js"


def test_junit_xml(registry, ctx):
    content = """build started
<?xml version="1.0" encoding="utf-8"?>
<testsuites>
  <testsuite name="pytest" tests="3">
    <testcase classname="tests.test_a" name="test_ok" time="0.010"/>
    <testcase classname="tests.test_a" name="test_bad" time="0.020">
      <failure message="assert 1 == 2">trace here</failure>
    </testcase>
    <testcase classname="tests.test_a" name="test_skip"><skipped message="later"/></testcase>
  </testsuite>
</testsuites>
"""
    assert detect_format(registry, content) == "junit_xml"
    ok, bad, skip = parse_content(ctx, content, "junit")
    assert ok.status == EventStatus.PASS
    assert ok.test_name == "tests.test_a.test_ok"
    assert bad.status == EventStatus.FAIL
    assert bad.message == "assert 1 == 2"
    assert bad.log_content == "trace here"
    assert bad.execution_time == pytest.approx(0.02)
    assert skip.status == EventStatus.SKIP


def test_jsonl(registry, ctx):
    content = (
        '{"ts": "2024-01-15T10:30:45Z", "level": "error", "msg": "db down", "host": "db1"}\n'
        '{"time": "2024-01-15T10:31:00Z", "level": "info", "message": "recovered"}\n'
    )
    assert detect_format(registry, content) == "jsonl"
    down, up = parse_content(ctx, content, "ndjson")
    assert down.status == EventStatus.ERROR
    assert down.started_at == "2024-01-15T10:30:45+00:00"
    assert json.loads(down.structured_data) == {"host": "db1"}
    assert up.message == "recovered"
    assert up.log_line_start == 2


def test_logfmt(registry, ctx):
    content = 'ts=2024-01-15T10:30:45Z level=warn msg="disk almost full" host=db1\n'
    assert detect_format(registry, content) == "logfmt"
    (ev,) = parse_content(ctx, content, "logfmt")
    assert ev.status == EventStatus.WARNING
    assert ev.message == "disk almost full"
    assert json.loads(ev.structured_data) == {"host": "db1"}


def test_syslog(registry, ctx):
    content = "Jan 15 10:30:45 web01 sshd[1234]: Failed password for root from 10.0.0.5\n"
    assert detect_format(registry, content) == "syslog"
    (ev,) = parse_content(ctx, content, "syslog")
    assert ev.status == EventStatus.ERROR
    assert ev.origin == "web01"
    assert ev.scope == "sshd"
    assert json.loads(ev.structured_data)["pid"] == "1234"


def test_python_logging_folds_tracebacks(registry, ctx):
    content = (
        "2024-01-15 10:30:45,123 - myapp.db - ERROR - Connection refused\n"
        "Traceback (most recent call last):\n"
        '  File "app.py", line 3, in <module>\n'
        "2024-01-15 10:30:46,000 - myapp.db - INFO - retrying\n"
    )
    assert detect_format(registry, content) == "python_logging"
    err, info = parse_content(ctx, content, "python_logging")
    assert err.status == EventStatus.ERROR
    assert err.origin == "myapp.db"
    assert err.log_line_end == 3
    assert err.started_at.startswith("2024-01-15T10:30:45")
    assert info.event_id == 2


def test_generic_error():
    content = "Building...\nERROR: link failed\nWarning: deprecated api\n[INFO] done\n"
    parser = GenericErrorParser()
    assert parser.can_parse(content)
    events = parser.parse(content)
    assert [e.category for e in events] == ["generic_error", "generic_warning", "generic_info"]
    assert events[0].status == EventStatus.ERROR
    assert events[0].log_line_start == 2
    assert not parser.can_parse("all good\nnothing to see")


def test_generic_lint():
    parser = GenericLintParser()
    content = "lib/x.rb:3:1: warning: shadowed variable\nlib/x.rb:9: error: syntax\n"
    assert parser.can_parse(content)
    warn, err = parser.parse(content)
    assert (warn.category, warn.status, warn.ref_column) == ("lint_warning", EventStatus.WARNING, 1)
    assert (err.category, err.ref_line, err.ref_column) == ("lint_error", 9, -1)
    (summary,) = parser.parse("")
    assert summary.message == "Generic lint output parsed (no issues found)"


def test_github_actions_delegates_steps(registry, ctx):
    content = (
        "2024-01-01T10:00:00.0000000Z ##[group]Run pytest tests/\n"
        "2024-01-01T10:00:00.0000000Z pytest tests/\n"
        "2024-01-01T10:00:00.0000000Z ##[endgroup]\n"
        "2024-01-01T10:00:01.0000000Z tests/test_a.py::test_one PASSED\n"
        "2024-01-01T10:00:01.0000000Z tests/test_a.py::test_two FAILED\n"
        "2024-01-01T10:00:02.0000000Z ##[error]Process completed with exit code 1.\n"
    )
    assert detect_format(registry, content) == "github_actions_text"
    events = parse_content(ctx, content, "auto")
    step, one, two, annotation = events
    assert step.event_type == EventType.SUMMARY
    assert step.status == EventStatus.FAIL
    assert step.scope == "pytest tests/"
    assert (one.test_name, one.log_line_start, one.tool_name) == ("test_one", 4, "pytest")
    assert two.status == EventStatus.FAIL
    assert annotation.event_type == EventType.BUILD_ERROR
    assert annotation.message == "Process completed with exit code 1."
    assert [e.event_id for e in events] == [1, 2, 3, 4]


def test_github_actions_without_registry_keeps_steps():
    from parsers.github_actions import GitHubActionsParser

    content = "##[group]Run make\nmake all\n##[endgroup]\ncc -c x.c\n"
    (step,) = GitHubActionsParser().parse(content)
    assert step.message == "Step: make"
    assert step.status == EventStatus.PASS


def test_python_logging_folds_tracebacks_when_streaming(ctx, tmp_path):
    from ingestor.dispatch import parse_file

    log = tmp_path / "app.log"
    log.write_text(
        "ERROR:myapp:boom\n"
        "Traceback (most recent call last):\n"
        "ValueError: bad\n"
        "INFO:myapp:recovered\n"
    )
    err, info = parse_file(ctx, log, "python_logging")
    assert err.log_line_end == 3
    assert "ValueError: bad" in err.log_content
    assert info.message == "recovered"


def test_syslog_priority_sets_status(registry, ctx):
    content = "<11>Jan 15 10:30:45 web01 cron: job finished\n<14>Jan 15 10:30:46 web01 cron: job failed\n"
    crit, info = parse_content(ctx, content, "syslog")
    assert crit.status == EventStatus.ERROR
    # the priority wins over words in the message
    assert info.status == EventStatus.INFO


def test_github_actions_line_numbers_skip_annotations(registry, ctx):
    content = (
        "##[group]Run pytest tests/\n"
        "pytest tests/\n"
        "##[endgroup]\n"
        "tests/test_a.py::test_one PASSED\n"
        "##[warning]slow test detected\n"
        "tests/test_a.py::test_two FAILED\n"
    )
    step, one, warning, two = parse_content(ctx, content, "github_actions")
    assert (step.log_line_start, step.log_line_end) == (1, 6)
    assert one.log_line_start == 4
    assert warning.log_line_start == 5
    assert (two.test_name, two.log_line_start, two.log_line_end) == ("test_two", 6, 6)
