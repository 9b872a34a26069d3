# parsers/pytest_text.py
import re

from .base import EventStatus, EventType, Parser, ParserCategory, ParserPriority, ValidationEvent, builtin
from .commands import CommandPattern
from .safe_parsing import SafeLineReader, safe_float, safe_match

RESULT_RE = re.compile(
    r"^(?P<file>[^\s:]+\.py)::(?P<test>\S+)\s+(?P<status>PASSED|FAILED|ERROR|SKIPPED|XFAIL|XPASS)\b"
)
SUMMARY_RE = re.compile(r"^=+ (?P<body>.*\b(?:passed|failed|error|skipped)\b.*?) in (?P<secs>[\d.]+)s")

_STATUS = {
    "PASSED": (EventStatus.PASS, "info"),
    "XPASS": (EventStatus.PASS, "info"),
    "FAILED": (EventStatus.FAIL, "error"),
    "ERROR": (EventStatus.ERROR, "error"),
    "SKIPPED": (EventStatus.SKIP, "info"),
    "XFAIL": (EventStatus.SKIP, "info"),
}


@builtin
class PytestTextParser(Parser):
    format_name = "pytest_text"
    name = "pytest"
    category = ParserCategory.TEST_FRAMEWORK
    description = "pytest verbose (-v) text output"
    priority = ParserPriority.HIGH
    aliases = ("pytest",)
    groups = ("python", "test")
    tool_name = "pytest"
    command_patterns = (
        CommandPattern.literal("pytest"),
        CommandPattern.like("pytest %"),
        CommandPattern.like("python -m pytest%"),
        CommandPattern.like("py.test%"),
    )

    def can_parse(self, content: str) -> bool:
        if "::" not in content:
            return False
        for line in SafeLineReader(content):
            if safe_match(RESULT_RE, line):
                return True
        return False

    def parse(self, content: str) -> list[ValidationEvent]:
        events: list[ValidationEvent] = []
        reader = SafeLineReader(content)
        for line in reader:
            m = safe_match(RESULT_RE, line)
            if m:
                status, severity = _STATUS[m.group("status")]
                events.append(
                    self.create_event(
                        event_id=len(events) + 1,
                        category="unit_test",
                        event_type=EventType.TEST_RESULT,
                        status=status,
                        severity=severity,
                        ref_file=m.group("file"),
                        test_name=m.group("test"),
                        message=f"Test {m.group('status').lower()}",
                        log_content=line,
                        log_line_start=reader.line_number,
                        log_line_end=reader.line_number,
                    )
                )
                continue
            s = safe_match(SUMMARY_RE, line)
            if s:
                failed = any(w in s.group("body") for w in ("failed", "error"))
                events.append(
                    self.create_event(
                        event_id=len(events) + 1,
                        category="test_summary",
                        event_type=EventType.SUMMARY,
                        status=EventStatus.FAIL if failed else EventStatus.PASS,
                        severity="error" if failed else "info",
                        message=s.group("body"),
                        execution_time=safe_float(s.group("secs")),
                        log_content=line,
                        log_line_start=reader.line_number,
                        log_line_end=reader.line_number,
                    )
                )
        return events
