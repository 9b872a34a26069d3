# parsers/plaintext.py
"""Last-resort classifiers for plain text output."""

import itertools
from collections.abc import Iterator

from .base import (
    EventStatus,
    EventType,
    Parser,
    ParserCategory,
    ParserPriority,
    ValidationEvent,
    builtin,
)
from .safe_parsing import SafeLineReader, parse_compiler_diagnostic

ERROR_PREFIXES = (
    "error:",
    "error :",
    "[error]",
    "[fail]",
    "[failed]",
    "fail:",
    "failed:",
    "fatal:",
    "[fatal]",
    "critical:",
    "[critical]",
    "exception:",
)
WARNING_PREFIXES = (
    "warning:",
    "warning :",
    "[warning]",
    "[warn]",
    "warn:",
    "deprecated:",
    "[deprecated]",
)
INFO_PREFIXES = ("[info]", "info:", "[notice]", "notice:")


def classify_line(line: str):
    """(status, severity, category) for a prefixed line, or None."""
    s = line.lstrip().lower()
    if s.startswith(ERROR_PREFIXES):
        return EventStatus.ERROR, "error", "generic_error"
    if s.startswith(WARNING_PREFIXES):
        return EventStatus.WARNING, "warning", "generic_warning"
    if s.startswith(INFO_PREFIXES):
        return EventStatus.INFO, "info", "generic_info"
    return None


@builtin
class GenericErrorParser(Parser):
    format_name = "generic_error"
    name = "Generic Error"
    category = ParserCategory.TOOL_OUTPUT
    description = "Lines starting with error:, [ERROR], FAIL:, warning:, [INFO] and similar"
    priority = ParserPriority.VERY_LOW
    tool_name = "generic"

    def can_parse(self, content: str) -> bool:
        reader = SafeLineReader(content)
        for line in itertools.islice(reader, 100):
            if classify_line(line):
                return True
        return False

    @property
    def supports_streaming(self) -> bool:
        return True

    def parse(self, content: str) -> list[ValidationEvent]:
        return self.parse_lines(SafeLineReader(content))

    def parse_line(
        self, line: str, line_number: int, event_ids: Iterator[int]
    ) -> list[ValidationEvent]:
        hit = classify_line(line)
        if not hit:
            return []
        status, severity, category = hit
        return [
            self.create_event(
                event_id=next(event_ids),
                category=category,
                event_type=EventType.BUILD_ERROR if status == EventStatus.ERROR else EventType.LINT_ISSUE,
                status=status,
                severity=severity,
                message=line.strip(),
                log_content=line,
                log_line_start=line_number,
                log_line_end=line_number,
            )
        ]


@builtin
class GenericLintParser(Parser):
    format_name = "generic_lint"
    name = "Generic Lint"
    category = ParserCategory.LINTING_TOOL
    description = "file:line[:column]: severity: message diagnostics from any linter"
    priority = ParserPriority.LOW
    tool_name = "generic_lint"

    def can_parse(self, content: str) -> bool:
        reader = SafeLineReader(content)
        return any(parse_compiler_diagnostic(line) for line in itertools.islice(reader, 50))

    @property
    def supports_streaming(self) -> bool:
        return True

    def parse(self, content: str) -> list[ValidationEvent]:
        return self.parse_lines(SafeLineReader(content))

    def parse_lines(self, reader: SafeLineReader) -> list[ValidationEvent]:
        events = super().parse_lines(reader)
        if not events:
            events.append(
                self.create_event(
                    event_id=1,
                    event_type=EventType.SUMMARY,
                    status=EventStatus.INFO,
                    severity="info",
                    message="Generic lint output parsed (no issues found)",
                )
            )
        return events

    def parse_line(
        self, line: str, line_number: int, event_ids: Iterator[int]
    ) -> list[ValidationEvent]:
        diag = parse_compiler_diagnostic(line)
        if diag is None:
            return []
        if diag.severity == "error":
            status, category = EventStatus.ERROR, "lint_error"
        elif diag.severity == "warning":
            status, category = EventStatus.WARNING, "lint_warning"
        else:
            status, category = EventStatus.INFO, "lint_info"
        return [
            self.create_event(
                event_id=next(event_ids),
                category=category,
                event_type=EventType.LINT_ISSUE,
                status=status,
                severity=diag.severity if diag.severity != "note" else "info",
                ref_file=diag.file_path,
                ref_line=diag.line,
                ref_column=diag.column,
                message=diag.message,
                log_content=line,
                log_line_start=line_number,
                log_line_end=line_number,
            )
        ]
