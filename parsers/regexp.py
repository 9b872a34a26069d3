# parsers/regexp.py
"""Parse output with a pattern supplied at call time (`regexp:<pattern>`)."""

import json
import logging
import re

from .base import EventStatus, EventType, Parser, ParserCategory, ParserPriority, ValidationEvent
from .config_based import ParserConfigError, compile_pattern
from .safe_parsing import SafeLineReader, safe_search, try_int

logger = logging.getLogger(__name__)

TOOL_NAME = "regexp"

_GROUPS = {
    "severity": ("severity", "level"),
    "message": ("message", "msg", "description", "text"),
    "file": ("file", "file_path", "path", "filename"),
    "line": ("line", "line_number", "lineno", "line_num"),
    "column": ("column", "col", "ref_column", "colno"),
    "code": ("code", "error_code", "rule", "rule_id"),
    "category": ("category", "type", "class"),
    "test_name": ("test_name", "test", "name"),
    "suggestion": ("suggestion", "fix", "hint"),
    "tool": ("tool", "tool_name"),
}
_KNOWN = {g for names in _GROUPS.values() for g in names}


def _first(groups: dict[str, str], key: str) -> str:
    for name in _GROUPS[key]:
        value = groups.get(name)
        if value:
            return value
    return ""


def _classify(severity: str):
    s = severity.lower()
    if not s:
        return EventStatus.WARNING, "warning"
    if s in ("error", "fatal", "fail", "failed"):
        return EventStatus.ERROR, "error"
    if s in ("warning", "warn"):
        return EventStatus.WARNING, "warning"
    if s in ("info", "note", "debug"):
        return EventStatus.INFO, "info"
    return EventStatus.WARNING, s


def parse_with_regexp(
    content: str, pattern: str, include_unparsed: bool = False
) -> list[ValidationEvent]:
    """
    Match every line against `pattern` and turn its named groups into events.

    Recognized group names include severity/level, message/msg, file/path,
    line/lineno, column/col, code/rule, category/type, test_name,
    suggestion/hint and tool. Other named groups end up in structured_data.
    """
    try:
        regex = compile_pattern(pattern)
    except ParserConfigError as e:
        logger.debug("Rejected regexp pattern %r: %s", pattern, e)
        return [
            ValidationEvent(
                event_id=1,
                tool_name=TOOL_NAME,
                category="parse_error",
                event_type=EventType.SUMMARY,
                status=EventStatus.ERROR,
                severity="error",
                message=str(e),
                log_content=pattern,
            )
        ]

    events: list[ValidationEvent] = []
    reader = SafeLineReader(content)
    for line in reader:
        m = safe_search(regex, line)
        if m is None:
            if include_unparsed and line.strip():
                events.append(
                    ValidationEvent(
                        event_id=len(events) + 1,
                        tool_name=TOOL_NAME,
                        category="unparsed",
                        event_type=EventType.UNKNOWN,
                        status=None,
                        severity=None,
                        message=line,
                        log_content=line,
                        log_line_start=reader.line_number,
                        log_line_end=reader.line_number,
                    )
                )
            continue
        events.append(_event_from_match(m, line, reader.line_number, len(events) + 1))

    if not any(e.event_type != EventType.UNKNOWN for e in events):
        events.append(
            ValidationEvent(
                event_id=len(events) + 1,
                tool_name=TOOL_NAME,
                category="regexp_summary",
                event_type=EventType.SUMMARY,
                status=EventStatus.INFO,
                severity="info",
                message="No matches found for the provided pattern",
                log_content=pattern,
            )
        )
    return events


def _event_from_match(m: re.Match, line: str, line_number: int, event_id: int) -> ValidationEvent:
    groups = {k: v for k, v in m.groupdict().items() if v is not None}
    status, severity = _classify(_first(groups, "severity"))
    ref_line = try_int(_first(groups, "line"))
    ref_column = try_int(_first(groups, "column"))
    extras = {k: v for k, v in groups.items() if k not in _KNOWN}
    return ValidationEvent(
        event_id=event_id,
        tool_name=_first(groups, "tool") or TOOL_NAME,
        category=_first(groups, "category") or "regexp_match",
        event_type=EventType.LINT_ISSUE,
        status=status,
        severity=severity,
        ref_file=_first(groups, "file"),
        ref_line=ref_line if ref_line is not None else line_number,
        ref_column=ref_column if ref_column is not None else -1,
        message=_first(groups, "message") or m.group(0),
        error_code=_first(groups, "code"),
        test_name=_first(groups, "test_name"),
        suggestion=_first(groups, "suggestion"),
        log_content=line,
        log_line_start=line_number,
        log_line_end=line_number,
        structured_data=json.dumps(extras, ensure_ascii=False) if extras else "",
    )


class RegexpParser(Parser):
    """A one-off parser bound to a caller-supplied pattern. Never registered."""

    format_name = "regexp"
    name = "Regexp"
    category = ParserCategory.TOOL_OUTPUT
    priority = ParserPriority.VERY_LOW
    is_builtin = False

    def __init__(self, pattern: str, include_unparsed: bool = False):
        self.pattern = pattern
        self.include_unparsed = include_unparsed

    def can_parse(self, content: str) -> bool:
        try:
            regex = compile_pattern(self.pattern)
        except ParserConfigError:
            return False
        return any(safe_search(regex, line) for line in SafeLineReader(content))

    def parse(self, content: str) -> list[ValidationEvent]:
        return parse_with_regexp(content, self.pattern, self.include_unparsed)
