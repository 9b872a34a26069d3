# parsers/config_based.py
"""
Parsers defined at runtime by a JSON document.

    {
      "name": "mytool",
      "display_name": "My Tool",
      "category": "tool_output",
      "priority": 50,
      "aliases": ["mt"],
      "groups": ["custom"],
      "detection": {"contains": ["MYTOOL"], "contains_all": [], "regex": "^MYTOOL"},
      "patterns": [
        {
          "name": "diagnostic",
          "regex": "^(?P<file>[^:]+):(?P<line>\\d+): (?P<severity>\\w+): (?P<message>.+)$",
          "event_type": "BUILD_ERROR",
          "severity_map": {"E": "error"},
          "status_map": {"E": "ERROR"}
        }
      ]
    }

A config parser with no detection rule never wins auto-detection; it can
only be selected by name.
"""

import json
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from .base import EventStatus, EventType, Parser, ParserCategory, ValidationEvent
from .safe_parsing import (
    SafeLineReader,
    has_potential_backtracking,
    safe_search,
    to_iso_timestamp,
    try_float,
    try_int,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = ParserCategory.TOOL_OUTPUT
DEFAULT_PRIORITY = 50
DEFAULT_GROUPS = ("custom",)

# named group -> event field
FIELD_SYNONYMS: dict[str, str] = {
    "message": "message",
    "msg": "message",
    "file": "ref_file",
    "file_path": "ref_file",
    "path": "ref_file",
    "line": "ref_line",
    "lineno": "ref_line",
    "line_number": "ref_line",
    "column": "ref_column",
    "col": "ref_column",
    "error_code": "error_code",
    "code": "error_code",
    "rule": "error_code",
    "function_name": "function_name",
    "func": "function_name",
    "function": "function_name",
    "test_name": "test_name",
    "test": "test_name",
    "suggestion": "suggestion",
    "scope": "scope",
    "group": "group",
    "unit": "unit",
    "origin": "origin",
    "principal": "principal",
    "tool": "tool_name",
    "timestamp": "started_at",
    "duration": "execution_time",
}
SEVERITY_GROUPS = ("severity", "level")
STATUS_GROUPS = ("status", "result")

_ECMA_NAMED_GROUP = re.compile(r"\(\?<(?=[A-Za-z_])")

# captured severity/level token (any case) -> (status, severity)
_SEVERITY_WORDS = {
    "pass": (EventStatus.PASS, "info"),
    "passed": (EventStatus.PASS, "info"),
    "ok": (EventStatus.PASS, "info"),
    "fail": (EventStatus.FAIL, "error"),
    "failed": (EventStatus.FAIL, "error"),
    "skip": (EventStatus.SKIP, "info"),
    "skipped": (EventStatus.SKIP, "info"),
    "error": (EventStatus.ERROR, "error"),
    "fatal": (EventStatus.ERROR, "error"),
    "critical": (EventStatus.ERROR, "critical"),
    "warning": (EventStatus.WARNING, "warning"),
    "warn": (EventStatus.WARNING, "warning"),
}
# captured status/result token of a TEST_RESULT pattern
_TEST_STATUS_WORDS = {
    "PASS": EventStatus.PASS,
    "PASSED": EventStatus.PASS,
    "OK": EventStatus.PASS,
    "FAIL": EventStatus.FAIL,
    "FAILED": EventStatus.FAIL,
    "ERROR": EventStatus.FAIL,
    "SKIP": EventStatus.SKIP,
    "SKIPPED": EventStatus.SKIP,
}
_STATUS_SEVERITY = {
    EventStatus.PASS: "info",
    EventStatus.INFO: "info",
    EventStatus.SKIP: "info",
    EventStatus.WARNING: "warning",
    EventStatus.FAIL: "error",
    EventStatus.ERROR: "error",
}
_SEVERITY_STATUS = {
    "error": EventStatus.ERROR,
    "critical": EventStatus.ERROR,
    "warning": EventStatus.WARNING,
}


class ParserConfigError(ValueError):
    """A parser config document could not be compiled."""


def compile_pattern(pattern: str) -> re.Pattern:
    """Compile with Python named groups; `(?<name>` is accepted as an alias."""
    source = _ECMA_NAMED_GROUP.sub("(?P<", pattern)
    if has_potential_backtracking(source):
        logger.warning("Pattern may backtrack badly on long lines: %s", pattern)
    try:
        return re.compile(source)
    except re.error as e:
        raise ParserConfigError(f"Invalid regex pattern '{pattern}': {e}") from e


def status_for_severity_token(token: str) -> tuple[EventStatus, str]:
    """Lexical reading of a captured severity; unknown words are INFO with the word kept."""
    word = token.strip().lower()
    return _SEVERITY_WORDS.get(word, (EventStatus.INFO, word))


def severity_for_status(status: EventStatus) -> str:
    return _STATUS_SEVERITY[status]


def _parse_status(value: str, where: str) -> EventStatus:
    try:
        return EventStatus(value.strip().upper())
    except ValueError:
        raise ParserConfigError(f"{where}: unknown status '{value}'") from None


@dataclass
class PatternRule:
    name: str
    regex: re.Pattern
    event_type: EventType
    severity: str = ""
    severity_map: dict[str, str] = field(default_factory=dict)
    status_map: dict[str, EventStatus] = field(default_factory=dict)


@dataclass
class DetectionRules:
    contains: tuple[str, ...] = ()
    contains_all: tuple[str, ...] = ()
    regex: re.Pattern | None = None

    @property
    def empty(self) -> bool:
        return not self.contains and not self.contains_all and self.regex is None


def _string_list(doc: dict, key: str, default=()) -> tuple[str, ...]:
    value = doc.get(key)
    if value is None:
        return tuple(default)
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ParserConfigError(f"'{key}' must be a list of strings")
    return tuple(value)


def _compile_rule(index: int, raw: Any) -> PatternRule:
    where = f"patterns[{index}]"
    if not isinstance(raw, dict):
        raise ParserConfigError(f"{where} must be an object")
    if not raw.get("regex"):
        raise ParserConfigError(f"{where} is missing required field 'regex'")
    if not raw.get("event_type"):
        raise ParserConfigError(f"{where} is missing required field 'event_type'")
    event_type = EventType.from_string(str(raw["event_type"]))
    if event_type is None:
        raise ParserConfigError(f"{where}: invalid event_type '{raw['event_type']}'")

    severity_map = {str(k): str(v).lower() for k, v in (raw.get("severity_map") or {}).items()}
    status_map = {
        str(k): _parse_status(str(v), where) for k, v in (raw.get("status_map") or {}).items()
    }
    return PatternRule(
        name=str(raw.get("name") or f"pattern_{index}"),
        regex=compile_pattern(str(raw["regex"])),
        event_type=event_type,
        severity=str(raw.get("severity") or "").lower(),
        severity_map=severity_map,
        status_map=status_map,
    )


class ConfigBasedParser(Parser):
    is_builtin = False

    def __init__(
        self,
        format_name: str,
        patterns: list[PatternRule],
        *,
        name: str = "",
        tool_name: str = "",
        category: str = DEFAULT_CATEGORY,
        description: str = "",
        priority: int = DEFAULT_PRIORITY,
        aliases: tuple[str, ...] = (),
        groups: tuple[str, ...] = DEFAULT_GROUPS,
        detection: DetectionRules | None = None,
    ):
        self.format_name = format_name
        self.name = name or format_name
        self.tool_name = tool_name or format_name
        self.category = category
        self.description = description or f"Custom parser loaded from config: {self.name}"
        self.priority = priority
        self.aliases = tuple(aliases)
        self.groups = tuple(groups)
        self.patterns = patterns
        self.detection = detection or DetectionRules()

    @classmethod
    def from_json(cls, text: str | bytes) -> "ConfigBasedParser":
        try:
            doc = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParserConfigError(f"Invalid JSON in parser config: {e}") from e
        return cls.from_dict(doc)

    @classmethod
    def from_dict(cls, doc: Any) -> "ConfigBasedParser":
        if not isinstance(doc, dict):
            raise ParserConfigError("Parser config must be a JSON object")
        format_name = doc.get("name")
        if not isinstance(format_name, str) or not format_name.strip():
            raise ParserConfigError("Parser config is missing required field 'name'")
        raw_patterns = doc.get("patterns")
        if raw_patterns is None:
            raise ParserConfigError("Parser config is missing required field 'patterns'")
        if not isinstance(raw_patterns, list) or not raw_patterns:
            raise ParserConfigError("'patterns' must be a non-empty list")

        priority = doc.get("priority", DEFAULT_PRIORITY)
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ParserConfigError("'priority' must be an integer")

        detection_doc = doc.get("detection") or {}
        if not isinstance(detection_doc, dict):
            raise ParserConfigError("'detection' must be an object")
        detection_regex = detection_doc.get("regex")
        detection = DetectionRules(
            contains=_string_list(detection_doc, "contains"),
            contains_all=_string_list(detection_doc, "contains_all"),
            regex=compile_pattern(detection_regex) if detection_regex else None,
        )

        parser = cls(
            format_name.strip(),
            [_compile_rule(i, p) for i, p in enumerate(raw_patterns)],
            name=str(doc.get("display_name") or ""),
            tool_name=str(doc.get("tool_name") or ""),
            category=str(doc.get("category") or DEFAULT_CATEGORY),
            description=str(doc.get("description") or ""),
            priority=priority,
            aliases=_string_list(doc, "aliases"),
            groups=_string_list(doc, "groups", DEFAULT_GROUPS),
            detection=detection,
        )
        logger.debug(
            "Compiled config parser %s (%d patterns)", parser.format_name, len(parser.patterns)
        )
        return parser

    def can_parse(self, content: str) -> bool:
        rules = self.detection
        if rules.empty:
            return False
        if rules.contains and not any(s in content for s in rules.contains):
            return False
        if rules.contains_all and not all(s in content for s in rules.contains_all):
            return False
        if rules.regex is not None and not rules.regex.search(content):
            return False
        return True

    @property
    def supports_streaming(self) -> bool:
        return True

    def parse(self, content: str) -> list[ValidationEvent]:
        return self.parse_lines(SafeLineReader(content))

    def parse_line(
        self, line: str, line_number: int, event_ids: Iterator[int]
    ) -> list[ValidationEvent]:
        for rule in self.patterns:
            m = safe_search(rule.regex, line)
            if m:
                return [self._build_event(rule, m, line, line_number, next(event_ids))]
        return []

    def _build_event(
        self, rule: PatternRule, m: re.Match, line: str, line_number: int, event_id: int
    ) -> ValidationEvent:
        groups = {k: v for k, v in m.groupdict().items() if v is not None}
        ev = self.create_event(
            event_id=event_id,
            event_type=rule.event_type,
            log_content=line,
            log_line_start=line_number,
            log_line_end=line_number,
        )
        extras: dict[str, str] = {}
        for group_name, value in groups.items():
            target = FIELD_SYNONYMS.get(group_name)
            if target is None:
                if group_name not in SEVERITY_GROUPS + STATUS_GROUPS:
                    extras[group_name] = value
                continue
            if target == "ref_line":
                parsed = try_int(value)
                ev.ref_line = parsed if parsed is not None else line_number
            elif target == "ref_column":
                parsed = try_int(value)
                ev.ref_column = parsed if parsed is not None else -1
            elif target == "started_at":
                ev.started_at = to_iso_timestamp(value) or value
            elif target == "execution_time":
                ev.execution_time = try_float(value) or 0.0
            else:
                setattr(ev, target, value)
        if not ev.message:
            ev.message = m.group(0)
        if extras:
            ev.structured_data = json.dumps(extras, ensure_ascii=False)

        ev.status, ev.severity = self._resolve_status(rule, groups)
        return ev

    def _resolve_status(self, rule: PatternRule, groups: dict[str, str]):
        sev_token = next((groups[g] for g in SEVERITY_GROUPS if g in groups), "")
        status_token = next((groups[g] for g in STATUS_GROUPS if g in groups), "")

        if status_token and status_token in rule.status_map:
            status = rule.status_map[status_token]
            return status, severity_for_status(status)
        if sev_token and sev_token in rule.severity_map:
            severity = rule.severity_map[sev_token]
            return _SEVERITY_STATUS.get(severity, EventStatus.INFO), severity
        if rule.severity:
            return _SEVERITY_STATUS.get(rule.severity, EventStatus.INFO), rule.severity
        if sev_token:
            return status_for_severity_token(sev_token)
        return self._default_status(rule.event_type, status_token)

    @staticmethod
    def _default_status(event_type: EventType, status_token: str):
        if event_type == EventType.BUILD_ERROR:
            return EventStatus.ERROR, "error"
        if event_type == EventType.TEST_RESULT:
            status = _TEST_STATUS_WORDS.get(status_token.strip().upper())
            if status is not None:
                return status, severity_for_status(status)
        return EventStatus.INFO, "info"

