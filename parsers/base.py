# parsers/base.py
"""
Core types shared by every format recognizer.

A parser is a class deriving from `Parser` that declares its metadata as
class attributes and implements `can_parse` and `parse`. Built-in parsers
register themselves with the `@builtin` decorator when their module is
imported; `parsers/__init__.py` imports them in a fixed order and that
order is the registration order used to break priority ties.

Example:

    from .base import EventStatus, EventType, Parser, ParserCategory, builtin

    @builtin
    class MyToolParser(Parser):
        format_name = "mytool_text"
        name = "MyTool"
        category = ParserCategory.TOOL_OUTPUT
        priority = 40

        def can_parse(self, content: str) -> bool:
            return "MYTOOL:" in content

        def parse(self, content: str) -> list[ValidationEvent]:
            ...
"""

import itertools
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from .commands import CommandPattern
from .safe_parsing import DEFAULT_MAX_LINE_LENGTH, SafeLineReader

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    BUILD_ERROR = "build_error"
    LINT_ISSUE = "lint_issue"
    TEST_RESULT = "test_result"
    TYPE_ERROR = "type_error"
    SECURITY_FINDING = "security_finding"
    MEMORY_ERROR = "memory_error"
    DEBUG_INFO = "debug_info"
    DEBUG_EVENT = "debug_event"
    CRASH_SIGNAL = "crash_signal"
    SUMMARY = "summary"
    PERFORMANCE_METRIC = "performance_metric"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: str) -> "EventType | None":
        """Accepts either the member name or its value, case-insensitively."""
        key = (value or "").strip()
        for member in cls:
            if key.upper() == member.name or key.lower() == member.value:
                return member
        return None


class EventStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    SKIP = "SKIP"
    INFO = "INFO"


class ContentFamily(str, Enum):
    TEXT = "text"
    JSON = "json"
    XML = "xml"


class ParserPriority:
    VERY_HIGH = 100
    HIGH = 80
    MEDIUM = 50
    LOW = 30
    VERY_LOW = 10


class ParserCategory:
    BUILD_SYSTEM = "build_system"
    LINTING_TOOL = "linting_tool"
    TEST_FRAMEWORK = "test_framework"
    DEBUGGING_TOOL = "debugging_tool"
    CI_SYSTEM = "ci_system"
    STRUCTURED_LOG = "structured_log"
    APP_LOGGING = "app_logging"
    SYSTEM_LOG = "system_log"
    WEB_ACCESS = "web_access"
    TOOL_OUTPUT = "tool_output"


_LEVELS = {
    "TRACE": (EventStatus.INFO, "info"),
    "DEBUG": (EventStatus.INFO, "info"),
    "INFO": (EventStatus.INFO, "info"),
    "NOTICE": (EventStatus.INFO, "info"),
    "WARN": (EventStatus.WARNING, "warning"),
    "WARNING": (EventStatus.WARNING, "warning"),
    "ERROR": (EventStatus.ERROR, "error"),
    "ERR": (EventStatus.ERROR, "error"),
    "CRITICAL": (EventStatus.ERROR, "error"),
    "CRIT": (EventStatus.ERROR, "error"),
    "FATAL": (EventStatus.ERROR, "error"),
    "ALERT": (EventStatus.ERROR, "error"),
    "EMERG": (EventStatus.ERROR, "error"),
    "PANIC": (EventStatus.ERROR, "error"),
}


def status_for_level(level: str | None) -> tuple[EventStatus, str]:
    """Map a log level name (any case) to (status, severity); unknown -> INFO."""
    return _LEVELS.get((level or "").strip().upper(), (EventStatus.INFO, "info"))


@dataclass
class ValidationEvent:
    """One finding, result or log line, normalized across every format."""

    event_id: int = 0
    tool_name: str = ""
    category: str = ""
    event_type: EventType = EventType.UNKNOWN
    status: EventStatus | None = EventStatus.INFO
    severity: str | None = "info"
    ref_file: str = ""
    ref_line: int = -1
    ref_column: int = -1
    message: str = ""
    error_code: str = ""
    function_name: str = ""
    test_name: str = ""
    suggestion: str = ""
    scope: str = ""
    group: str = ""
    unit: str = ""
    origin: str = ""
    principal: str = ""
    started_at: str = ""
    log_content: str = ""
    log_line_start: int = -1
    log_line_end: int = -1
    structured_data: str = ""
    execution_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["event_type"] = self.event_type.value
        d["status"] = self.status.value if self.status is not None else None
        return d


@dataclass(frozen=True)
class ParserInfo:
    """Immutable snapshot of a parser's metadata, used by catalog queries."""

    format_name: str
    name: str
    category: str
    description: str
    priority: int
    aliases: tuple[str, ...] = ()
    groups: tuple[str, ...] = ()
    required_extension: str = ""
    command_patterns: tuple[CommandPattern, ...] = ()
    content_family: ContentFamily = ContentFamily.TEXT
    is_builtin: bool = True


@dataclass
class ParseContext:
    """What a context-aware parser may see of its surroundings."""

    registry: Any = None
    base_dir: Path | None = None
    max_line_length: int = DEFAULT_MAX_LINE_LENGTH


class Parser(ABC):
    format_name: str = ""
    name: str = ""
    category: str = ParserCategory.TOOL_OUTPUT
    description: str = ""
    priority: int = ParserPriority.MEDIUM
    aliases: tuple[str, ...] = ()
    groups: tuple[str, ...] = ()
    required_extension: str = ""
    command_patterns: tuple[CommandPattern, ...] = ()
    content_family: ContentFamily = ContentFamily.TEXT
    is_builtin: bool = True
    tool_name: str = ""

    @abstractmethod
    def can_parse(self, content: str) -> bool:
        """Cheap, side-effect-free check that this parser recognizes `content`."""
        ...

    @abstractmethod
    def parse(self, content: str) -> list[ValidationEvent]:
        """Extract every event from `content`. Must not raise on bad input."""
        ...

    @property
    def requires_context(self) -> bool:
        return False

    def parse_with_context(self, context: ParseContext, content: str) -> list[ValidationEvent]:
        return self.parse(content)

    # --- streaming ---
    @property
    def supports_streaming(self) -> bool:
        return False

    @property
    def supports_file_parsing(self) -> bool:
        return self.supports_streaming

    def parse_line(
        self, line: str, line_number: int, event_ids: Iterator[int]
    ) -> list[ValidationEvent]:
        return []

    def parse_lines(self, reader: SafeLineReader) -> list[ValidationEvent]:
        """Feed every line of `reader` through `parse_line`."""
        events: list[ValidationEvent] = []
        event_ids = itertools.count(1)
        for line in reader:
            events.extend(self.parse_line(line, reader.line_number, event_ids))
        return events

    def parse_file(
        self, path: str | Path, max_line_length: int = DEFAULT_MAX_LINE_LENGTH
    ) -> list[ValidationEvent]:
        """
        Stream a file through `parse_line` without reading it whole.
        Parsers that cannot stream fall back to reading the file.
        """
        p = Path(path)
        if not p.exists():
            logger.warning("File not found: %s", p)
            return []
        with p.open("r", encoding="utf-8", errors="replace", newline="") as f:
            if self.supports_streaming:
                return self.parse_lines(SafeLineReader(f, max_line_length))
            return self.parse(f.read())

    # --- metadata ---
    def info(self) -> ParserInfo:
        return ParserInfo(
            format_name=self.format_name,
            name=self.name or self.format_name,
            category=self.category,
            description=self.description,
            priority=self.priority,
            aliases=tuple(self.aliases),
            groups=tuple(self.groups),
            required_extension=self.required_extension,
            command_patterns=tuple(self.command_patterns),
            content_family=self.content_family,
            is_builtin=self.is_builtin,
        )

    def create_event(self, **fields: Any) -> ValidationEvent:
        fields.setdefault("tool_name", self.tool_name or self.name or self.format_name)
        fields.setdefault("category", self.category)
        return ValidationEvent(**fields)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.format_name!r} priority={self.priority}>"


# Built-in parser classes, in import (registration) order
BUILTIN_PARSERS: list[type[Parser]] = []


def builtin(cls: type[Parser]) -> type[Parser]:
    """Class decorator adding a parser to the built-in set."""
    if cls not in BUILTIN_PARSERS:
        BUILTIN_PARSERS.append(cls)
    return cls
