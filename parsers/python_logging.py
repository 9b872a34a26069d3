# parsers/python_logging.py
"""
Default `logging` formatter output, with or without a timestamp:

    2024-01-15 10:30:45,123 - myapp.db - ERROR - Connection refused
    ERROR:myapp.db:Connection refused
"""

import itertools
import re
from collections.abc import Iterator

from .base import EventType, Parser, ParserCategory, ParserPriority, ValidationEvent, builtin, status_for_level
from .safe_parsing import SafeLineReader, safe_match, to_iso_timestamp

LEVELS = "DEBUG|INFO|WARNING|ERROR|CRITICAL"
TIMESTAMPED_RE = re.compile(
    rf"^(?P<ts>\d{{4}}-\d{{2}}-\d{{2}} \d{{2}}:\d{{2}}:\d{{2}}(?:[,.]\d+)?)\s+-\s+(?P<logger>[\w.\-]+)\s+-\s+(?P<level>{LEVELS})\s+-\s+(?P<msg>.*)$"
)
BASIC_RE = re.compile(rf"^(?P<level>{LEVELS}):(?P<logger>[\w.\-]+):(?P<msg>.*)$")


def _match(line: str):
    return safe_match(TIMESTAMPED_RE, line) or safe_match(BASIC_RE, line)


@builtin
class PythonLoggingParser(Parser):
    format_name = "python_logging"
    name = "Python logging"
    category = ParserCategory.APP_LOGGING
    description = "Python logging module default and basicConfig formats"
    priority = ParserPriority.HIGH
    groups = ("python", "logging")
    tool_name = "python_logging"

    def can_parse(self, content: str) -> bool:
        for line in SafeLineReader(content):
            if _match(line):
                return True
        return False

    @property
    def supports_streaming(self) -> bool:
        return True

    def parse(self, content: str) -> list[ValidationEvent]:
        return self.parse_lines(SafeLineReader(content))

    def parse_lines(self, reader: SafeLineReader) -> list[ValidationEvent]:
        # Traceback lines are folded into the record above them
        events: list[ValidationEvent] = []
        event_ids = itertools.count(1)
        for line in reader:
            found = self.parse_line(line, reader.line_number, event_ids)
            if found:
                events.extend(found)
            elif events and line.strip():
                last = events[-1]
                last.log_content += "\n" + line
                last.log_line_end = reader.line_number
        return events

    def parse_line(
        self, line: str, line_number: int, event_ids: Iterator[int]
    ) -> list[ValidationEvent]:
        m = _match(line)
        if not m:
            return []
        status, severity = status_for_level(m.group("level"))
        ts = m.groupdict().get("ts")
        return [
            self.create_event(
                event_id=next(event_ids),
                event_type=EventType.DEBUG_EVENT,
                status=status,
                severity=severity,
                message=m.group("msg").strip(),
                origin=m.group("logger"),
                started_at=to_iso_timestamp(ts.replace(",", ".") if ts else None),
                log_content=line,
                log_line_start=line_number,
                log_line_end=line_number,
            )
        ]
