# parsers/syslog.py
import json
import re
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
from .safe_parsing import SafeLineReader, safe_int, safe_match, to_iso_timestamp

SYSLOG_RE = re.compile(
    r"^(?:<(?P<pri>\d{1,3})>)?(?P<ts>\w{3}\s+\d{1,2}\s[\d:]{8}|\d{4}-\d{2}-\d{2}T[\d:+\-.Z]+)\s+(?P<host>\S+)\s+(?P<tag>[\w\-/\[\].]+):\s*(?P<msg>.*)$"
)
TAG_PID_RE = re.compile(r"^(?P<prog>[^\[]+)\[(?P<pid>\d+)\]$")
ERROR_WORDS_RE = re.compile(r"\b(fail(?:ed|ure)?|error|critical|denied|panic)\b", re.I)
WARN_WORDS_RE = re.compile(r"\b(warn(?:ing)?|deprecated|timeout)\b", re.I)


@builtin
class SyslogParser(Parser):
    format_name = "syslog"
    name = "Syslog"
    category = ParserCategory.SYSTEM_LOG
    description = "BSD (RFC 3164) and ISO-timestamped syslog lines"
    priority = ParserPriority.HIGH
    groups = ("logging", "system")
    tool_name = "syslog"

    def can_parse(self, content: str) -> bool:
        for line in SafeLineReader(content):
            if line.strip():
                return bool(safe_match(SYSLOG_RE, line))
        return False

    @property
    def supports_streaming(self) -> bool:
        return True

    def parse(self, content: str) -> list[ValidationEvent]:
        return self.parse_lines(SafeLineReader(content))

    def parse_line(
        self, line: str, line_number: int, event_ids: Iterator[int]
    ) -> list[ValidationEvent]:
        m = safe_match(SYSLOG_RE, line)
        if not m:
            return []
        d = m.groupdict()
        msg = d["msg"]
        # simple level heuristic
        if d["pri"] is not None:
            sev = safe_int(d["pri"]) % 8
            status = EventStatus.ERROR if sev <= 3 else EventStatus.WARNING if sev == 4 else EventStatus.INFO
        elif ERROR_WORDS_RE.search(msg):
            status = EventStatus.ERROR
        elif WARN_WORDS_RE.search(msg):
            status = EventStatus.WARNING
        else:
            status = EventStatus.INFO
        tag = d["tag"]
        attrs = {"host": d["host"], "tag": tag}
        tm = TAG_PID_RE.match(tag)
        if tm:
            attrs["pid"] = tm.group("pid")
        return [
            self.create_event(
                event_id=next(event_ids),
                event_type=EventType.DEBUG_EVENT,
                status=status,
                severity=status.value.lower(),
                message=msg,
                origin=d["host"],
                scope=tm.group("prog") if tm else tag,
                started_at=to_iso_timestamp(d["ts"]),
                log_content=line,
                log_line_start=line_number,
                log_line_end=line_number,
                structured_data=json.dumps(attrs),
            )
        ]
