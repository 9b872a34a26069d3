# parsers/jsonl.py
import json
import logging
from collections.abc import Iterator

from .base import (
    EventType,
    Parser,
    ParserCategory,
    ParserPriority,
    ValidationEvent,
    builtin,
    status_for_level,
)
from .safe_parsing import SafeLineReader, to_iso_timestamp

logger = logging.getLogger(__name__)

TS_KEYS = ("ts", "time", "timestamp", "@timestamp")
LEVEL_KEYS = ("level", "lvl", "severity", "log.level")
MSG_KEYS = ("msg", "message", "event")
KNOWN_KEYS = {*TS_KEYS, *LEVEL_KEYS, *MSG_KEYS, "logger", "caller", "file", "line"}


def _first(obj: dict, keys) -> str:
    for k in keys:
        v = obj.get(k)
        if v not in (None, ""):
            return str(v)
    return ""


@builtin
class JSONLParser(Parser):
    format_name = "jsonl"
    name = "JSON Lines"
    category = ParserCategory.STRUCTURED_LOG
    description = "Newline-delimited JSON log records"
    priority = ParserPriority.HIGH
    aliases = ("ndjson", "json_lines")
    groups = ("logging", "structured")
    tool_name = "jsonl"

    def can_parse(self, content: str) -> bool:
        seen = 0
        for line in SafeLineReader(content):
            s = line.strip()
            if not s:
                continue
            if not s.startswith("{"):
                return False
            try:
                obj = json.loads(s)
            except ValueError:
                return False
            if not isinstance(obj, dict):
                return False
            seen += 1
            if seen >= 3:
                break
        return seen > 0

    @property
    def supports_streaming(self) -> bool:
        return True

    def parse(self, content: str) -> list[ValidationEvent]:
        return self.parse_lines(SafeLineReader(content))

    def parse_line(
        self, line: str, line_number: int, event_ids: Iterator[int]
    ) -> list[ValidationEvent]:
        line = line.strip()
        if not line:
            return []
        try:
            obj = json.loads(line)
        except ValueError:
            logger.debug("Skipping non-JSON line %d", line_number)
            return []
        if not isinstance(obj, dict):
            return []
        level = _first(obj, LEVEL_KEYS)
        status, severity = status_for_level(level)
        attrs = {k: v for k, v in obj.items() if k not in KNOWN_KEYS}
        return [
            self.create_event(
                event_id=next(event_ids),
                event_type=EventType.DEBUG_EVENT,
                status=status,
                severity=severity,
                message=_first(obj, MSG_KEYS) or line[:500],
                origin=str(obj.get("logger") or obj.get("caller") or ""),
                ref_file=str(obj.get("file") or ""),
                started_at=to_iso_timestamp(_first(obj, TS_KEYS)),
                log_content=line,
                log_line_start=line_number,
                log_line_end=line_number,
                structured_data=json.dumps(attrs, ensure_ascii=False, default=str) if attrs else "",
            )
        ]
