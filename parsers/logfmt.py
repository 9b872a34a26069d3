# parsers/logfmt.py
import json
import re
from collections.abc import Iterator

from .base import EventType, Parser, ParserCategory, ParserPriority, ValidationEvent, builtin, status_for_level
from .safe_parsing import SafeLineReader, to_iso_timestamp

PAIR_RE = re.compile(r'(?P<key>[A-Za-z_][\w.\-]*)=(?:"(?P<quoted>(?:[^"\\]|\\.)*)"|(?P<bare>\S*))')


def parse_pairs(line: str) -> dict[str, str]:
    out = {}
    for m in PAIR_RE.finditer(line):
        value = m.group("quoted")
        if value is not None:
            value = value.replace('\\"', '"').replace("\\\\", "\\")
        else:
            value = m.group("bare")
        out[m.group("key")] = value
    return out


@builtin
class LogfmtParser(Parser):
    format_name = "logfmt"
    name = "logfmt"
    category = ParserCategory.STRUCTURED_LOG
    description = "key=value structured log lines (Heroku / Go logfmt)"
    priority = ParserPriority.HIGH
    groups = ("logging", "structured")
    tool_name = "logfmt"

    def can_parse(self, content: str) -> bool:
        checked = 0
        for line in SafeLineReader(content):
            if not line.strip():
                continue
            pairs = parse_pairs(line)
            if len(pairs) < 2 or not ({"level", "msg", "lvl", "ts", "time"} & pairs.keys()):
                return False
            checked += 1
            if checked >= 3:
                break
        return checked > 0

    @property
    def supports_streaming(self) -> bool:
        return True

    def parse(self, content: str) -> list[ValidationEvent]:
        return self.parse_lines(SafeLineReader(content))

    def parse_line(
        self, line: str, line_number: int, event_ids: Iterator[int]
    ) -> list[ValidationEvent]:
        pairs = parse_pairs(line)
        if not pairs:
            return []
        status, severity = status_for_level(pairs.pop("level", None) or pairs.pop("lvl", None))
        message = pairs.pop("msg", None) or pairs.pop("message", "")
        ts = pairs.pop("ts", None) or pairs.pop("time", None)
        return [
            self.create_event(
                event_id=next(event_ids),
                event_type=EventType.DEBUG_EVENT,
                status=status,
                severity=severity,
                message=message,
                origin=pairs.get("caller", "") or pairs.get("logger", ""),
                error_code=pairs.get("err", "") or pairs.get("error", ""),
                started_at=to_iso_timestamp(ts),
                log_content=line,
                log_line_start=line_number,
                log_line_end=line_number,
                structured_data=json.dumps(pairs, ensure_ascii=False) if pairs else "",
            )
        ]
