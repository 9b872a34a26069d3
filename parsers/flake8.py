# parsers/flake8.py
import re

from .base import EventStatus, EventType, Parser, ParserCategory, ParserPriority, ValidationEvent, builtin
from .commands import CommandPattern
from .safe_parsing import SafeLineReader, safe_match, try_int

DETECT_RE = re.compile(r"\.py:\d+:\d+:\s*[FEWC]\d{3,}")
LINE_RE = re.compile(
    r"^(?P<file>.+?\.py):(?P<line>\d+):(?P<col>\d+):\s*(?P<code>[A-Z]+\d{3,})\s+(?P<msg>.*)$"
)


@builtin
class Flake8Parser(Parser):
    format_name = "flake8_text"
    name = "Flake8"
    category = ParserCategory.LINTING_TOOL
    description = "flake8 / pycodestyle / pyflakes text report"
    priority = ParserPriority.HIGH
    aliases = ("flake8",)
    groups = ("python", "lint")
    tool_name = "flake8"
    command_patterns = (
        CommandPattern.literal("flake8"),
        CommandPattern.like("flake8 %"),
        CommandPattern.like("python -m flake8%"),
    )

    def can_parse(self, content: str) -> bool:
        return bool(DETECT_RE.search(content))

    def parse(self, content: str) -> list[ValidationEvent]:
        events: list[ValidationEvent] = []
        reader = SafeLineReader(content)
        for line in reader:
            m = safe_match(LINE_RE, line)
            if not m:
                continue
            code = m.group("code")
            if code.startswith("F"):
                event_type, status, severity = EventType.BUILD_ERROR, EventStatus.ERROR, "error"
            elif code.startswith("E"):
                event_type, status, severity = EventType.LINT_ISSUE, EventStatus.ERROR, "error"
            else:
                event_type, status, severity = EventType.LINT_ISSUE, EventStatus.WARNING, "warning"
            events.append(
                self.create_event(
                    event_id=len(events) + 1,
                    category="style" if code[0] in "EWC" else "error",
                    event_type=event_type,
                    status=status,
                    severity=severity,
                    ref_file=m.group("file"),
                    ref_line=try_int(m.group("line")) or -1,
                    ref_column=try_int(m.group("col")) or -1,
                    message=m.group("msg").strip(),
                    error_code=code,
                    log_content=line,
                    log_line_start=reader.line_number,
                    log_line_end=reader.line_number,
                )
            )

        errors = sum(1 for e in events if e.status == EventStatus.ERROR)
        warnings = len(events) - errors
        events.append(
            self.create_event(
                event_id=len(events) + 1,
                category="summary",
                event_type=EventType.SUMMARY,
                status=EventStatus.FAIL if events else EventStatus.PASS,
                severity="error" if errors else ("warning" if warnings else "info"),
                message=f"Flake8 found {errors} errors and {warnings} warnings",
            )
        )
        return events
