# parsers/eslint_json.py
import json
import logging

from .base import (
    ContentFamily,
    EventStatus,
    EventType,
    Parser,
    ParserCategory,
    ParserPriority,
    ValidationEvent,
    builtin,
)
from .commands import CommandPattern
from .safe_parsing import try_int

logger = logging.getLogger(__name__)


def _load(content: str):
    try:
        data = json.loads(content)
    except ValueError:
        return None
    if isinstance(data, list) and all(isinstance(d, dict) for d in data):
        return data
    return None


def _suggestion(msg: dict) -> str:
    suggestions = msg.get("suggestions")
    if isinstance(suggestions, list) and suggestions and isinstance(suggestions[0], dict):
        return str(suggestions[0].get("desc", ""))
    return ""


@builtin
class ESLintJSONParser(Parser):
    format_name = "eslint_json"
    name = "ESLint JSON"
    category = ParserCategory.LINTING_TOOL
    description = "ESLint --format json report"
    priority = ParserPriority.VERY_HIGH
    aliases = ("eslint",)
    groups = ("javascript", "lint")
    content_family = ContentFamily.JSON
    tool_name = "eslint"
    command_patterns = (
        CommandPattern.literal("eslint"),
        CommandPattern.like("eslint %"),
        CommandPattern.like("npx eslint%"),
    )

    def can_parse(self, content: str) -> bool:
        if '"filePath"' not in content or '"messages"' not in content:
            return False
        data = _load(content)
        return bool(data) and "filePath" in data[0] and "messages" in data[0]

    def parse(self, content: str) -> list[ValidationEvent]:
        data = _load(content)
        if data is None:
            logger.debug("ESLint payload is not a JSON array of results")
            return []
        events: list[ValidationEvent] = []
        for result in data:
            file_path = str(result.get("filePath", ""))
            for msg in result.get("messages") or []:
                if not isinstance(msg, dict):
                    continue
                fatal = bool(msg.get("fatal"))
                sev = try_int(msg.get("severity"))
                if fatal or sev == 2:
                    status, severity = EventStatus.ERROR, "error"
                elif sev == 1:
                    status, severity = EventStatus.WARNING, "warning"
                else:
                    status, severity = EventStatus.INFO, "info"
                line = try_int(msg.get("line"))
                column = try_int(msg.get("column"))
                events.append(
                    self.create_event(
                        event_id=len(events) + 1,
                        category="parse_error" if fatal else "lint",
                        event_type=EventType.LINT_ISSUE,
                        status=status,
                        severity=severity,
                        ref_file=file_path,
                        ref_line=line if line is not None else -1,
                        ref_column=column if column is not None else -1,
                        message=str(msg.get("message", "")),
                        error_code=str(msg.get("ruleId") or ""),
                        suggestion=_suggestion(msg),
                        log_content=json.dumps(msg, ensure_ascii=False),
                    )
                )
        return events
