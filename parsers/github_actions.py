# parsers/github_actions.py
"""
GitHub Actions job logs.

A step starts with `##[group]Run <command>`; the lines up to `##[endgroup]`
echo the script and environment, and everything after that until the next
group is the step's output. With a parse context that carries a registry,
each step's output is handed to the parser its command points at
(`pytest ...` -> pytest_text), so a single CI log yields the same events
the tools would have produced on their own.
"""

import logging
import re
from dataclasses import dataclass, field

from .base import (
    EventStatus,
    EventType,
    ParseContext,
    Parser,
    ParserCategory,
    ParserPriority,
    ValidationEvent,
    builtin,
)
from .content import maybe_extract_content
from .safe_parsing import SafeLineReader

logger = logging.getLogger(__name__)

TIMESTAMP_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?Z ")
GROUP_RUN_RE = re.compile(r"^##\[group\]Run (?P<cmd>.+)$")
ANNOTATION_RE = re.compile(r"^##\[(?P<kind>error|warning|notice)\](?P<msg>.*)$")
ENDGROUP = "##[endgroup]"


@dataclass
class Step:
    command: str
    start_line: int
    output: list[str] = field(default_factory=list)
    # physical log line of each output line; annotations in between are not output
    line_numbers: list[int] = field(default_factory=list)

    def physical_line(self, index: int) -> int:
        """Log line of the 1-based output line `index`, or `index` unchanged when out of range."""
        if 1 <= index <= len(self.line_numbers):
            return self.line_numbers[index - 1]
        return index


def strip_timestamp(line: str) -> str:
    return TIMESTAMP_PREFIX_RE.sub("", line, count=1)


@builtin
class GitHubActionsParser(Parser):
    format_name = "github_actions_text"
    name = "GitHub Actions"
    category = ParserCategory.CI_SYSTEM
    description = "GitHub Actions job log with per-step delegation to tool parsers"
    priority = ParserPriority.HIGH
    aliases = ("github_actions", "gha")
    groups = ("ci",)
    tool_name = "github_actions"

    @property
    def requires_context(self) -> bool:
        return True

    def can_parse(self, content: str) -> bool:
        return "##[group]Run " in content or ("##[error]" in content and "##[endgroup]" in content)

    def parse(self, content: str) -> list[ValidationEvent]:
        return self.parse_with_context(ParseContext(), content)

    def parse_with_context(self, context: ParseContext, content: str) -> list[ValidationEvent]:
        steps, annotations = self._split(content, context.max_line_length)
        events: list[ValidationEvent] = []
        registry = context.registry
        for step in steps:
            status = EventStatus.PASS
            if registry is not None and step.output:
                delegated = self._delegate(registry, step)
                for ev in delegated:
                    if ev.status in (EventStatus.ERROR, EventStatus.FAIL):
                        status = EventStatus.FAIL
                    events.append(ev)
            events.append(
                self.create_event(
                    event_type=EventType.SUMMARY,
                    status=status,
                    severity="error" if status == EventStatus.FAIL else "info",
                    message=f"Step: {step.command}",
                    scope=step.command,
                    log_line_start=step.start_line,
                    log_line_end=step.line_numbers[-1] if step.line_numbers else step.start_line,
                )
            )
        events.extend(annotations)
        events.sort(key=lambda e: (e.log_line_start, e.event_type == EventType.SUMMARY))
        for i, ev in enumerate(events, start=1):
            ev.event_id = i
        return events

    def _split(self, content: str, max_line_length: int):
        steps: list[Step] = []
        annotations: list[ValidationEvent] = []
        current: Step | None = None
        in_group = False
        reader = SafeLineReader(content, max_line_length)
        for raw in reader:
            line = strip_timestamp(raw)
            m = GROUP_RUN_RE.match(line)
            if m:
                current = Step(m.group("cmd").strip(), reader.line_number)
                steps.append(current)
                in_group = True
                continue
            if line.startswith(ENDGROUP):
                in_group = False
                continue
            a = ANNOTATION_RE.match(line)
            if a:
                kind = a.group("kind")
                status = {"error": EventStatus.ERROR, "warning": EventStatus.WARNING}.get(kind, EventStatus.INFO)
                annotations.append(
                    self.create_event(
                        event_type=EventType.BUILD_ERROR if kind == "error" else EventType.LINT_ISSUE,
                        status=status,
                        severity=status.value.lower(),
                        message=a.group("msg").strip(),
                        scope=current.command if current else "",
                        log_content=raw,
                        log_line_start=reader.line_number,
                        log_line_end=reader.line_number,
                    )
                )
                continue
            if current is not None and not in_group:
                current.output.append(line)
                current.line_numbers.append(reader.line_number)
        return steps, annotations

    def _delegate(self, registry, step: Step) -> list[ValidationEvent]:
        parser = registry.find_parser_by_command(step.command)
        if parser is None or parser is self:
            return []
        output = maybe_extract_content("\n".join(step.output), parser.content_family)
        try:
            delegated = parser.parse(output)
        except Exception as e:
            logger.debug("Delegated parser %s failed on step %r: %s", parser.format_name, step.command, e)
            return []
        for ev in delegated:
            ev.scope = ev.scope or step.command
            if ev.log_line_start > 0:
                ev.log_line_start = step.physical_line(ev.log_line_start)
            if ev.log_line_end > 0:
                ev.log_line_end = step.physical_line(ev.log_line_end)
        return delegated
