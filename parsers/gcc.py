# parsers/gcc.py
import itertools
import re
from collections.abc import Iterator

from .base import EventStatus, EventType, Parser, ParserCategory, ParserPriority, ValidationEvent, builtin
from .commands import CommandPattern
from .safe_parsing import SafeLineReader, parse_compiler_diagnostic

IN_FUNCTION_RE = re.compile(r"In (?:member )?function [`'‘](?P<func>[^'’]+)[’']")
WARNING_FLAG_RE = re.compile(r"\s*\[(?P<flag>-W[\w\-=+]+)\]$")
CLANG_TIDY_RULE_RE = re.compile(r"\[[a-z]+(?:-[a-z0-9]+)+(?:,[a-z\-0-9.]+)*\]$")

# These come out of interpreters and linters, not compilers
SKIP_EXTENSIONS = (".py", ".pyi", ".js", ".ts", ".rb", ".php")

_STATUS = {
    "error": EventStatus.ERROR,
    "warning": EventStatus.WARNING,
    "note": EventStatus.INFO,
}


def _compiler_patterns(*names: str) -> tuple[CommandPattern, ...]:
    out = []
    for n in names:
        out += [CommandPattern.literal(n), CommandPattern.like(f"{n} %")]
    return tuple(out)


@builtin
class GccTextParser(Parser):
    format_name = "gcc_text"
    name = "GCC/Clang"
    category = ParserCategory.BUILD_SYSTEM
    description = "GCC, Clang and compatible compiler diagnostics"
    priority = ParserPriority.HIGH
    aliases = ("gcc", "g++", "clang", "clang++", "cc", "c++", "gfortran", "gnat", "compiler_diagnostic")
    groups = ("c_cpp", "build")
    tool_name = "compiler"
    command_patterns = (
        *_compiler_patterns("gcc", "g++", "clang", "clang++"),
        CommandPattern.like("gcc-%"),
        CommandPattern.like("g++-%"),
        CommandPattern.like("clang-%"),
        *_compiler_patterns("cc", "c++", "gfortran"),
        CommandPattern.literal("gnat"),
        CommandPattern.like("gnatmake %"),
    )

    def _diagnostic(self, line: str):
        diag = parse_compiler_diagnostic(line)
        if diag is None or diag.file_path.endswith(SKIP_EXTENSIONS):
            return None
        if CLANG_TIDY_RULE_RE.search(diag.message):
            return None
        return diag

    def can_parse(self, content: str) -> bool:
        for line in SafeLineReader(content):
            if self._diagnostic(line):
                return True
        return False

    @property
    def supports_streaming(self) -> bool:
        return True

    def parse(self, content: str) -> list[ValidationEvent]:
        return self.parse_lines(SafeLineReader(content))

    def parse_lines(self, reader: SafeLineReader) -> list[ValidationEvent]:
        # "In function 'main':" applies to the diagnostics that follow it
        events: list[ValidationEvent] = []
        event_ids = itertools.count(1)
        function = ""
        for line in reader:
            fm = IN_FUNCTION_RE.search(line)
            if fm:
                function = fm.group("func")
                continue
            for ev in self.parse_line(line, reader.line_number, event_ids):
                ev.function_name = function
                events.append(ev)
        return events

    def parse_line(
        self, line: str, line_number: int, event_ids: Iterator[int]
    ) -> list[ValidationEvent]:
        diag = self._diagnostic(line)
        if diag is None:
            return []

        message = diag.message
        error_code = ""
        flag = WARNING_FLAG_RE.search(message)
        if flag:
            error_code = flag.group("flag")
            message = message[: flag.start()]
        return [
            self.create_event(
                event_id=next(event_ids),
                category="compilation",
                event_type=EventType.BUILD_ERROR,
                status=_STATUS[diag.severity],
                severity="info" if diag.severity == "note" else diag.severity,
                ref_file=diag.file_path,
                ref_line=diag.line,
                ref_column=diag.column,
                message=message,
                error_code=error_code,
                log_content=line,
                log_line_start=line_number,
                log_line_end=line_number,
            )
        ]
