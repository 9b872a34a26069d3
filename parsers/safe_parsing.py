# parsers/safe_parsing.py
"""
Helpers that keep parsers safe on untrusted log text.

Nothing in here raises on malformed input. Oversized lines are cut before
any regex sees them, `file:line:col` shapes are scanned by hand instead of
with backtracking-prone patterns, and numeric conversions return a default
or None instead of raising.
"""

import io
import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TextIO

from dateutil import parser as dtp

DEFAULT_MAX_LINE_LENGTH = 2000
MAX_FILE_PATH_LENGTH = 500
TRUNCATION_MARKER = "..."

INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1

_INT_PREFIX_RE = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX_RE = re.compile(
    r"\s*([+-]?(?:inf(?:inity)?|nan|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))", re.I
)

_DIAGNOSTIC_MARKERS = (" error:", " warning:", " note:")


def normalize_line_endings(content: str) -> str:
    """Convert CRLF and lone CR to LF."""
    if "\r" not in content:
        return content
    return content.replace("\r\n", "\n").replace("\r", "\n")


def detect_line_ending(content: str) -> str:
    """Return the first line terminator found in `content`, or ''."""
    i = content.find("\n")
    j = content.find("\r")
    if j == -1 and i == -1:
        return ""
    if j == -1 or (i != -1 and i < j):
        return "\n"
    if content[j : j + 2] == "\r\n":
        return "\r\n"
    return "\r"


class SafeLineReader:
    """
    Forward-only line iterator that caps line length.

    Accepts a string or an open text stream. Lines longer than
    `max_line_length` are cut and end with "...", so they are exactly
    `max_line_length` characters long. Terminators are stripped.
    """

    def __init__(self, source: str | TextIO, max_line_length: int = DEFAULT_MAX_LINE_LENGTH):
        if isinstance(source, str):
            source = io.StringIO(source, newline="")
        self._stream = source
        self.max_line_length = max(max_line_length, len(TRUNCATION_MARKER) + 1)
        self.line_number = 0
        self.was_truncated = False
        self._exhausted = False

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        if self._exhausted:
            raise StopIteration
        line = self._read_line()
        if line is None:
            self._exhausted = True
            raise StopIteration
        self.line_number += 1
        self.was_truncated = len(line) > self.max_line_length
        if self.was_truncated:
            line = line[: self.max_line_length - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER
        return line

    def _read_line(self) -> str | None:
        # Streams opened with newline="" hand back CR, LF and CRLF untranslated.
        raw = self._stream.readline()
        if not raw:
            return None
        if raw.endswith("\r\n"):
            return raw[:-2]
        if raw.endswith(("\n", "\r")):
            return raw[:-1]
        return raw

    def read_all(self) -> list[str]:
        return list(self)


@dataclass(frozen=True)
class FileLineColumn:
    file_path: str
    line: int
    column: int = -1


@dataclass(frozen=True)
class CompilerDiagnostic:
    file_path: str
    line: int
    column: int
    severity: str
    message: str


def _digits_at(s: str, start: int, end: int) -> int | None:
    if start >= end or not s[start:end].isdigit():
        return None
    return try_int(s[start:end])


def parse_file_line_column(line: str) -> FileLineColumn | None:
    """
    Scan `file:line[:column]` from the start of `line`.

    Finds the first ':' followed by a digit (skipping a Windows drive
    letter), so "C:\\src\\a.c:12:3: ..." works. Returns None when the shape
    is not there.
    """
    if not line:
        return None
    limit = min(len(line), MAX_FILE_PATH_LENGTH + 20)
    colon = -1
    for i in range(limit - 1):
        if line[i] != ":":
            continue
        if i == 1 and line[0].isalpha():
            continue
        if line[i + 1].isdigit():
            colon = i
            break
    if colon <= 0 or colon > MAX_FILE_PATH_LENGTH:
        return None
    file_path = line[:colon]

    line_start = colon + 1
    line_end = line.find(":", line_start)
    if line_end == -1:
        return None
    line_no = _digits_at(line, line_start, line_end)
    if line_no is None:
        return None

    column = -1
    col_start = line_end + 1
    if col_start < len(line) and line[col_start].isdigit():
        col_end = line.find(":", col_start)
        if col_end != -1:
            col = _digits_at(line, col_start, col_end)
            if col is not None:
                column = col
    return FileLineColumn(file_path, line_no, column)


def parse_compiler_diagnostic(line: str) -> CompilerDiagnostic | None:
    """Scan `file:line[:col]: error|warning|note: message`."""
    loc = parse_file_line_column(line)
    if loc is None:
        return None
    pos = -1
    severity = ""
    for marker in _DIAGNOSTIC_MARKERS:
        found = line.find(marker)
        if found != -1 and (pos == -1 or found < pos):
            pos = found
            severity = marker.strip().rstrip(":")
    if pos == -1:
        return None
    msg_start = line.find(":", pos + 1)
    if msg_start == -1:
        return None
    message = line[msg_start + 1 :].lstrip()
    return CompilerDiagnostic(loc.file_path, loc.line, loc.column, severity, message)


# --- numeric conversion ---
def _bounded_int(text, lo: int, hi: int) -> int | None:
    if text is None:
        return None
    if isinstance(text, int):
        return text if lo <= text <= hi else None
    m = _INT_PREFIX_RE.match(str(text))
    if not m:
        return None
    value = int(m.group(1))
    if value < lo or value > hi:
        return None
    return value


def try_int(text) -> int | None:
    """32-bit integer from the numeric prefix of `text`, or None."""
    return _bounded_int(text, INT32_MIN, INT32_MAX)


def try_long(text) -> int | None:
    """64-bit integer from the numeric prefix of `text`, or None."""
    return _bounded_int(text, INT64_MIN, INT64_MAX)


def try_float(text) -> float | None:
    if text is None:
        return None
    if isinstance(text, (int, float)):
        return float(text)
    m = _FLOAT_PREFIX_RE.match(str(text))
    if not m:
        return None
    try:
        return float(m.group(1))
    except ValueError:
        return None


def safe_int(text, default: int = 0) -> int:
    value = try_int(text)
    return default if value is None else value


def safe_long(text, default: int = 0) -> int:
    value = try_long(text)
    return default if value is None else value


def safe_float(text, default: float = 0.0) -> float:
    value = try_float(text)
    return default if value is None else value


def to_iso_timestamp(ts: str | None) -> str:
    """ISO-8601 form of a timestamp string, or "" when it does not parse."""
    if not ts:
        return ""
    try:
        return dtp.parse(ts).isoformat()
    except (ValueError, OverflowError):
        return ""


# --- regex guards ---
def safe_search(pattern: re.Pattern, line: str, max_line_length: int = DEFAULT_MAX_LINE_LENGTH):
    if len(line) > max_line_length:
        return None
    return pattern.search(line)


def safe_match(pattern: re.Pattern, line: str, max_line_length: int = DEFAULT_MAX_LINE_LENGTH):
    if len(line) > max_line_length:
        return None
    return pattern.match(line)


_NESTED_QUANTIFIER_RE = re.compile(r"\([^()]*[+*][^()]*\)[+*{]")
_DOUBLE_GREEDY_RE = re.compile(r"\.\*[^|)]*\.\*")
_NEGATED_COLON_RE = re.compile(r"\[\^:\][+*]\s*:")


def has_potential_backtracking(pattern: str) -> bool:
    """Heuristic review helper for user-supplied patterns."""
    if _NESTED_QUANTIFIER_RE.search(pattern):
        return True
    if _DOUBLE_GREEDY_RE.search(pattern):
        return True
    return bool(_NEGATED_COLON_RE.search(pattern))
