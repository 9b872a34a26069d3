# parsers/commands.py
"""Command-string patterns used to guess an output format from the command that produced it."""

import logging
import re
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

LITERAL = "literal"
LIKE = "like"
REGEXP = "regexp"


class PatternCache:
    """Compiles each distinct (kind, pattern) pair at most once."""

    def __init__(self):
        self._lock = threading.Lock()
        self._compiled: dict[tuple[str, str], re.Pattern | None] = {}

    def get(self, kind: str, pattern: str) -> re.Pattern | None:
        key = (kind, pattern)
        with self._lock:
            if key in self._compiled:
                return self._compiled[key]
            source = like_to_regex(pattern) if kind == LIKE else pattern
            try:
                compiled = re.compile(source)
            except re.error as e:
                logger.debug("Bad %s command pattern %r: %s", kind, pattern, e)
                compiled = None
            # failures are cached too so they are not retried on every call
            self._compiled[key] = compiled
            return compiled

    def __len__(self) -> int:
        with self._lock:
            return len(self._compiled)

    def clear(self) -> None:
        with self._lock:
            self._compiled.clear()


PATTERN_CACHE = PatternCache()


def like_to_regex(pattern: str) -> str:
    """SQL LIKE to an anchored regex: % is any run, _ is any one character."""
    out = []
    for ch in pattern:
        if ch == "%":
            out.append(".*")
        elif ch == "_":
            out.append(".")
        else:
            out.append(re.escape(ch))
    return "".join(out)


def normalize_command(command: str) -> str:
    """
    Strip the directory from the executable only.

        /usr/bin/eslint .                     -> eslint .
        ./node_modules/.bin/prettier --check  -> prettier --check
    """
    command = command.strip()
    if not command:
        return ""
    exe, sep, rest = command.partition(" ")
    exe = exe.rsplit("/", 1)[-1]
    return exe + sep + rest


@dataclass(frozen=True)
class CommandPattern:
    pattern: str
    pattern_type: str = LITERAL

    @classmethod
    def literal(cls, pattern: str) -> "CommandPattern":
        return cls(pattern, LITERAL)

    @classmethod
    def like(cls, pattern: str) -> "CommandPattern":
        return cls(pattern, LIKE)

    @classmethod
    def regexp(cls, pattern: str) -> "CommandPattern":
        return cls(pattern, REGEXP)

    def matches(self, normalized_command: str) -> bool:
        if self.pattern_type == LITERAL:
            # the whole command, or its leading words: "pytest" matches "pytest tests/"
            return normalized_command == self.pattern or normalized_command.startswith(self.pattern + " ")
        compiled = PATTERN_CACHE.get(self.pattern_type, self.pattern)
        if compiled is None:
            return False
        if self.pattern_type == LIKE:
            return compiled.fullmatch(normalized_command) is not None
        return compiled.search(normalized_command) is not None

    def to_dict(self) -> dict[str, str]:
        return {"pattern": self.pattern, "type": self.pattern_type}


def matches_any(patterns, command: str) -> bool:
    """True when any pattern matches the already-normalized `command`."""
    return any(p.matches(command) for p in patterns)
