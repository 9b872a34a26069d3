"""
Parser registry for Hugin-Core.

The registry owns every parser instance, an index from format name and
alias to instance, and a priority-sorted view used for auto-detection.
The sorted view is rebuilt lazily the first time it is needed after a
registration, and the sort is stable so equal priorities keep their
registration order.

Typical use:

    from ingestor.registry import build_registry

    registry = build_registry()
    parser = registry.find_parser(content)       # auto-detect
    parser = registry.get_parser("gcc")          # by name or alias
    parser = registry.find_parser_by_command("pytest tests/")

To add a built-in format, create a module in parsers/, decorate the class
with @builtin and import the module in parsers/__init__.py.
"""

import logging
import threading

from parsers import BUILTIN_PARSERS
from parsers.base import Parser, ParserInfo
from parsers.commands import matches_any, normalize_command
from parsers.content import maybe_extract_content

logger = logging.getLogger(__name__)


class ParserRegistry:
    def __init__(self):
        self._lock = threading.RLock()
        self._parsers: list[Parser] = []
        self._index: dict[str, Parser] = {}
        self._sorted: list[Parser] = []
        self._dirty = False

    # --- mutation ---
    def register_parser(self, parser: Parser | None) -> None:
        if parser is None or not parser.format_name:
            logger.debug("Ignoring empty parser registration: %r", parser)
            return
        with self._lock:
            self._index_parser(parser)
            self._parsers.append(parser)
            self._dirty = True

    def _index_parser(self, parser: Parser) -> None:
        for key in (parser.format_name, *parser.aliases):
            existing = self._index.get(key)
            if existing is not None and existing is not parser:
                logger.debug(
                    "Key %r now points at %s (was %s)", key, parser.format_name, existing.format_name
                )
            self._index[key] = parser

    def unregister_parser(self, format_name: str) -> bool:
        """Remove a parser by its primary name. Aliases go with it."""
        with self._lock:
            parser = self._index.get(format_name)
            if parser is None or parser.format_name != format_name:
                return False
            self._parsers = [p for p in self._parsers if p is not parser]
            # rebuild so keys the removed parser shadowed point back at their owners
            self._index = {}
            for p in self._parsers:
                self._index_parser(p)
            self._dirty = True
            return True

    def clear(self) -> None:
        with self._lock:
            self._parsers = []
            self._index = {}
            self._sorted = []
            self._dirty = False

    # --- lookup ---
    def get_parser(self, name: str) -> Parser | None:
        with self._lock:
            return self._index.get(name)

    def has_format(self, name: str) -> bool:
        with self._lock:
            return name in self._index

    def is_builtin(self, name: str) -> bool:
        parser = self.get_parser(name)
        return parser is not None and parser.is_builtin

    def is_group(self, name: str) -> bool:
        with self._lock:
            return any(name in p.groups for p in self._parsers)

    def sorted_parsers(self) -> list[Parser]:
        """Snapshot of all parsers, highest priority first."""
        with self._lock:
            if self._dirty:
                # sorted() is stable: equal priorities keep registration order
                self._sorted = sorted(self._parsers, key=lambda p: p.priority, reverse=True)
                self._dirty = False
            return list(self._sorted)

    def __len__(self) -> int:
        with self._lock:
            return len(self._parsers)

    def __contains__(self, name: str) -> bool:
        return self.has_format(name)

    def find_parser(self, content: str) -> Parser | None:
        """
        Auto-detect: the first parser, in priority order, whose can_parse
        accepts the content. Each parser sees the content narrowed to its
        content family. A parser that raises is skipped.
        """
        extracted: dict = {}
        for parser in self.sorted_parsers():
            family = parser.content_family
            if family not in extracted:
                extracted[family] = maybe_extract_content(content, family)
            try:
                if parser.can_parse(extracted[family]):
                    return parser
            except Exception as e:
                logger.debug("can_parse failed for %s: %s", parser.format_name, e)
        return None

    def find_parser_by_command(self, command: str) -> Parser | None:
        normalized = normalize_command(command)
        if not normalized:
            return None
        best: Parser | None = None
        for parser in self.sorted_parsers():
            if best is not None and parser.priority <= best.priority:
                # sorted view: nothing further down can beat the current best
                break
            if parser.command_patterns and matches_any(parser.command_patterns, normalized):
                best = parser
        return best

    def get_parsers_by_category(self, category: str) -> list[Parser]:
        return [p for p in self.sorted_parsers() if p.category == category]

    def get_parsers_by_group(self, group: str) -> list[Parser]:
        return [p for p in self.sorted_parsers() if group in p.groups]

    def get_all_formats(self) -> list[ParserInfo]:
        with self._lock:
            infos = [p.info() for p in self._parsers]
        return sorted(infos, key=lambda i: (i.category, i.format_name))

    def get_categories(self) -> list[str]:
        with self._lock:
            return sorted({p.category for p in self._parsers})


def build_registry() -> ParserRegistry:
    """A new registry holding one instance of every built-in parser."""
    registry = ParserRegistry()
    for cls in BUILTIN_PARSERS:
        registry.register_parser(cls())
    logger.info("Registered %d built-in parsers", len(registry))
    return registry


_default: ParserRegistry | None = None
_default_lock = threading.Lock()


def default_registry() -> ParserRegistry:
    """Process-wide registry, built on first use."""
    global _default
    with _default_lock:
        if _default is None:
            _default = build_registry()
        return _default
