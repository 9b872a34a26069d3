"""
Entry points that turn (content, format) into events.

A format specifier can be:
  - a format name or alias            "gcc_text", "gcc"
  - a group tag                       "python": the first parser of the group,
                                      in priority order, that accepts the
                                      content and yields events
  - a comma list of the above         "mypy_text,generic_lint"
  - "auto"                            detect with the registry
  - "regexp:<pattern>"                one-off named-group pattern
  - a parser config reference         "config:rules.json", "rules.json",
                                      "https://host/rules.json"
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

from parsers.base import ContentFamily, ParseContext, Parser, ValidationEvent
from parsers.config_based import ConfigBasedParser, ParserConfigError
from parsers.content import maybe_extract_content
from parsers.regexp import parse_with_regexp
from parsers.safe_parsing import SafeLineReader, detect_line_ending

from . import settings
from .config_loader import is_config_reference, load_config_parser
from .registry import ParserRegistry, default_registry

logger = logging.getLogger(__name__)

AUTO = "auto"
UNKNOWN = "unknown"
REGEXP_PREFIX = "regexp:"


def _or_default(registry: ParserRegistry | None) -> ParserRegistry:
    # an empty registry is falsy, so test for None explicitly
    return default_registry() if registry is None else registry


def _context(context: ParseContext | None) -> ParseContext:
    if context is None:
        return ParseContext(registry=default_registry(), max_line_length=settings.MAX_LINE_LENGTH)
    if context.registry is None:
        context.registry = default_registry()
    return context


def run_parser(context: ParseContext, parser: Parser, content: str) -> list[ValidationEvent]:
    content = maybe_extract_content(content, parser.content_family)
    if parser.requires_context:
        return parser.parse_with_context(context, content)
    if parser.supports_streaming and parser.content_family == ContentFamily.TEXT:
        return parser.parse_lines(SafeLineReader(content, context.max_line_length))
    return parser.parse(content)


def _parse_group(context: ParseContext, content: str, group: str) -> list[ValidationEvent]:
    for parser in context.registry.get_parsers_by_group(group):
        try:
            if not parser.can_parse(maybe_extract_content(content, parser.content_family)):
                continue
            events = run_parser(context, parser, content)
        except Exception as e:
            logger.debug("Group %s: parser %s failed: %s", group, parser.format_name, e)
            continue
        if events:
            return events
    return []


def _parse_single(context: ParseContext, content: str, spec: str) -> list[ValidationEvent]:
    spec = spec.strip()
    if not spec or spec == UNKNOWN:
        return []
    if spec == AUTO:
        return parse_content_auto(context, content)
    if spec.startswith(REGEXP_PREFIX):
        return parse_with_regexp(content, spec[len(REGEXP_PREFIX) :])

    registry = context.registry
    if registry.is_group(spec):
        return _parse_group(context, content, spec)
    parser = registry.get_parser(spec)
    if parser is not None:
        return run_parser(context, parser, content)
    if is_config_reference(spec):
        return run_parser(context, load_config_parser(spec, context.base_dir), content)
    logger.debug("No parser for format %r", spec)
    return []


def parse_content(
    context: ParseContext | None, content: str, format_name: str
) -> list[ValidationEvent]:
    """Parse `content` as `format_name`. Unknown formats yield no events."""
    context = _context(context)
    if "," not in format_name or format_name.strip().startswith(REGEXP_PREFIX):
        return _parse_single(context, content, format_name)
    for part in format_name.split(","):
        events = _parse_single(context, content, part)
        if events:
            return events
    return []


def parse_content_auto(context: ParseContext | None, content: str) -> list[ValidationEvent]:
    context = _context(context)
    # run the parser detection chose; a later alias may shadow its name
    parser = context.registry.find_parser(content)
    if parser is None:
        return []
    return run_parser(context, parser, content)


def detect_format(registry: ParserRegistry | None, content: str) -> str:
    """Name of the format auto-detection would pick, or ''."""
    parser = _or_default(registry).find_parser(content)
    return parser.format_name if parser else ""


def parse_content_regexp(
    content: str, pattern: str, include_unparsed: bool = False
) -> list[ValidationEvent]:
    return parse_with_regexp(content, pattern, include_unparsed)


def is_valid_format(registry: ParserRegistry | None, format_name: str) -> bool:
    registry = _or_default(registry)
    if "," in format_name and not format_name.strip().startswith(REGEXP_PREFIX):
        return any(is_valid_format(registry, part) for part in format_name.split(","))
    spec = format_name.strip()
    if not spec or spec == UNKNOWN:
        return False
    if spec == AUTO:
        return True
    if spec.startswith(REGEXP_PREFIX):
        return len(spec) > len(REGEXP_PREFIX)
    return registry.has_format(spec) or registry.is_group(spec) or is_config_reference(spec)


def _file_parser(registry: ParserRegistry, format_name: str) -> Parser | None:
    """The one parser that can stream this file, if the format names exactly one."""
    spec = format_name.strip()
    if "," in spec or spec in ("", AUTO, UNKNOWN) or registry.is_group(spec):
        return None
    parser = registry.get_parser(spec)
    if parser is None or parser.requires_context or not parser.supports_file_parsing:
        return None
    if parser.content_family != ContentFamily.TEXT:
        return None
    return parser


def parse_file(
    context: ParseContext | None, file_path: str | Path, format_name: str = AUTO
) -> list[ValidationEvent]:
    """
    Parse a file. A single streaming-capable text parser reads it line by
    line; everything else reads the whole file and goes through
    parse_content.
    """
    context = _context(context)
    path = Path(file_path)
    if not path.is_file():
        logger.warning("File not found: %s", path)
        return []
    parser = _file_parser(context.registry, format_name)
    if parser is not None:
        logger.debug("Streaming %s through %s", path.name, parser.format_name)
        return parser.parse_file(path, context.max_line_length)
    with path.open("r", encoding="utf-8", errors="replace", newline="") as f:
        content = f.read()
    logger.debug("Read %s (%d chars, line ending %r)", path.name, len(content), detect_line_ending(content))
    if context.base_dir is None:
        context = replace(context, base_dir=path.parent)
    return parse_content(context, content, format_name)


# --- config parsers ---
def load_parser_config(registry: ParserRegistry | None, json_config: str) -> str:
    """
    Compile a parser config and register it, replacing an earlier config
    parser of the same name. Returns the format name.
    """
    registry = _or_default(registry)
    parser = ConfigBasedParser.from_json(json_config)
    for key in (parser.format_name, *parser.aliases):
        if registry.is_builtin(key):
            if key == parser.format_name:
                raise ParserConfigError(f"Cannot replace built-in parser: {key}")
            raise ParserConfigError(f"Alias '{key}' would shadow built-in parser")
    if registry.has_format(parser.format_name):
        registry.unregister_parser(parser.format_name)
        logger.info("Replacing config parser %s", parser.format_name)
    registry.register_parser(parser)
    logger.info("Loaded config parser %s (priority %d)", parser.format_name, parser.priority)
    return parser.format_name


def unload_parser(registry: ParserRegistry | None, format_name: str) -> bool:
    registry = _or_default(registry)
    parser = registry.get_parser(format_name)
    if parser is None:
        return False
    if parser.is_builtin:
        logger.warning("Refusing to unload built-in parser %s", format_name)
        return False
    return registry.unregister_parser(parser.format_name)


# --- introspection ---
def diagnose(registry: ParserRegistry | None, content: str) -> list[dict[str, Any]]:
    """Run every parser over `content` and report what each one makes of it."""
    registry = _or_default(registry)
    selected = registry.find_parser(content)
    context = ParseContext(registry=registry)
    rows = []
    for parser in registry.sorted_parsers():
        can_parse = False
        events_produced = 0
        try:
            if parser.can_parse(maybe_extract_content(content, parser.content_family)):
                can_parse = True
                events_produced = len(run_parser(context, parser, content))
        except Exception as e:
            logger.debug("diagnose: %s failed: %s", parser.format_name, e)
            can_parse = False
            events_produced = 0
        rows.append(
            {
                "format": parser.format_name,
                "priority": parser.priority,
                "can_parse": can_parse,
                "events_produced": events_produced,
                "is_selected": parser is selected,
            }
        )
    return rows


def supports_workflow(category: str) -> bool:
    return category in ("ci_system", "workflow") or "ci" in category.split("_")


def list_formats(registry: ParserRegistry | None = None) -> list[dict[str, Any]]:
    registry = _or_default(registry)
    rows: list[dict[str, Any]] = [
        {
            "format": AUTO,
            "name": "Auto-detect",
            "description": "Detect the format from the content",
            "category": "meta",
            "priority": 0,
            "required_extension": "",
            "supports_workflow": False,
            "aliases": [],
            "groups": [],
            "command_patterns": [],
            "is_builtin": True,
        }
    ]
    for info in registry.get_all_formats():
        rows.append(
            {
                "format": info.format_name,
                "name": info.name,
                "description": info.description,
                "category": info.category,
                "priority": info.priority,
                "required_extension": info.required_extension,
                "supports_workflow": supports_workflow(info.category),
                "aliases": list(info.aliases),
                "groups": list(info.groups),
                "command_patterns": [p.to_dict() for p in info.command_patterns],
                "is_builtin": info.is_builtin,
            }
        )
    return rows
