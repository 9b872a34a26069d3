"""
Parse a log file from the command line and print events as JSON.

    python -m scripts.parse_log build.log
    python -m scripts.parse_log build.log --format gcc_text
    python -m scripts.parse_log ci.log --format "pytest_text,generic_error"
    python -m scripts.parse_log out.txt --config rules.json --format mytool
    python -m scripts.parse_log build.log --detect
    python -m scripts.parse_log build.log --diagnose
    python -m scripts.parse_log --list-formats
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from ingestor import settings
from ingestor.dispatch import (
    detect_format,
    diagnose,
    is_valid_format,
    list_formats,
    load_parser_config,
    parse_file,
)
from ingestor.registry import build_registry
from parsers.base import ParseContext
from parsers.config_based import ParserConfigError

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="parse_log", description="Normalize build/test/log output into events")
    ap.add_argument("file", nargs="?", type=Path, help="log file to parse")
    ap.add_argument("-f", "--format", default="auto", help="format, alias, group, comma list or config reference")
    ap.add_argument("-c", "--config", action="append", default=[], type=Path, help="parser config JSON to load first")
    ap.add_argument("--detect", action="store_true", help="print the detected format only")
    ap.add_argument("--diagnose", action="store_true", help="report what every parser makes of the file")
    ap.add_argument("--list-formats", action="store_true", help="print the format catalog")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.LOG_LEVEL,
        format=settings.LOG_FORMAT,
    )

    registry = build_registry()
    for cfg in args.config:
        try:
            name = load_parser_config(registry, cfg.read_text(encoding="utf-8"))
        except (OSError, ParserConfigError) as e:
            logger.error("Could not load %s: %s", cfg, e)
            return 2
        logger.info("Loaded parser %s from %s", name, cfg)

    if args.list_formats:
        print(json.dumps(list_formats(registry), indent=2))
        return 0
    if args.file is None:
        logger.error("No input file given")
        return 2
    if not args.file.is_file():
        logger.error("File not found: %s", args.file)
        return 1

    if args.detect or args.diagnose:
        content = args.file.read_text(encoding="utf-8", errors="replace")
        if args.detect:
            print(detect_format(registry, content) or "unknown")
        else:
            print(json.dumps(diagnose(registry, content), indent=2))
        return 0

    if not is_valid_format(registry, args.format):
        logger.error("Unknown format: %s", args.format)
        return 2
    try:
        context = ParseContext(registry=registry, max_line_length=settings.MAX_LINE_LENGTH)
        events = parse_file(context, args.file, args.format)
    except ParserConfigError as e:
        logger.error("%s", e)
        return 2
    json.dump([e.to_dict() for e in events], sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    logger.info("Parsed %d events from %s", len(events), args.file.name)
    return 0


if __name__ == "__main__":
    sys.exit(main())
