"""Resolve `config:` / `*.json` / http(s) parser config references."""

import logging
from pathlib import Path

import requests

from parsers.config_based import ConfigBasedParser, ParserConfigError

from . import settings

logger = logging.getLogger(__name__)

CONFIG_PREFIX = "config:"


def is_config_reference(spec: str) -> bool:
    """`config:<path-or-url>`, a bare `*.json` path, or an http(s) URL ending in .json."""
    s = spec.strip()
    return s.startswith(CONFIG_PREFIX) or s.lower().endswith(".json")


def _location(spec: str) -> str:
    s = spec.strip()
    if s.startswith(CONFIG_PREFIX):
        s = s[len(CONFIG_PREFIX) :].strip()
    return s


def read_config_text(spec: str, base_dir: Path | None = None) -> str:
    location = _location(spec)
    if not location:
        raise ParserConfigError(f"Empty parser config reference: {spec!r}")
    if location.lower().startswith(("http://", "https://")):
        try:
            resp = requests.get(location, timeout=settings.CONFIG_FETCH_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise ParserConfigError(f"Could not fetch parser config {location}: {e}") from e
        return resp.text

    path = Path(location).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ParserConfigError(f"Could not read parser config {path}: {e}") from e


def load_config_parser(spec: str, base_dir: Path | None = None) -> ConfigBasedParser:
    parser = ConfigBasedParser.from_json(read_config_text(spec, base_dir))
    logger.debug("Loaded config parser %s from %s", parser.format_name, _location(spec))
    return parser


def iter_config_files(directory: Path):
    """Config files in `directory`, sorted by name for a stable load order."""
    if directory is None or not directory.is_dir():
        return []
    return sorted(directory.glob("*.json"))
