# parsers/content.py
"""Narrow mixed logs down to an embedded JSON or XML payload."""

from .base import ContentFamily
from .safe_parsing import normalize_line_endings

_JSON_FOLLOWERS = set('"{[]}') | set("0123456789") | set(" \t\r\n")


def extract_json_section(content: str) -> str:
    stripped = content.lstrip()
    if stripped[:1] in ("[", "{"):
        return content
    pos = 0
    n = len(content)
    while pos < n:
        if content[pos] in "[{":
            nxt = content[pos + 1 : pos + 2]
            if not nxt or nxt in _JSON_FOLLOWERS:
                return content[pos:]
        nl = content.find("\n", pos)
        if nl == -1:
            break
        pos = nl + 1
    return content


def extract_xml_section(content: str) -> str:
    decl = content.find("<?xml")
    if decl != -1:
        return content[decl:]
    pos = 0
    n = len(content)
    while pos < n:
        lt = content.find("<", pos)
        if lt == -1 or lt + 1 >= n:
            break
        line_start = lt == 0 or content[lt - 1] == "\n"
        if line_start and content[lt + 1].isascii() and content[lt + 1].isalpha():
            return content[lt:]
        pos = lt + 1
    return content


def maybe_extract_content(content: str, family: ContentFamily) -> str:
    if family == ContentFamily.JSON:
        return extract_json_section(normalize_line_endings(content))
    if family == ContentFamily.XML:
        return extract_xml_section(normalize_line_endings(content))
    return content
