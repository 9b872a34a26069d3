from parsers.base import EventStatus, EventType
from parsers.regexp import RegexpParser, parse_with_regexp

PATTERN = r"(?P<severity>ERROR|WARN): (?P<message>.+)"
CONTENT = "ERROR: a\nnoise\nWARN: b"


def test_named_groups_become_events():
    events = parse_with_regexp(CONTENT, PATTERN)
    assert [e.message for e in events] == ["a", "b"]
    assert [e.status for e in events] == [EventStatus.ERROR, EventStatus.WARNING]
    assert [e.ref_line for e in events] == [1, 3]
    assert all(e.event_type == EventType.LINT_ISSUE for e in events)
    assert all(e.category == "regexp_match" for e in events)


def test_include_unparsed_keeps_other_lines():
    events = parse_with_regexp(CONTENT, PATTERN, include_unparsed=True)
    assert len(events) == 3
    middle = events[1]
    assert middle.event_type == EventType.UNKNOWN
    assert middle.status is None
    assert middle.severity is None
    assert middle.message == "noise"
    assert [e.event_id for e in events] == [1, 2, 3]


def test_unrecognized_severity_is_kept_as_warning():
    ev = parse_with_regexp("PANIC: x", r"(?P<level>\w+): (?P<msg>.+)")[0]
    assert ev.status == EventStatus.WARNING
    assert ev.severity == "panic"
    assert ev.message == "x"


def test_invalid_pattern_reports_single_error():
    events = parse_with_regexp("anything", "(")
    assert len(events) == 1
    assert events[0].category == "parse_error"
    assert events[0].status == EventStatus.ERROR


def test_no_match_reports_summary():
    events = parse_with_regexp("nothing here", r"(?P<message>ZZZ)")
    assert len(events) == 1
    assert events[0].message == "No matches found for the provided pattern"
    assert events[0].category == "regexp_summary"


def test_regexp_parser_wrapper():
    parser = RegexpParser(PATTERN)
    assert parser.can_parse(CONTENT)
    assert not parser.can_parse("quiet")
    assert not RegexpParser("(").can_parse(CONTENT)
    assert len(parser.parse(CONTENT)) == 2
