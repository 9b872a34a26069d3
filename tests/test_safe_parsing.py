import io

from parsers.safe_parsing import (
    SafeLineReader,
    detect_line_ending,
    has_potential_backtracking,
    normalize_line_endings,
    parse_compiler_diagnostic,
    parse_file_line_column,
    safe_float,
    safe_int,
    to_iso_timestamp,
    try_float,
    try_int,
    try_long,
)


def test_normalize_mixed_line_endings():
    assert normalize_line_endings("a\r\nb\rc\nd") == "a\nb\nc\nd"


def test_normalize_is_idempotent():
    for s in ["", "plain", "a\r\nb", "a\r\r\nb\n\r", "\r\r\r", "x\n\ny"]:
        once = normalize_line_endings(s)
        assert normalize_line_endings(once) == once
        assert "\r" not in once


def test_detect_line_ending():
    assert detect_line_ending("a\r\nb") == "\r\n"
    assert detect_line_ending("a\nb\r\n") == "\n"
    assert detect_line_ending("a\rb") == "\r"
    assert detect_line_ending("no terminator") == ""


def test_reader_truncates_long_line():
    reader = SafeLineReader("x" * 10_000, max_line_length=2000)
    line = next(reader)
    assert len(line) == 2000
    assert line.endswith("...")
    assert reader.was_truncated
    assert reader.line_number == 1
    assert list(reader) == []


def test_reader_handles_every_line_ending():
    reader = SafeLineReader("a\r\nb\rc\nd")
    assert list(reader) == ["a", "b", "c", "d"]
    assert reader.line_number == 4
    assert not reader.was_truncated


def test_reader_accepts_stream_and_is_single_pass():
    reader = SafeLineReader(io.StringIO("one\ntwo\n", newline=""))
    assert reader.read_all() == ["one", "two"]
    assert reader.read_all() == []


def test_file_line_column():
    loc = parse_file_line_column("src/main.c:10:5: error: boom")
    assert (loc.file_path, loc.line, loc.column) == ("src/main.c", 10, 5)

    loc = parse_file_line_column("lib/a.rb:7: warning: shadow")
    assert (loc.file_path, loc.line, loc.column) == ("lib/a.rb", 7, -1)


def test_file_line_column_windows_drive():
    loc = parse_file_line_column("C:\\src\\a.c:12:3: warning: x")
    assert loc.file_path == "C:\\src\\a.c"
    assert loc.line == 12
    assert loc.column == 3


def test_file_line_column_rejects_malformed():
    assert parse_file_line_column("") is None
    assert parse_file_line_column("no location here") is None
    assert parse_file_line_column("foo.c:12 no terminator") is None
    assert parse_file_line_column("foo.c:99999999999: overflow") is None
    assert parse_file_line_column("x" * 600 + ":1:2: error: far") is None


def test_compiler_diagnostic():
    diag = parse_compiler_diagnostic("src/main.c:10:5: error: expected ';' before '}' token")
    assert diag.severity == "error"
    assert diag.message == "expected ';' before '}' token"
    assert parse_compiler_diagnostic("src/main.c:10:5: just text") is None


def test_numeric_helpers():
    assert try_int("42") == 42
    assert try_int("  7 apples") == 7
    assert try_int("-3") == -3
    assert try_int("abc") is None
    assert try_int("99999999999") is None
    assert try_long("99999999999") == 99999999999
    assert try_float("3.5s") == 3.5
    assert try_float("nope") is None
    assert safe_int("x", -1) == -1
    assert safe_float("", 1.5) == 1.5


def test_backtracking_heuristic():
    assert has_potential_backtracking("(a+)+$")
    assert has_potential_backtracking("^[^:]+:(.*)$")
    assert not has_potential_backtracking(r"^(?P<file>\S+):(?P<line>\d+)$")


def test_iso_timestamp():
    assert to_iso_timestamp("2024-01-15T10:30:45Z") == "2024-01-15T10:30:45+00:00"
    assert to_iso_timestamp("not a date") == ""
    assert to_iso_timestamp(None) == ""
