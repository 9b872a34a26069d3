# parsers/junit_xml.py
import logging
import xml.etree.ElementTree as ET

from .base import (
    ContentFamily,
    EventStatus,
    EventType,
    Parser,
    ParserCategory,
    ParserPriority,
    ValidationEvent,
    builtin,
)
from .safe_parsing import safe_float, try_int

logger = logging.getLogger(__name__)


@builtin
class JUnitXMLParser(Parser):
    format_name = "junit_xml"
    name = "JUnit XML"
    category = ParserCategory.TEST_FRAMEWORK
    description = "JUnit / xUnit XML test reports (pytest --junitxml, surefire, ...)"
    priority = ParserPriority.VERY_HIGH
    aliases = ("junit", "xunit")
    groups = ("test",)
    required_extension = ".xml"
    content_family = ContentFamily.XML
    tool_name = "junit"

    def can_parse(self, content: str) -> bool:
        head = content[:4096]
        return "<testsuite" in head or ("<testsuites" in head and "<testcase" in content)

    def parse(self, content: str) -> list[ValidationEvent]:
        try:
            root = ET.fromstring(content.strip())
        except ET.ParseError as e:
            logger.debug("JUnit XML did not parse: %s", e)
            return []
        events: list[ValidationEvent] = []
        for case in root.iter("testcase"):
            classname = case.get("classname", "")
            name = case.get("name", "")
            status, severity, message, detail = EventStatus.PASS, "info", "Test passed", ""
            for tag, st, sev in (
                ("failure", EventStatus.FAIL, "error"),
                ("error", EventStatus.ERROR, "error"),
                ("skipped", EventStatus.SKIP, "info"),
            ):
                node = case.find(tag)
                if node is not None:
                    status, severity = st, sev
                    message = node.get("message") or f"Test {tag}"
                    detail = (node.text or "").strip()
                    break
            line = try_int(case.get("line"))
            events.append(
                self.create_event(
                    event_id=len(events) + 1,
                    category="unit_test",
                    event_type=EventType.TEST_RESULT,
                    status=status,
                    severity=severity,
                    ref_file=case.get("file", ""),
                    ref_line=line if line is not None else -1,
                    test_name=f"{classname}.{name}" if classname else name,
                    message=message,
                    group=classname,
                    execution_time=safe_float(case.get("time")),
                    log_content=detail,
                )
            )
        return events
