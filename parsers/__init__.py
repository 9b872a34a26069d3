# Import parser modules for their side effects (they register themselves).
# The order here is the registration order, which breaks priority ties.
# Mark as intentionally unused to satisfy Ruff.
from . import github_actions as _github_actions  # noqa: F401
from . import junit_xml as _junit_xml  # noqa: F401
from . import eslint_json as _eslint_json  # noqa: F401
from . import gcc as _gcc  # noqa: F401
from . import flake8 as _flake8  # noqa: F401
from . import pytest_text as _pytest_text  # noqa: F401
from . import jsonl as _jsonl  # noqa: F401
from . import logfmt as _logfmt  # noqa: F401
from . import syslog as _syslog  # noqa: F401
from . import python_logging as _python_logging  # noqa: F401
from . import plaintext as _plaintext  # noqa: F401

# Explicit re-exports for library users.
from .base import (
    BUILTIN_PARSERS as BUILTIN_PARSERS,
)
from .base import (
    ContentFamily as ContentFamily,
)
from .base import (
    EventStatus as EventStatus,
)
from .base import (
    EventType as EventType,
)
from .base import (
    ParseContext as ParseContext,
)
from .base import (
    Parser as Parser,
)
from .base import (
    ParserInfo as ParserInfo,
)
from .base import (
    ValidationEvent as ValidationEvent,
)
from .commands import (
    CommandPattern as CommandPattern,
)
from .config_based import (
    ConfigBasedParser as ConfigBasedParser,
)
from .config_based import (
    ParserConfigError as ParserConfigError,
)

__all__ = [
    "BUILTIN_PARSERS",
    "CommandPattern",
    "ConfigBasedParser",
    "ContentFamily",
    "EventStatus",
    "EventType",
    "ParseContext",
    "Parser",
    "ParserConfigError",
    "ParserInfo",
    "ValidationEvent",
]
