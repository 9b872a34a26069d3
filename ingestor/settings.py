import os
from pathlib import Path

# Lines longer than this are cut before any parser sees them
MAX_LINE_LENGTH = int(os.getenv("HUGIN_MAX_LINE_LENGTH", "2000"))

# Seconds to wait when a parser config is fetched over http(s)
CONFIG_FETCH_TIMEOUT = float(os.getenv("HUGIN_CONFIG_FETCH_TIMEOUT", "10"))

# *.json parser configs loaded by the API at startup (unset = none)
_config_dir = os.getenv("HUGIN_PARSER_CONFIG_DIR", "")
PARSER_CONFIG_DIR = Path(_config_dir) if _config_dir else None

LOG_LEVEL = os.getenv("HUGIN_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
