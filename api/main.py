# api/main.py
import json
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from ingestor import settings
from ingestor.config_loader import is_config_reference, iter_config_files
from ingestor.dispatch import (
    REGEXP_PREFIX,
    detect_format,
    diagnose,
    is_valid_format,
    list_formats,
    load_parser_config,
    parse_content,
    unload_parser,
)
from ingestor.registry import default_registry
from parsers.base import ParseContext
from parsers.config_based import ParserConfigError

# ----- logging -----
import logging
logger = logging.getLogger("uvicorn.error")


def load_config_dir(registry) -> int:
    loaded = 0
    for path in iter_config_files(settings.PARSER_CONFIG_DIR):
        try:
            load_parser_config(registry, path.read_text(encoding="utf-8"))
            loaded += 1
        except (OSError, ParserConfigError) as e:
            logger.warning(f"[Hugin] skipping parser config {path.name}: {e}")
    return loaded


# ----- lifespan (startup/shutdown) -----
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    registry = default_registry()
    loaded = load_config_dir(registry)
    logger.info(f"[Hugin] registry ready: {len(registry)} parsers ({loaded} from config)")
    yield


app = FastAPI(
    title="Hugin-Core API",
    version="0.1.0",
    lifespan=lifespan,
)


# ----- Schemas -----
class ContentIn(BaseModel):
    content: str


class ParseRequest(BaseModel):
    content: str
    format: str = Field("auto", min_length=1)


class EventOut(BaseModel):
    event_id: int
    tool_name: str
    category: str
    event_type: str
    status: Optional[str] = None
    severity: Optional[str] = None
    ref_file: str = ""
    ref_line: int = -1
    ref_column: int = -1
    message: str = ""
    error_code: str = ""
    function_name: str = ""
    test_name: str = ""
    suggestion: str = ""
    scope: str = ""
    group: str = ""
    unit: str = ""
    origin: str = ""
    principal: str = ""
    started_at: str = ""
    log_content: str = ""
    log_line_start: int = -1
    log_line_end: int = -1
    structured_data: str = ""
    execution_time: float = 0.0


class ParseResponse(BaseModel):
    format: str
    count: int
    events: List[EventOut]


class ParserConfigIn(BaseModel):
    config: Dict[str, Any]


def config_references(registry, format_name: str) -> List[str]:
    # Requests may not make the server read files or fetch URLs
    if format_name.strip().startswith(REGEXP_PREFIX):
        return []
    parts = [p.strip() for p in format_name.split(",")]
    return [p for p in parts if is_config_reference(p) and not registry.has_format(p)]


# ----- Routes -----
@app.get("/health")
def health():
    registry = default_registry()
    return {"status": "ok", "parsers": len(registry)}


@app.get("/formats")
def formats(category: Optional[str] = None):
    rows = list_formats(default_registry())
    if category:
        rows = [r for r in rows if r["category"] == category]
    return {"formats": rows}


@app.post("/detect")
def detect(item: ContentIn):
    return {"format": detect_format(default_registry(), item.content) or None}


@app.post("/parse", response_model=ParseResponse)
def parse(req: ParseRequest):
    registry = default_registry()
    if not is_valid_format(registry, req.format):
        raise HTTPException(status_code=400, detail=f"Unknown format: '{req.format}'")
    if config_references(registry, req.format):
        raise HTTPException(
            status_code=400,
            detail="Parser config references are not accepted here; register the config with POST /parsers",
        )
    try:
        context = ParseContext(registry=registry, max_line_length=settings.MAX_LINE_LENGTH)
        events = parse_content(context, req.content, req.format)
    except ParserConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ParseResponse(
        format=req.format,
        count=len(events),
        events=[EventOut(**e.to_dict()) for e in events],
    )


@app.post("/diagnose")
def run_diagnose(item: ContentIn):
    return {"results": diagnose(default_registry(), item.content)}


@app.post("/parsers", status_code=201)
def load_parser(payload: ParserConfigIn):
    try:
        name = load_parser_config(default_registry(), json.dumps(payload.config))
    except ParserConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"[Hugin] loaded parser config {name}")
    return {"ok": True, "format": name}


@app.delete("/parsers/{name}")
def delete_parser(name: str):
    registry = default_registry()
    if not registry.has_format(name):
        raise HTTPException(status_code=404, detail=f"No such parser: {name}")
    if not unload_parser(registry, name):
        raise HTTPException(status_code=400, detail=f"Cannot unload built-in parser: {name}")
    return {"ok": True, "format": name}
