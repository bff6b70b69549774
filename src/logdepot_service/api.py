from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__, storage
from .config import load_service_config
from .errors import StorageError, ValidationError
from .ingestion import IngestionValidator
from .service import LogService
from .status import get_status

logger = logging.getLogger(__name__)

app = FastAPI(title="logdepot", version=__version__)

# CORS configuration for browser clients
# Allow all origins by default, configurable via LOGDEPOT_CORS_ORIGINS env var
CORS_ORIGINS = os.environ.get("LOGDEPOT_CORS_ORIGINS", "*")
if CORS_ORIGINS == "*":
  origins = ["*"]
else:
  origins = [o.strip() for o in CORS_ORIGINS.split(",")]

app.add_middleware(
  CORSMiddleware,
  allow_origins=origins,
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
  return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  if any(err.get("type") == "json_invalid" for err in exc.errors()):
    message = "Invalid JSON body"
  else:
    message = "Invalid request"
  return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
  logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}", exc_info=exc)
  return JSONResponse(
    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    content={"error": "Log storage unavailable"},
  )


def get_service() -> LogService:
  """
  Build the service for one request.

  storage.get_storage() is looked up on every call so tests can monkeypatch
  it.
  """
  cfg = load_service_config()
  return LogService(
    storage.get_storage(),
    validator=IngestionValidator(max_batch_size=cfg.max_batch_size),
    default_limit=cfg.default_limit,
  )


@app.get("/status")
def status_endpoint() -> Dict[str, object]:
  """
  Lightweight status endpoint; does not touch the database.
  """
  return get_status()


@app.get("/logs")
def list_logs(
  limit: Optional[str] = Query(None, description="Max number of records (1-500, default 50)"),
  severity: Optional[str] = Query(None, description="One of debug, info, warning, error"),
  from_: Optional[str] = Query(None, alias="from", description="Inclusive lower bound on timestamp (ISO 8601)"),
  to: Optional[str] = Query(None, description="Inclusive upper bound on timestamp (ISO 8601)"),
) -> Dict[str, object]:
  """
  Filtered listing, newest first.

  Parameters are taken as raw strings and validated by the query builder so
  every bad input produces the same ``{"error": ...}`` shape.
  """
  params = {"limit": limit, "severity": severity, "from": from_, "to": to}
  records = get_service().list_logs(params)
  return {"logs": [r.model_dump() for r in records]}


@app.get("/logs/count")
def count_logs() -> Dict[str, int]:
  return {"count": get_service().count()}


@app.get("/logs/stats")
def log_statistics() -> Dict[str, object]:
  stats = get_service().statistics()
  return {"total": stats.total, "severityBreakdown": stats.severity_breakdown}


@app.post("/logs/ingest", status_code=status.HTTP_201_CREATED)
def ingest_logs(body: Any = Body(None)) -> Dict[str, object]:
  """
  Ingest a batch ``{"logs": [...]}``.

  A batch where some items fail validation still succeeds; the failures are
  listed in ``errors`` by their index in the submitted array.
  """
  result = get_service().ingest_payload(body)
  return {
    "inserted": result.inserted_count,
    "failed": len(result.errors),
    "errors": [e.model_dump() for e in result.errors],
  }


@app.post("/logs/diagnostic", status_code=status.HTTP_201_CREATED)
def insert_diagnostic_log() -> Dict[str, int]:
  """Insert one debug record to check the store end to end."""
  return {"id": get_service().record_diagnostic()}
