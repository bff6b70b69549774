from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_DATABASE_URL = "sqlite:///logdepot.sqlite"
DEFAULT_MAX_BATCH_SIZE = 10_000
DEFAULT_PAGE_LIMIT = 50
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5000
DEFAULT_LOG_LEVEL = "INFO"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class ServiceConfig:
  database_url: str
  max_batch_size: int
  default_limit: int
  host: str
  port: int
  log_level: str


def _int_from_env(name: str, default: int, minimum: int, maximum: int) -> int:
  raw = os.getenv(name)
  if raw is None:
    return default

  try:
    value = int(raw)
  except ValueError:
    # Fallback to default on invalid input
    return default

  if value < minimum:
    value = minimum
  if value > maximum:
    value = maximum
  return value


def _log_level_from_env() -> str:
  raw: Optional[str] = os.getenv("LOGDEPOT_LOG_LEVEL")
  if raw and raw.strip().upper() in _LOG_LEVELS:
    return raw.strip().upper()
  return DEFAULT_LOG_LEVEL


def load_service_config() -> ServiceConfig:
  """
  Load service settings from LOGDEPOT_* environment variables.

  Invalid numeric values fall back to the defaults; out-of-range values are
  clamped.
  """
  return ServiceConfig(
    database_url=os.getenv("LOGDEPOT_DATABASE_URL") or DEFAULT_DATABASE_URL,
    max_batch_size=_int_from_env("LOGDEPOT_MAX_BATCH_SIZE", DEFAULT_MAX_BATCH_SIZE, 1, 100_000),
    default_limit=_int_from_env("LOGDEPOT_DEFAULT_LIMIT", DEFAULT_PAGE_LIMIT, 1, 500),
    host=os.getenv("LOGDEPOT_HOST") or DEFAULT_HOST,
    port=_int_from_env("LOGDEPOT_PORT", DEFAULT_PORT, 1, 65535),
    log_level=_log_level_from_env(),
  )
