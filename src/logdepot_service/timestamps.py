"""
Timestamp parsing and the canonical text form used for stored instants.

Every stored timestamp is UTC with millisecond precision and a ``Z`` suffix,
e.g. ``2025-01-02T03:04:05.678Z``. The form is fixed width, so comparing two
canonical strings gives the same answer as comparing the instants.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


def parse_instant(value: Any) -> datetime:
  """Parse an ISO 8601 string into an aware UTC datetime.

  Values without an offset are interpreted as UTC.

  Raises:
    ValueError: If the value is not a string or cannot be parsed.
  """
  if not isinstance(value, str):
    raise ValueError(f"Expected a timestamp string, got {type(value).__name__}")

  text = value.strip()
  if not text:
    raise ValueError("Empty timestamp")
  if text[-1] in "zZ":
    text = text[:-1] + "+00:00"

  try:
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
      dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
  except (ValueError, OverflowError) as e:
    raise ValueError(f"Cannot parse timestamp: {value}") from e


def to_canonical(dt: datetime) -> str:
  if dt.tzinfo is None:
    dt = dt.replace(tzinfo=timezone.utc)
  dt = dt.astimezone(timezone.utc)
  # strftime does not zero-pad years below 1000 on every platform
  return (
    f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
    f"T{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}.{dt.microsecond // 1000:03d}Z"
  )


def normalize_timestamp(value: Any) -> str:
  """Parse ``value`` and return its canonical form."""
  return to_canonical(parse_instant(value))


def try_normalize_timestamp(value: Any) -> Optional[str]:
  try:
    return normalize_timestamp(value)
  except ValueError:
    return None


def utc_now() -> datetime:
  return datetime.now(timezone.utc)
