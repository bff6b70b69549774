"""Translation of raw listing parameters into validated LogFilters."""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional

from .config import DEFAULT_PAGE_LIMIT
from .errors import ValidationError
from .models import LogFilters
from .severity import ALLOWED_SEVERITIES, is_valid_severity
from .timestamps import try_normalize_timestamp

_DIGITS = re.compile(r"[0-9]+")


def _param(raw_params: Mapping[str, Any], name: str) -> Any:
  # missing, None and "" all mean "not supplied"
  value = raw_params.get(name)
  if value is None or (isinstance(value, str) and value.strip() == ""):
    return None
  return value


def parse_limit(value: Any) -> int:
  """Parse a positive integer limit from an int or a string of digits."""
  if isinstance(value, bool):
    raise ValidationError("Invalid limit: must be a positive integer")

  if isinstance(value, int):
    limit = value
  elif isinstance(value, str) and _DIGITS.fullmatch(value.strip()):
    limit = int(value.strip())
  else:
    raise ValidationError("Invalid limit: must be a positive integer")

  if limit < 1:
    raise ValidationError("Invalid limit: must be a positive integer")
  return limit


def _parse_bound(value: Any, name: str) -> Optional[str]:
  if value is None:
    return None
  normalized = try_normalize_timestamp(value)
  if normalized is None:
    raise ValidationError(f"Invalid {name} timestamp")
  return normalized


def build_filters(raw_params: Mapping[str, Any], default_limit: int = DEFAULT_PAGE_LIMIT) -> LogFilters:
  """
  Build LogFilters from raw query parameters.

  Accepted keys are ``severity``, ``from``, ``to`` and ``limit``; other keys
  are ignored. ``from``/``to`` are normalized to canonical timestamps so the
  store can compare them as text. The limit is not clamped here; the store
  bounds it to [1, MAX_LIMIT].

  Raises:
    ValidationError: If a supplied parameter is malformed.
  """
  severity = _param(raw_params, "severity")
  if severity is not None and not is_valid_severity(severity):
    raise ValidationError(
      f"Invalid severity: must be one of {', '.join(ALLOWED_SEVERITIES)}"
    )

  raw_limit = _param(raw_params, "limit")
  limit = default_limit if raw_limit is None else parse_limit(raw_limit)

  return LogFilters(
    severity=severity,
    since=_parse_bound(_param(raw_params, "from"), "from"),
    until=_parse_bound(_param(raw_params, "to"), "to"),
    limit=limit,
  )
