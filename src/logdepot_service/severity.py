from __future__ import annotations

from typing import Any, Literal, Tuple, get_args

# single source of truth for allowed severities
Severity = Literal["debug", "info", "warning", "error"]

ALLOWED_SEVERITIES: Tuple[str, ...] = get_args(Severity)


def is_valid_severity(value: Any) -> bool:
  return isinstance(value, str) and value in ALLOWED_SEVERITIES
