"""Validation of raw ingest batches into storable log records."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple

from .config import DEFAULT_MAX_BATCH_SIZE
from .errors import ValidationError
from .models import IngestError, NewLogRecord
from .severity import is_valid_severity
from .timestamps import to_canonical, try_normalize_timestamp, utc_now

logger = logging.getLogger(__name__)

# Raw items are untyped (decoded JSON); nothing about their shape is trusted
# until validate_item() has turned them into a NewLogRecord.
RawItem = Any


def _is_non_blank(value: Any) -> bool:
  return isinstance(value, str) and value.strip() != ""


class IngestionValidator:
  """
  Partitions a raw batch into valid records and per-item errors.

  Each item gets at most one error: the first rule it fails. Every record
  produced by one validate_batch() call shares the same created_at, the
  instant validation started.
  """

  def __init__(
    self,
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    clock: Optional[Callable[[], datetime]] = None,
  ) -> None:
    self.max_batch_size = max_batch_size
    self._clock = clock or utc_now

  def validate_batch(self, raw_items: Any) -> Tuple[List[NewLogRecord], List[IngestError]]:
    """
    Validate every item of ``raw_items``.

    Returns:
      Tuple of (records, errors). ``errors[i].index`` is the position of the
      rejected item in ``raw_items``.

    Raises:
      ValidationError: If ``raw_items`` is not a list or holds more than
        ``max_batch_size`` items. No item is processed in that case.
    """
    if not isinstance(raw_items, (list, tuple)):
      raise ValidationError("'logs' must be an array")
    if len(raw_items) > self.max_batch_size:
      logger.warning(f"Rejected batch of {len(raw_items)} logs (max {self.max_batch_size})")
      raise ValidationError(
        f"Too many logs in one batch: {len(raw_items)} (max {self.max_batch_size})"
      )

    created_at = to_canonical(self._clock())
    records: List[NewLogRecord] = []
    errors: List[IngestError] = []

    for index, item in enumerate(raw_items):
      record, reason = self.validate_item(item, created_at)
      if record is None:
        errors.append(IngestError(index=index, reason=reason))
      else:
        records.append(record)

    return records, errors

  def validate_item(self, item: RawItem, created_at: str) -> Tuple[Optional[NewLogRecord], str]:
    """
    Check one raw item against the ingest rules in order.

    Returns (record, "") on success, (None, reason) on the first failure.
    """
    if not isinstance(item, Mapping):
      return None, "Log must be an object"

    timestamp = item.get("timestamp")
    normalized = try_normalize_timestamp(timestamp) if isinstance(timestamp, str) else None
    if normalized is None:
      return None, "Invalid timestamp"

    source = item.get("source")
    if not _is_non_blank(source):
      return None, "Invalid source"

    message = item.get("message")
    if not _is_non_blank(message):
      return None, "Invalid message"

    severity = item.get("severity")
    if not is_valid_severity(severity):
      return None, "Invalid severity"

    record = NewLogRecord(
      timestamp=normalized,
      source=source,
      severity=severity,
      message=message,
      created_at=created_at,
    )
    return record, ""
