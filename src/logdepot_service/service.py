from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, List, Optional

from .config import DEFAULT_PAGE_LIMIT
from .errors import ValidationError
from .ingestion import IngestionValidator
from .models import IngestResult, LogRecord, LogStatistics, NewLogRecord
from .query import build_filters
from .storage import LogStorage
from .timestamps import to_canonical, utc_now

logger = logging.getLogger(__name__)


class LogService:
  """
  Entry point for transports: ingestion, filtered listing and statistics
  over an injected LogStorage.
  """

  def __init__(
    self,
    storage: LogStorage,
    validator: Optional[IngestionValidator] = None,
    default_limit: int = DEFAULT_PAGE_LIMIT,
  ) -> None:
    self.storage = storage
    self.validator = validator or IngestionValidator()
    self.default_limit = default_limit

  def ingest(self, items: Any) -> IngestResult:
    """
    Validate a raw batch and store the records that pass.

    Items that fail validation are reported in ``errors`` and do not prevent
    the rest from being stored. Validation errors for the batch as a whole
    (not a list, too large) are raised before storage is touched.
    """
    records, errors = self.validator.validate_batch(items)
    inserted = self.storage.insert_batch(records)

    if errors:
      logger.warning(f"Ingested {inserted} logs, rejected {len(errors)}")
    else:
      logger.info(f"Ingested {inserted} logs")
    return IngestResult(inserted_count=inserted, errors=errors)

  def ingest_payload(self, body: Any) -> IngestResult:
    """Ingest a decoded request body of the form ``{"logs": [...]}``."""
    if not isinstance(body, Mapping) or "logs" not in body:
      raise ValidationError("Body must be an object with a 'logs' array")
    return self.ingest(body["logs"])

  def list_logs(self, raw_params: Mapping[str, Any]) -> List[LogRecord]:
    filters = build_filters(raw_params, default_limit=self.default_limit)
    return self.storage.list_filtered(filters)

  def statistics(self) -> LogStatistics:
    return self.storage.aggregate_by_severity()

  def count(self) -> int:
    return self.storage.count()

  def record_diagnostic(self, source: str = "demo") -> int:
    """Store a single debug record stamped now; used to check the store end to end."""
    now = to_canonical(utc_now())
    return self.storage.insert(
      NewLogRecord(
        timestamp=now,
        source=source,
        severity="debug",
        message="logdepot diagnostic record",
        created_at=now,
      )
    )
