from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .severity import Severity


class NewLogRecord(BaseModel):
  """
  A validated log record that has not been stored yet.

  Timestamps are already in canonical form (see ``timestamps.to_canonical``).
  """

  timestamp: str
  source: str
  severity: Severity
  message: str
  created_at: str = Field(..., description="Server-assigned ingestion time")


class LogRecord(BaseModel):
  """
  A stored log record.

  Severity is a plain string here: the store trusts its writers, so rows read
  back are not re-checked against the allowed set.
  """

  id: int = Field(..., description="Store-assigned id, ascending with insertion order")
  timestamp: str
  source: str
  severity: str
  message: str
  created_at: str


class IngestError(BaseModel):
  index: int
  reason: str


class IngestResult(BaseModel):
  inserted_count: int
  errors: List[IngestError] = Field(default_factory=list)


class LogFilters(BaseModel):
  """
  Bounds for a filtered listing. ``since``/``until`` are inclusive and in
  canonical form.
  """

  severity: Optional[Severity] = None
  since: Optional[str] = None
  until: Optional[str] = None
  limit: int = 50


class LogStatistics(BaseModel):
  total: int
  severity_breakdown: Dict[str, int]
