from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from logdepot_service.models import NewLogRecord
from logdepot_service.storage import SqliteLogStorage


@pytest.fixture
def sqlite_storage(tmp_path: Path) -> SqliteLogStorage:
  store = SqliteLogStorage(str(tmp_path / "logs.sqlite"))
  store.initialize()
  return store


@pytest.fixture
def make_record() -> Callable[..., NewLogRecord]:
  def _make(
    timestamp: str = "2025-01-01T00:00:00.000Z",
    source: str = "api",
    severity: str = "info",
    message: str = "hello",
    created_at: str = "2025-01-01T00:00:00.000Z",
  ) -> NewLogRecord:
    return NewLogRecord(
      timestamp=timestamp,
      source=source,
      severity=severity,
      message=message,
      created_at=created_at,
    )

  return _make


@pytest.fixture
def valid_item() -> dict:
  return {
    "timestamp": "2025-01-01T10:00:00Z",
    "source": "billing",
    "severity": "error",
    "message": "charge failed",
  }
