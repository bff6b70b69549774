from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Sequence, Tuple

import psycopg2
from psycopg2.extras import execute_batch

from .config import load_service_config
from .errors import StorageError
from .models import LogFilters, LogRecord, LogStatistics, NewLogRecord
from .severity import ALLOWED_SEVERITIES

logger = logging.getLogger(__name__)

MAX_LIMIT = 500

_INSERT_COLUMNS = "timestamp, source, severity, message, created_at"
_SELECT_COLUMNS = "id, timestamp, source, severity, message, created_at"

_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_logs_timestamp ON logs (timestamp);
CREATE INDEX IF NOT EXISTS idx_logs_severity ON logs (severity);
CREATE INDEX IF NOT EXISTS idx_logs_created_at_id ON logs (created_at, id);
"""

SQLITE_DDL = """
CREATE TABLE IF NOT EXISTS logs (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  source TEXT NOT NULL,
  severity TEXT NOT NULL,
  message TEXT NOT NULL,
  created_at TEXT NOT NULL
);
""" + _INDEXES

POSTGRES_DDL = """
CREATE TABLE IF NOT EXISTS logs (
  id BIGSERIAL PRIMARY KEY,
  timestamp TEXT NOT NULL,
  source TEXT NOT NULL,
  severity TEXT NOT NULL,
  message TEXT NOT NULL,
  created_at TEXT NOT NULL
);
""" + _INDEXES


def clamp_limit(limit: int) -> int:
  return max(1, min(limit, MAX_LIMIT))


class LogStorage:
  """
  Storage abstraction for log records.

  Implementations trust their caller: records are validated before they get
  here. Backend failures are raised as StorageError and never retried.
  Tests can monkeypatch get_storage() to swap in another implementation.
  """

  def initialize(self) -> None:
    """Create the logs table and its indexes if they do not exist."""
    raise NotImplementedError

  def insert(self, record: NewLogRecord) -> int:
    """Store one record and return its assigned id."""
    raise NotImplementedError

  def insert_batch(self, records: Sequence[NewLogRecord]) -> int:
    """
    Store all records in one transaction.

    Either every record is persisted or none is. Returns the number of
    records stored; an empty batch returns 0 without touching the backend.
    """
    raise NotImplementedError

  def count(self) -> int:
    raise NotImplementedError

  def list_filtered(self, filters: LogFilters) -> List[LogRecord]:
    """
    Records matching every supplied filter, newest first by
    (created_at, id), at most clamp_limit(filters.limit) of them.
    """
    raise NotImplementedError

  def aggregate_by_severity(self) -> LogStatistics:
    raise NotImplementedError


class SqliteLogStorage(LogStorage):
  def __init__(self, path: str) -> None:
    self._path = path

  @property
  def path(self) -> str:
    return self._path

  @contextmanager
  def _connect(self) -> Iterator[sqlite3.Connection]:
    try:
      conn = sqlite3.connect(self._path)
    except sqlite3.Error as e:
      raise StorageError(f"Cannot open log database {self._path!r}: {e}") from e

    try:
      # commits on success, rolls back on any exception
      with conn:
        yield conn
    except sqlite3.Error as e:
      raise StorageError(f"Log database operation failed: {e}") from e
    finally:
      conn.close()

  def initialize(self) -> None:
    with self._connect() as conn:
      conn.executescript(SQLITE_DDL)
    logger.info(f"Initialized SQLite log store at {self._path}")

  def insert(self, record: NewLogRecord) -> int:
    with self._connect() as conn:
      cur = conn.execute(
        f"INSERT INTO logs ({_INSERT_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
        _record_to_row(record),
      )
      return int(cur.lastrowid)

  def insert_batch(self, records: Sequence[NewLogRecord]) -> int:
    if not records:
      return 0

    rows = [_record_to_row(r) for r in records]
    with self._connect() as conn:
      conn.executemany(
        f"INSERT INTO logs ({_INSERT_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
        rows,
      )
    return len(rows)

  def count(self) -> int:
    with self._connect() as conn:
      (total,) = conn.execute("SELECT COUNT(*) FROM logs").fetchone()
    return int(total)

  def list_filtered(self, filters: LogFilters) -> List[LogRecord]:
    where_sql, params = _build_where(filters, "?")
    with self._connect() as conn:
      rows = conn.execute(
        _list_query(where_sql, "?"),
        (*params, clamp_limit(filters.limit)),
      ).fetchall()
    return [_row_to_record(row) for row in rows]

  def aggregate_by_severity(self) -> LogStatistics:
    with self._connect() as conn:
      rows = conn.execute(
        "SELECT severity, COUNT(*) FROM logs GROUP BY severity"
      ).fetchall()
    return _statistics_from_rows(rows)


class PostgresLogStorage(LogStorage):
  def __init__(self, dsn: str) -> None:
    self._dsn = dsn

  @contextmanager
  def _cursor(self) -> Iterator[Any]:
    try:
      conn = psycopg2.connect(self._dsn)
    except psycopg2.Error as e:
      raise StorageError(f"Cannot connect to log database: {e}") from e

    try:
      with conn, conn.cursor() as cur:
        yield cur
    except psycopg2.Error as e:
      raise StorageError(f"Log database operation failed: {e}") from e
    finally:
      conn.close()

  def initialize(self) -> None:
    with self._cursor() as cur:
      cur.execute(POSTGRES_DDL)
    logger.info("Initialized PostgreSQL log store")

  def insert(self, record: NewLogRecord) -> int:
    with self._cursor() as cur:
      cur.execute(
        f"INSERT INTO logs ({_INSERT_COLUMNS}) VALUES (%s, %s, %s, %s, %s) RETURNING id",
        _record_to_row(record),
      )
      (new_id,) = cur.fetchone()
    return int(new_id)

  def insert_batch(self, records: Sequence[NewLogRecord]) -> int:
    if not records:
      return 0

    rows = [_record_to_row(r) for r in records]
    with self._cursor() as cur:
      execute_batch(
        cur,
        f"INSERT INTO logs ({_INSERT_COLUMNS}) VALUES (%s, %s, %s, %s, %s)",
        rows,
      )
    return len(rows)

  def count(self) -> int:
    with self._cursor() as cur:
      cur.execute("SELECT COUNT(*) FROM logs")
      (total,) = cur.fetchone()
    return int(total)

  def list_filtered(self, filters: LogFilters) -> List[LogRecord]:
    where_sql, params = _build_where(filters, "%s")
    with self._cursor() as cur:
      cur.execute(
        _list_query(where_sql, "%s"),
        (*params, clamp_limit(filters.limit)),
      )
      rows = cur.fetchall()
    return [_row_to_record(row) for row in rows]

  def aggregate_by_severity(self) -> LogStatistics:
    with self._cursor() as cur:
      cur.execute("SELECT severity, COUNT(*) FROM logs GROUP BY severity")
      rows = cur.fetchall()
    return _statistics_from_rows(rows)


_storage: LogStorage | None = None


def create_storage(database_url: str) -> LogStorage:
  """
  Build a storage backend from a database URL.

  postgresql:// and postgres:// URLs select PostgreSQL; sqlite:///<path> or a
  bare file path selects SQLite.
  """
  if database_url.startswith(("postgresql://", "postgres://")):
    return PostgresLogStorage(database_url)

  path = database_url
  if path.startswith("sqlite:///"):
    path = path[len("sqlite:///"):]
  if not path or path == ":memory:":
    # every operation opens its own connection, so an in-memory database
    # would be empty on each call
    raise StorageError("SQLite log store needs a file path")
  return SqliteLogStorage(path)


def get_storage() -> LogStorage:
  """
  Return the process-wide storage instance used by the HTTP transport.

  The schema is created on first use. In tests this can be monkeypatched to
  avoid touching a real database.
  """
  global _storage
  if _storage is None:
    backend = create_storage(load_service_config().database_url)
    backend.initialize()
    _storage = backend
  return _storage


def _record_to_row(record: NewLogRecord) -> tuple:
  return (
    record.timestamp,
    record.source,
    record.severity,
    record.message,
    record.created_at,
  )


def _row_to_record(row: Sequence[Any]) -> LogRecord:
  record_id, timestamp, source, severity, message, created_at = row
  return LogRecord(
    id=record_id,
    timestamp=timestamp,
    source=source,
    severity=severity,
    message=message,
    created_at=created_at,
  )


def _build_where(filters: LogFilters, placeholder: str) -> Tuple[str, List[object]]:
  conditions: List[str] = []
  params: List[object] = []

  if filters.severity:
    conditions.append(f"severity = {placeholder}")
    params.append(filters.severity)
  # canonical timestamps compare correctly as text
  if filters.since:
    conditions.append(f"timestamp >= {placeholder}")
    params.append(filters.since)
  if filters.until:
    conditions.append(f"timestamp <= {placeholder}")
    params.append(filters.until)

  where_sql = f"WHERE {' AND '.join(conditions)}" if conditions else ""
  return where_sql, params


def _list_query(where_sql: str, placeholder: str) -> str:
  return f"""
    SELECT {_SELECT_COLUMNS}
    FROM logs
    {where_sql}
    ORDER BY created_at DESC, id DESC
    LIMIT {placeholder}
  """


def _statistics_from_rows(rows: Iterable[Tuple[str, int]]) -> LogStatistics:
  # total includes rows whose severity is outside the domain
  breakdown: Dict[str, int] = {s: 0 for s in ALLOWED_SEVERITIES}
  total = 0
  for severity, count in rows:
    total += int(count)
    if severity in breakdown:
      breakdown[severity] = int(count)
  return LogStatistics(total=total, severity_breakdown=breakdown)
