from __future__ import annotations


class LogDepotError(Exception):
  """Base class for errors raised by the log store core."""


class ValidationError(LogDepotError, ValueError):
  """
  Caller input was rejected.

  The message is the human-readable reason and is surfaced verbatim to
  clients.
  """


class StorageError(LogDepotError, RuntimeError):
  """The persistence layer failed; the in-flight operation was aborted."""
