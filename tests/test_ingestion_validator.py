from datetime import datetime, timezone

import pytest

from logdepot_service.errors import ValidationError
from logdepot_service.ingestion import IngestionValidator

FIXED_NOW = datetime(2025, 2, 1, 8, 30, 0, 123000, tzinfo=timezone.utc)


@pytest.fixture
def validator():
  return IngestionValidator(clock=lambda: FIXED_NOW)


def test_partitions_valid_items_and_errors(validator, valid_item):
  records, errors = validator.validate_batch(
    [valid_item, {**valid_item, "timestamp": "not-a-date"}, valid_item]
  )

  assert len(records) == 2
  assert [(e.index, e.reason) for e in errors] == [(1, "Invalid timestamp")]


def test_records_share_one_created_at(validator, valid_item):
  records, _ = validator.validate_batch([valid_item] * 3)

  assert {r.created_at for r in records} == {"2025-02-01T08:30:00.123Z"}


def test_created_at_is_taken_once_per_batch(valid_item):
  calls = []

  def clock():
    calls.append(1)
    return FIXED_NOW

  IngestionValidator(clock=clock).validate_batch([valid_item] * 5)
  assert len(calls) == 1


def test_timestamp_is_stored_in_canonical_form(validator, valid_item):
  records, _ = validator.validate_batch(
    [
      {**valid_item, "timestamp": "2025-01-01T12:00:00+02:00"},
      {**valid_item, "timestamp": "2025-01-01T10:00:00Z"},
    ]
  )

  assert records[0].timestamp == records[1].timestamp == "2025-01-01T10:00:00.000Z"


def test_fields_are_kept_as_supplied(validator, valid_item):
  records, _ = validator.validate_batch([{**valid_item, "source": " billing ", "extra": 1}])

  record = records[0]
  assert record.source == " billing "
  assert record.severity == "error"
  assert record.message == "charge failed"


@pytest.mark.parametrize(
  "item, reason",
  [
    (None, "Log must be an object"),
    ("a string", "Log must be an object"),
    (["timestamp"], "Log must be an object"),
    ({}, "Invalid timestamp"),
    ({"timestamp": 1735725600}, "Invalid timestamp"),
    ({"timestamp": "2025-01-01T00:00:00Z"}, "Invalid source"),
    ({"timestamp": "2025-01-01T00:00:00Z", "source": "   "}, "Invalid source"),
    ({"timestamp": "2025-01-01T00:00:00Z", "source": 42}, "Invalid source"),
    ({"timestamp": "2025-01-01T00:00:00Z", "source": "s", "message": ""}, "Invalid message"),
    ({"timestamp": "2025-01-01T00:00:00Z", "source": "s", "message": "\n\t"}, "Invalid message"),
    ({"timestamp": "2025-01-01T00:00:00Z", "source": "s", "message": "m"}, "Invalid severity"),
    ({"timestamp": "2025-01-01T00:00:00Z", "source": "s", "message": "m", "severity": "fatal"}, "Invalid severity"),
    ({"timestamp": "2025-01-01T00:00:00Z", "source": "s", "message": "m", "severity": "INFO"}, "Invalid severity"),
  ],
)
def test_rejection_reasons(validator, item, reason):
  records, errors = validator.validate_batch([item])

  assert records == []
  assert [(e.index, e.reason) for e in errors] == [(0, reason)]


def test_only_first_failing_rule_is_reported(validator):
  _, errors = validator.validate_batch([{"timestamp": "bad", "source": "", "message": "", "severity": "x"}])

  assert [e.reason for e in errors] == ["Invalid timestamp"]


def test_error_indexes_refer_to_input_positions(validator, valid_item):
  _, errors = validator.validate_batch([valid_item, 1, valid_item, valid_item, {"source": "x"}])

  assert [e.index for e in errors] == [1, 4]


def test_empty_batch_is_valid(validator):
  assert validator.validate_batch([]) == ([], [])


def test_oversized_batch_is_rejected_wholesale(valid_item):
  validator = IngestionValidator(max_batch_size=10_000, clock=lambda: FIXED_NOW)

  with pytest.raises(ValidationError, match="max 10000"):
    validator.validate_batch([valid_item] * 10_001)


def test_batch_at_the_limit_is_accepted(valid_item):
  validator = IngestionValidator(max_batch_size=3, clock=lambda: FIXED_NOW)

  records, errors = validator.validate_batch([valid_item] * 3)
  assert len(records) == 3
  assert errors == []


@pytest.mark.parametrize("raw", [None, {"logs": []}, "logs", 5])
def test_non_list_batch_is_rejected(validator, raw):
  with pytest.raises(ValidationError):
    validator.validate_batch(raw)
