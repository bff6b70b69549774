import pytest

from logdepot_service.errors import ValidationError
from logdepot_service.query import build_filters, parse_limit


def test_defaults_when_nothing_supplied():
  filters = build_filters({})

  assert filters.limit == 50
  assert filters.severity is None
  assert filters.since is None
  assert filters.until is None


def test_custom_default_limit():
  assert build_filters({}, default_limit=20).limit == 20


def test_empty_strings_count_as_absent():
  filters = build_filters({"limit": "", "severity": "", "from": " ", "to": None})

  assert filters.limit == 50
  assert filters.severity is None
  assert filters.since is None


def test_all_filters_are_parsed_and_normalized():
  filters = build_filters(
    {
      "severity": "warning",
      "from": "2025-01-01T02:00:00+02:00",
      "to": "2025-01-02",
      "limit": "25",
    }
  )

  assert filters.severity == "warning"
  assert filters.since == "2025-01-01T00:00:00.000Z"
  assert filters.until == "2025-01-02T00:00:00.000Z"
  assert filters.limit == 25


def test_large_limit_is_passed_through_for_the_store_to_clamp():
  assert build_filters({"limit": "10000"}).limit == 10000


@pytest.mark.parametrize("raw", ["0", "-1", "abc", "1.5", "10a", True, 0, -3, 2.0, "²"])
def test_invalid_limit_is_rejected(raw):
  with pytest.raises(ValidationError, match="Invalid limit"):
    build_filters({"limit": raw})


@pytest.mark.parametrize("raw, expected", [("7", 7), (" 12 ", 12), (3, 3)])
def test_parse_limit_accepts_positive_integers(raw, expected):
  assert parse_limit(raw) == expected


def test_invalid_severity_is_rejected():
  with pytest.raises(ValidationError, match="Invalid severity"):
    build_filters({"severity": "critical"})


@pytest.mark.parametrize("name", ["from", "to"])
def test_invalid_bounds_are_rejected(name):
  with pytest.raises(ValidationError, match=f"Invalid {name} timestamp"):
    build_filters({name: "yesterday"})


def test_unknown_params_are_ignored():
  assert build_filters({"q": "boom", "page": "2"}).limit == 50


def test_from_after_to_is_accepted():
  filters = build_filters({"from": "2025-01-03T00:00:00Z", "to": "2025-01-01T00:00:00Z"})

  assert filters.since == "2025-01-03T00:00:00.000Z"
  assert filters.until == "2025-01-01T00:00:00.000Z"
