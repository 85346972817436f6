"""Unit tests for value coercion."""

import math
from datetime import date, datetime

import pytest

from bdocore.core.expressions.coercion import (
    ISO_DATE_RE,
    is_truthy,
    loose_equals,
    normalize_number,
    to_date,
    to_number,
    to_text,
    to_timestamp,
)


@pytest.mark.parametrize(
    "text",
    ["2024-01-31", "2024-01-31T10:15", "2024-01-31 10:15:30", "2024-01-31T10:15:30.250Z", "2024-01-31T10:15:30+05:30"],
)
def test_iso_date_pattern_matches(text):
    assert ISO_DATE_RE.match(text)


@pytest.mark.parametrize("text", ["31/01/2024", "2024-1-31", "20240131", "abc", "2024-01-31 noon"])
def test_iso_date_pattern_rejects(text):
    assert ISO_DATE_RE.match(text) is None


def test_to_timestamp():
    assert to_timestamp("2024-01-01") == datetime(2024, 1, 1).timestamp() * 1000
    assert to_timestamp(date(2024, 1, 1)) == to_timestamp("2024-01-01")
    assert to_timestamp("2024-13-45") is None
    assert to_timestamp("5") is None
    assert to_timestamp(5) is None


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, 0),
        (True, 1),
        (False, 0),
        ("", 0),
        ("  ", 0),
        ("42", 42),
        (" 3.5 ", 3.5),
        ("1e3", 1000),
        ("0x1F", 31),
        ("-Infinity", -math.inf),
        ([], 0),
        (["7"], 7),
        (12, 12),
    ],
)
def test_to_number(value, expected):
    assert to_number(value) == expected


@pytest.mark.parametrize("value", ["abc", "12abc", [1, 2], {"a": 1}])
def test_to_number_nan(value):
    assert math.isnan(to_number(value))


def test_to_number_dates_are_milliseconds():
    moment = datetime(2024, 1, 1, 12, 0)
    assert to_number(moment) == moment.timestamp() * 1000


def test_normalize_number():
    assert normalize_number(5.0) == 5
    assert isinstance(normalize_number(5.0), int)
    assert normalize_number(5.5) == 5.5
    assert math.isinf(normalize_number(math.inf))


def test_to_text():
    assert to_text(None) == ""
    assert to_text(False) == "false"
    assert to_text(3.0) == "3"
    assert to_text([1, "a"]) == "1,a"
    assert to_text(date(2024, 1, 2)) == "2024-01-02"


def test_to_date():
    assert to_date("2024-01-02") == datetime(2024, 1, 2)
    assert to_date(date(2024, 1, 2)) == datetime(2024, 1, 2)
    assert to_date(True) is None
    assert to_date(math.nan) is None
    assert to_date("soon") is None


def test_loose_equals():
    assert loose_equals("5", 5) is True
    assert loose_equals(5, "5.0") is True
    assert loose_equals(True, "1") is True
    assert loose_equals(None, None) is True
    assert loose_equals(None, "") is False
    assert loose_equals("a", "A") is False
    assert loose_equals(math.nan, math.nan) is False


def test_is_truthy():
    assert is_truthy(math.nan) is False
    assert is_truthy(0) is False
    assert is_truthy("") is False
    assert is_truthy(None) is False
    assert is_truthy(False) is False
    assert is_truthy(0.0) is False
    assert is_truthy("0") is True
    assert is_truthy(-1) is True


def test_empty_collections_are_truthy():
    """Empty lists and mappings are true, as in JavaScript."""
    assert is_truthy([]) is True
    assert is_truthy({}) is True
    assert is_truthy(" ") is True
