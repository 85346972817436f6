"""Value coercion used by the evaluator.

Formula metadata is shared with a JavaScript runtime, so operators coerce
operands the way that runtime does: loose equality, numeric coercion of
strings, and ISO date strings compared as instants.
"""

import math
import re
from datetime import date, datetime
from typing import Any

NaN = float("nan")

# YYYY-MM-DD, optionally followed by a time part after a space or "T"
ISO_DATE_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[ T]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$"
)

_NUMERIC_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


def to_timestamp(value: Any) -> float | None:
    """Convert a date-like value to epoch milliseconds.

    Accepts ``datetime``/``date`` objects and strings matching
    ``ISO_DATE_RE``. Naive values are read as local time, so a bare
    ``YYYY-MM-DD`` lines up with ``TODAY``. Returns None for anything
    else, including strings that match the pattern but are not real dates.
    """
    if isinstance(value, datetime):
        return value.timestamp() * 1000
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).timestamp() * 1000
    if isinstance(value, str):
        text = value.strip()
        if not ISO_DATE_RE.match(text):
            return None
        try:
            return datetime.fromisoformat(text).timestamp() * 1000
        except ValueError:
            return None
    return None


def to_date(value: Any) -> datetime | None:
    """Coerce a value to a datetime for the date functions.

    Numbers are read as epoch milliseconds; strings may be any ISO format.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        if math.isnan(value) or math.isinf(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def to_number(value: Any) -> float | int:
    """Numeric coercion.

    None is 0, booleans are 0/1, blank strings are 0, unparseable strings
    and objects are NaN, and datetimes become epoch milliseconds.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (date, datetime)):
        return to_timestamp(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if _NUMERIC_RE.match(text):
            return normalize_number(float(text))
        if text.lower().startswith("0x"):
            try:
                return int(text, 16)
            except ValueError:
                return NaN
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        return NaN
    if isinstance(value, (list, tuple)):
        if not value:
            return 0
        if len(value) == 1:
            return to_number(value[0])
    return NaN


def normalize_number(value: float | int) -> float | int:
    """Return integral finite floats as ints (``5.0`` -> ``5``)."""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return value


def to_text(value: Any) -> str:
    """String coercion. None is the empty string; booleans are lowercase."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(normalize_number(value))
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(item) for item in value)
    return str(value)


def loose_equals(left: Any, right: Any) -> bool:
    """Loose equality: ``"5" == 5`` and ``True == 1`` hold, ``None`` only equals ``None``."""
    if left is None or right is None:
        return left is None and right is None

    if isinstance(left, bool) and isinstance(right, bool):
        return left == right
    if isinstance(left, bool):
        return loose_equals(int(left), right)
    if isinstance(right, bool):
        return loose_equals(left, int(right))

    left_is_number = isinstance(left, (int, float))
    right_is_number = isinstance(right, (int, float))
    if left_is_number and isinstance(right, str):
        return left == to_number(right)
    if right_is_number and isinstance(left, str):
        return to_number(left) == right

    return left == right


def is_truthy(value: Any) -> bool:
    """JavaScript truthiness.

    None, False, zero, NaN and the empty string are false. Everything else,
    empty lists and mappings included, is true.
    """
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, (int, float)):
        return value == value and value != 0
    if isinstance(value, str):
        return value != ""
    return True
