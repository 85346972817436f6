"""Function registry for CallExpression nodes.

Functions receive already-evaluated arguments as positional parameters
and must tolerate ``None`` for any of them.

Built-ins:
- String: CONCAT, UPPER, LOWER, TRIM, LENGTH, SUBSTRING, REPLACE, CONTAINS
- Math: SUM, AVG, MIN, MAX, ABS, ROUND, FLOOR, CEIL
- Date: YEAR, MONTH, DAY, DATE_DIFF, ADD_DAYS, ADD_MONTHS
- Conditional: IF
- Checks: IS_NULL, IS_EMPTY, IS_NUMBER, IS_DATE
- Array: ARRAY_LENGTH, ARRAY_CONTAINS, ARRAY_JOIN
- System: UUID
"""

import calendar
import math
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Iterator, Mapping

from .coercion import is_truthy, normalize_number, to_date, to_number, to_text

ExpressionFunction = Callable[..., Any]

MS_PER_DAY = 24 * 60 * 60 * 1000


def _number_or_zero(value: Any) -> float | int:
    number = to_number(value)
    return 0 if math.isnan(number) else number


def _numbers(args: tuple[Any, ...]) -> list[float | int]:
    numbers = []
    for arg in args:
        if arg is None:
            continue
        number = to_number(arg)
        if not math.isnan(number):
            numbers.append(number)
    return numbers


# String functions

def concat(*args: Any) -> str:
    return "".join(to_text(arg) for arg in args)


def upper(value: Any) -> str:
    return to_text(value).upper()


def lower(value: Any) -> str:
    return to_text(value).lower()


def trim(value: Any) -> str:
    return to_text(value).strip()


def length(value: Any) -> int:
    return len(to_text(value))


def substring(value: Any, start: Any = 0, count: Any = None) -> str:
    """SUBSTRING("hello", 1, 3) -> "ell". Negative or invalid positions clamp to 0."""
    text = to_text(value)
    begin = _number_or_zero(start)
    begin = max(0, int(begin)) if math.isfinite(begin) else 0
    if count is None:
        return text[begin:]
    size = _number_or_zero(count)
    size = max(0, int(size)) if math.isfinite(size) else len(text)
    return text[begin:begin + size]


def replace(value: Any, search: Any, replacement: Any) -> str:
    """Replace the first occurrence only."""
    return to_text(value).replace(to_text(search), to_text(replacement), 1)


def contains(value: Any, search: Any) -> bool:
    return to_text(search) in to_text(value)


# Math functions

def sum_(*args: Any) -> float | int:
    return normalize_number(sum(_number_or_zero(arg) for arg in args))


def avg(*args: Any) -> float | int:
    numbers = _numbers(args)
    if not numbers:
        return 0
    return normalize_number(sum(numbers) / len(numbers))


def min_(*args: Any) -> float | int:
    numbers = _numbers(args)
    return min(numbers) if numbers else 0


def max_(*args: Any) -> float | int:
    numbers = _numbers(args)
    return max(numbers) if numbers else 0


def abs_(value: Any) -> float | int:
    return abs(_number_or_zero(value))


def round_(value: Any) -> float | int:
    """Round half up: ROUND(2.5) -> 3, ROUND(-2.5) -> -2."""
    number = _number_or_zero(value)
    if not math.isfinite(number):
        return number
    return math.floor(number + 0.5)


def floor(value: Any) -> float | int:
    number = _number_or_zero(value)
    return math.floor(number) if math.isfinite(number) else number


def ceil(value: Any) -> float | int:
    number = _number_or_zero(value)
    return math.ceil(number) if math.isfinite(number) else number


# Date functions

def year(value: Any) -> int:
    parsed = to_date(value)
    return parsed.year if parsed else 0


def month(value: Any) -> int:
    parsed = to_date(value)
    return parsed.month if parsed else 0


def day(value: Any) -> int:
    parsed = to_date(value)
    return parsed.day if parsed else 0


def date_diff(first: Any, second: Any) -> int:
    """Whole days between two dates, rounded up, regardless of order."""
    start, end = to_date(first), to_date(second)
    if start is None or end is None:
        return 0
    diff_ms = abs(start.timestamp() - end.timestamp()) * 1000
    return math.ceil(diff_ms / MS_PER_DAY)


def add_days(value: Any, days: Any) -> datetime | None:
    parsed = to_date(value)
    amount = to_number(days)
    if parsed is None or not math.isfinite(amount):
        return None
    try:
        return parsed + timedelta(days=amount)
    except OverflowError:
        return None


def add_months(value: Any, months: Any) -> datetime | None:
    """Add calendar months, clamping to the last day of the target month."""
    parsed = to_date(value)
    amount = to_number(months)
    if parsed is None or not math.isfinite(amount):
        return None
    index = parsed.month - 1 + int(amount)
    target_year = parsed.year + index // 12
    target_month = index % 12 + 1
    if not 1 <= target_year <= 9999:
        return None
    last_day = calendar.monthrange(target_year, target_month)[1]
    return parsed.replace(year=target_year, month=target_month, day=min(parsed.day, last_day))


# Conditional / checks

def if_(condition: Any, when_true: Any = None, when_false: Any = None) -> Any:
    return when_true if is_truthy(condition) else when_false


def is_null(value: Any) -> bool:
    return value is None


def is_empty(value: Any) -> bool:
    return not is_truthy(value) or to_text(value).strip() == ""


def is_number(value: Any) -> bool:
    if value is None or value == "":
        return False
    return not math.isnan(to_number(value))


def is_date(value: Any) -> bool:
    return to_date(value) is not None


# Array functions

def array_length(value: Any) -> int:
    return len(value) if isinstance(value, (list, tuple)) else 0


def array_contains(value: Any, item: Any) -> bool:
    return item in value if isinstance(value, (list, tuple)) else False


def array_join(value: Any, separator: Any = ",") -> str:
    if not isinstance(value, (list, tuple)):
        return ""
    return to_text(separator).join(to_text(item) for item in value)


def new_uuid() -> str:
    return str(uuid.uuid4())


BUILTIN_FUNCTIONS: dict[str, ExpressionFunction] = {
    "CONCAT": concat,
    "UPPER": upper,
    "LOWER": lower,
    "TRIM": trim,
    "LENGTH": length,
    "SUBSTRING": substring,
    "REPLACE": replace,
    "CONTAINS": contains,
    "SUM": sum_,
    "AVG": avg,
    "MIN": min_,
    "MAX": max_,
    "ABS": abs_,
    "ROUND": round_,
    "FLOOR": floor,
    "CEIL": ceil,
    "YEAR": year,
    "MONTH": month,
    "DAY": day,
    "DATE_DIFF": date_diff,
    "ADD_DAYS": add_days,
    "ADD_MONTHS": add_months,
    "IF": if_,
    "IS_NULL": is_null,
    "IS_EMPTY": is_empty,
    "IS_NUMBER": is_number,
    "IS_DATE": is_date,
    "ARRAY_LENGTH": array_length,
    "ARRAY_CONTAINS": array_contains,
    "ARRAY_JOIN": array_join,
    "UUID": new_uuid,
}


class FunctionRegistry:
    """Name -> function mapping consulted by the evaluator.

    Example:
        registry = FunctionRegistry.with_builtins()

        @registry.register("DISCOUNTED")
        def discounted(price, percent):
            return price * (100 - percent) / 100
    """

    def __init__(self, functions: Mapping[str, ExpressionFunction] | None = None) -> None:
        self._functions: dict[str, ExpressionFunction] = dict(functions or {})

    @classmethod
    def with_builtins(cls) -> "FunctionRegistry":
        """Create a registry holding the built-in functions."""
        return cls(BUILTIN_FUNCTIONS)

    def register(
        self, name: str, func: ExpressionFunction | None = None
    ) -> Any:
        """Register a function, directly or as a decorator.

        Registering an existing name replaces it.
        """
        if func is not None:
            self._functions[name] = func
            return func

        def decorator(f: ExpressionFunction) -> ExpressionFunction:
            self._functions[name] = f
            return f

        return decorator

    def get(self, name: str) -> ExpressionFunction | None:
        return self._functions.get(name)

    def names(self) -> list[str]:
        return sorted(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._functions)
