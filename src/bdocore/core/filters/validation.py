"""Validation of filter nodes.

Validation never blocks editing: the manager keeps invalid nodes in the
tree and reports their problems, so a half-built condition can be fixed
in place.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Literal, Mapping

from .nodes import (
    LENGTH_OPERATORS,
    LIST_OPERATORS,
    ORDERING_OPERATORS,
    RANGE_OPERATORS,
    VALUELESS_OPERATORS,
    Condition,
    ConditionGroup,
    ConditionOperator,
    FilterNode,
    GroupOperator,
    is_group,
)

FieldType = Literal["string", "number", "date", "boolean", "select"]


@dataclass
class ValidationResult:
    """Outcome of validating one node."""

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)


@dataclass
class ValidationIssue:
    """A single problem found in a tree, addressed by node identity."""

    condition_id: str
    field: str
    message: str


@dataclass
class SelectOption:
    """One choice of a select field."""

    label: str
    value: Any


@dataclass
class FieldDefinition:
    """Describes how a field may be filtered.

    Attributes:
        type: Field data type.
        allowed_operators: Operators the field accepts.
        select_options: Choices for select fields.
    """

    type: FieldType
    allowed_operators: frozenset[ConditionOperator]
    select_options: list[SelectOption] = field(default_factory=list)

    def validate_value(self, value: Any, operator: ConditionOperator) -> ValidationResult:
        """Check a right-hand side value against this field's type."""
        validator = VALUE_VALIDATORS[self.type]
        if self.type == "select":
            return validator(value, operator, self.select_options)
        return validator(value, operator)


def _result(errors: list[str]) -> ValidationResult:
    return ValidationResult(is_valid=not errors, errors=errors)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def _parse_date(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    if _is_number(value):
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def validate_number_value(value: Any, operator: ConditionOperator) -> ValidationResult:
    """Validate a numeric right-hand side."""
    errors: list[str] = []

    if operator in RANGE_OPERATORS:
        if not isinstance(value, list) or len(value) != 2:
            errors.append("Between operators require exactly two numeric values")
        elif not all(_is_number(v) for v in value):
            errors.append("Between values must be numbers")
        elif value[0] >= value[1]:
            errors.append("First value must be less than second value")
    elif operator in LIST_OPERATORS:
        if not isinstance(value, list) or not value:
            errors.append("IN/NIN operators require a non-empty array of numbers")
        elif not all(_is_number(v) for v in value):
            errors.append("All values in array must be numbers")
    elif operator not in VALUELESS_OPERATORS and not _is_number(value):
        errors.append("Value must be a valid number")

    return _result(errors)


def validate_date_value(value: Any, operator: ConditionOperator) -> ValidationResult:
    """Validate a date right-hand side (date objects, ISO strings, or epoch ms)."""
    errors: list[str] = []

    if operator in RANGE_OPERATORS:
        if not isinstance(value, list) or len(value) != 2:
            errors.append("Between operators require exactly two date values")
        else:
            start, end = (_parse_date(v) for v in value)
            if start is None or end is None:
                errors.append("Between values must be valid dates")
            elif _timestamp(start) >= _timestamp(end):
                errors.append("Start date must be before end date")
    elif operator in LIST_OPERATORS:
        if not isinstance(value, list) or not value:
            errors.append("IN/NIN operators require a non-empty array of dates")
        elif not all(_parse_date(v) is not None for v in value):
            errors.append("All values in array must be valid dates")
    elif operator not in VALUELESS_OPERATORS and _parse_date(value) is None:
        errors.append("Value must be a valid date")

    return _result(errors)


def _timestamp(value: datetime) -> float:
    return value.timestamp()


def validate_string_value(value: Any, operator: ConditionOperator) -> ValidationResult:
    """Validate a string right-hand side."""
    errors: list[str] = []

    if operator in RANGE_OPERATORS:
        errors.append("Between operators are not supported for string fields")
    elif operator in ORDERING_OPERATORS:
        errors.append("Comparison operators are not supported for string fields")
    elif operator in LIST_OPERATORS:
        if not isinstance(value, list) or not value:
            errors.append("IN/NIN operators require a non-empty array of strings")
        elif not all(isinstance(v, str) for v in value):
            errors.append("All values in array must be strings")
    elif operator in LENGTH_OPERATORS:
        if not _is_number(value) or value < 0:
            errors.append(f"{operator.value} value must be a non-negative number")
    elif operator not in VALUELESS_OPERATORS and not isinstance(value, str):
        errors.append("Value must be a string")

    return _result(errors)


BOOLEAN_OPERATORS = frozenset(
    {
        ConditionOperator.EQ,
        ConditionOperator.NE,
        ConditionOperator.IN,
        ConditionOperator.NIN,
        ConditionOperator.EMPTY,
        ConditionOperator.NOT_EMPTY,
    }
)


def validate_boolean_value(value: Any, operator: ConditionOperator) -> ValidationResult:
    """Validate a boolean right-hand side."""
    if operator not in BOOLEAN_OPERATORS:
        return _result([f"Operator {operator.value} is not supported for boolean fields"])

    errors: list[str] = []
    if operator in LIST_OPERATORS:
        if not isinstance(value, list) or not value:
            errors.append("IN/NIN operators require a non-empty array of boolean values")
        elif not all(isinstance(v, bool) for v in value):
            errors.append("All values in array must be boolean")
    elif operator not in VALUELESS_OPERATORS and not isinstance(value, bool):
        errors.append("Value must be a boolean (true or false)")

    return _result(errors)


def validate_select_value(
    value: Any,
    operator: ConditionOperator,
    select_options: list[SelectOption] | None = None,
) -> ValidationResult:
    """Validate a select right-hand side against the available options."""
    if not select_options:
        return _result(["No select options defined for this field"])

    valid_values = [option.value for option in select_options]
    errors: list[str] = []

    if operator in RANGE_OPERATORS or operator in ORDERING_OPERATORS:
        errors.append(f"Operator {operator.value} is not supported for select fields")
    elif operator in LIST_OPERATORS:
        if not isinstance(value, list) or not value:
            errors.append("IN/NIN operators require a non-empty array of values")
        elif not all(v in valid_values for v in value):
            errors.append("All values must be from the available options")
    elif operator not in VALUELESS_OPERATORS and value not in valid_values:
        errors.append("Value must be one of the available options")

    return _result(errors)


VALUE_VALIDATORS: dict[str, Callable[..., ValidationResult]] = {
    "string": validate_string_value,
    "number": validate_number_value,
    "date": validate_date_value,
    "boolean": validate_boolean_value,
    "select": validate_select_value,
}

_COMPARABLE_OPERATORS = frozenset(
    {
        ConditionOperator.EQ,
        ConditionOperator.NE,
        *ORDERING_OPERATORS,
        *RANGE_OPERATORS,
        *LIST_OPERATORS,
        *VALUELESS_OPERATORS,
    }
)

DEFAULT_ALLOWED_OPERATORS: dict[str, frozenset[ConditionOperator]] = {
    "string": frozenset(
        {
            ConditionOperator.EQ,
            ConditionOperator.NE,
            ConditionOperator.CONTAINS,
            ConditionOperator.NOT_CONTAINS,
            *LIST_OPERATORS,
            *VALUELESS_OPERATORS,
            *LENGTH_OPERATORS,
        }
    ),
    "number": _COMPARABLE_OPERATORS,
    "date": _COMPARABLE_OPERATORS,
    "boolean": BOOLEAN_OPERATORS,
    "select": BOOLEAN_OPERATORS,
}


def default_field_definition(field_type: str) -> FieldDefinition:
    """Get the default definition for a field type.

    Unknown types fall back to ``string``.
    """
    if field_type not in DEFAULT_ALLOWED_OPERATORS:
        field_type = "string"
    return FieldDefinition(
        type=field_type,  # type: ignore[arg-type]
        allowed_operators=DEFAULT_ALLOWED_OPERATORS[field_type],
    )


def field_definitions_from_sample(sample: Mapping[str, Any]) -> dict[str, FieldDefinition]:
    """Infer field definitions from a sample record."""
    definitions: dict[str, FieldDefinition] = {}
    for name, value in sample.items():
        if isinstance(value, bool):
            field_type = "boolean"
        elif isinstance(value, (int, float)):
            field_type = "number"
        elif isinstance(value, (date, datetime)):
            field_type = "date"
        else:
            field_type = "string"
        definitions[name] = default_field_definition(field_type)
    return definitions


def validate_condition(
    node: FilterNode,
    field_definitions: Mapping[str, FieldDefinition] | None = None,
) -> ValidationResult:
    """Validate a leaf condition or, recursively, a group.

    Args:
        node: The node to validate.
        field_definitions: Optional per-field rules; when the node's field
            has a definition, its operator and value are checked too.

    Returns:
        ValidationResult with every problem found.
    """
    if is_group(node):
        return _validate_group(node, field_definitions)
    return _validate_leaf(node, field_definitions)


def _validate_group(
    group: ConditionGroup, field_definitions: Mapping[str, FieldDefinition] | None
) -> ValidationResult:
    errors: list[str] = []

    if not group.children:
        errors.append("Logical operators require at least one child condition")
    elif group.operator == GroupOperator.NOT and len(group.children) != 1:
        errors.append("Not operator can only have one child condition")

    for index, child in enumerate(group.children, start=1):
        child_result = validate_condition(child, field_definitions)
        errors.extend(f"Child {index}: {err}" for err in child_result.errors)

    return _result(errors)


def _validate_leaf(
    condition: Condition, field_definitions: Mapping[str, FieldDefinition] | None
) -> ValidationResult:
    errors: list[str] = []
    operator = condition.operator
    value = condition.rhs_value

    if not condition.lhs_field:
        errors.append("Field is required for condition operators")

    if operator in RANGE_OPERATORS:
        if not isinstance(value, list) or len(value) != 2:
            errors.append("Between operators require an array of two values")
    elif operator in LIST_OPERATORS:
        if not isinstance(value, list) or not value:
            errors.append("IN/NIN operators require a non-empty array")
    elif operator not in VALUELESS_OPERATORS:
        if value is None or value == "":
            errors.append("Value is required for this operator")

    definition = (field_definitions or {}).get(condition.lhs_field)
    if definition is not None:
        if operator not in definition.allowed_operators:
            errors.append(
                f"Operator {operator.value} is not allowed for field {condition.lhs_field}"
            )
        elif value is not None:
            errors.extend(definition.validate_value(value, operator).errors)

    return _result(errors)
