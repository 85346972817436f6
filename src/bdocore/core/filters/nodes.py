"""Filter tree nodes.

A filter is a tree whose leaves are ``Condition`` predicates and whose
inner nodes are ``ConditionGroup`` boolean combinators. Nodes are created
by ``FilterTreeManager`` so that every node receives its identity exactly
once, at creation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class ConditionOperator(str, Enum):
    """Operators for leaf conditions."""

    EQ = "EQ"
    NE = "NE"
    GT = "GT"
    GTE = "GTE"
    LT = "LT"
    LTE = "LTE"
    BETWEEN = "Between"
    NOT_BETWEEN = "NotBetween"
    IN = "IN"
    NIN = "NIN"
    EMPTY = "Empty"
    NOT_EMPTY = "NotEmpty"
    CONTAINS = "Contains"
    NOT_CONTAINS = "NotContains"
    MIN_LENGTH = "MinLength"
    MAX_LENGTH = "MaxLength"


class GroupOperator(str, Enum):
    """Operators for combining conditions in a group."""

    AND = "And"
    OR = "Or"
    NOT = "Not"


class RHSType(str, Enum):
    """What the right-hand side of a condition refers to."""

    CONSTANT = "Constant"
    BO_FIELD = "BOField"
    APP_VARIABLE = "AppVariable"


RANGE_OPERATORS = frozenset({ConditionOperator.BETWEEN, ConditionOperator.NOT_BETWEEN})
LIST_OPERATORS = frozenset({ConditionOperator.IN, ConditionOperator.NIN})
VALUELESS_OPERATORS = frozenset({ConditionOperator.EMPTY, ConditionOperator.NOT_EMPTY})
ORDERING_OPERATORS = frozenset(
    {
        ConditionOperator.GT,
        ConditionOperator.GTE,
        ConditionOperator.LT,
        ConditionOperator.LTE,
    }
)
LENGTH_OPERATORS = frozenset({ConditionOperator.MIN_LENGTH, ConditionOperator.MAX_LENGTH})


class FilterError(Exception):
    """Raised when a filter payload cannot be turned into a tree."""

    pass


class FilterDepthError(FilterError):
    """Raised when a filter payload nests groups deeper than allowed."""

    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        super().__init__(f"Filter nesting exceeds maximum depth of {max_depth}")


@dataclass
class Condition:
    """Leaf predicate comparing one field against a value.

    Attributes:
        id: Identity assigned by the owning manager. Never sent on the wire.
        operator: Comparison operator.
        lhs_field: Name of the field being compared.
        rhs_value: Constant, two-item list for range operators, or a list
            for IN/NIN. Unused for Empty/NotEmpty.
        rhs_type: Whether rhs_value is a constant or a reference.
    """

    id: str
    operator: ConditionOperator
    lhs_field: str
    rhs_value: Any = None
    rhs_type: RHSType = RHSType.CONSTANT


@dataclass
class ConditionGroup:
    """Boolean combinator over an ordered list of child nodes."""

    id: str
    operator: GroupOperator = GroupOperator.AND
    children: list["FilterNode"] = field(default_factory=list)


FilterNode = Union[Condition, ConditionGroup]


def is_group(node: Any) -> bool:
    """Tell a group apart from a leaf condition."""
    return isinstance(node, ConditionGroup)
