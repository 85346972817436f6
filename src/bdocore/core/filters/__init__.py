"""Filter tree API.

Build a filter interactively with ``FilterTreeManager`` and hand its
``payload`` to the transport layer as a list/count request's ``Filter``.
"""

from .manager import FilterState, FilterTreeManager
from .nodes import (
    Condition,
    ConditionGroup,
    ConditionOperator,
    FilterDepthError,
    FilterError,
    FilterNode,
    GroupOperator,
    RHSType,
    is_group,
)
from .payload import (
    build_payload,
    merge_payloads,
    payload_to_string,
    payloads_equal,
    validate_payload,
)
from .validation import (
    FieldDefinition,
    SelectOption,
    ValidationIssue,
    ValidationResult,
    default_field_definition,
    field_definitions_from_sample,
    validate_condition,
)

__all__ = [
    "Condition",
    "ConditionGroup",
    "ConditionOperator",
    "FieldDefinition",
    "FilterDepthError",
    "FilterError",
    "FilterNode",
    "FilterState",
    "FilterTreeManager",
    "GroupOperator",
    "RHSType",
    "SelectOption",
    "ValidationIssue",
    "ValidationResult",
    "build_payload",
    "default_field_definition",
    "field_definitions_from_sample",
    "is_group",
    "merge_payloads",
    "payload_to_string",
    "payloads_equal",
    "validate_condition",
    "validate_payload",
]
