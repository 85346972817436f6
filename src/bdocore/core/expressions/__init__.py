"""Expression evaluation API.

Expression trees arrive pre-parsed in BDO metadata. Decode them with
``parse_expression`` and evaluate them against an ``EvaluationContext``.
"""

from .ast import (
    AssignmentExpression,
    BinaryExpression,
    CallExpression,
    Identifier,
    Literal,
    LogicalExpression,
    MemberExpression,
    Node,
    PropertyRef,
    SystemIdentifier,
)
from .context import (
    SYSTEM_CURRENT_USER,
    SYSTEM_NOW,
    SYSTEM_TODAY,
    EvaluationContext,
    get_system_values,
)
from .engine import ExpressionEngine
from .evaluator import Evaluator, evaluate
from .exceptions import (
    ArityError,
    ExpressionError,
    MaxDepthExceededError,
    UnknownFunctionError,
    UnsupportedExpressionError,
    UnsupportedOperatorError,
)
from .functions import BUILTIN_FUNCTIONS, FunctionRegistry
from .metadata import BDOMetadataSchema, RuleSchema
from .schemas import ExpressionTreeSchema, parse_expression

__all__ = [
    "evaluate",
    "parse_expression",
    "Evaluator",
    "ExpressionEngine",
    "EvaluationContext",
    "get_system_values",
    "FunctionRegistry",
    "BUILTIN_FUNCTIONS",
    "ExpressionTreeSchema",
    "BDOMetadataSchema",
    "RuleSchema",
    "SYSTEM_NOW",
    "SYSTEM_TODAY",
    "SYSTEM_CURRENT_USER",
    "Node",
    "PropertyRef",
    "Literal",
    "Identifier",
    "SystemIdentifier",
    "BinaryExpression",
    "LogicalExpression",
    "CallExpression",
    "MemberExpression",
    "AssignmentExpression",
    "ExpressionError",
    "UnsupportedExpressionError",
    "UnsupportedOperatorError",
    "UnknownFunctionError",
    "ArityError",
    "MaxDepthExceededError",
]
