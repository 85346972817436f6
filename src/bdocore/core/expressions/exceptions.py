"""Exceptions for expression decoding and evaluation.

These cover broken formula definitions only. Odd data (missing fields,
non-numeric operands, zero divisors) never raises.
"""


class ExpressionError(Exception):
    """Base class for all expression-related errors."""
    pass


class UnsupportedExpressionError(ExpressionError):
    """Raised when a node kind is not one of the recognized expression types."""
    def __init__(self, node_type: str):
        self.node_type = node_type
        super().__init__(f"Unsupported expression type: {node_type}")


class UnsupportedOperatorError(ExpressionError):
    """Raised when a binary or logical operator is unknown."""
    def __init__(self, kind: str, operator: str | None):
        self.operator = operator
        super().__init__(f"Unsupported {kind} operator: {operator}")


class UnknownFunctionError(ExpressionError):
    """Raised when a CallExpression names a function that is not registered."""
    def __init__(self, callee: str):
        self.callee = callee
        super().__init__(f"Unknown function: {callee}")


class ArityError(ExpressionError):
    """Raised when a node has the wrong number of arguments."""
    pass


class MaxDepthExceededError(ExpressionError):
    """Raised when an expression tree nests deeper than allowed."""
    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        super().__init__(f"Expression exceeds maximum depth of {max_depth}")
