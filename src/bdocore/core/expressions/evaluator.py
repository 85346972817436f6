"""Evaluator for computed-field expressions."""

import inspect
import math
import operator
from typing import Any, Callable, Mapping

from bdocore.core.config import Settings, get_settings

from .ast import (
    AssignmentExpression,
    BinaryExpression,
    CallExpression,
    Identifier,
    Literal,
    LogicalExpression,
    MemberExpression,
    Node,
    SystemIdentifier,
)
from .coercion import NaN, is_truthy, loose_equals, normalize_number, to_number, to_timestamp
from .context import EvaluationContext
from .exceptions import (
    ArityError,
    MaxDepthExceededError,
    UnknownFunctionError,
    UnsupportedExpressionError,
    UnsupportedOperatorError,
)
from .functions import FunctionRegistry
from .schemas import parse_expression

_ORDERING: dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_ARITHMETIC = {"+", "-", "*", "/", "%"}

BINARY_OPERATORS = frozenset({"==", "!=", *_ORDERING, *_ARITHMETIC})
LOGICAL_OPERATORS = frozenset({"AND", "OR", "!"})


def _is_object(value: Any) -> bool:
    return isinstance(value, Mapping) or hasattr(value, "__dict__")


def _get_property(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


class Evaluator:
    """Evaluates an expression AST against an EvaluationContext.

    The evaluator keeps no per-call state, so one instance can be shared
    and called re-entrantly, including from inside a registered function.
    """

    def __init__(
        self,
        registry: FunctionRegistry | None = None,
        *,
        short_circuit: bool | None = None,
        max_depth: int | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the evaluator.

        Args:
            registry: Functions available to CallExpression nodes.
                Defaults to the built-in functions.
            short_circuit: Stop evaluating AND/OR arguments once the result
                is decided. When False every argument is evaluated.
                Defaults to the ``short_circuit_logical`` setting.
            max_depth: Maximum nesting depth. Defaults to the
                ``max_expression_depth`` setting.
            settings: Settings override, mainly for tests.
        """
        settings = settings or get_settings()
        self.registry = registry if registry is not None else FunctionRegistry.with_builtins()
        self.short_circuit = (
            settings.short_circuit_logical if short_circuit is None else short_circuit
        )
        self.max_depth = max_depth or settings.max_expression_depth

    def evaluate(self, node: Node | Mapping[str, Any], context: EvaluationContext) -> Any:
        """Evaluate a node.

        Args:
            node: An AST node, or a metadata mapping that decodes to one.
            context: Form values and system values for this pass.

        Returns:
            The computed value.

        Raises:
            ExpressionError: If the expression itself is malformed.
        """
        return self._evaluate(parse_expression(node), context, 1)

    def _evaluate(self, node: Node, context: EvaluationContext, depth: int) -> Any:
        if depth > self.max_depth:
            raise MaxDepthExceededError(self.max_depth)

        if isinstance(node, Literal):
            return node.value

        if isinstance(node, Identifier):
            return context.form_values.get(node.name)

        if isinstance(node, SystemIdentifier):
            return self._evaluate_system_identifier(node, context)

        if isinstance(node, BinaryExpression):
            return self._evaluate_binary(node, context, depth)

        if isinstance(node, LogicalExpression):
            return self._evaluate_logical(node, context, depth)

        if isinstance(node, CallExpression):
            return self._evaluate_call(node, context, depth)

        if isinstance(node, MemberExpression):
            return self._evaluate_member(node, context, depth)

        if isinstance(node, AssignmentExpression):
            # The caller stores the result; nothing is assigned here
            if len(node.args) == 1:
                return self._evaluate(node.args[0], context, depth + 1)
            return None

        raise UnsupportedExpressionError(type(node).__name__)

    def _evaluate_system_identifier(
        self, node: SystemIdentifier, context: EvaluationContext
    ) -> Any:
        """Read a system value, applying the node's property to objects.

        Only mappings and plain objects count as objects. Dates do not, so
        ``NOW`` or ``TODAY`` with a property yield the datetime itself
        rather than None.
        """
        value = context.system_values.get(node.name)
        if node.property is not None and value is not None and _is_object(value):
            return _get_property(value, node.property.name)
        return value

    def _evaluate_binary(
        self, node: BinaryExpression, context: EvaluationContext, depth: int
    ) -> Any:
        if len(node.args) != 2:
            raise ArityError("BinaryExpression requires 2 arguments")
        op = node.operator
        if op not in BINARY_OPERATORS:
            raise UnsupportedOperatorError("binary", op)

        left = self._evaluate(node.args[0], context, depth + 1)
        right = self._evaluate(node.args[1], context, depth + 1)

        if op == "==":
            return loose_equals(left, right)
        if op == "!=":
            return not loose_equals(left, right)

        if op in _ORDERING:
            # Two date-like operands compare as instants, anything else as numbers
            left_ts, right_ts = to_timestamp(left), to_timestamp(right)
            if left_ts is not None and right_ts is not None:
                return _ORDERING[op](left_ts, right_ts)
            return _ORDERING[op](to_number(left), to_number(right))

        return self._arithmetic(op, to_number(left), to_number(right))

    @classmethod
    def _arithmetic(cls, op: str, left: float | int, right: float | int) -> float | int:
        try:
            return cls._apply_arithmetic(op, left, right)
        except OverflowError:
            # Integers too large for a float
            return NaN

    @staticmethod
    def _apply_arithmetic(op: str, left: float | int, right: float | int) -> float | int:
        if op == "+":
            result = left + right
        elif op == "-":
            result = left - right
        elif op == "*":
            result = left * right
        elif op == "/":
            if right == 0:
                return 0
            result = left / right
        else:
            if right == 0:
                return 0
            if not math.isfinite(left):
                return NaN
            # Sign follows the dividend
            result = math.fmod(left, right)
        return normalize_number(result)

    def _evaluate_logical(
        self, node: LogicalExpression, context: EvaluationContext, depth: int
    ) -> bool:
        if not node.args:
            raise ArityError("LogicalExpression requires at least 1 argument")
        op = node.operator
        if op not in LOGICAL_OPERATORS:
            raise UnsupportedOperatorError("logical", op)

        if op == "!":
            # Extra arguments are ignored
            return not is_truthy(self._evaluate(node.args[0], context, depth + 1))

        results = (is_truthy(self._evaluate(arg, context, depth + 1)) for arg in node.args)
        if not self.short_circuit:
            results = list(results)

        if op == "AND":
            return all(results)
        return any(results)

    def _evaluate_call(self, node: CallExpression, context: EvaluationContext, depth: int) -> Any:
        if not node.callee:
            raise ArityError("CallExpression requires a callee")

        func = self.registry.get(node.callee)
        if func is None:
            raise UnknownFunctionError(node.callee)

        args = [self._evaluate(arg, context, depth + 1) for arg in node.args]

        try:
            inspect.signature(func).bind(*args)
        except TypeError as e:
            raise ArityError(f"{node.callee}: {e}") from e
        except ValueError:
            # No signature available (C builtins); let the call decide
            pass

        return func(*args)

    def _evaluate_member(
        self, node: MemberExpression, context: EvaluationContext, depth: int
    ) -> Any:
        if not node.args:
            return None

        target = node.args[0]
        base = self._evaluate(target, context, depth + 1)
        # The property name travels on the accessed node, not on the member node
        prop = getattr(target, "property", None)
        if prop is not None and base is not None and _is_object(base):
            return _get_property(base, prop.name)
        return base


def evaluate(
    node: Node | Mapping[str, Any],
    context: EvaluationContext,
    registry: FunctionRegistry | None = None,
) -> Any:
    """Evaluate an expression with a one-off evaluator."""
    return Evaluator(registry).evaluate(node, context)
