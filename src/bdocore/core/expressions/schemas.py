"""Pydantic schemas for expression trees found in metadata documents.

Backend metadata uses PascalCase keys::

    {"Type": "BinaryExpression", "Operator": ">",
     "Arguments": [{"Type": "Identifier", "Name": "Price"},
                   {"Type": "Literal", "Value": 0}]}

snake_case keys (``type``, ``operator``, ``args``...) are accepted too.
"""

import json
from typing import Any, Callable, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

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
from .exceptions import ExpressionError, UnsupportedExpressionError


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class PropertySchema(BaseModel):
    """Property descriptor, possibly nested one level further."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., validation_alias=_alias("Name", "name"))
    property: Optional["PropertySchema"] = Field(
        default=None, validation_alias=_alias("Property", "property")
    )

    def to_ref(self) -> PropertyRef:
        return PropertyRef(
            name=self.name,
            property=self.property.to_ref() if self.property else None,
        )


class ExpressionTreeSchema(BaseModel):
    """One node of an expression tree as stored in metadata."""

    model_config = ConfigDict(extra="ignore")

    type: str = Field(..., validation_alias=_alias("Type", "type"))
    operator: str | None = Field(default=None, validation_alias=_alias("Operator", "operator"))
    callee: str | None = Field(default=None, validation_alias=_alias("Callee", "callee"))
    arguments: list["ExpressionTreeSchema"] = Field(
        default_factory=list,
        validation_alias=_alias("Arguments", "arguments", "args"),
    )
    name: str | None = Field(default=None, validation_alias=_alias("Name", "name"))
    source: str | None = Field(default=None, validation_alias=_alias("Source", "source"))
    property: PropertySchema | None = Field(
        default=None, validation_alias=_alias("Property", "property")
    )
    value: Any = Field(default=None, validation_alias=_alias("Value", "value"))

    def to_node(self) -> Node:
        """Convert to AST dataclasses.

        Raises:
            UnsupportedExpressionError: If ``type`` is not a known node kind.
        """
        builder = _BUILDERS.get(self.type)
        if builder is None:
            raise UnsupportedExpressionError(self.type)
        return builder(self)

    def child_nodes(self) -> list[Node]:
        return [arg.to_node() for arg in self.arguments]

    def property_ref(self) -> PropertyRef | None:
        return self.property.to_ref() if self.property else None


_BUILDERS: dict[str, Callable[[ExpressionTreeSchema], Node]] = {
    "Literal": lambda s: Literal(value=s.value, property=s.property_ref()),
    "Identifier": lambda s: Identifier(
        name=s.name or "", source=s.source, property=s.property_ref()
    ),
    "SystemIdentifier": lambda s: SystemIdentifier(name=s.name or "", property=s.property_ref()),
    "BinaryExpression": lambda s: BinaryExpression(
        operator=s.operator or "", args=s.child_nodes(), property=s.property_ref()
    ),
    "LogicalExpression": lambda s: LogicalExpression(
        operator=s.operator or "", args=s.child_nodes(), property=s.property_ref()
    ),
    "CallExpression": lambda s: CallExpression(
        callee=s.callee, args=s.child_nodes(), property=s.property_ref()
    ),
    "MemberExpression": lambda s: MemberExpression(args=s.child_nodes(), property=s.property_ref()),
    "AssignmentExpression": lambda s: AssignmentExpression(
        args=s.child_nodes(), property=s.property_ref()
    ),
}


def parse_expression(data: Any) -> Node:
    """Decode an expression tree from metadata.

    Args:
        data: An AST node (returned unchanged), a mapping, or a JSON string.

    Returns:
        The root AST node.

    Raises:
        ExpressionError: If the data is not a valid expression tree.
    """
    if isinstance(data, Node):
        return data
    try:
        if isinstance(data, (str, bytes)):
            schema = ExpressionTreeSchema.model_validate(json.loads(data))
        else:
            schema = ExpressionTreeSchema.model_validate(data)
    except (ValidationError, json.JSONDecodeError) as e:
        raise ExpressionError(f"Invalid expression tree: {e}") from e
    return schema.to_node()


PropertySchema.model_rebuild()
ExpressionTreeSchema.model_rebuild()
