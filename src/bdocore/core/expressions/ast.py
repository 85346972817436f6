"""Abstract Syntax Tree nodes for computed-field expressions.

Trees arrive already parsed, decoded from metadata documents. Property
access metadata travels on the node being accessed: a ``MemberExpression``
reads the property name from its first argument's ``property``.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class PropertyRef:
    """Property descriptor attached to a node (e.g. CURRENT_USER.Email)."""
    name: str
    property: Optional["PropertyRef"] = None


@dataclass
class Node:
    """Base class for all AST nodes."""
    pass


@dataclass
class Literal(Node):
    """Represents a literal value (string, number, boolean, null)."""
    value: Any
    property: Optional[PropertyRef] = None


@dataclass
class Identifier(Node):
    """Represents a reference to a form field value."""
    name: str
    source: Optional[str] = None
    property: Optional[PropertyRef] = None


@dataclass
class SystemIdentifier(Node):
    """Represents an ambient system value (NOW, TODAY, CURRENT_USER)."""
    name: str
    property: Optional[PropertyRef] = None


@dataclass
class BinaryExpression(Node):
    """Represents a comparison or arithmetic operation over two arguments."""
    operator: str
    args: list[Node] = field(default_factory=list)
    property: Optional[PropertyRef] = None


@dataclass
class LogicalExpression(Node):
    """Represents AND / OR over its arguments, or ! over the first one."""
    operator: str
    args: list[Node] = field(default_factory=list)
    property: Optional[PropertyRef] = None


@dataclass
class CallExpression(Node):
    """Represents a call to a registered function."""
    callee: Optional[str]
    args: list[Node] = field(default_factory=list)
    property: Optional[PropertyRef] = None


@dataclass
class MemberExpression(Node):
    """Represents property access on the value of ``args[0]``."""
    args: list[Node] = field(default_factory=list)
    property: Optional[PropertyRef] = None


@dataclass
class AssignmentExpression(Node):
    """Represents "compute and assign"; evaluates to its single argument."""
    args: list[Node] = field(default_factory=list)
    property: Optional[PropertyRef] = None
