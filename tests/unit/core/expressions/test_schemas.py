"""Unit tests for decoding expression trees from metadata."""

import json

import pytest

from bdocore.core.expressions import (
    BinaryExpression,
    CallExpression,
    ExpressionError,
    Identifier,
    Literal,
    MemberExpression,
    PropertyRef,
    SystemIdentifier,
    UnsupportedExpressionError,
    parse_expression,
)

PRICE_BELOW_MRP = {
    "Type": "BinaryExpression",
    "Operator": "<=",
    "Arguments": [
        {"Type": "Identifier", "Name": "Price", "Source": "BDO"},
        {"Type": "Identifier", "Name": "MRP"},
    ],
}


def test_parse_backend_shape():
    node = parse_expression(PRICE_BELOW_MRP)

    assert node == BinaryExpression(
        operator="<=",
        args=[Identifier(name="Price", source="BDO"), Identifier(name="MRP")],
    )


def test_parse_snake_case_shape():
    node = parse_expression(
        {
            "type": "CallExpression",
            "callee": "UPPER",
            "args": [{"type": "Literal", "value": "x"}],
        }
    )
    assert node == CallExpression(callee="UPPER", args=[Literal(value="x")])


def test_parse_nested_property():
    node = parse_expression(
        {
            "Type": "MemberExpression",
            "Arguments": [
                {
                    "Type": "SystemIdentifier",
                    "Name": "CURRENT_USER",
                    "Property": {"Name": "Manager", "Property": {"Name": "Email"}},
                }
            ],
        }
    )

    assert node == MemberExpression(
        args=[
            SystemIdentifier(
                name="CURRENT_USER",
                property=PropertyRef(name="Manager", property=PropertyRef(name="Email")),
            )
        ]
    )


def test_parse_json_string():
    assert parse_expression(json.dumps(PRICE_BELOW_MRP)) == parse_expression(PRICE_BELOW_MRP)


def test_parse_returns_nodes_unchanged():
    node = Literal(value=1)
    assert parse_expression(node) is node


def test_unknown_type():
    with pytest.raises(UnsupportedExpressionError, match="ConditionalExpression"):
        parse_expression({"Type": "ConditionalExpression", "Arguments": []})


def test_unknown_nested_type():
    tree = {"Type": "LogicalExpression", "Operator": "AND", "Arguments": [{"Type": "Lambda"}]}
    with pytest.raises(UnsupportedExpressionError):
        parse_expression(tree)


@pytest.mark.parametrize("data", [{"Operator": "+"}, "{not json", 42])
def test_invalid_trees(data):
    with pytest.raises(ExpressionError):
        parse_expression(data)
