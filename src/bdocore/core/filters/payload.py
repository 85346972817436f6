"""Wire payload helpers.

``build_payload`` is the only way a live tree leaves the manager: it
returns a fresh structure with every identity stripped. The remaining
helpers operate on already-built payloads.
"""

import copy
import json
from typing import Any, Iterable

from pydantic import ValidationError

from .nodes import Condition, ConditionGroup, FilterNode, GroupOperator, is_group
from .schemas import ConditionGroupSchema

Payload = dict[str, Any]


def build_payload(root: ConditionGroup) -> Payload | None:
    """Serialize a tree to the wire format.

    Groups without any serializable child are dropped, so an empty root
    (or a root holding only empty groups) yields ``None``. A Not group is
    dropped unless exactly one child survives.

    Args:
        root: Root group of the tree. It is not modified.

    Returns:
        The id-free payload, or None when there is nothing to filter on.
    """
    return _serialize_group(root)


def _serialize(node: FilterNode) -> Payload | None:
    if is_group(node):
        return _serialize_group(node)
    return _serialize_condition(node)


def _serialize_group(group: ConditionGroup) -> Payload | None:
    children = [
        child for child in (_serialize(c) for c in group.children) if child is not None
    ]
    if not children:
        return None
    if group.operator == GroupOperator.NOT and len(children) != 1:
        return None
    return {"Operator": group.operator.value, "Condition": children}


def _serialize_condition(condition: Condition) -> Payload:
    data: Payload = {
        "Operator": condition.operator.value,
        "LHSField": condition.lhs_field,
    }
    if condition.rhs_value is not None:
        # Lists are copied so the payload never aliases the live tree
        data["RHSValue"] = copy.deepcopy(condition.rhs_value)
    data["RHSType"] = condition.rhs_type.value
    return data


def validate_payload(payload: Payload | None) -> bool:
    """Check that a payload is well-formed.

    ``None`` is valid and means "no filtering".
    """
    if payload is None:
        return True
    try:
        ConditionGroupSchema.model_validate(payload)
    except ValidationError:
        return False
    return True


def merge_payloads(
    payloads: Iterable[Payload | None], operator: GroupOperator | str = GroupOperator.AND
) -> Payload | None:
    """Combine several payloads under one logical operator.

    Invalid and empty payloads are skipped. A payload whose own operator
    matches ``operator`` has its children spliced in; any other payload is
    nested as a single child so its semantics are preserved.
    """
    operator = GroupOperator(operator)
    if operator == GroupOperator.NOT:
        raise ValueError("Payloads can only be merged with And or Or")
    valid = [p for p in payloads if p is not None and validate_payload(p)]

    if not valid:
        return None
    if len(valid) == 1:
        return copy.deepcopy(valid[0])

    merged: list[Payload] = []
    for payload in valid:
        if payload["Operator"] == operator.value:
            merged.extend(copy.deepcopy(payload["Condition"]))
        else:
            merged.append(copy.deepcopy(payload))

    return {"Operator": operator.value, "Condition": merged}


def payload_to_string(payload: Payload | None) -> str:
    """Render a payload as a human-readable string for debugging.

    Examples:
        >>> payload_to_string({"Operator": "And", "Condition": [
        ...     {"Operator": "EQ", "LHSField": "Status", "RHSValue": "Open"}]})
        'Status EQ Open'
    """
    if payload is None:
        return "No filters"
    return _node_to_string(payload)


def _node_to_string(node: Payload) -> str:
    if "Condition" not in node:
        value = node.get("RHSValue")
        if isinstance(value, list):
            rhs = "[" + ", ".join(str(v) for v in value) + "]"
        elif value is None:
            rhs = ""
        else:
            rhs = str(value)
        return f"{node['LHSField']} {node['Operator']} {rhs}".rstrip()

    parts = [_node_to_string(child) for child in node["Condition"]]
    if node["Operator"] == GroupOperator.NOT.value:
        return f"Not ({parts[0]})" if parts else "Not ()"
    if len(parts) == 1:
        return parts[0]
    return "(" + f" {node['Operator']} ".join(parts) + ")"


def payloads_equal(first: Payload | None, second: Payload | None) -> bool:
    """Compare two payloads, ignoring the order of siblings."""
    if first is None or second is None:
        return first is None and second is None
    return _canonical(first) == _canonical(second)


def _canonical(node: Payload) -> str:
    if "Condition" in node:
        children = sorted(_canonical(child) for child in node["Condition"])
        return json.dumps({"Operator": node["Operator"], "Condition": children})
    return json.dumps(
        {
            "Operator": node.get("Operator"),
            "LHSField": node.get("LHSField"),
            "RHSValue": node.get("RHSValue"),
            "RHSType": node.get("RHSType", "Constant"),
        },
        sort_keys=True,
        default=str,
    )
