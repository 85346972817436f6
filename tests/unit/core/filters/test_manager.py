"""Unit tests for FilterTreeManager."""

import pytest

from bdocore.core.config import Settings
from bdocore.core.filters import (
    Condition,
    ConditionGroup,
    ConditionOperator,
    FilterDepthError,
    FilterError,
    FilterTreeManager,
    GroupOperator,
    RHSType,
    validate_payload,
)


def test_new_manager_is_empty(manager):
    """A fresh manager has an And root and no payload."""
    assert manager.root_operator == GroupOperator.AND
    assert manager.children == []
    assert manager.has_conditions is False
    assert manager.payload is None


def test_root_operator_from_settings():
    """The configured default root operator is used when none is passed."""
    manager = FilterTreeManager(settings=Settings(default_root_operator="or"))
    assert manager.root_operator == GroupOperator.OR


def test_add_condition_to_root(manager):
    """Conditions added without a parent land at the root, in order."""
    first = manager.add_condition("EQ", "Status", "Open")
    second = manager.add_condition(ConditionOperator.GT, "Price", 100)

    assert [node.id for node in manager.children] == [first, second]
    assert manager.payload == {
        "Operator": "And",
        "Condition": [
            {"Operator": "EQ", "LHSField": "Status", "RHSValue": "Open", "RHSType": "Constant"},
            {"Operator": "GT", "LHSField": "Price", "RHSValue": 100, "RHSType": "Constant"},
        ],
    }


def test_ids_are_unique(manager):
    """Every added node gets a distinct identity."""
    ids = {manager.add_condition("EQ", "Status", str(i)) for i in range(50)}
    assert len(ids) == 50
    assert manager.root_id not in ids


def test_ids_are_per_instance():
    """Two managers never hand out the same identity."""
    first = FilterTreeManager()
    second = FilterTreeManager()
    assert first.add_condition("EQ", "A", 1) != second.add_condition("EQ", "A", 1)


def test_nested_group(manager):
    """Conditions can be added to a nested group by its id."""
    manager.add_condition("EQ", "Status", "Open")
    group_id = manager.add_condition_group("Or")
    manager.add_condition("GT", "Price", 100, parent_id=group_id)
    manager.add_condition("Empty", "Discount", parent_id=group_id)

    assert manager.payload == {
        "Operator": "And",
        "Condition": [
            {"Operator": "EQ", "LHSField": "Status", "RHSValue": "Open", "RHSType": "Constant"},
            {
                "Operator": "Or",
                "Condition": [
                    {"Operator": "GT", "LHSField": "Price", "RHSValue": 100, "RHSType": "Constant"},
                    {"Operator": "Empty", "LHSField": "Discount", "RHSType": "Constant"},
                ],
            },
        ],
    }
    assert manager.condition_count == 2
    assert manager.total_count == 4


def test_add_with_root_id_as_parent(manager):
    """The root id is a valid parent."""
    node_id = manager.add_condition("EQ", "Status", "Open", parent_id=manager.root_id)
    assert manager.children[0].id == node_id


def test_add_to_missing_parent_is_noop(manager):
    """An unknown parent id adds nothing and returns None."""
    assert manager.add_condition("EQ", "Status", "Open", parent_id="missing") is None
    assert manager.add_condition_group("Or", parent_id="missing") is None
    assert manager.total_count == 0


def test_add_to_leaf_parent_is_noop(manager):
    """A leaf cannot be used as a parent."""
    leaf_id = manager.add_condition("EQ", "Status", "Open")
    assert manager.add_condition("EQ", "Name", "x", parent_id=leaf_id) is None
    assert manager.total_count == 1


def test_empty_group_is_dropped_from_payload(manager):
    """A group with no children never reaches the wire."""
    manager.add_condition_group("Or")
    assert manager.has_conditions is True
    assert manager.payload is None

    manager.add_condition("EQ", "Status", "Open")
    assert manager.payload == {
        "Operator": "And",
        "Condition": [
            {"Operator": "EQ", "LHSField": "Status", "RHSValue": "Open", "RHSType": "Constant"},
        ],
    }


def test_update_condition(manager):
    """Only the named fields change and the id is kept."""
    node_id = manager.add_condition("EQ", "Status", "Open")

    assert manager.update_condition(node_id, rhs_value="Closed") is True

    node = manager.get_condition(node_id)
    assert node.rhs_value == "Closed"
    assert node.lhs_field == "Status"
    assert node.operator == ConditionOperator.EQ


def test_update_condition_coerces_enums(manager):
    """String operators and RHS types are converted to their enums."""
    node_id = manager.add_condition("EQ", "Price", 10)
    manager.update_condition(node_id, operator="GTE", rhs_type="BOField", rhs_value="MRP")

    node = manager.get_condition(node_id)
    assert node.operator is ConditionOperator.GTE
    assert node.rhs_type is RHSType.BO_FIELD


def test_update_condition_is_all_or_nothing(manager):
    """A bad enum value leaves every field untouched."""
    node_id = manager.add_condition("EQ", "Status", "Open")

    with pytest.raises(ValueError):
        manager.update_condition(node_id, operator="NE", lhs_field="Other", rhs_type="Bogus")

    node = manager.get_condition(node_id)
    assert node.operator == ConditionOperator.EQ
    assert node.lhs_field == "Status"
    assert node.rhs_type == RHSType.CONSTANT


def test_update_nested_condition(manager):
    """Updates find leaves at any depth."""
    outer = manager.add_condition_group("Or")
    inner = manager.add_condition_group("And", parent_id=outer)
    leaf = manager.add_condition("LT", "Stock", 5, parent_id=inner)

    assert manager.update_condition(leaf, rhs_value=10) is True
    assert manager.get_condition(leaf).rhs_value == 10


def test_update_missing_or_group_is_noop(manager):
    """Unknown ids and groups are not updated."""
    group_id = manager.add_condition_group("Or")
    before = manager.export_state()

    assert manager.update_condition("missing", rhs_value=1) is False
    assert manager.update_condition(group_id, rhs_value=1) is False
    assert manager.export_state() == before


def test_update_rejects_unknown_fields(manager):
    """Misspelled field names are a programming error."""
    node_id = manager.add_condition("EQ", "Status", "Open")
    with pytest.raises(TypeError, match="rhs_valu"):
        manager.update_condition(node_id, rhs_valu="Closed")


def test_update_group_operator(manager):
    """Group operators can be switched, leaves are left alone."""
    group_id = manager.add_condition_group("And")
    leaf_id = manager.add_condition("EQ", "Status", "Open", parent_id=group_id)

    assert manager.update_group_operator(group_id, "Or") is True
    assert manager.get_condition(group_id).operator == GroupOperator.OR
    assert manager.update_group_operator(leaf_id, "Or") is False


def test_not_group_takes_one_child(manager):
    """A second child is not added to a Not group."""
    group_id = manager.add_condition_group("Not")
    first = manager.add_condition("EQ", "Status", "Open", parent_id=group_id)

    assert manager.add_condition("GT", "Price", 100, parent_id=group_id) is None
    assert manager.add_condition_group("Or", parent_id=group_id) is None

    assert [node.id for node in manager.get_condition(group_id).children] == [first]
    assert manager.payload == {
        "Operator": "And",
        "Condition": [
            {
                "Operator": "Not",
                "Condition": [
                    {"Operator": "EQ", "LHSField": "Status", "RHSValue": "Open", "RHSType": "Constant"}
                ],
            }
        ],
    }


def test_switch_to_not_requires_single_child(manager):
    """Groups with several children cannot become Not groups."""
    group_id = manager.add_condition_group("Or")
    manager.add_condition("EQ", "Status", "Open", parent_id=group_id)
    second = manager.add_condition("GT", "Price", 100, parent_id=group_id)

    assert manager.update_group_operator(group_id, "Not") is False
    assert manager.get_condition(group_id).operator == GroupOperator.OR

    manager.remove_condition(second)
    assert manager.update_group_operator(group_id, "Not") is True
    assert validate_payload(manager.payload) is True


def test_replace_condition_keeps_id_and_position(manager):
    """Replacing swaps the node in place."""
    first = manager.add_condition("EQ", "Status", "Open")
    second = manager.add_condition("EQ", "Name", "x")
    manager.add_condition("Empty", "Notes")

    assert manager.replace_condition(second, "GT", "Price", 5) is True

    replaced = manager.children[1]
    assert replaced.id == second
    assert isinstance(replaced, Condition)
    assert replaced.lhs_field == "Price"
    assert replaced.operator == ConditionOperator.GT
    assert manager.children[0].id == first
    assert manager.replace_condition("missing", "GT", "Price", 5) is False


def test_replace_condition_refuses_groups(manager):
    """A group and its subtree are never swapped for a leaf."""
    group_id = manager.add_condition_group("Or")
    child_id = manager.add_condition("EQ", "Name", "x", parent_id=group_id)

    assert manager.replace_condition(group_id, "EQ", "B", 2) is False

    assert isinstance(manager.get_condition(group_id), ConditionGroup)
    assert manager.get_condition(child_id) is not None
    assert manager.replace_condition(manager.root_id, "EQ", "B", 2) is False


def test_remove_condition(manager):
    """Removing a leaf leaves its siblings untouched."""
    first = manager.add_condition("EQ", "Status", "Open")
    second = manager.add_condition("GT", "Price", 100)

    assert manager.remove_condition(first) is True
    assert [node.id for node in manager.children] == [second]


def test_remove_group_removes_descendants(manager):
    """Removing a group removes its whole subtree."""
    group_id = manager.add_condition_group("Or")
    leaf_id = manager.add_condition("EQ", "Status", "Open", parent_id=group_id)

    assert manager.remove_condition(group_id) is True
    assert manager.get_condition(leaf_id) is None
    assert manager.total_count == 0


def test_remove_missing_and_root_are_noops(manager):
    """Unknown ids and the root itself cannot be removed."""
    manager.add_condition("EQ", "Status", "Open")

    assert manager.remove_condition("missing") is False
    assert manager.remove_condition(manager.root_id) is False
    assert manager.total_count == 1


def test_clear_all_conditions_keeps_root_operator():
    """Clearing empties the tree but keeps the root operator."""
    manager = FilterTreeManager("Or")
    manager.add_condition("EQ", "Status", "Open")

    manager.clear_all_conditions()

    assert manager.payload is None
    assert manager.root_operator == GroupOperator.OR


def test_set_root_operator(manager):
    """The root operator is reflected in the payload."""
    manager.add_condition("EQ", "Status", "Open")
    manager.set_root_operator("Or")
    assert manager.payload["Operator"] == "Or"


def test_callbacks_fire():
    """Add, update and remove callbacks receive the affected node."""
    added, updated, removed = [], [], []
    manager = FilterTreeManager(
        on_condition_add=added.append,
        on_condition_update=updated.append,
        on_condition_remove=removed.append,
    )

    node_id = manager.add_condition("EQ", "Status", "Open")
    manager.update_condition(node_id, rhs_value="Closed")
    manager.remove_condition(node_id)

    assert [node.id for node in added] == [node_id]
    assert updated[0].rhs_value == "Closed"
    assert removed == [node_id]


def test_callbacks_not_fired_for_noops():
    """No callback fires when an id does not resolve."""
    calls = []
    manager = FilterTreeManager(
        on_condition_add=calls.append,
        on_condition_update=calls.append,
        on_condition_remove=calls.append,
    )

    manager.add_condition("EQ", "Status", "Open", parent_id="missing")
    manager.update_condition("missing", rhs_value=1)
    manager.remove_condition("missing")

    assert calls == []


def test_payload_does_not_alias_tree(manager):
    """Mutating a payload never changes the tree."""
    node_id = manager.add_condition("IN", "Status", ["Open", "Pending"])

    payload = manager.payload
    payload["Condition"][0]["RHSValue"].append("Closed")
    payload["Operator"] = "Or"

    assert manager.get_condition(node_id).rhs_value == ["Open", "Pending"]
    assert manager.payload["Operator"] == "And"


def test_payload_carries_no_ids(manager):
    """Identities are stripped from the wire format."""
    group_id = manager.add_condition_group("Or")
    manager.add_condition("EQ", "Status", "Open", parent_id=group_id)

    text = repr(manager.payload)
    assert group_id not in text
    assert manager.root_id not in text


def test_export_and_import_state(manager):
    """Exported state restores the same tree with the same ids."""
    group_id = manager.add_condition_group("Or")
    leaf_id = manager.add_condition("EQ", "Status", "Open", parent_id=group_id)
    state = manager.export_state()

    other = FilterTreeManager()
    other.import_state(state)

    assert other.payload == manager.payload
    assert other.get_condition(leaf_id) is not None
    assert other.get_condition(group_id) is not None


def test_exported_state_is_a_copy(manager):
    """Editing after export does not change the snapshot."""
    node_id = manager.add_condition("EQ", "Status", "Open")
    state = manager.export_state()

    manager.update_condition(node_id, rhs_value="Closed")

    assert state.children[0].rhs_value == "Open"


def test_import_state_reassigns_duplicate_ids(manager):
    """Duplicate identities in a snapshot are made unique."""
    from bdocore.core.filters import FilterState

    state = FilterState(
        root_operator=GroupOperator.OR,
        children=[
            Condition(id="dup", operator=ConditionOperator.EQ, lhs_field="A", rhs_value=1),
            Condition(id="dup", operator=ConditionOperator.EQ, lhs_field="B", rhs_value=2),
            Condition(id="", operator=ConditionOperator.EQ, lhs_field="C", rhs_value=3),
        ],
    )

    manager.import_state(state)

    ids = [node.id for node in manager.children]
    assert ids[0] == "dup"
    assert len(set(ids)) == 3
    assert "" not in ids
    assert manager.root_operator == GroupOperator.OR


def test_reset_to_initial():
    """Reset restores the tree the manager started with."""
    initial = {
        "Operator": "Or",
        "Condition": [{"Operator": "EQ", "LHSField": "Status", "RHSValue": "Open"}],
    }
    manager = FilterTreeManager(initial_payload=initial)
    manager.add_condition("GT", "Price", 100)
    manager.set_root_operator("And")

    manager.reset_to_initial()

    assert manager.payload == {
        "Operator": "Or",
        "Condition": [
            {"Operator": "EQ", "LHSField": "Status", "RHSValue": "Open", "RHSType": "Constant"},
        ],
    }


def test_load_payload_round_trip(manager):
    """A loaded payload serializes back to the same payload."""
    payload = {
        "Operator": "And",
        "Condition": [
            {"Operator": "Between", "LHSField": "Price", "RHSValue": [10, 20], "RHSType": "Constant"},
            {
                "Operator": "Not",
                "Condition": [
                    {"Operator": "EQ", "LHSField": "Status", "RHSValue": "Closed", "RHSType": "Constant"},
                ],
            },
            {"Operator": "EQ", "LHSField": "Owner", "RHSValue": "ManagerId", "RHSType": "BOField"},
        ],
    }

    manager.load_payload(payload)

    assert manager.payload == payload
    assert manager.total_count == 4
    assert isinstance(manager.children[1], ConditionGroup)


def test_load_payload_assigns_fresh_ids(manager):
    """Loading twice yields different identities."""
    payload = {"Operator": "And", "Condition": [{"Operator": "Empty", "LHSField": "Notes"}]}

    manager.load_payload(payload)
    first_id = manager.children[0].id
    manager.load_payload(payload)

    assert manager.children[0].id != first_id
    assert manager.total_count == 1


@pytest.mark.parametrize(
    "payload",
    [
        {"Operator": "And", "Condition": []},
        {"Operator": "Xor", "Condition": [{"Operator": "EQ", "LHSField": "A", "RHSValue": 1}]},
        {"Operator": "And", "Condition": [{"Operator": "LIKE", "LHSField": "A", "RHSValue": 1}]},
        {"Operator": "And", "Condition": [{"Operator": "EQ", "LHSField": "", "RHSValue": 1}]},
        {
            "Operator": "Not",
            "Condition": [
                {"Operator": "EQ", "LHSField": "A", "RHSValue": 1},
                {"Operator": "EQ", "LHSField": "B", "RHSValue": 2},
            ],
        },
    ],
)
def test_load_payload_rejects_malformed(manager, payload):
    """Malformed payloads raise FilterError and leave the tree alone."""
    node_id = manager.add_condition("EQ", "Status", "Open")

    with pytest.raises(FilterError):
        manager.load_payload(payload)

    assert [node.id for node in manager.children] == [node_id]


def test_load_payload_depth_limit():
    """Payloads nested past max_filter_depth are rejected."""
    manager = FilterTreeManager(settings=Settings(max_filter_depth=3))

    payload = {"Operator": "EQ", "LHSField": "A", "RHSValue": 1}
    for _ in range(4):
        payload = {"Operator": "And", "Condition": [payload]}

    with pytest.raises(FilterDepthError) as exc_info:
        manager.load_payload(payload)
    assert exc_info.value.max_depth == 3

    shallow = {"Operator": "And", "Condition": [{"Operator": "And", "Condition": [
        {"Operator": "And", "Condition": [{"Operator": "EQ", "LHSField": "A", "RHSValue": 1}]},
    ]}]}
    manager.load_payload(shallow)
    assert manager.total_count == 3


def test_add_group_depth_limit():
    """Groups are not nested past max_filter_depth."""
    manager = FilterTreeManager(settings=Settings(max_filter_depth=3))

    level_2 = manager.add_condition_group("And")
    level_3 = manager.add_condition_group("Or", parent_id=level_2)

    assert level_3 is not None
    assert manager.add_condition_group("And", parent_id=level_3) is None
    assert manager.add_condition("EQ", "A", 1, parent_id=level_3) is not None
    assert manager.total_count == 3


def test_deep_nesting_stops_at_limit(manager):
    """Chained group adds stop at the configured depth instead of recursing without bound."""
    parent_id = None
    added = 0
    for _ in range(1000):
        group_id = manager.add_condition_group("And", parent_id=parent_id)
        if group_id is None:
            break
        parent_id = group_id
        added += 1

    assert added == Settings().max_filter_depth - 1
    assert manager.total_count == added


def test_validation_reports_problems(manager):
    """Invalid nodes stay in the tree and are reported by identity."""
    good = manager.add_condition("EQ", "Status", "Open")
    bad = manager.add_condition("Between", "Price", 10)

    result = manager.validate()

    assert result.is_valid is False
    assert result.errors == [f"Condition {bad}: Between operators require an array of two values"]
    assert manager.is_valid is False
    assert [issue.condition_id for issue in manager.validation_errors] == [bad]
    assert manager.get_condition(good) is not None
    assert manager.get_condition(bad) is not None


def test_validation_uses_field_definitions(product_fields):
    """Field definitions restrict operators per field."""
    manager = FilterTreeManager(field_definitions=product_fields)
    node_id = manager.add_condition("GT", "InStock", True)

    issues = manager.validation_errors

    assert len(issues) == 1
    assert issues[0].condition_id == node_id
    assert issues[0].field == "InStock"
    assert issues[0].message == "Operator GT is not allowed for field InStock"


def test_valid_tree(manager):
    """A well-formed tree validates cleanly."""
    manager.add_condition("EQ", "Status", "Open")
    group_id = manager.add_condition_group("Not")
    manager.add_condition("Empty", "Notes", parent_id=group_id)

    assert manager.is_valid is True
    assert manager.validate().errors == []
