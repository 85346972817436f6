"""Filter tree manager - owner of one editable filter tree.

The manager holds a single root ``ConditionGroup`` and exposes a small
mutation API that addresses nodes by identity anywhere in the tree.

Operations that address a missing identity are no-ops: they log a warning
and report failure through their return value (``None`` or ``False``)
instead of raising, so a stale UI action never aborts an editing session.
"""

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from bdocore.core.config import Settings, get_settings
from bdocore.core.logging import get_logger

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
from .payload import Payload, build_payload
from .schemas import ConditionGroupSchema, ConditionSchema
from .validation import FieldDefinition, ValidationIssue, ValidationResult, validate_condition

logger = get_logger(__name__)

_UPDATABLE_FIELDS = frozenset({"operator", "lhs_field", "rhs_value", "rhs_type"})


@dataclass
class FilterState:
    """Snapshot of a manager's tree, identities included."""

    root_operator: GroupOperator = GroupOperator.AND
    children: list[FilterNode] = field(default_factory=list)


class FilterTreeManager:
    """Stateful owner of a filter tree.

    Each instance belongs to one editing session. Identities are generated
    per instance, so separate sessions never share a counter.

    Example:
        manager = FilterTreeManager()

        status_id = manager.add_condition("EQ", "Status", "Open")
        group_id = manager.add_condition_group("Or")
        manager.add_condition("GT", "Price", 100, parent_id=group_id)
        manager.add_condition("Empty", "Discount", parent_id=group_id)

        manager.update_condition(status_id, rhs_value="Closed")
        request["Filter"] = manager.payload
    """

    def __init__(
        self,
        root_operator: GroupOperator | str | None = None,
        *,
        initial_payload: Payload | None = None,
        field_definitions: Mapping[str, FieldDefinition] | None = None,
        on_condition_add: Callable[[FilterNode], None] | None = None,
        on_condition_update: Callable[[FilterNode], None] | None = None,
        on_condition_remove: Callable[[str], None] | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            root_operator: Operator used to combine top-level nodes.
                Defaults to the configured ``default_root_operator``.
            initial_payload: Optional wire filter to start from.
            field_definitions: Optional per-field validation rules.
            on_condition_add: Called with each node after it is added.
            on_condition_update: Called with each node after it changes.
            on_condition_remove: Called with the id of each removed node.
            settings: Settings override, mainly for tests.
        """
        self._settings = settings or get_settings()
        self._id_counter = 0
        self._root = ConditionGroup(
            id=self._new_id(),
            operator=GroupOperator(root_operator or self._settings.default_root_operator),
        )
        self.field_definitions: dict[str, FieldDefinition] = dict(field_definitions or {})
        self._on_add = on_condition_add
        self._on_update = on_condition_update
        self._on_remove = on_condition_remove

        if initial_payload is not None:
            self.load_payload(initial_payload)

        self._initial_state = self.export_state()

    # ------------------------------------------------------------------
    # Identity and lookup
    # ------------------------------------------------------------------

    def _new_id(self) -> str:
        self._id_counter += 1
        return f"cnd_{self._id_counter}_{uuid.uuid4().hex[:8]}"

    def _find(self, node_id: str) -> FilterNode | None:
        if self._root.id == node_id:
            return self._root
        located = self._find_with_parent(self._root, node_id)
        return located[0] if located else None

    def _find_with_parent(
        self, group: ConditionGroup, node_id: str
    ) -> tuple[FilterNode, ConditionGroup] | None:
        for child in group.children:
            if child.id == node_id:
                return child, group
            if is_group(child):
                located = self._find_with_parent(child, node_id)
                if located:
                    return located
        return None

    @property
    def root_id(self) -> str:
        """Identity of the root group, usable as a ``parent_id``."""
        return self._root.id

    @property
    def root_operator(self) -> GroupOperator:
        return self._root.operator

    @property
    def children(self) -> list[FilterNode]:
        """Top-level nodes, in order. The list is a copy; nodes are live."""
        return list(self._root.children)

    def get_condition(self, node_id: str) -> FilterNode | None:
        """Find a node anywhere in the tree by identity."""
        return self._find(node_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _group_depth(self, group_id: str) -> int | None:
        """Depth of a group, with the root at 1. None if the group is unknown."""
        pending: list[tuple[ConditionGroup, int]] = [(self._root, 1)]
        while pending:
            group, depth = pending.pop()
            if group.id == group_id:
                return depth
            pending.extend((child, depth + 1) for child in group.children if is_group(child))
        return None

    def _resolve_parent(self, parent_id: str | None) -> ConditionGroup | None:
        if parent_id is None:
            return self._root
        parent = self._find(parent_id)
        if parent is None or not is_group(parent):
            logger.warning("Parent group not found", parent_id=parent_id)
            return None
        return parent

    def _attach(self, node: FilterNode, parent: ConditionGroup) -> str | None:
        if parent.operator == GroupOperator.NOT and parent.children:
            logger.warning("Not group already has a child", parent_id=parent.id)
            return None
        parent.children.append(node)
        logger.debug(
            "Filter node added",
            node_id=node.id,
            parent_id=parent.id,
            operator=node.operator.value,
        )
        if self._on_add:
            self._on_add(node)
        return node.id

    def add_condition(
        self,
        operator: ConditionOperator | str,
        lhs_field: str,
        rhs_value: Any = None,
        rhs_type: RHSType | str = RHSType.CONSTANT,
        parent_id: str | None = None,
    ) -> str | None:
        """Add a leaf condition.

        Args:
            operator: Comparison operator.
            lhs_field: Field being compared.
            rhs_value: Value to compare against.
            rhs_type: Whether rhs_value is a constant or a reference.
            parent_id: Group to append to. Defaults to the root.

        Returns:
            The new node's id, or None if ``parent_id`` is not a group in
            this tree or is a Not group that already has its one child
            (nothing is added).
        """
        parent = self._resolve_parent(parent_id)
        if parent is None:
            return None

        condition = Condition(
            id=self._new_id(),
            operator=ConditionOperator(operator),
            lhs_field=lhs_field,
            rhs_value=rhs_value,
            rhs_type=RHSType(rhs_type),
        )
        return self._attach(condition, parent)

    def add_condition_group(
        self,
        operator: GroupOperator | str = GroupOperator.AND,
        parent_id: str | None = None,
    ) -> str | None:
        """Add an empty group. Same addressing rule as ``add_condition``.

        A group that would sit deeper than ``max_filter_depth`` (root
        counted as 1) is not added and None is returned.
        """
        parent = self._resolve_parent(parent_id)
        if parent is None:
            return None

        max_depth = self._settings.max_filter_depth
        if self._group_depth(parent.id) + 1 > max_depth:
            logger.warning("Filter group too deep", parent_id=parent.id, max_depth=max_depth)
            return None

        group = ConditionGroup(id=self._new_id(), operator=GroupOperator(operator))
        return self._attach(group, parent)

    def update_condition(self, node_id: str, **changes: Any) -> bool:
        """Update fields of a leaf condition in place.

        Args:
            node_id: Identity of the leaf.
            **changes: Any of operator, lhs_field, rhs_value, rhs_type.

        Returns:
            True if the leaf was updated, False if the id is unknown or
            refers to a group.

        Raises:
            TypeError: If an unknown field name is passed.
            ValueError: If operator or rhs_type is not a known value. The
                node is left unchanged.
        """
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown condition fields: {', '.join(sorted(unknown))}")

        node = self._find(node_id)
        if node is None or is_group(node):
            logger.warning("Condition not found for update", node_id=node_id)
            return False

        # Convert everything before touching the node
        values = dict(changes)
        if "operator" in values:
            values["operator"] = ConditionOperator(values["operator"])
        if "rhs_type" in values:
            values["rhs_type"] = RHSType(values["rhs_type"])

        for name, value in values.items():
            setattr(node, name, value)

        logger.debug("Filter condition updated", node_id=node_id, fields=sorted(changes))
        if self._on_update:
            self._on_update(node)
        return True

    def update_group_operator(self, node_id: str, operator: GroupOperator | str) -> bool:
        """Change a group's logical operator. No-op for leaves.

        Switching to Not is refused while the group has more than one
        child.
        """
        node = self._find(node_id)
        if node is None or not is_group(node):
            logger.warning("Group not found for update", node_id=node_id)
            return False

        operator = GroupOperator(operator)
        if operator == GroupOperator.NOT and len(node.children) > 1:
            logger.warning(
                "Not group can only have one child",
                node_id=node_id,
                children=len(node.children),
            )
            return False

        node.operator = operator
        if self._on_update:
            self._on_update(node)
        return True

    def replace_condition(
        self,
        node_id: str,
        operator: ConditionOperator | str,
        lhs_field: str,
        rhs_value: Any = None,
        rhs_type: RHSType | str = RHSType.CONSTANT,
    ) -> bool:
        """Swap a leaf for a new one that keeps the same id and position.

        Groups are never replaced; False is returned for them as for
        unknown ids.
        """
        located = self._find_with_parent(self._root, node_id)
        if located is None or is_group(located[0]):
            logger.warning("Condition not found for replace", node_id=node_id)
            return False

        node, parent = located
        replacement = Condition(
            id=node.id,
            operator=ConditionOperator(operator),
            lhs_field=lhs_field,
            rhs_value=rhs_value,
            rhs_type=RHSType(rhs_type),
        )
        index = next(i for i, child in enumerate(parent.children) if child is node)
        parent.children[index] = replacement

        if self._on_update:
            self._on_update(replacement)
        return True

    def remove_condition(self, node_id: str) -> bool:
        """Remove a node, and all of its descendants if it is a group.

        The root itself cannot be removed; use ``clear_all_conditions``.
        """
        located = self._find_with_parent(self._root, node_id)
        if located is None:
            logger.warning("Condition not found for removal", node_id=node_id)
            return False

        node, parent = located
        parent.children = [child for child in parent.children if child is not node]

        logger.debug("Filter node removed", node_id=node_id, parent_id=parent.id)
        if self._on_remove:
            self._on_remove(node_id)
        return True

    def clear_all_conditions(self) -> None:
        """Remove every node, keeping the root and its operator."""
        self._root.children = []

    def set_root_operator(self, operator: GroupOperator | str) -> None:
        """Set the operator that combines top-level nodes."""
        self._root.operator = GroupOperator(operator)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def payload(self) -> Payload | None:
        """The tree in wire format, or None when there is nothing to send."""
        return build_payload(self._root)

    @property
    def has_conditions(self) -> bool:
        return bool(self._root.children)

    @property
    def condition_count(self) -> int:
        """Number of top-level nodes."""
        return len(self._root.children)

    @property
    def total_count(self) -> int:
        """Number of nodes in the tree, excluding the root."""

        def count(group: ConditionGroup) -> int:
            return sum(1 + (count(c) if is_group(c) else 0) for c in group.children)

        return count(self._root)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_condition(self, node: FilterNode) -> ValidationResult:
        """Validate a node using this manager's field definitions."""
        return validate_condition(node, self.field_definitions)

    def validate(self) -> ValidationResult:
        """Validate every top-level node and collect the errors."""
        errors = [f"Condition {issue.condition_id}: {issue.message}" for issue in self.validation_errors]
        return ValidationResult(is_valid=not errors, errors=errors)

    @property
    def validation_errors(self) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for node in self._root.children:
            result = self.validate_condition(node)
            field_name = "" if is_group(node) else node.lhs_field
            issues.extend(
                ValidationIssue(condition_id=node.id, field=field_name, message=message)
                for message in result.errors
            )
        return issues

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def export_state(self) -> FilterState:
        """Return a deep copy of the tree, identities included."""
        return FilterState(
            root_operator=self._root.operator,
            children=copy.deepcopy(self._root.children),
        )

    def import_state(self, state: FilterState) -> None:
        """Replace the tree with a copy of ``state``.

        Identities from the snapshot are kept; any id that would collide
        with one already seen is reassigned.
        """
        children = copy.deepcopy(state.children)
        seen: set[str] = {self._root.id}

        def reassign(nodes: list[FilterNode]) -> None:
            for node in nodes:
                if not node.id or node.id in seen:
                    node.id = self._new_id()
                seen.add(node.id)
                if is_group(node):
                    reassign(node.children)

        reassign(children)
        self._root.operator = GroupOperator(state.root_operator)
        self._root.children = children

    def reset_to_initial(self) -> None:
        """Restore the tree captured when the manager was created."""
        self.import_state(self._initial_state)

    def load_payload(self, payload: Payload) -> None:
        """Replace the tree with one built from a wire filter.

        Every node gets a fresh identity.

        Raises:
            FilterError: If the payload is malformed.
            FilterDepthError: If groups nest deeper than ``max_filter_depth``.
        """
        try:
            schema = ConditionGroupSchema.model_validate(payload)
        except ValidationError as e:
            raise FilterError(f"Invalid filter payload: {e}") from e

        max_depth = self._settings.max_filter_depth

        def build(item: ConditionGroupSchema | ConditionSchema, depth: int) -> FilterNode:
            if isinstance(item, ConditionSchema):
                return Condition(
                    id=self._new_id(),
                    operator=item.operator,
                    lhs_field=item.lhs_field,
                    rhs_value=item.rhs_value,
                    rhs_type=item.rhs_type,
                )
            if depth > max_depth:
                raise FilterDepthError(max_depth)
            return ConditionGroup(
                id=self._new_id(),
                operator=item.operator,
                children=[build(child, depth + 1) for child in item.conditions],
            )

        children = [build(child, 2) for child in schema.conditions]
        self._root.operator = schema.operator
        self._root.children = children
        logger.debug("Filter payload loaded", nodes=self.total_count)
