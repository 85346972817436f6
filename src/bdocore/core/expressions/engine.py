"""Expression engine for metadata-driven validation and computed fields."""

from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import ValidationError

from bdocore.core.filters.validation import ValidationResult
from bdocore.core.logging import LoggingContext, get_logger

from .ast import Node
from .coercion import is_truthy
from .context import Clock, EvaluationContext
from .evaluator import Evaluator
from .exceptions import ExpressionError
from .metadata import BDOMetadataSchema, RuleSchema
from .schemas import parse_expression

logger = get_logger(__name__)


@dataclass
class LoadedRule:
    """A rule together with its decoded expression tree."""

    rule: RuleSchema
    node: Node


class ExpressionEngine:
    """Evaluates the validation and computation rules of one BDO.

    Example:
        engine = ExpressionEngine()
        engine.load_metadata(product_metadata)
        result = engine.validate_field("Price", 50, {"Price": 50, "MRP": 100})
        computed = engine.compute_fields({"Price": 50, "MRP": 100})
    """

    def __init__(
        self,
        evaluator: Evaluator | None = None,
        *,
        current_user: Mapping[str, Any] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.evaluator = evaluator or Evaluator()
        self.current_user = current_user
        self.clock = clock
        self._metadata: BDOMetadataSchema | None = None
        self._field_rules: dict[str, list[LoadedRule]] = {}
        self._computations: dict[str, LoadedRule] = {}

    @property
    def metadata(self) -> BDOMetadataSchema | None:
        return self._metadata

    def has_metadata(self) -> bool:
        return self._metadata is not None

    def load_metadata(self, bdo: BDOMetadataSchema | Mapping[str, Any]) -> None:
        """Load BDO metadata, replacing whatever was loaded before.

        Field validation entries may be inline rules or ids into
        ``Rules.Validation``. Computation rules attach to the field named by
        their ``Target`` or, failing that, to the field sharing their key.
        Rules with an unknown reference, no target or an undecodable tree
        are logged and skipped.

        Raises:
            ExpressionError: If the document is not valid BDO metadata.
        """
        if isinstance(bdo, BDOMetadataSchema):
            metadata = bdo
        else:
            try:
                metadata = BDOMetadataSchema.model_validate(bdo)
            except ValidationError as e:
                raise ExpressionError(f"Invalid BDO metadata: {e}") from e

        self._metadata = metadata
        self._field_rules = {}
        self._computations = {}

        with LoggingContext(bdo_id=metadata.id):
            for field_id, field_def in metadata.fields.items():
                rules = []
                for entry in field_def.validation:
                    if isinstance(entry, str):
                        rule = metadata.rules.validation.get(entry)
                        if rule is None:
                            logger.warning(
                                "Validation rule reference not found",
                                field_id=field_id,
                                rule_id=entry,
                            )
                            continue
                    else:
                        rule = entry
                    loaded = self._load_rule(rule)
                    if loaded is not None:
                        rules.append(loaded)
                if rules:
                    self._field_rules[field_id] = rules

            for key, rule in metadata.rules.computation.items():
                target = rule.target or (key if key in metadata.fields else None)
                if target is None:
                    logger.warning("Computation rule has no target field", rule_id=rule.id)
                    continue
                loaded = self._load_rule(rule)
                if loaded is not None:
                    self._computations[target] = loaded

            logger.info(
                "BDO metadata loaded",
                validated_fields=len(self._field_rules),
                computed_fields=len(self._computations),
            )

    def _load_rule(self, rule: RuleSchema) -> LoadedRule | None:
        try:
            return LoadedRule(rule=rule, node=parse_expression(rule.expression_tree))
        except ExpressionError as e:
            logger.warning("Skipping rule with invalid expression tree", rule_id=rule.id, error=str(e))
            return None

    def get_field_rules(self, field_id: str) -> list[RuleSchema]:
        return [loaded.rule for loaded in self._field_rules.get(field_id, [])]

    @property
    def computed_field_ids(self) -> list[str]:
        return list(self._computations)

    def _context(self, values: Mapping[str, Any]) -> EvaluationContext:
        return EvaluationContext.create(values, self.current_user, self.clock)

    def validate_field(
        self, field_id: str, value: Any, all_values: Mapping[str, Any]
    ) -> ValidationResult:
        """Validate one field against its rules.

        Rules run in order and the first falsy result stops validation with
        that rule's message. ``value`` overrides ``all_values[field_id]``.
        """
        rules = self._field_rules.get(field_id)
        if not rules:
            return ValidationResult()

        context = self._context({**all_values, field_id: value})
        for loaded in rules:
            try:
                result = self.evaluator.evaluate(loaded.node, context)
            except ExpressionError as e:
                logger.warning(
                    "Expression evaluation failed",
                    field_id=field_id,
                    rule_id=loaded.rule.id,
                    error=str(e),
                )
                continue
            if not is_truthy(result):
                return ValidationResult(is_valid=False, errors=[loaded.rule.failure_message])

        return ValidationResult()

    def validate_all(self, values: Mapping[str, Any]) -> ValidationResult:
        """Validate every field that has rules and collect all errors."""
        errors: list[str] = []
        bdo_id = self._metadata.id if self._metadata else ""
        with LoggingContext(bdo_id=bdo_id):
            for field_id in self._field_rules:
                result = self.validate_field(field_id, values.get(field_id), values)
                errors.extend(result.errors)
        return ValidationResult(is_valid=not errors, errors=errors)

    def compute_fields(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Evaluate computation rules and return the computed values.

        Rules run in metadata order and each one sees the values computed
        before it. Nothing is written back into ``values``.
        """
        working = dict(values)
        computed: dict[str, Any] = {}
        for target, loaded in self._computations.items():
            try:
                result = self.evaluator.evaluate(loaded.node, self._context(working))
            except ExpressionError as e:
                logger.warning(
                    "Computation failed",
                    field_id=target,
                    rule_id=loaded.rule.id,
                    error=str(e),
                )
                continue
            computed[target] = result
            working[target] = result
        return computed
