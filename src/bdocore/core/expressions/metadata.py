"""Pydantic schemas for BDO metadata documents.

Only the parts the expression engine reads are modelled; unknown keys
are ignored so newer backends keep loading.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class RuleSchema(BaseModel):
    """A validation or computation rule."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., validation_alias=AliasChoices("Id", "id"))
    name: str | None = Field(default=None, validation_alias=AliasChoices("Name", "name"))
    description: str | None = Field(
        default=None, validation_alias=AliasChoices("Description", "description")
    )
    expression: str | None = Field(
        default=None, validation_alias=AliasChoices("Expression", "expression")
    )
    expression_tree: dict[str, Any] = Field(
        ..., validation_alias=AliasChoices("ExpressionTree", "expression_tree")
    )
    message: str | None = Field(default=None, validation_alias=AliasChoices("Message", "message"))
    # Computation rules only: field receiving the result
    target: str | None = Field(
        default=None, validation_alias=AliasChoices("Target", "target", "Field", "field")
    )

    @property
    def failure_message(self) -> str:
        return self.message or f"Validation failed: {self.name or self.id}"


class FieldMetadataSchema(BaseModel):
    """A field definition. ``validation`` mixes inline rules and rule ids."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | None = Field(default=None, validation_alias=AliasChoices("Id", "id"))
    name: str | None = Field(default=None, validation_alias=AliasChoices("Name", "name"))
    type: str | None = Field(default=None, validation_alias=AliasChoices("Type", "type"))
    required: bool = Field(default=False, validation_alias=AliasChoices("Required", "required"))
    validation: list[RuleSchema | str] = Field(
        default_factory=list, validation_alias=AliasChoices("Validation", "validation")
    )


class RulesSchema(BaseModel):
    """Centralized rules keyed by rule id."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    validation: dict[str, RuleSchema] = Field(
        default_factory=dict, validation_alias=AliasChoices("Validation", "validation")
    )
    computation: dict[str, RuleSchema] = Field(
        default_factory=dict, validation_alias=AliasChoices("Computation", "computation")
    )
    business_logic: dict[str, RuleSchema] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("BusinessLogic", "business_logic"),
    )


class BDOMetadataSchema(BaseModel):
    """Business data object metadata as served by the backend."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., validation_alias=AliasChoices("Id", "id"))
    name: str | None = Field(default=None, validation_alias=AliasChoices("Name", "name"))
    fields: dict[str, FieldMetadataSchema] = Field(
        default_factory=dict, validation_alias=AliasChoices("Fields", "fields")
    )
    rules: RulesSchema = Field(
        default_factory=RulesSchema, validation_alias=AliasChoices("Rules", "rules")
    )
