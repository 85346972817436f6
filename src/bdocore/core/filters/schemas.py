"""Pydantic schemas for the wire filter format.

The wire format mirrors the backend's list/count ``Filter`` member::

    {"Operator": "And", "Condition": [
        {"Operator": "EQ", "LHSField": "Status", "RHSValue": "Open", "RHSType": "Constant"},
        {"Operator": "Or", "Condition": [...]},
    ]}
"""

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .nodes import ConditionOperator, GroupOperator, RHSType


class ConditionSchema(BaseModel):
    """A leaf condition as sent to the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    operator: ConditionOperator = Field(..., alias="Operator")
    lhs_field: str = Field(..., min_length=1, alias="LHSField")
    rhs_value: Any = Field(default=None, alias="RHSValue")
    rhs_type: RHSType = Field(default=RHSType.CONSTANT, alias="RHSType")


class ConditionGroupSchema(BaseModel):
    """A group of conditions as sent to the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    operator: GroupOperator = Field(..., alias="Operator")
    conditions: list[Union["ConditionGroupSchema", ConditionSchema]] = Field(
        ...,
        min_length=1,
        alias="Condition",
    )

    @model_validator(mode="after")
    def validate_not_arity(self) -> "ConditionGroupSchema":
        """Not groups wrap exactly one child."""
        if self.operator == GroupOperator.NOT and len(self.conditions) != 1:
            raise ValueError("Not operator can only have one child condition")
        return self


ConditionGroupSchema.model_rebuild()
