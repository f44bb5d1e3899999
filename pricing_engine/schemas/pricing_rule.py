"""Pricing rule schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pricing_engine.core.config import settings
from pricing_engine.models.pricing_rule import (
    ActionTarget,
    ActionType,
    ConditionField,
    ConditionOperator,
    LogicalOperator,
    RuleType,
)

_LIST_OPERATORS = (ConditionOperator.IN, ConditionOperator.NOT_IN)


class RuleCondition(BaseModel):
    field: ConditionField
    operator: ConditionOperator
    value: Any = None
    logical_operator: LogicalOperator | None = None

    @model_validator(mode="after")
    def validate_value_shape(self) -> Self:
        """List operators need a list; between needs exactly two bounds."""
        if self.operator in _LIST_OPERATORS and not isinstance(self.value, list):
            msg = f"operator '{self.operator.value}' requires a list value"
            raise ValueError(msg)
        if self.operator == ConditionOperator.BETWEEN and (
            not isinstance(self.value, list) or len(self.value) != 2
        ):
            msg = "operator 'between' requires a [low, high] value"
            raise ValueError(msg)
        return self


class RuleAction(BaseModel):
    type: ActionType
    value: Decimal = Field(ge=0)
    max_discount: Decimal | None = Field(default=None, ge=0)
    apply_to: ActionTarget | None = None

    @model_validator(mode="after")
    def validate_percentage_range(self) -> Self:
        if self.type == ActionType.PERCENTAGE_DISCOUNT and self.value > 100:
            msg = "percentage_discount value cannot exceed 100"
            raise ValueError(msg)
        return self


def _clean_name(value: str) -> str:
    if not value.strip():
        msg = "Rule name is required"
        raise ValueError(msg)
    return value.strip()


def _check_window(start: datetime | None, end: datetime | None) -> None:
    if start is not None and end is not None and end < start:
        msg = "end_date must be after start_date"
        raise ValueError(msg)


class PricingRuleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    rule_type: RuleType
    conditions: list[RuleCondition] = Field(default_factory=list)
    actions: list[RuleAction] = Field(min_length=1)
    priority: int = Field(default=settings.DEFAULT_RULE_PRIORITY, ge=1)
    is_active: bool = True
    is_stackable: bool = True
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_usages: int | None = Field(default=None, ge=1)
    tags: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name_not_blank(cls, value: str) -> str:
        return _clean_name(value)

    @model_validator(mode="after")
    def validate_date_window(self) -> Self:
        _check_window(self.start_date, self.end_date)
        return self


class PricingRuleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    rule_type: RuleType | None = None
    conditions: list[RuleCondition] | None = None
    actions: list[RuleAction] | None = Field(default=None, min_length=1)
    priority: int | None = Field(default=None, ge=1)
    is_active: bool | None = None
    is_stackable: bool | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_usages: int | None = Field(default=None, ge=1)
    tags: list[str] | None = None

    @field_validator("name")
    @classmethod
    def validate_name_not_blank(cls, value: str | None) -> str | None:
        return None if value is None else _clean_name(value)

    @model_validator(mode="after")
    def validate_date_window(self) -> Self:
        _check_window(self.start_date, self.end_date)
        return self


class PricingRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    rule_type: str
    conditions: list[RuleCondition]
    actions: list[RuleAction]
    priority: int
    position: int
    is_active: bool
    is_stackable: bool
    start_date: datetime
    end_date: datetime | None = None
    max_usages: int | None = None
    usage_count: int
    tags: list[str]
    created_at: datetime
    updated_at: datetime


class RuleDuplicateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)


class RuleUsageRequest(BaseModel):
    count: int = Field(default=1, ge=1)


class RuleUsageSummary(BaseModel):
    id: UUID
    name: str
    usage_count: int


class RuleStatisticsResponse(BaseModel):
    total_rules: int
    active_rules: int
    total_usages: int
    top_rules: list[RuleUsageSummary]


class RuleConflictResponse(BaseModel):
    rule1_id: UUID
    rule1_name: str
    rule2_id: UUID
    rule2_name: str
    reason: str
    shared_fields: list[str]
