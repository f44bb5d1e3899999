"""Pricing rule model: prioritized condition -> action price adjustments."""

from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from pricing_engine.core.database import Base
from pricing_engine.models.shared import DEFAULT_ORGANIZATION_ID, UUIDType, generate_uuid


class RuleType(str, Enum):
    VOLUME_DISCOUNT = "volume_discount"
    CUSTOMER_TIER = "customer_tier"
    SEASONAL = "seasonal"
    CATEGORY_DISCOUNT = "category_discount"
    PROMOTIONAL = "promotional"
    TIME_LIMITED = "time_limited"
    BOGO = "bogo"
    BUNDLE = "bundle"
    LOYALTY_MULTIPLIER = "loyalty_multiplier"
    FIRST_PURCHASE = "first_purchase"
    REFERRAL = "referral"


class ConditionField(str, Enum):
    QUANTITY = "quantity"
    PRODUCT_ID = "product_id"
    PRODUCT_NAME = "product_name"
    PRICE = "price"
    ORDER_TOTAL = "order_total"
    CUSTOMER_ID = "customer_id"
    CUSTOMER_EMAIL = "customer_email"
    CUSTOMER_TIER = "customer_tier"
    CUSTOMER_TAGS = "customer_tags"
    TOTAL_ORDERS = "total_orders"
    TOTAL_SPENT = "total_spent"
    DATE = "date"
    MONTH = "month"
    DAY_OF_WEEK = "day_of_week"
    HOUR = "hour"
    IS_WEEKEND = "is_weekend"
    IS_NEW_CUSTOMER = "is_new_customer"


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    BETWEEN = "between"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"


class LogicalOperator(str, Enum):
    AND = "and"
    OR = "or"


class ActionType(str, Enum):
    PERCENTAGE_DISCOUNT = "percentage_discount"
    FIXED_DISCOUNT = "fixed_discount"
    FIXED_PRICE = "fixed_price"
    FREE_SHIPPING = "free_shipping"
    BONUS_POINTS = "bonus_points"


class ActionTarget(str, Enum):
    ITEM = "item"
    ORDER = "order"
    SHIPPING = "shipping"


class PricingRule(Base):
    """Pricing rule owned by an organization.

    ``conditions`` and ``actions`` are stored as ordered JSON lists. ``position``
    records store order and breaks ties between rules of equal priority.
    """

    __tablename__ = "pricing_rules"
    __table_args__ = (
        UniqueConstraint("organization_id", "position", name="uq_pricing_rules_org_position"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(
        UUIDType,
        ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        default=DEFAULT_ORGANIZATION_ID,
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    rule_type = Column(String(30), nullable=False, index=True)

    priority = Column(Integer, nullable=False, default=10)
    position = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_stackable = Column(Boolean, nullable=False, default=True)

    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)

    max_usages = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)

    conditions = Column(JSON, nullable=False, default=list)
    actions = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
