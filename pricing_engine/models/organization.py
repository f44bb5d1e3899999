from sqlalchemy import Column, DateTime, String, func

from pricing_engine.core.database import Base
from pricing_engine.models.shared import UUIDType, generate_uuid


class Organization(Base):
    """Tenant owning its own pricing rules and coupons."""

    __tablename__ = "organizations"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    default_currency = Column(String(3), nullable=False, default="USD")
    timezone = Column(String(50), nullable=False, default="UTC")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
