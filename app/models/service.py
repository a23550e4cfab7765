# app/models/service.py
"""
Bookable services and their modifiers
Each service belongs to one shop and is the source of truth for price/duration.
Service modifiers adjust a service's duration and price under a condition.
"""
from sqlalchemy import (
    Column, String, Numeric, Integer, ForeignKey, Boolean, DateTime, Text, JSON,
    CheckConstraint, Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
import uuid

from app.models.base import Base


class ConditionType(str, enum.Enum):
    """Closed set of modifier condition kinds."""
    MANUAL = "manual"
    CUSTOMER_TAG = "customer_tag"
    AGE_RANGE = "age_range"
    FIRST_VISIT = "first_visit"


class Service(Base):
    """
    Stores structured service information (source of truth for price/duration).
    """
    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_services_duration_positive"),
        CheckConstraint("price >= 0", name="ck_services_price_non_negative"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("shops.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Core service details
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # Stored as decimal for precision
    price = Column(Numeric(10, 2), nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=False)

    # Status and ordering
    is_active = Column(Boolean, default=True, index=True)
    display_order = Column(Integer, default=0)  # For UI sorting

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    # Relationships
    shop = relationship("Shop", back_populates="services")
    modifiers = relationship("ServiceModifier", back_populates="service")

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, shop_id={self.shop_id})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "shop_id": str(self.shop_id),
            "name": self.name,
            "description": self.description,
            "price": str(self.price) if self.price is not None else "0",
            "duration_minutes": self.duration_minutes,
            "formatted_duration": self.formatted_duration,
            "display_order": self.display_order,
        }

    @property
    def formatted_duration(self) -> str:
        """Return human-readable duration string"""
        hours = self.duration_minutes // 60
        minutes = self.duration_minutes % 60

        if hours > 0 and minutes > 0:
            return f"{hours}h {minutes}m"
        elif hours > 0:
            return f"{hours}h"
        else:
            return f"{minutes}m"


class ServiceModifier(Base):
    """Conditional, signed adjustment to a service's duration and price."""
    __tablename__ = "service_modifiers"
    __table_args__ = (
        CheckConstraint(
            "condition_type IN ('manual', 'customer_tag', 'age_range', 'first_visit')",
            name="ck_service_modifiers_condition_type",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    service_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    condition_type = Column(String(32), nullable=False, default=ConditionType.MANUAL.value)
    # {"tag": "vip", "value": "gold"} / {"min_age": 0, "max_age": 12} / {}
    condition_value = Column(JSON, nullable=True)

    duration_modifier = Column(Integer, nullable=False, default=0)  # signed minutes
    price_modifier = Column(Numeric(10, 2), nullable=False, default=0)  # signed amount

    auto_apply = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    service = relationship("Service", back_populates="modifiers")

    def __repr__(self):
        return (
            f"<ServiceModifier(id={self.id}, service_id={self.service_id}, "
            f"condition={self.condition_type})>"
        )

    def to_dict(self):
        return {
            "id": str(self.id),
            "service_id": str(self.service_id),
            "name": self.name,
            "description": self.description,
            "condition_type": self.condition_type,
            "duration_modifier": self.duration_modifier,
            "price_modifier": str(self.price_modifier),
            "auto_apply": self.auto_apply,
        }
