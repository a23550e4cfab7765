# app/models/shop.py
"""
Shop Model - the single bookable resource a booking link points at
"""
from sqlalchemy import Column, String, Boolean, DateTime, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from app.models.base import Base


class Shop(Base):
    __tablename__ = "shops"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)

    # IANA timezone name, every schedule time is wall-clock time in this zone
    timezone = Column(String(64), nullable=False, default="UTC")

    # Contact info rendered into customer notifications
    address = Column(Text, nullable=True)
    phone = Column(String(32), nullable=True)
    email = Column(String(255), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    schedule_blocks = relationship(
        "ScheduleBlock",
        back_populates="shop",
        order_by="(ScheduleBlock.day_of_week, ScheduleBlock.block_order)",
    )
    schedule_exceptions = relationship("ScheduleException", back_populates="shop")
    services = relationship("Service", back_populates="shop")
    booking_links = relationship("BookingLink", back_populates="shop")

    def __repr__(self):
        return f"<Shop(id={self.id}, name={self.name}, timezone={self.timezone})>"

    def to_public_dict(self):
        """Shop summary shown on the public booking page"""
        return {
            "id": str(self.id),
            "name": self.name,
            "timezone": self.timezone,
            "address": self.address,
            "phone": self.phone,
        }
