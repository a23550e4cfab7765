# app/models/booking.py
"""
Booking models.

A Booking and its service/modifier line items are written once, in a single
transaction, and afterwards only ``status`` changes. Line items snapshot the
price and duration in force at booking time.
"""
from sqlalchemy import (
    Column, String, Integer, Text, Date, Time, DateTime, Numeric, ForeignKey,
    Boolean, CheckConstraint, Index, PrimaryKeyConstraint, text, Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
import uuid

from app.models.base import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


# Statuses that occupy time on the shop's calendar
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        # At most one live booking may start at a given wall-clock time of a shop/date
        Index(
            "uq_bookings_shop_date_start_active",
            "shop_id", "booking_date", "start_time",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
        Index("idx_bookings_shop_date", "shop_id", "booking_date"),
        CheckConstraint("status IN ('pending', 'confirmed', 'cancelled')", name="ck_bookings_status"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References
    shop_id = Column(Uuid(as_uuid=True), ForeignKey("shops.id"), nullable=False)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=True, index=True)
    booking_link_id = Column(Uuid(as_uuid=True), ForeignKey("booking_links.id"), nullable=True)

    # Wall-clock values in the shop's timezone, as shown to people
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Absolute instants (UTC) used for overlap checks across midnight and DST
    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=False)

    total_duration = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    status = Column(String(16), nullable=False, default=BookingStatus.PENDING.value, index=True)

    # Customer info
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(32), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    shop = relationship("Shop")
    customer = relationship("Customer", back_populates="bookings")
    services = relationship("BookingService", back_populates="booking", order_by="BookingService.position")
    modifiers = relationship("BookingModifier", back_populates="booking", order_by="BookingModifier.position")

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, shop_id={self.shop_id}, date={self.booking_date}, "
            f"{self.start_time}-{self.end_time}, status={self.status})>"
        )

    def to_dict(self):
        return {
            "id": str(self.id),
            "shop_id": str(self.shop_id),
            "customer_id": str(self.customer_id) if self.customer_id else None,
            "booking_date": self.booking_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "total_duration": self.total_duration,
            "total_price": str(self.total_price),
            "status": self.status,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "notes": self.notes,
            "services": [line.to_dict() for line in self.services],
            "modifiers": [line.to_dict() for line in self.modifiers],
        }


class BookingService(Base):
    """Service line of a booking with price/duration snapshotted at booking time."""
    __tablename__ = "booking_services"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_id = Column(
        Uuid(as_uuid=True), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id = Column(Uuid(as_uuid=True), ForeignKey("services.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    service_name = Column(String(200), nullable=False)
    price_at_booking = Column(Numeric(10, 2), nullable=False)
    duration_at_booking = Column(Integer, nullable=False)

    booking = relationship("Booking", back_populates="services")

    def to_dict(self):
        return {
            "service_id": str(self.service_id),
            "name": self.service_name,
            "price": str(self.price_at_booking),
            "duration_minutes": self.duration_at_booking,
        }


class BookingModifier(Base):
    """Modifier applied to a booking with its effect snapshotted at booking time."""
    __tablename__ = "booking_modifiers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_id = Column(
        Uuid(as_uuid=True), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    modifier_id = Column(Uuid(as_uuid=True), ForeignKey("service_modifiers.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    modifier_name = Column(String(200), nullable=False)
    applied_duration = Column(Integer, nullable=False)
    applied_price = Column(Numeric(10, 2), nullable=False)
    auto_applied = Column(Boolean, nullable=False, default=False)
    applied_at = Column(DateTime(timezone=True), server_default=func.now())

    booking = relationship("Booking", back_populates="modifiers")

    def to_dict(self):
        return {
            "modifier_id": str(self.modifier_id),
            "name": self.modifier_name,
            "applied_duration": self.applied_duration,
            "applied_price": str(self.applied_price),
            "auto_applied": bool(self.auto_applied),
        }


class BookingDayLock(Base):
    """
    One row per (shop, local date). Booking creation updates the rows of every
    date it touches before reading existing bookings, which serializes the
    read-check-write sequence for that shop/date.
    """
    __tablename__ = "booking_day_locks"
    __table_args__ = (
        PrimaryKeyConstraint("shop_id", "lock_date", name="pk_booking_day_locks"),
    )

    shop_id = Column(Uuid(as_uuid=True), ForeignKey("shops.id", ondelete="CASCADE"), nullable=False)
    lock_date = Column(Date, nullable=False)
    version = Column(Integer, nullable=False, default=0)
