# app/models/schedule.py
"""
Recurring weekly schedule blocks and date-specific exceptions.
Both are owner-managed; the booking engine only reads them.
"""
from sqlalchemy import (
    Column, String, Integer, Boolean, Time, Date, DateTime, ForeignKey,
    CheckConstraint, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from app.models.base import Base


class ScheduleBlock(Base):
    """One open window of a weekday. Several blocks per day give split shifts."""
    __tablename__ = "schedule_blocks"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedule_blocks_day_of_week"),
        UniqueConstraint("shop_id", "day_of_week", "block_order", name="uq_schedule_blocks_order"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("shops.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    day_of_week = Column(Integer, nullable=False)  # 0=Monday, 6=Sunday
    open_time = Column(Time, nullable=False)
    # close_time <= open_time means the block closes on the following day
    close_time = Column(Time, nullable=False)
    block_order = Column(Integer, nullable=False, default=0)

    shop = relationship("Shop", back_populates="schedule_blocks")

    @property
    def crosses_midnight(self) -> bool:
        return self.close_time <= self.open_time

    def __repr__(self):
        return (
            f"<ScheduleBlock(shop_id={self.shop_id}, day={self.day_of_week}, "
            f"{self.open_time}-{self.close_time})>"
        )


class ScheduleException(Base):
    """Specific date overrides (holidays, time-off, special hours)"""
    __tablename__ = "schedule_exceptions"
    __table_args__ = (
        UniqueConstraint("shop_id", "exception_date", name="uq_schedule_exceptions_date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("shops.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    exception_date = Column(Date, nullable=False)
    is_closed = Column(Boolean, nullable=False, default=True)
    open_time = Column(Time, nullable=True)
    close_time = Column(Time, nullable=True)
    reason = Column(String(255), nullable=True)  # "Holiday", "Vacation", etc.

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    shop = relationship("Shop", back_populates="schedule_exceptions")

    def __repr__(self):
        state = "closed" if self.is_closed else f"{self.open_time}-{self.close_time}"
        return f"<ScheduleException(shop_id={self.shop_id}, date={self.exception_date}, {state})>"
