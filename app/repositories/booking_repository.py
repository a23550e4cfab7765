# app/repositories/booking_repository.py
"""Booking repository - bookings, line items and per-day locks"""
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, selectinload

from app.models.base import as_utc
from app.models.booking import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingDayLock,
    BookingModifier,
    BookingService,
    BookingStatus,
)
from app.services.availability.slot_generator import BusyInterval


class BookingRepository:
    """Persistence port for bookings"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, booking_id: UUID, shop_id: Optional[UUID] = None) -> Optional[Booking]:
        query = (
            self.db.query(Booking)
            .options(selectinload(Booking.services), selectinload(Booking.modifiers))
            .filter(Booking.id == booking_id)
        )
        if shop_id is not None:
            query = query.filter(Booking.shop_id == shop_id)
        return query.first()

    def get_for_update(self, booking_id: UUID, shop_id: UUID) -> Optional[Booking]:
        """Load a booking with a row lock held until the transaction ends."""
        return (
            self.db.query(Booking)
            .filter(Booking.id == booking_id, Booking.shop_id == shop_id)
            .with_for_update()
            .first()
        )

    def get_busy_intervals(self, shop_id: UUID, start: datetime, end: datetime) -> List[BusyInterval]:
        """
        Intervals of non-cancelled bookings overlapping [start, end).

        booking_date is a local date, so the SQL filter widens by a day on each
        side and the exact overlap is decided on the stored instants.
        """
        start_utc = as_utc(start)
        end_utc = as_utc(end)

        rows = (
            self.db.query(Booking.starts_at, Booking.ends_at)
            .filter(
                Booking.shop_id == shop_id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                Booking.booking_date.between(
                    start_utc.date() - timedelta(days=1),
                    end_utc.date() + timedelta(days=1),
                ),
            )
            .all()
        )

        intervals = []
        for starts_at, ends_at in rows:
            interval = BusyInterval(start=as_utc(starts_at), end=as_utc(ends_at))
            if interval.overlaps(start_utc, end_utc):
                intervals.append(interval)
        return sorted(intervals, key=lambda i: i.start)

    def list_for_shop(
            self,
            shop_id: UUID,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[str] = None,
            skip: int = 0,
            limit: int = 50
    ) -> List[Booking]:
        query = self._shop_query(shop_id, start_date, end_date)
        if status:
            query = query.filter(Booking.status == status)
        return (
            query.options(selectinload(Booking.services), selectinload(Booking.modifiers))
            .order_by(Booking.booking_date.asc(), Booking.start_time.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def status_summary(
            self,
            shop_id: UUID,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None
    ) -> Dict[str, Dict]:
        query = self._shop_query(shop_id, start_date, end_date)
        rows = (
            query.with_entities(Booking.status, func.count(Booking.id), func.sum(Booking.total_price))
            .group_by(Booking.status)
            .all()
        )
        return {status: {"count": count, "revenue": revenue} for status, count, revenue in rows}

    def count_confirmed_for_customer(self, customer_id: UUID) -> int:
        return (
            self.db.query(func.count(Booking.id))
            .filter(
                Booking.customer_id == customer_id,
                Booking.status == BookingStatus.CONFIRMED.value,
            )
            .scalar()
        ) or 0

    def _shop_query(self, shop_id: UUID, start_date: Optional[date], end_date: Optional[date]):
        query = self.db.query(Booking).filter(Booking.shop_id == shop_id)
        if start_date:
            query = query.filter(Booking.booking_date >= start_date)
        if end_date:
            query = query.filter(Booking.booking_date <= end_date)
        return query

    # ------------------------------------------------------------------
    # Writes (always inside the caller's transaction)
    # ------------------------------------------------------------------

    def lock_days(self, shop_id: UUID, days: Iterable[date]) -> None:
        """
        Serialize booking writers of this shop on each given local date.

        Rows are touched in ascending date order so two writers that need the
        same pair of dates cannot deadlock. The UPDATE holds a row lock on
        PostgreSQL and the database write lock on SQLite until commit/rollback.
        """
        dialect = self.db.get_bind().dialect.name

        for lock_date in sorted(set(days)):
            values = {"shop_id": shop_id, "lock_date": lock_date, "version": 0}
            if dialect == "postgresql":
                self.db.execute(pg_insert(BookingDayLock).values(**values).on_conflict_do_nothing())
            elif dialect == "sqlite":
                self.db.execute(sqlite_insert(BookingDayLock).values(**values).on_conflict_do_nothing())
            elif self.db.get(BookingDayLock, (shop_id, lock_date)) is None:
                self.db.add(BookingDayLock(**values))
                self.db.flush()

            self.db.execute(
                update(BookingDayLock)
                .where(BookingDayLock.shop_id == shop_id, BookingDayLock.lock_date == lock_date)
                .values(version=BookingDayLock.version + 1)
                .execution_options(synchronize_session=False)
            )

    def add_booking(
            self,
            booking: Booking,
            service_lines: List[BookingService],
            modifier_lines: List[BookingModifier]
    ) -> Booking:
        self.db.add(booking)
        self.db.flush()

        for position, line in enumerate(service_lines):
            line.booking_id = booking.id
            line.position = position
            self.db.add(line)

        for position, line in enumerate(modifier_lines):
            line.booking_id = booking.id
            line.position = position
            self.db.add(line)

        self.db.flush()
        return booking
