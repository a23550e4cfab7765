# app/repositories/booking_link_repository.py
"""Booking link repository"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from app.models.booking_link import BookingLink


class BookingLinkRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_token(self, token: str) -> Optional[BookingLink]:
        return self.db.query(BookingLink).filter(BookingLink.token == token).first()

    def list_for_shop(self, shop_id: UUID) -> List[BookingLink]:
        return (
            self.db.query(BookingLink)
            .filter(BookingLink.shop_id == shop_id)
            .order_by(BookingLink.created_at.desc())
            .all()
        )

    def add(self, link: BookingLink) -> BookingLink:
        self.db.add(link)
        self.db.flush()
        return link

    def increment_use(self, link_id: UUID) -> bool:
        """
        Count one booking against the link.

        The max_uses guard is part of the UPDATE so concurrent bookings cannot
        push current_uses past the limit. Returns False when no row qualified.
        """
        result = self.db.execute(
            update(BookingLink)
            .where(
                BookingLink.id == link_id,
                BookingLink.is_active.is_(True),
                or_(
                    BookingLink.max_uses.is_(None),
                    BookingLink.current_uses < BookingLink.max_uses,
                ),
            )
            .values(current_uses=BookingLink.current_uses + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def get_for_shop(self, shop_id: UUID, link_id: UUID) -> Optional[BookingLink]:
        return (
            self.db.query(BookingLink)
            .filter(BookingLink.id == link_id, BookingLink.shop_id == shop_id)
            .first()
        )
