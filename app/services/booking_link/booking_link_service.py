# app/services/booking_link/booking_link_service.py
"""Booking link resolution and owner-side link management"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.exceptions import InvalidOrExpiredLink, ShopOrServiceNotFound, ValidationError
from app.models.booking_link import BookingLink
from app.models.shop import Shop
from app.repositories.booking_link_repository import BookingLinkRepository
from app.repositories.schedule_repository import ScheduleRepository

logger = logging.getLogger(__name__)


class BookingLinkService:

    def __init__(self, db: Session, default_expiry_days: int = 30):
        self.db = db
        self.links = BookingLinkRepository(db)
        self.shops = ScheduleRepository(db)
        self.default_expiry_days = default_expiry_days

    def resolve(self, token: str, now: Optional[datetime] = None) -> Tuple[BookingLink, Shop]:
        """
        Resolve a public token to its link and shop.

        Raises:
            InvalidOrExpiredLink: unknown, inactive, expired or used up
            ShopOrServiceNotFound: the shop is gone or deactivated
        """
        link = self.links.get_by_token(token) if token else None
        if link is None or not link.is_usable(now or datetime.now(timezone.utc)):
            raise InvalidOrExpiredLink()

        shop = self.shops.get_shop(link.shop_id)
        if shop is None or not shop.is_active:
            raise ShopOrServiceNotFound("Shop not found")
        return link, shop

    def get_shop(self, shop_id: UUID) -> Shop:
        shop = self.shops.get_shop(shop_id)
        if shop is None:
            raise ShopOrServiceNotFound("Shop not found")
        return shop

    def issue(self, shop_id: UUID, expires_in_days: Optional[int] = None, max_uses: Optional[int] = None) -> BookingLink:
        self.get_shop(shop_id)
        if max_uses is not None and max_uses < 1:
            raise ValidationError("max_uses must be at least 1")

        link = self.links.add(
            BookingLink.issue(shop_id, expires_in_days or self.default_expiry_days, max_uses)
        )
        self.db.commit()
        logger.info(f"Issued booking link {link.id} for shop {shop_id}")
        return link

    def deactivate(self, shop_id: UUID, link_id: UUID) -> BookingLink:
        link = self.links.get_for_shop(shop_id, link_id)
        if link is None:
            raise InvalidOrExpiredLink("Booking link not found")
        link.is_active = False
        self.db.commit()
        return link

    def list_for_shop(self, shop_id: UUID) -> List[BookingLink]:
        self.get_shop(shop_id)
        return self.links.list_for_shop(shop_id)
