# ============================================================================
# FILE: app/models/booking_link.py
# Capability token granting public access to one shop's booking flow
# ============================================================================
from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, CheckConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime, timedelta, timezone
from typing import Optional
import uuid
import secrets

from app.models.base import Base, as_utc


class BookingLink(Base):
    """
    Public booking link for a shop.
    A link is usable while active, unexpired and under its use limit.
    """
    __tablename__ = "booking_links"
    __table_args__ = (
        CheckConstraint("max_uses IS NULL OR current_uses <= max_uses", name="ck_booking_links_uses"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(
        Uuid(as_uuid=True), ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True
    )

    token = Column(String(64), unique=True, nullable=False, index=True)

    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    max_uses = Column(Integer, nullable=True)  # None = unlimited
    current_uses = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    shop = relationship("Shop", back_populates="booking_links")

    @staticmethod
    def generate_token() -> str:
        """Generate a secure random token for a booking link."""
        return secrets.token_hex(32)

    @staticmethod
    def issue(shop_id, expires_in_days: int = 30, max_uses: Optional[int] = None) -> 'BookingLink':
        """
        Create a new booking link for a shop.

        Args:
            shop_id: Shop the link grants access to
            expires_in_days: Days until the link expires
            max_uses: Maximum number of bookings through the link (None = unlimited)

        Returns:
            New BookingLink instance (not yet added to session)
        """
        return BookingLink(
            shop_id=shop_id,
            token=BookingLink.generate_token(),
            expires_at=datetime.now(timezone.utc) + timedelta(days=expires_in_days),
            is_active=True,
            max_uses=max_uses,
            current_uses=0,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return as_utc(self.expires_at) <= now

    def has_remaining_uses(self) -> bool:
        return self.max_uses is None or (self.current_uses or 0) < self.max_uses

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        """Active, unexpired and under max_uses."""
        return bool(self.is_active) and not self.is_expired(now) and self.has_remaining_uses()

    def to_dict(self):
        return {
            "id": str(self.id),
            "shop_id": str(self.shop_id),
            "token": self.token,
            "expires_at": as_utc(self.expires_at).isoformat(),
            "is_active": self.is_active,
            "max_uses": self.max_uses,
            "current_uses": self.current_uses,
        }

    def __repr__(self):
        return f"<BookingLink {self.token[:8]}... shop={self.shop_id} uses={self.current_uses}/{self.max_uses}>"
