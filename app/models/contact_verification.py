# ============================================================================
# FILE: app/models/contact_verification.py
# Contact verification codes exchanged for single-use booking tokens
# ============================================================================
from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.sql import func
from datetime import datetime, timedelta, timezone
from typing import Optional
import uuid
import secrets

from app.models.base import Base, as_utc


class ContactVerification(Base):
    """
    Model for storing contact verification codes.
    A customer proves ownership of an email by entering the mailed code,
    which yields a token that one booking creation can consume.
    """
    __tablename__ = "contact_verifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    email = Column(String(255), nullable=False, index=True)

    # 6-digit code - sent via email
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    verified_at = Column(DateTime(timezone=True), nullable=True)

    # Issued once the code is confirmed
    token = Column(String(64), unique=True, nullable=True, index=True)
    token_expires_at = Column(DateTime(timezone=True), nullable=True)
    used_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @staticmethod
    def generate_code() -> str:
        """Generate a 6-digit numeric code."""
        return f"{secrets.randbelow(900000) + 100000}"

    @staticmethod
    def create_for_email(email: str, expiry_minutes: int = 10) -> 'ContactVerification':
        """
        Create a new verification code for an email address.

        Returns:
            New ContactVerification instance (not yet added to session)
        """
        return ContactVerification(
            email=email.lower(),
            code=ContactVerification.generate_code(),
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=expiry_minutes),
        )

    def code_is_valid(self, code: str, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        if self.verified_at is not None:
            return False
        if as_utc(self.expires_at) <= now:
            return False
        return secrets.compare_digest(self.code, code)

    def mark_verified(self, token_expiry_minutes: int = 30, now: Optional[datetime] = None) -> str:
        """Mark the code as verified and issue the booking token."""
        now = now or datetime.now(timezone.utc)
        self.verified_at = now
        self.token = secrets.token_urlsafe(32)
        self.token_expires_at = now + timedelta(minutes=token_expiry_minutes)
        return self.token

    def token_is_valid(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        if self.token is None or self.used_at is not None:
            return False
        return as_utc(self.token_expires_at) > now

    def __repr__(self):
        return f"<ContactVerification email={self.email} verified={self.verified_at is not None}>"
