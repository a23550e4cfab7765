# app/services/verification/verification_service.py
"""
Contact verification.

A customer asks for a code, confirms it, and gets a short-lived token that
exactly one booking creation consumes.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.exceptions import VerificationFailed
from app.models.contact_verification import ContactVerification
from app.repositories.customer_repository import VerificationRepository

logger = logging.getLogger(__name__)


class VerificationService:

    def __init__(
            self,
            db: Session,
            notifier=None,
            code_ttl_minutes: int = 10,
            token_ttl_minutes: int = 30
    ):
        self.db = db
        self.verifications = VerificationRepository(db)
        self.notifier = notifier
        self.code_ttl_minutes = code_ttl_minutes
        self.token_ttl_minutes = token_ttl_minutes

    def issue_code(self, email: str, shop_name: Optional[str] = None) -> ContactVerification:
        """Replace any pending code for ``email`` with a fresh one and mail it."""
        self.verifications.delete_pending_for_email(email)
        verification = self.verifications.add(
            ContactVerification.create_for_email(email, expiry_minutes=self.code_ttl_minutes)
        )
        self.db.commit()
        logger.info(f"Issued verification code for {verification.email}")

        if self.notifier is not None:
            self.notifier.verification_code(verification.email, verification.code, shop_name)
        return verification

    def confirm_code(self, email: str, code: str, now: Optional[datetime] = None) -> ContactVerification:
        """
        Exchange a valid code for a booking token (``verification.token``).

        Raises:
            VerificationFailed: no pending code, wrong code or expired code
        """
        now = now or datetime.now(timezone.utc)
        verification = self.verifications.latest_pending_for_email(email)
        if verification is None or not verification.code_is_valid(code.strip(), now):
            logger.info(f"Rejected verification code for {email.lower()}")
            raise VerificationFailed("Verification code is invalid or has expired")

        verification.mark_verified(self.token_ttl_minutes, now)
        self.db.commit()
        return verification

    def consume_token(self, email: str, token: Optional[str], now: Optional[datetime] = None) -> None:
        """
        Mark the token used inside the caller's transaction.

        The UPDATE only matches an unused token, so two bookings cannot spend
        the same token.

        Raises:
            VerificationFailed: token missing, unknown, for another email, expired or used
        """
        now = now or datetime.now(timezone.utc)
        if not token:
            raise VerificationFailed("Contact verification is required")

        verification = self.verifications.get_by_token(token)
        if (
            verification is None
            or verification.email != email.lower()
            or not verification.token_is_valid(now)
        ):
            raise VerificationFailed()

        result = self.db.execute(
            update(ContactVerification)
            .where(ContactVerification.id == verification.id, ContactVerification.used_at.is_(None))
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise VerificationFailed()
