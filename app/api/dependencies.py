# ============================================================================
# FILE: app/api/dependencies.py
# Shared dependencies: owner authentication, notifier and service wiring
# ============================================================================
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.config.settings import settings
from app.services.booking.booking_service import BookingTransactionManager
from app.services.booking_link.booking_link_service import BookingLinkService
from app.services.notification.notification_service import NotificationService

# ============================================================================
# Security Schemes
# ============================================================================

owner_api_key_header = APIKeyHeader(
    name="X-API-Key",
    scheme_name="Owner API Key",
    description="Shop owner key for dashboard endpoints",
    auto_error=False,
)


async def require_owner_api_key(api_key: Optional[str] = Security(owner_api_key_header)) -> str:
    """
    Reject dashboard calls without the owner key.

    Account sessions are handled by the account service in front of this API.
    """
    if not api_key or not secrets.compare_digest(api_key, settings.OWNER_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )
    return api_key


# ============================================================================
# Services
# ============================================================================

def get_notifier() -> NotificationService:
    return NotificationService()


def get_booking_manager(
        db: Session = Depends(get_db),
        notifier: NotificationService = Depends(get_notifier)
) -> BookingTransactionManager:
    return BookingTransactionManager.from_session(db, notifier=notifier)


def get_link_service(db: Session = Depends(get_db)) -> BookingLinkService:
    return BookingLinkService(db, default_expiry_days=settings.BOOKING_LINK_DEFAULT_EXPIRY_DAYS)
