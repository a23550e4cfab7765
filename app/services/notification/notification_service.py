# app/services/notification/notification_service.py
"""
Customer notifications for bookings.

Payloads are built from the committed booking and handed to Celery. Enqueue
failures are logged and never reach the caller, because the booking is
already stored when a notification is sent.
"""
import logging
from typing import Dict, Optional, Protocol

from app.config.settings import settings
from app.models.base import as_utc
from app.services.booking.booking_totals import to_money

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def booking_created(self, booking, shop) -> None: ...

    def booking_status_changed(self, booking, shop, previous_status: str) -> None: ...

    def verification_code(self, email: str, code: str, shop_name: Optional[str] = None) -> None: ...


def build_payload(booking, shop) -> Dict:
    """Full notification content of a booking."""
    return {
        "booking_id": str(booking.id),
        "status": booking.status,
        "date": booking.booking_date.isoformat(),
        "start_time": booking.start_time.strftime("%H:%M"),
        "end_time": booking.end_time.strftime("%H:%M"),
        "starts_at": as_utc(booking.starts_at).isoformat(),
        "ends_at": as_utc(booking.ends_at).isoformat(),
        "total_duration": booking.total_duration,
        "total_price": str(to_money(booking.total_price)),
        "currency": settings.CURRENCY,
        "notes": booking.notes,
        "customer": {
            "name": booking.customer_name,
            "email": booking.customer_email,
            "phone": booking.customer_phone,
        },
        "shop": {
            "id": str(shop.id),
            "name": shop.name,
            "timezone": shop.timezone,
            "address": shop.address,
            "phone": shop.phone,
            "email": shop.email,
        },
        "services": [
            {
                "service_id": str(line.service_id),
                "name": line.service_name,
                "duration_minutes": line.duration_at_booking,
                "price": str(to_money(line.price_at_booking)),
            }
            for line in booking.services
        ],
        "modifiers": [
            {
                "modifier_id": str(line.modifier_id),
                "name": line.modifier_name,
                "applied_duration": line.applied_duration,
                "applied_price": str(to_money(line.applied_price)),
                "auto_applied": bool(line.auto_applied),
            }
            for line in booking.modifiers
        ],
    }


class NotificationService:
    """Celery-backed notifier"""

    def booking_created(self, booking, shop) -> None:
        self._dispatch_booking(booking, shop, "created")

    def booking_status_changed(self, booking, shop, previous_status: str) -> None:
        if booking.status == previous_status:
            return
        if booking.status not in ("confirmed", "cancelled"):
            logger.debug(f"No notification for status {booking.status} of booking {booking.id}")
            return
        self._dispatch_booking(booking, shop, booking.status)

    def verification_code(self, email: str, code: str, shop_name: Optional[str] = None) -> None:
        from app.tasks.email_tasks import send_verification_code_email

        try:
            send_verification_code_email.apply_async(
                kwargs={"email": email, "code": code, "shop_name": shop_name},
                retry=False,
            )
        except Exception as e:
            logger.error(f"Failed to enqueue verification code for {email}: {e}")

    def _dispatch_booking(self, booking, shop, event: str) -> None:
        from app.tasks.email_tasks import send_booking_email

        try:
            payload = build_payload(booking, shop)
            send_booking_email.apply_async(kwargs={"payload": payload, "event": event}, retry=False)
            logger.info(f"Queued booking {event} notification for booking {booking.id}")
        except Exception as e:
            logger.error(f"Failed to queue booking {event} notification for booking {booking.id}: {e}")
