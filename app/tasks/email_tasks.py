# ===== app/tasks/email_tasks.py =====
from typing import Dict, Optional
import logging

from app.config.celery_config import celery_app
from app.services.email.email_service import EmailService

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def send_booking_email(self, payload: Dict, event: str):
    """
    Send a booking notification to the customer

    Args:
        payload: Notification payload (customer, shop, times, totals, line items)
        event: "created", "confirmed" or "cancelled"
    """
    email = payload["customer"]["email"]
    try:
        logger.info(f"Sending booking {event} email for booking {payload['booking_id']} to {email}")

        EmailService.send_booking_email(payload, event)

        return {"status": "success", "email": email, "event": event}

    except Exception as exc:
        logger.error(f"Failed to send booking {event} email to {email}: {exc}")

        # Retry with exponential backoff: 1min, 2min, 4min
        raise self.retry(
            exc=exc,
            countdown=60 * (2 ** self.request.retries)
        )


@celery_app.task(bind=True, max_retries=3)
def send_verification_code_email(self, email: str, code: str, shop_name: Optional[str] = None):
    """Send a contact verification code"""
    try:
        logger.info(f"Sending verification code to {email}")

        EmailService.send_verification_code_email(email=email, code=code, shop_name=shop_name)

        return {"status": "success", "email": email}

    except Exception as exc:
        logger.error(f"Failed to send verification code to {email}: {exc}")

        # Codes expire quickly, so retry sooner than booking emails
        raise self.retry(
            exc=exc,
            countdown=15 * (2 ** self.request.retries)
        )
