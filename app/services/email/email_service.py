# ===== app/services/email/email_service.py =====
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Dict, Optional, Tuple
import logging

from app.config.settings import settings

logger = logging.getLogger(__name__)

BOOKING_EVENTS = {
    "created": ("Booking received", "#667eea", "We received your booking request. The shop will confirm it shortly."),
    "confirmed": ("Booking confirmed", "#43a047", "Your booking has been confirmed. See you soon!"),
    "cancelled": ("Booking cancelled", "#e53935", "Your booking has been cancelled."),
}


class EmailService:
    """Sends booking engine emails over SMTP"""

    @staticmethod
    def _get_smtp_connection():
        """Open an authenticated SMTP connection"""
        try:
            if settings.EMAIL_USE_TLS:
                server = smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=30)
                server.starttls()
            else:
                server = smtplib.SMTP_SSL(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=30)

            if settings.EMAIL_USERNAME and settings.EMAIL_PASSWORD:
                server.login(settings.EMAIL_USERNAME, settings.EMAIL_PASSWORD)

            return server
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to connect to SMTP server {settings.EMAIL_HOST}: {e}")
            raise

    @staticmethod
    def send_email(
            to_email: str,
            subject: str,
            html_content: str,
            plain_text: Optional[str] = None,
            reply_to: Optional[str] = None
    ) -> bool:
        """
        Send one email.

        Returns:
            bool: True when sent, False when email delivery is disabled

        Raises:
            smtplib.SMTPException / OSError on delivery failure, so the calling
            task can retry
        """
        if not settings.EMAIL_ENABLED:
            logger.info(f"Email delivery disabled, skipping '{subject}' to {to_email}")
            return False

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"
        msg['To'] = to_email
        if reply_to:
            msg['Reply-To'] = reply_to

        if plain_text:
            msg.attach(MIMEText(plain_text, 'plain'))
        msg.attach(MIMEText(html_content, 'html'))

        server = EmailService._get_smtp_connection()
        try:
            server.sendmail(settings.EMAIL_FROM_ADDRESS, [to_email], msg.as_string())
        finally:
            server.quit()

        logger.info(f"Email '{subject}' sent to {to_email}")
        return True

    # ------------------------------------------------------------------
    # Booking notifications
    # ------------------------------------------------------------------

    @staticmethod
    def render_booking_email(payload: Dict, event: str) -> Tuple[str, str, str]:
        """
        Render subject, HTML and plain text of a booking notification.

        ``payload`` is the dict built by NotificationService.build_payload.
        """
        title, color, intro = BOOKING_EVENTS[event]
        shop = payload["shop"]
        customer = payload["customer"]
        currency = payload.get("currency", "")

        rows = "".join(
            f'<tr><td style="padding: 6px 0;">{line["name"]}</td>'
            f'<td style="padding: 6px 0; text-align: right;">{line["duration_minutes"]} min</td>'
            f'<td style="padding: 6px 0; text-align: right;">{line["price"]} {currency}</td></tr>'
            for line in payload["services"]
        )
        rows += "".join(
            f'<tr><td style="padding: 6px 0; color: #666;">+ {line["name"]}</td>'
            f'<td style="padding: 6px 0; text-align: right; color: #666;">{line["applied_duration"]:+d} min</td>'
            f'<td style="padding: 6px 0; text-align: right; color: #666;">{line["applied_price"]} {currency}</td></tr>'
            for line in payload["modifiers"]
        )

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"></head>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <div style="background: {color}; padding: 24px; text-align: center; border-radius: 10px 10px 0 0;">
                <h1 style="color: white; margin: 0; font-size: 24px;">{title}</h1>
            </div>
            <div style="padding: 24px; border: 1px solid #e0e0e0; border-top: none; border-radius: 0 0 10px 10px;">
                <h2 style="margin-top: 0;">Hi {customer["name"]},</h2>
                <p>{intro}</p>
                <p>
                    <strong>{shop["name"]}</strong><br>
                    {payload["date"]} &middot; {payload["start_time"]} - {payload["end_time"]}
                </p>
                <table style="width: 100%; border-collapse: collapse;">
                    {rows}
                    <tr style="border-top: 1px solid #e0e0e0; font-weight: bold;">
                        <td style="padding: 8px 0;">Total</td>
                        <td style="padding: 8px 0; text-align: right;">{payload["total_duration"]} min</td>
                        <td style="padding: 8px 0; text-align: right;">{payload["total_price"]} {currency}</td>
                    </tr>
                </table>
                {f'<p><strong>Notes:</strong> {payload["notes"]}</p>' if payload.get("notes") else ''}
                <hr style="border: none; border-top: 1px solid #e0e0e0; margin: 24px 0;">
                <p style="font-size: 12px; color: #999;">
                    {shop.get("address") or ""} {shop.get("phone") or ""} {shop.get("email") or ""}
                </p>
            </div>
        </body>
        </html>
        """

        lines = [f"- {s['name']}: {s['duration_minutes']} min, {s['price']} {currency}" for s in payload["services"]]
        lines += [
            f"- {m['name']}: {m['applied_duration']:+d} min, {m['applied_price']} {currency}"
            for m in payload["modifiers"]
        ]
        plain_lines = [
            title,
            "",
            f"Hi {customer['name']},",
            intro,
            "",
            f"{shop['name']}, {payload['date']} {payload['start_time']} - {payload['end_time']}",
            *lines,
            f"Total: {payload['total_duration']} min, {payload['total_price']} {currency}",
        ]
        if payload.get("notes"):
            plain_lines.append(f"Notes: {payload['notes']}")
        plain_text = "\n".join(plain_lines)

        subject = f"{title} - {shop['name']}"
        return subject, html_content, plain_text

    @staticmethod
    def send_booking_email(payload: Dict, event: str) -> bool:
        subject, html_content, plain_text = EmailService.render_booking_email(payload, event)
        return EmailService.send_email(
            to_email=payload["customer"]["email"],
            subject=subject,
            html_content=html_content,
            plain_text=plain_text,
            reply_to=payload["shop"].get("email"),
        )

    @staticmethod
    def send_verification_code_email(email: str, code: str, shop_name: Optional[str] = None) -> bool:
        """Send the 6-digit code that proves ownership of ``email``"""
        context = f" for your booking at {shop_name}" if shop_name else ""
        minutes = settings.VERIFICATION_CODE_TTL_MINUTES

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"></head>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2>Your verification code</h2>
            <p>Use this code{context}:</p>
            <p style="font-size: 32px; font-weight: bold; letter-spacing: 6px;">{code}</p>
            <p style="color: #666;">The code expires in {minutes} minutes.</p>
            <p style="font-size: 12px; color: #999;">If you did not request this code you can ignore this email.</p>
        </body>
        </html>
        """

        plain_text = (
            f"Your verification code{context}: {code}\n"
            f"The code expires in {minutes} minutes."
        )

        return EmailService.send_email(
            to_email=email,
            subject=f"Your verification code: {code}",
            html_content=html_content,
            plain_text=plain_text,
        )
