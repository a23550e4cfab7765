# app/services/booking/booking_service.py
"""
Booking Transaction Manager

Creates bookings as one all-or-nothing unit and moves them through their
status lifecycle. The availability check runs inside the same transaction as
the insert, after the per-(shop, date) lock rows are taken, so two requests
for overlapping time on the same shop cannot both pass it.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.config.settings import Settings, get_settings
from app.core.exceptions import (
    BookingError,
    BookingNotFound,
    InvalidOrExpiredLink,
    InvalidStatusTransition,
    PersistenceFailure,
    SlotUnavailable,
    ValidationError,
)
from app.models.base import utcnow
from app.models.booking import Booking, BookingModifier, BookingService, BookingStatus
from app.models.booking_link import BookingLink
from app.repositories.booking_link_repository import BookingLinkRepository
from app.repositories.booking_repository import BookingRepository
from app.repositories.customer_repository import CustomerRepository
from app.repositories.schedule_repository import ScheduleRepository
from app.repositories.service_repository import ServiceRepository
from app.services.availability.availability_service import AvailabilityService
from app.services.availability.schedule_resolver import get_zone
from app.services.booking.booking_totals import BookingTotals, calculate_booking_totals, to_money
from app.services.customer.customer_service import CustomerService
from app.services.modifier.modifier_engine import ModifierEngine, ModifierEvaluation
from app.services.verification.verification_service import VerificationService

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING.value: {BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value},
    BookingStatus.CONFIRMED.value: {BookingStatus.CANCELLED.value},
    BookingStatus.CANCELLED.value: set(),
}


@dataclass
class BookingRequest:
    customer_name: str
    customer_email: str
    booking_date: date
    start_time: time
    service_ids: List[UUID]
    modifier_ids: List[UUID] = field(default_factory=list)
    customer_phone: Optional[str] = None
    birth_date: Optional[date] = None
    notes: Optional[str] = None
    consent: bool = False
    verification_token: Optional[str] = None


@dataclass
class BookingResult:
    booking: Booking
    totals: BookingTotals


@dataclass
class StatusChange:
    booking: Booking
    previous_status: str
    new_status: str

    @property
    def changed(self) -> bool:
        return self.previous_status != self.new_status


class BookingTransactionManager:
    """Write path of the booking engine."""

    def __init__(
            self,
            db: Session,
            availability: AvailabilityService,
            bookings: BookingRepository,
            services: ServiceRepository,
            links: BookingLinkRepository,
            customers: CustomerService,
            verification: VerificationService,
            modifier_engine: ModifierEngine,
            notifier=None,
            require_verification: bool = True
    ):
        self.db = db
        self.availability = availability
        self.bookings = bookings
        self.services = services
        self.links = links
        self.customers = customers
        self.verification = verification
        self.modifier_engine = modifier_engine
        self.notifier = notifier
        self.require_verification = require_verification

    @classmethod
    def from_session(cls, db: Session, notifier=None, settings: Optional[Settings] = None):
        """Wire the manager and its collaborators around one session."""
        settings = settings or get_settings()
        bookings = BookingRepository(db)
        services = ServiceRepository(db)
        availability = AvailabilityService(
            ScheduleRepository(db),
            bookings,
            services,
            granularity_minutes=settings.SLOT_GRANULARITY_MINUTES,
            default_duration_minutes=settings.DEFAULT_BOOKING_DURATION_MINUTES,
        )
        return cls(
            db=db,
            availability=availability,
            bookings=bookings,
            services=services,
            links=BookingLinkRepository(db),
            customers=CustomerService(CustomerRepository(db), bookings),
            verification=VerificationService(
                db,
                notifier,
                code_ttl_minutes=settings.VERIFICATION_CODE_TTL_MINUTES,
                token_ttl_minutes=settings.VERIFICATION_TOKEN_TTL_MINUTES,
            ),
            modifier_engine=ModifierEngine(),
            notifier=notifier,
            require_verification=settings.REQUIRE_CONTACT_VERIFICATION,
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_booking(self, shop, request: BookingRequest, link: Optional[BookingLink] = None) -> BookingResult:
        """
        Create a pending booking.

        Raises:
            InvalidOrExpiredLink, ShopOrServiceNotFound, ValidationError,
            VerificationFailed, SlotUnavailable, PersistenceFailure
        """
        if link is not None and (link.shop_id != shop.id or not link.is_usable()):
            raise InvalidOrExpiredLink()

        self._validate_request(request)

        try:
            booking, totals = self._create_in_transaction(shop, request, link)
            self.db.commit()
        except BookingError:
            self.db.rollback()
            raise
        except (IntegrityError, OperationalError) as exc:
            self.db.rollback()
            logger.warning(f"Booking write failed for shop {shop.id} on {request.booking_date}: {exc}")
            raise PersistenceFailure() from exc

        self.db.refresh(booking)
        logger.info(
            f"Created booking {booking.id} for shop {shop.id} on {booking.booking_date} "
            f"{booking.start_time:%H:%M}-{booking.end_time:%H:%M}"
        )

        if self.notifier is not None:
            self.notifier.booking_created(booking, shop)
        return BookingResult(booking=booking, totals=totals)

    def _validate_request(self, request: BookingRequest) -> None:
        missing = [
            name for name in ("customer_name", "customer_email", "booking_date", "start_time")
            if not getattr(request, name)
        ]
        if not request.service_ids:
            missing.append("service_ids")
        if missing:
            raise ValidationError("Missing required booking fields", {"missing": missing})
        if not request.consent:
            raise ValidationError("Consent is required to create a booking")

    def _create_in_transaction(self, shop, request: BookingRequest, link: Optional[BookingLink]):
        if self.require_verification:
            self.verification.consume_token(request.customer_email, request.verification_token)

        services, selected = self.availability.resolve_selection(
            shop.id, request.service_ids, request.modifier_ids
        )

        customer = self.customers.upsert_customer(
            email=request.customer_email,
            full_name=request.customer_name,
            phone=request.customer_phone,
            birth_date=request.birth_date,
        )
        context = self.customers.build_context(customer)

        evaluation = self.modifier_engine.evaluate(
            self.services.get_active_modifiers([s.id for s in services]), context
        )
        auto_ids = set(evaluation.auto_applied_ids)
        applied = list(evaluation.auto_applied) + [m for m in selected if m.id not in auto_ids]

        totals = calculate_booking_totals(services, applied)
        if totals.total_duration <= 0:
            raise ValidationError("Total duration must be positive", {"total_duration": totals.total_duration})

        unavailable = SlotUnavailable(
            details={
                "date": request.booking_date.isoformat(),
                "start_time": request.start_time.strftime("%H:%M"),
                "duration_minutes": totals.total_duration,
            }
        )

        # Locate the slot to learn which local dates the booking spans, lock
        # those dates, then decide availability on a fresh read.
        slot = self.availability.find_slot(shop, request.booking_date, request.start_time, totals.total_duration)
        if slot is None:
            raise unavailable

        tz = get_zone(shop.timezone)
        starts_at = slot.start.astimezone(timezone.utc)
        ends_at = starts_at + timedelta(minutes=totals.total_duration)
        self.bookings.lock_days(
            shop.id,
            self._local_dates(
                min(request.booking_date, slot.start.date()),
                ends_at.astimezone(tz).date(),
            ),
        )

        slot = self.availability.find_slot(shop, request.booking_date, request.start_time, totals.total_duration)
        if slot is None or not slot.available:
            raise unavailable

        booking = Booking(
            shop_id=shop.id,
            customer_id=customer.id,
            booking_link_id=link.id if link is not None else None,
            booking_date=request.booking_date,
            start_time=slot.start.time().replace(tzinfo=None),
            end_time=ends_at.astimezone(tz).time().replace(tzinfo=None),
            starts_at=starts_at,
            ends_at=ends_at,
            total_duration=totals.total_duration,
            total_price=totals.total_price,
            status=BookingStatus.PENDING.value,
            customer_name=request.customer_name,
            customer_email=request.customer_email.lower(),
            customer_phone=request.customer_phone,
            notes=request.notes,
        )
        service_lines = [
            BookingService(
                service_id=s.id,
                service_name=s.name,
                price_at_booking=s.price,
                duration_at_booking=s.duration_minutes,
            )
            for s in services
        ]
        modifier_lines = [
            BookingModifier(
                modifier_id=m.id,
                modifier_name=m.name,
                applied_duration=m.duration_modifier,
                applied_price=m.price_modifier,
                auto_applied=m.id in auto_ids,
            )
            for m in applied
        ]
        self.bookings.add_booking(booking, service_lines, modifier_lines)

        if link is not None and not self.links.increment_use(link.id):
            raise InvalidOrExpiredLink()

        return booking, totals

    @staticmethod
    def _local_dates(first: date, last: date) -> List[date]:
        days = [first]
        while days[-1] < last:
            days.append(days[-1] + timedelta(days=1))
        return days

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def update_status(self, shop, booking_id: UUID, new_status: str) -> StatusChange:
        """
        Move a booking to ``new_status``.

        Setting the current status again is a no-op. Returns the previous and
        new status so the caller knows whether anything changed.
        """
        try:
            target = BookingStatus(new_status).value
        except ValueError:
            raise ValidationError(f"Unknown booking status '{new_status}'")

        try:
            booking = self.bookings.get_for_update(booking_id, shop.id)
            if booking is None:
                raise BookingNotFound()

            previous = booking.status
            if previous == target:
                self.db.rollback()
                return StatusChange(booking=booking, previous_status=previous, new_status=target)

            if target not in ALLOWED_TRANSITIONS.get(previous, set()):
                raise InvalidStatusTransition(
                    f"Cannot change booking status from {previous} to {target}",
                    {"from": previous, "to": target},
                )

            booking.status = target
            if target == BookingStatus.CONFIRMED.value:
                booking.confirmed_at = utcnow()
            elif target == BookingStatus.CANCELLED.value:
                booking.cancelled_at = utcnow()
            self.db.commit()
        except BookingError:
            self.db.rollback()
            raise
        except (IntegrityError, OperationalError) as exc:
            self.db.rollback()
            raise PersistenceFailure("The booking status could not be saved") from exc

        self.db.refresh(booking)
        logger.info(f"Booking {booking.id} status {previous} -> {target}")

        if self.notifier is not None:
            self.notifier.booking_status_changed(booking, shop, previous)
        return StatusChange(booking=booking, previous_status=previous, new_status=target)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def preview_modifiers(self, shop, service_id: UUID, email: Optional[str] = None) -> ModifierEvaluation:
        """Auto-applied and selectable modifiers of one service for a (possibly unknown) customer."""
        services, _ = self.availability.resolve_selection(shop.id, [service_id])
        context = self.customers.context_for_email(email)
        return self.modifier_engine.evaluate(self.services.get_active_modifiers([services[0].id]), context)

    # ------------------------------------------------------------------
    # Owner queries
    # ------------------------------------------------------------------

    def list_bookings(
            self,
            shop,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[str] = None,
            skip: int = 0,
            limit: int = 50
    ) -> List[Booking]:
        if status is not None and status not in ALLOWED_TRANSITIONS:
            raise ValidationError(f"Unknown booking status '{status}'")
        return self.bookings.list_for_shop(shop.id, start_date, end_date, status, skip, limit)

    def get_stats(self, shop, start_date: Optional[date] = None, end_date: Optional[date] = None) -> dict:
        """Counts per status and revenue of bookings that were not cancelled."""
        summary = self.bookings.status_summary(shop.id, start_date, end_date)
        counts = {status: summary.get(status, {}).get("count", 0) for status in ALLOWED_TRANSITIONS}
        revenue = sum(
            (to_money(row["revenue"]) for status, row in summary.items()
             if status != BookingStatus.CANCELLED.value),
            Decimal("0.00"),
        )
        return {
            "total": sum(counts.values()),
            "by_status": counts,
            "revenue": str(revenue),
        }

    def get_booking(self, shop, booking_id: UUID) -> Booking:
        booking = self.bookings.get_by_id(booking_id, shop.id)
        if booking is None:
            raise BookingNotFound()
        return booking
