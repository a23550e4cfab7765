# ===== app/services/availability/availability_service.py =====
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import List, Optional, Protocol, Sequence
from uuid import UUID
import logging

from app.core.exceptions import ShopOrServiceNotFound, ValidationError
from app.services.availability.schedule_resolver import EffectiveDay, ScheduleResolver
from app.services.availability.slot_generator import BusyInterval, Slot, SlotGenerator
from app.services.booking.booking_totals import BookingTotals, calculate_booking_totals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayAvailability:
    date: date
    duration_minutes: int
    slots: List[Slot]


class ScheduleReader(Protocol):
    def get_blocks(self, shop_id: UUID) -> Sequence: ...

    def get_exceptions(self, shop_id: UUID, start_date: date, end_date: date) -> Sequence: ...


class BookingReader(Protocol):
    def get_busy_intervals(self, shop_id: UUID, start: datetime, end: datetime) -> List[BusyInterval]: ...


class ServiceReader(Protocol):
    def get_active_for_shop(self, shop_id: UUID, service_ids: Sequence[UUID]) -> Sequence: ...

    def get_active_modifiers(self, service_ids: Sequence[UUID]) -> Sequence: ...


class AvailabilityService:
    """
    Read path of the booking engine: effective days and slot lists.

    The same instance is used by the booking write path, so a slot offered
    here and a slot validated at booking time come from one computation.
    """

    def __init__(
            self,
            schedule_reader: ScheduleReader,
            booking_reader: BookingReader,
            service_reader: ServiceReader,
            granularity_minutes: int = 30,
            default_duration_minutes: int = 60
    ):
        self.schedules = schedule_reader
        self.bookings = booking_reader
        self.services = service_reader
        self.generator = SlotGenerator(granularity_minutes)
        self.default_duration_minutes = default_duration_minutes

    # ------------------------------------------------------------------
    # Effective days
    # ------------------------------------------------------------------

    def get_effective_days(self, shop, start_date: date, end_date: date) -> List[EffectiveDay]:
        resolver = ScheduleResolver(shop.timezone)
        blocks = self.schedules.get_blocks(shop.id)
        exceptions = self.schedules.get_exceptions(shop.id, start_date, end_date)
        return resolver.resolve_range(start_date, end_date, blocks, exceptions)

    def get_effective_day(self, shop, day: date) -> EffectiveDay:
        return self.get_effective_days(shop, day, day)[0]

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def get_slots(self, shop, day: date, duration_minutes: int) -> List[Slot]:
        """Ordered slots of ``day`` for a booking lasting ``duration_minutes``."""
        if duration_minutes <= 0:
            raise ValidationError("Total duration must be positive", {"total_duration": duration_minutes})

        effective_day = self.get_effective_day(shop, day)
        if not effective_day.is_open:
            return []

        busy = self.bookings.get_busy_intervals(
            shop.id,
            min(w.start for w in effective_day.windows),
            max(w.end for w in effective_day.windows),
        )
        return self.generator.generate(effective_day.windows, busy, duration_minutes)

    def find_slot(self, shop, day: date, start_time: time, duration_minutes: int) -> Optional[Slot]:
        slots = self.get_slots(shop, day, duration_minutes)
        return self.generator.find_slot(slots, start_time.strftime("%H:%M"))

    # ------------------------------------------------------------------
    # Durations
    # ------------------------------------------------------------------

    def resolve_selection(
            self,
            shop_id: UUID,
            service_ids: Sequence[UUID],
            modifier_ids: Sequence[UUID] = ()
    ):
        """
        Load the selected services and modifiers of a shop.

        Raises:
            ShopOrServiceNotFound: an id is unknown, inactive or belongs elsewhere
        """
        unique_service_ids = list(dict.fromkeys(service_ids))
        services = self.services.get_active_for_shop(shop_id, unique_service_ids)
        if len(services) != len(unique_service_ids):
            found = {s.id for s in services}
            missing = [str(i) for i in unique_service_ids if i not in found]
            raise ShopOrServiceNotFound("Service not found", {"service_ids": missing})

        by_id = {s.id: s for s in services}
        services = [by_id[i] for i in unique_service_ids]

        modifiers = []
        unique_modifier_ids = list(dict.fromkeys(modifier_ids))
        if unique_modifier_ids:
            available = {m.id: m for m in self.services.get_active_modifiers(unique_service_ids)}
            missing = [str(i) for i in unique_modifier_ids if i not in available]
            if missing:
                raise ShopOrServiceNotFound("Modifier not found", {"modifier_ids": missing})
            modifiers = [available[i] for i in unique_modifier_ids]

        return services, modifiers

    def requested_duration(
            self,
            shop_id: UUID,
            service_ids: Sequence[UUID] = (),
            modifier_ids: Sequence[UUID] = (),
            additional_minutes: int = 0
    ) -> int:
        """
        Minutes to reserve for a selection.

        Without services the default duration applies. Modifier deltas and
        ``additional_minutes`` are added on top.
        """
        if additional_minutes < 0:
            raise ValidationError("additional_minutes cannot be negative")

        if not service_ids:
            return self.default_duration_minutes + additional_minutes

        services, modifiers = self.resolve_selection(shop_id, service_ids, modifier_ids)
        totals: BookingTotals = calculate_booking_totals(services, modifiers)
        return totals.total_duration + additional_minutes

    def get_available_slots(
            self,
            shop,
            day: date,
            service_ids: Sequence[UUID] = (),
            additional_minutes: int = 0,
            modifier_ids: Sequence[UUID] = ()
    ) -> DayAvailability:
        """Availability query: slots of ``day`` for the selected services."""
        duration = self.requested_duration(shop.id, service_ids, modifier_ids, additional_minutes)
        logger.debug(f"Availability for shop {shop.id} on {day} with duration {duration}m")
        return DayAvailability(date=day, duration_minutes=duration, slots=self.get_slots(shop, day, duration))
