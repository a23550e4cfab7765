# app/models/__init__.py
from .base import Base
from .shop import Shop
from .schedule import ScheduleBlock, ScheduleException
from .service import Service, ServiceModifier, ConditionType
from .customer import Customer, CustomerTag
from .booking_link import BookingLink
from .booking import (
    Booking,
    BookingService,
    BookingModifier,
    BookingDayLock,
    BookingStatus,
    ACTIVE_BOOKING_STATUSES,
)
from .contact_verification import ContactVerification

__all__ = [
    "Base",
    "Shop",
    "ScheduleBlock",
    "ScheduleException",
    "Service",
    "ServiceModifier",
    "ConditionType",
    "Customer",
    "CustomerTag",
    "BookingLink",
    "Booking",
    "BookingService",
    "BookingModifier",
    "BookingDayLock",
    "BookingStatus",
    "ACTIVE_BOOKING_STATUSES",
    "ContactVerification",
]
