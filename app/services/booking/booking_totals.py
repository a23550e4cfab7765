# app/services/booking/booking_totals.py
"""
Booking totals.

One function computes duration and price for availability checks, for the
stored booking and for notification content, so the three never disagree.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT)


@dataclass(frozen=True)
class BookingTotals:
    total_duration: int
    total_price: Decimal
    base_duration: int
    base_price: Decimal
    modifier_duration: int
    modifier_price: Decimal

    def to_dict(self) -> Dict:
        return {
            "total_duration": self.total_duration,
            "total_price": str(self.total_price),
            "base_duration": self.base_duration,
            "base_price": str(self.base_price),
            "modifier_duration": self.modifier_duration,
            "modifier_price": str(self.modifier_price),
        }


def calculate_booking_totals(services: Iterable, modifiers: Iterable = ()) -> BookingTotals:
    """
    Sum service base values and modifier deltas.

    Args:
        services: objects with ``duration_minutes`` and ``price``
        modifiers: objects with ``duration_modifier`` and ``price_modifier``
            (signed deltas)
    """
    base_duration = 0
    base_price = Decimal("0.00")
    for service in services:
        base_duration += int(service.duration_minutes)
        base_price += to_money(service.price)

    modifier_duration = 0
    modifier_price = Decimal("0.00")
    for modifier in modifiers:
        modifier_duration += int(modifier.duration_modifier or 0)
        modifier_price += to_money(modifier.price_modifier)

    return BookingTotals(
        total_duration=base_duration + modifier_duration,
        total_price=(base_price + modifier_price).quantize(CENT),
        base_duration=base_duration,
        base_price=base_price.quantize(CENT),
        modifier_duration=modifier_duration,
        modifier_price=modifier_price.quantize(CENT),
    )
