# app/services/customer/customer_service.py
"""Builds the customer context the modifier engine evaluates"""
from datetime import date
from typing import Optional

from app.models.customer import Customer
from app.repositories.booking_repository import BookingRepository
from app.repositories.customer_repository import CustomerRepository
from app.services.modifier.modifier_engine import CustomerContext


class CustomerService:

    def __init__(self, customers: CustomerRepository, bookings: BookingRepository):
        self.customers = customers
        self.bookings = bookings

    def build_context(self, customer: Optional[Customer]) -> CustomerContext:
        if customer is None:
            return CustomerContext()
        return CustomerContext(
            customer_id=customer.id,
            tags=tuple((t.tag, t.value) for t in customer.tags),
            birth_date=customer.birth_date,
            confirmed_bookings=self.bookings.count_confirmed_for_customer(customer.id),
        )

    def context_for_email(self, email: Optional[str]) -> CustomerContext:
        """Context of a known customer; an unknown or missing email yields an empty context."""
        if not email:
            return CustomerContext()
        return self.build_context(self.customers.get_by_email(email))

    def upsert_customer(
            self,
            email: str,
            full_name: str,
            phone: Optional[str] = None,
            birth_date: Optional[date] = None
    ) -> Customer:
        return self.customers.upsert(email=email, full_name=full_name, phone=phone, birth_date=birth_date)
