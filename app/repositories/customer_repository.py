# app/repositories/customer_repository.py
"""Customer repository - customers, tags and contact verifications"""
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.models.contact_verification import ContactVerification
from app.models.customer import Customer


class CustomerRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> Optional[Customer]:
        return self.db.query(Customer).filter(Customer.email == email.lower()).first()

    def upsert(
            self,
            email: str,
            full_name: str,
            phone: Optional[str] = None,
            birth_date: Optional[date] = None
    ) -> Customer:
        """Find the customer by email, refreshing the details that were provided."""
        customer = self.get_by_email(email)
        if customer is None:
            customer = Customer(
                email=email.lower(),
                full_name=full_name,
                phone=phone,
                birth_date=birth_date,
            )
            self.db.add(customer)
        else:
            customer.full_name = full_name or customer.full_name
            if phone:
                customer.phone = phone
            if birth_date:
                customer.birth_date = birth_date

        self.db.flush()
        return customer


class VerificationRepository:

    def __init__(self, db: Session):
        self.db = db

    def add(self, verification: ContactVerification) -> ContactVerification:
        self.db.add(verification)
        self.db.flush()
        return verification

    def delete_pending_for_email(self, email: str) -> int:
        """Drop codes that were never confirmed so only the newest one works."""
        return (
            self.db.query(ContactVerification)
            .filter(
                ContactVerification.email == email.lower(),
                ContactVerification.verified_at.is_(None),
            )
            .delete(synchronize_session=False)
        )

    def latest_pending_for_email(self, email: str) -> Optional[ContactVerification]:
        return (
            self.db.query(ContactVerification)
            .filter(
                ContactVerification.email == email.lower(),
                ContactVerification.verified_at.is_(None),
            )
            .order_by(ContactVerification.created_at.desc())
            .first()
        )

    def get_by_token(self, token: str) -> Optional[ContactVerification]:
        return self.db.query(ContactVerification).filter(ContactVerification.token == token).first()
