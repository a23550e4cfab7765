# app/models/customer.py
"""
Customer records, created or refreshed on booking, and the tags that drive
customer_tag modifiers.
"""
from sqlalchemy import Column, String, Date, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from app.models.base import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(200), nullable=False)
    phone = Column(String(32), nullable=True)
    birth_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    tags = relationship("CustomerTag", back_populates="customer", lazy="selectin")
    bookings = relationship("Booking", back_populates="customer")

    def __repr__(self):
        return f"<Customer(id={self.id}, email={self.email})>"


class CustomerTag(Base):
    __tablename__ = "customer_tags"
    __table_args__ = (
        UniqueConstraint("customer_id", "tag", name="uq_customer_tags_customer_tag"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(
        Uuid(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tag = Column(String(100), nullable=False)
    value = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    customer = relationship("Customer", back_populates="tags")

    def __repr__(self):
        return f"<CustomerTag(customer_id={self.customer_id}, tag={self.tag}, value={self.value})>"
