"""
Pydantic schemas for the public booking flow and the owner dashboard
"""
from datetime import date, time, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# ============================================================================
# Request Schemas (for incoming data)
# ============================================================================

class VerificationCodeRequest(BaseModel):
    email: EmailStr


class VerificationConfirmRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class BookingCreateRequest(BaseModel):
    """Public booking creation body"""
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: EmailStr
    customer_phone: Optional[str] = Field(None, max_length=32)
    birth_date: Optional[date] = None

    booking_date: date
    start_time: time = Field(..., description="Wall-clock start in the shop's timezone, HH:MM")

    service_ids: List[UUID] = Field(..., min_length=1)
    modifier_ids: List[UUID] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=2000)

    consent: bool = False
    verification_token: Optional[str] = None

    @field_validator("customer_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("customer_name cannot be blank")
        return v

    @field_validator("start_time")
    @classmethod
    def drop_seconds(cls, v: time) -> time:
        return v.replace(second=0, microsecond=0, tzinfo=None)


class BookingStatusUpdateRequest(BaseModel):
    status: str = Field(..., pattern="^(pending|confirmed|cancelled)$")


class BookingLinkCreateRequest(BaseModel):
    expires_in_days: Optional[int] = Field(None, ge=1, le=365)
    max_uses: Optional[int] = Field(None, ge=1)


# ============================================================================
# Response Schemas (for outgoing data)
# ============================================================================

class SlotResponse(BaseModel):
    time: str
    available: bool


class AvailabilityResponse(BaseModel):
    date: date
    duration_minutes: int
    slots: List[SlotResponse]


class ServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    duration_minutes: int
    formatted_duration: str


class ShopPublicResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    timezone: str
    address: Optional[str] = None
    phone: Optional[str] = None


class BookingPageResponse(BaseModel):
    shop: ShopPublicResponse
    services: List[ServiceResponse]


class ModifierResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    service_id: UUID
    name: str
    description: Optional[str] = None
    condition_type: str
    duration_modifier: int
    price_modifier: Decimal
    auto_apply: bool


class ModifierPreviewResponse(BaseModel):
    service_id: UUID
    auto_applied: List[ModifierResponse]
    selectable: List[ModifierResponse]


class VerificationConfirmResponse(BaseModel):
    verification_token: str
    expires_at: datetime


class BookingServiceLine(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    service_id: UUID
    service_name: str
    price_at_booking: Decimal
    duration_at_booking: int


class BookingModifierLine(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    modifier_id: UUID
    modifier_name: str
    applied_duration: int
    applied_price: Decimal
    auto_applied: bool


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    shop_id: UUID
    booking_date: date
    start_time: time
    end_time: time
    total_duration: int
    total_price: Decimal
    status: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    services: List[BookingServiceLine] = Field(default_factory=list)
    modifiers: List[BookingModifierLine] = Field(default_factory=list)


class BookingStatusResponse(BaseModel):
    booking: BookingResponse
    previous_status: str
    new_status: str
    changed: bool


class BookingListResponse(BaseModel):
    shop_id: UUID
    total: int
    bookings: List[BookingResponse]


class BookingStatsResponse(BaseModel):
    total: int
    by_status: Dict[str, int]
    revenue: Decimal


class BookingLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    shop_id: UUID
    token: str
    expires_at: datetime
    is_active: bool
    max_uses: Optional[int] = None
    current_uses: int
