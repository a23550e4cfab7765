# ============================================================================
# FILE: app/api/v1/public/booking.py
# Public booking flow behind a booking link token - thin HTTP layer
# ============================================================================
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from app.api.dependencies import get_booking_manager, get_link_service
from app.core.exceptions import ValidationError
from app.models.base import as_utc
from app.schemas.booking import (
    AvailabilityResponse,
    BookingCreateRequest,
    BookingPageResponse,
    BookingResponse,
    ModifierPreviewResponse,
    ModifierResponse,
    ServiceResponse,
    ShopPublicResponse,
    SlotResponse,
    VerificationCodeRequest,
    VerificationConfirmRequest,
    VerificationConfirmResponse,
)
from app.services.booking.booking_service import BookingRequest, BookingTransactionManager
from app.services.booking_link.booking_link_service import BookingLinkService

router = APIRouter(prefix="/booking", tags=["public-booking"])


def _parse_ids(raw: Optional[str], field: str) -> List[UUID]:
    """Parse a comma separated id list from the query string"""
    if not raw:
        return []
    try:
        return [UUID(part.strip()) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise ValidationError(f"Malformed id in '{field}'", {field: raw})


@router.get("/{token}", response_model=BookingPageResponse)
def get_booking_page(
        token: str = Path(..., description="Booking link token"),
        links: BookingLinkService = Depends(get_link_service),
        manager: BookingTransactionManager = Depends(get_booking_manager)
):
    """Shop summary and active services shown on the booking page"""
    _, shop = links.resolve(token)
    services = manager.services.list_active(shop.id)

    return BookingPageResponse(
        shop=ShopPublicResponse.model_validate(shop),
        services=[ServiceResponse.model_validate(s) for s in services],
    )


@router.get("/{token}/availability", response_model=AvailabilityResponse)
def get_availability(
        token: str = Path(..., description="Booking link token"),
        day: date = Query(..., alias="date", description="Date in the shop's timezone"),
        services: Optional[str] = Query(None, description="Comma separated service ids"),
        modifiers: Optional[str] = Query(None, description="Comma separated modifier ids"),
        additional_minutes: int = Query(0, ge=0, le=24 * 60),
        links: BookingLinkService = Depends(get_link_service),
        manager: BookingTransactionManager = Depends(get_booking_manager)
):
    """
    Slots of one date for the selected services.
    Without services the default booking duration is used.
    """
    _, shop = links.resolve(token)
    service_ids = _parse_ids(services, "services")
    modifier_ids = _parse_ids(modifiers, "modifiers")

    availability = manager.availability.get_available_slots(
        shop, day, service_ids, additional_minutes, modifier_ids
    )

    return AvailabilityResponse(
        date=availability.date,
        duration_minutes=availability.duration_minutes,
        slots=[SlotResponse(**slot.to_dict()) for slot in availability.slots],
    )


@router.get("/{token}/services/{service_id}/modifiers", response_model=ModifierPreviewResponse)
def preview_modifiers(
        token: str = Path(..., description="Booking link token"),
        service_id: UUID = Path(..., description="Service to preview"),
        email: Optional[str] = Query(None, description="Customer email, when known"),
        links: BookingLinkService = Depends(get_link_service),
        manager: BookingTransactionManager = Depends(get_booking_manager)
):
    """Modifiers applied automatically for this customer and the ones they can pick"""
    _, shop = links.resolve(token)
    evaluation = manager.preview_modifiers(shop, service_id, email)

    return ModifierPreviewResponse(
        service_id=service_id,
        auto_applied=[ModifierResponse.model_validate(m) for m in evaluation.auto_applied],
        selectable=[ModifierResponse.model_validate(m) for m in evaluation.selectable],
    )


@router.post("/{token}/verification", status_code=status.HTTP_202_ACCEPTED)
def request_verification_code(
        body: VerificationCodeRequest,
        token: str = Path(..., description="Booking link token"),
        links: BookingLinkService = Depends(get_link_service),
        manager: BookingTransactionManager = Depends(get_booking_manager)
):
    """Email a 6-digit code to the customer"""
    _, shop = links.resolve(token)
    manager.verification.issue_code(body.email, shop_name=shop.name)
    return {"status": "sent", "email": body.email}


@router.post("/{token}/verification/confirm", response_model=VerificationConfirmResponse)
def confirm_verification_code(
        body: VerificationConfirmRequest,
        token: str = Path(..., description="Booking link token"),
        links: BookingLinkService = Depends(get_link_service),
        manager: BookingTransactionManager = Depends(get_booking_manager)
):
    """Exchange the emailed code for the token a booking needs"""
    links.resolve(token)
    verification = manager.verification.confirm_code(body.email, body.code)

    return VerificationConfirmResponse(
        verification_token=verification.token,
        expires_at=as_utc(verification.token_expires_at),
    )


@router.post("/{token}/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
        body: BookingCreateRequest,
        token: str = Path(..., description="Booking link token"),
        links: BookingLinkService = Depends(get_link_service),
        manager: BookingTransactionManager = Depends(get_booking_manager)
):
    """
    Create a pending booking.
    Fails with 409 when the time is no longer available.
    """
    link, shop = links.resolve(token)

    result = manager.create_booking(
        shop,
        BookingRequest(
            customer_name=body.customer_name,
            customer_email=body.customer_email,
            customer_phone=body.customer_phone,
            birth_date=body.birth_date,
            booking_date=body.booking_date,
            start_time=body.start_time,
            service_ids=body.service_ids,
            modifier_ids=body.modifier_ids,
            notes=body.notes,
            consent=body.consent,
            verification_token=body.verification_token,
        ),
        link=link,
    )
    return BookingResponse.model_validate(result.booking)
