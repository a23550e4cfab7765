# ============================================================================
# FILE: app/api/v1/dashboard/bookings.py
# Owner endpoints - bookings, status changes, calendar and booking links
# ============================================================================
from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from app.api.dependencies import get_booking_manager, get_link_service, require_owner_api_key
from app.core.exceptions import ValidationError
from app.schemas.booking import (
    BookingLinkCreateRequest,
    BookingLinkResponse,
    BookingListResponse,
    BookingResponse,
    BookingStatsResponse,
    BookingStatusResponse,
    BookingStatusUpdateRequest,
)
from app.services.booking.booking_service import BookingTransactionManager
from app.services.booking_link.booking_link_service import BookingLinkService

MAX_CALENDAR_DAYS = 62

router = APIRouter(
    prefix="/shops/{shop_id}",
    tags=["dashboard-bookings"],
    dependencies=[Depends(require_owner_api_key)],
)


@router.get("/bookings", response_model=BookingListResponse)
def list_bookings(
        shop_id: UUID = Path(..., description="The shop ID"),
        start_date: Optional[date] = Query(None, description="Bookings on or after this date"),
        end_date: Optional[date] = Query(None, description="Bookings on or before this date"),
        status_filter: Optional[str] = Query(None, alias="status", description="pending, confirmed or cancelled"),
        skip: int = Query(0, ge=0),
        limit: int = Query(50, ge=1, le=200),
        links: BookingLinkService = Depends(get_link_service),
        manager: BookingTransactionManager = Depends(get_booking_manager)
):
    """Bookings of the shop ordered by date and start time"""
    shop = links.get_shop(shop_id)
    bookings = manager.list_bookings(shop, start_date, end_date, status_filter, skip, limit)

    return BookingListResponse(
        shop_id=shop.id,
        total=len(bookings),
        bookings=[BookingResponse.model_validate(b) for b in bookings],
    )


@router.get("/bookings/stats", response_model=BookingStatsResponse)
def booking_stats(
        shop_id: UUID = Path(..., description="The shop ID"),
        start_date: Optional[date] = Query(None),
        end_date: Optional[date] = Query(None),
        links: BookingLinkService = Depends(get_link_service),
        manager: BookingTransactionManager = Depends(get_booking_manager)
):
    """Counts per status and revenue of bookings that were not cancelled"""
    shop = links.get_shop(shop_id)
    return manager.get_stats(shop, start_date, end_date)


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
def get_booking(
        shop_id: UUID = Path(..., description="The shop ID"),
        booking_id: UUID = Path(..., description="The booking ID"),
        links: BookingLinkService = Depends(get_link_service),
        manager: BookingTransactionManager = Depends(get_booking_manager)
):
    shop = links.get_shop(shop_id)
    return BookingResponse.model_validate(manager.get_booking(shop, booking_id))


@router.patch("/bookings/{booking_id}/status", response_model=BookingStatusResponse)
def update_booking_status(
        body: BookingStatusUpdateRequest,
        shop_id: UUID = Path(..., description="The shop ID"),
        booking_id: UUID = Path(..., description="The booking ID"),
        links: BookingLinkService = Depends(get_link_service),
        manager: BookingTransactionManager = Depends(get_booking_manager)
):
    """
    Confirm or cancel a booking.
    The customer is notified when the status actually changes.
    """
    shop = links.get_shop(shop_id)
    change = manager.update_status(shop, booking_id, body.status)

    return BookingStatusResponse(
        booking=BookingResponse.model_validate(change.booking),
        previous_status=change.previous_status,
        new_status=change.new_status,
        changed=change.changed,
    )


@router.get("/calendar")
def get_calendar(
        shop_id: UUID = Path(..., description="The shop ID"),
        start_date: date = Query(..., description="First date of the range"),
        end_date: date = Query(..., description="Last date of the range"),
        links: BookingLinkService = Depends(get_link_service),
        manager: BookingTransactionManager = Depends(get_booking_manager)
):
    """Effective opening hours per date after exceptions"""
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date")
    if end_date - start_date > timedelta(days=MAX_CALENDAR_DAYS):
        raise ValidationError(f"Date range cannot exceed {MAX_CALENDAR_DAYS} days")

    shop = links.get_shop(shop_id)
    days = manager.availability.get_effective_days(shop, start_date, end_date)
    return {
        "shop_id": str(shop.id),
        "timezone": shop.timezone,
        "days": [d.to_dict() for d in days],
    }


@router.get("/booking-links", response_model=List[BookingLinkResponse])
def list_booking_links(
        shop_id: UUID = Path(..., description="The shop ID"),
        links: BookingLinkService = Depends(get_link_service)
):
    return [BookingLinkResponse.model_validate(link) for link in links.list_for_shop(shop_id)]


@router.post("/booking-links", response_model=BookingLinkResponse, status_code=status.HTTP_201_CREATED)
def create_booking_link(
        body: BookingLinkCreateRequest,
        shop_id: UUID = Path(..., description="The shop ID"),
        links: BookingLinkService = Depends(get_link_service)
):
    """Issue a new public booking link"""
    link = links.issue(shop_id, expires_in_days=body.expires_in_days, max_uses=body.max_uses)
    return BookingLinkResponse.model_validate(link)


@router.delete("/booking-links/{link_id}", response_model=BookingLinkResponse)
def deactivate_booking_link(
        shop_id: UUID = Path(..., description="The shop ID"),
        link_id: UUID = Path(..., description="The booking link ID"),
        links: BookingLinkService = Depends(get_link_service)
):
    return BookingLinkResponse.model_validate(links.deactivate(shop_id, link_id))
