# app/schemas/__init__.py
from .booking import (
    VerificationCodeRequest,
    VerificationConfirmRequest,
    BookingCreateRequest,
    BookingStatusUpdateRequest,
    BookingLinkCreateRequest,
    SlotResponse,
    AvailabilityResponse,
    ServiceResponse,
    ShopPublicResponse,
    BookingPageResponse,
    ModifierResponse,
    ModifierPreviewResponse,
    VerificationConfirmResponse,
    BookingResponse,
    BookingStatusResponse,
    BookingListResponse,
    BookingStatsResponse,
    BookingLinkResponse
)
