# app/core/exceptions.py
"""
Typed booking engine failures.

Every failure the request boundary can see is a BookingError carrying a stable
``code`` and an HTTP status; the handler registered in app.main renders them.
"""
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class BookingError(Exception):
    """Base class for failures reported to the caller."""

    code = "booking_error"
    status_code = 400
    default_message = "Booking request failed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.code, "detail": self.message}
        if self.details:
            body["details"] = self.details
        return body


class InvalidOrExpiredLink(BookingError):
    code = "invalid_or_expired_link"
    status_code = 404
    default_message = "Booking link is invalid or has expired"


class ShopOrServiceNotFound(BookingError):
    code = "not_found"
    status_code = 404
    default_message = "Shop or service not found"


class ValidationError(BookingError):
    code = "validation_error"
    status_code = 400
    default_message = "Invalid booking request"


class InvalidStatusTransition(ValidationError):
    code = "invalid_status_transition"
    default_message = "Booking status cannot change that way"


class VerificationFailed(BookingError):
    code = "verification_failed"
    status_code = 403
    default_message = "Contact verification is missing, invalid or expired"


class SlotUnavailable(BookingError):
    code = "slot_unavailable"
    status_code = 409
    default_message = "The requested time is no longer available"


class PersistenceFailure(BookingError):
    """The atomic write failed. Callers must re-check availability before retrying."""
    code = "persistence_failure"
    status_code = 409
    default_message = "The booking could not be saved, please check availability and try again"


class BookingNotFound(BookingError):
    code = "booking_not_found"
    status_code = 404
    default_message = "Booking not found"


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Render a BookingError as a JSON body with its status code"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and query strings are reported as validation_error"""
    error = ValidationError(details={"errors": jsonable_encoder(exc.errors())})
    return JSONResponse(status_code=error.status_code, content=error.to_dict())
