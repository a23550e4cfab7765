"""
API v1 router setup
Organized into: public (booking link token) and dashboard (owner API key) routes
"""
from fastapi import APIRouter

from app.api.v1.public import booking
from app.api.v1.dashboard import bookings

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (booking link token in the path)
# ============================================================================
api_v1_router.include_router(
    booking.router,
    prefix="/public",
    tags=["Public"]
)

# ============================================================================
# DASHBOARD ROUTES (owner API key required)
# ============================================================================
api_v1_router.include_router(
    bookings.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and authentication per route group."""
    return {
        "version": "1.0",
        "authentication": {
            "public": "Booking link token in the URL",
            "dashboard": "X-API-Key header with the owner key"
        }
    }
