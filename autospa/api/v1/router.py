"""
API v1 router setup
Organized into: public (no auth), dashboard and pos (JWT)
"""
from fastapi import APIRouter

from autospa.api.v1.public import booking
from autospa.api.v1.dashboard import appointments, settings as settings_routes
from autospa.api.v1.pos import promotions

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (No authentication required)
# ============================================================================
api_v1_router.include_router(
    booking.router,
    prefix="/public",
    tags=["Public"]
)

# ============================================================================
# DASHBOARD ROUTES (JWT authentication required)
# ============================================================================
api_v1_router.include_router(
    appointments.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    settings_routes.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)

# ============================================================================
# POS ROUTES (JWT authentication required)
# ============================================================================
api_v1_router.include_router(
    promotions.router,
    prefix="/pos",
    tags=["POS"]
)
