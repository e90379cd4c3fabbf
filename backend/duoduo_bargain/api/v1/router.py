"""
API v1 router aggregation.

WHAT: Combine all v1 endpoint routers
WHY: Single place to register all API routes
HOW: Include routers from endpoints with prefixes
"""

from fastapi import APIRouter

from .endpoints import status, bargain, streaming, participants

# Create main v1 router
api_router = APIRouter()

api_router.include_router(
    status.router,
    prefix="/api/v1",
    tags=["status"]
)

api_router.include_router(
    bargain.router,
    prefix="/api/v1",
    tags=["bargain"]
)

api_router.include_router(
    streaming.router,
    prefix="/api/v1",
    tags=["streaming"]
)

api_router.include_router(
    participants.router,
    prefix="/api/v1",
    tags=["participants"]
)
