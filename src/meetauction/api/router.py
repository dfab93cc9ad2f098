"""Main API router aggregating all v1 routes."""

from fastapi import APIRouter

from meetauction.api.routes import admin, auctions, health, meetings

# Create main router
api_router = APIRouter()

# Include route modules
api_router.include_router(health.router)
api_router.include_router(meetings.router)
api_router.include_router(auctions.router)
api_router.include_router(admin.router)
