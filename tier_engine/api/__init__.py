"""
Tier Engine API package initialization.

This package contains FastAPI router modules:
- tier_movement: Transition matrix and summary cards between two periods
- tier_insights: Growth mismatch insights and tier analytics alerts
- assignments: Save / clear / bulk save of SNR-account assignments
- handler_setup: SNR account to handler administration
"""

from fastapi import APIRouter

from tier_engine.api.tier_movement import router as tier_movement_router
from tier_engine.api.tier_insights import router as tier_insights_router
from tier_engine.api.assignments import router as assignments_router
from tier_engine.api.handler_setup import router as handler_setup_router

# Each router carries its own prefix and tags
api_router = APIRouter()

api_router.include_router(tier_movement_router)
api_router.include_router(tier_insights_router)
api_router.include_router(assignments_router)
api_router.include_router(handler_setup_router)

__all__ = [
    "api_router",
    "tier_movement_router",
    "tier_insights_router",
    "assignments_router",
    "handler_setup_router",
]
