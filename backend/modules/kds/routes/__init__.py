# backend/modules/kds/routes/__init__.py

"""
Kitchen Display System routes.
"""

from fastapi import APIRouter
from .kds_realtime_routes import router as realtime_router

# Create main router
router = APIRouter(tags=["Kitchen Display System"])

router.include_router(realtime_router)

__all__ = ["router"]
