"""
Stats Routes
Dashboard statistics
"""

from fastapi import APIRouter, Depends
from cats_admin.auth import get_admin
from cats_admin.schemas.category import StatsResponse
from cats_admin.services.category_service import category_service

router = APIRouter()


@router.get("", response_model=StatsResponse)
async def get_stats(current_admin: dict = Depends(get_admin)):
    """Category totals and share of marketplace names in categories"""
    return await category_service.get_stats()
