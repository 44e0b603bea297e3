"""
Locations router.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from branch.core.dependencies import get_current_user, get_db
from branch.models.user import User
from branch.schemas.profile import (
    LocationsResponse,
    LocationUsersResponse,
    UpdateLocationRequest,
    UpdateLocationResponse,
)
from branch.services.profile_service import ProfileService

router = APIRouter(prefix="/api", tags=["Locations"])


@router.post("/update-location", response_model=UpdateLocationResponse)
async def update_location(
    data: UpdateLocationRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Set the logged-in user's location."""
    return await ProfileService(db).update_location(current_user, data.username, data.location)


@router.get("/locations", response_model=LocationsResponse)
async def list_locations(db: AsyncSession = Depends(get_db)):
    return await ProfileService(db).list_locations()


@router.get("/location", response_model=LocationUsersResponse)
async def users_in_location(
    loc: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    return await ProfileService(db).users_in_location(loc)
