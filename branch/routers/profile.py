"""
Profile router - dashboard profile, fork graph and relationships.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from branch.core.dependencies import get_db
from branch.schemas.profile import ProfileResponse, RelationshipResponse, RepoForksResponse
from branch.services.profile_service import ProfileService

router = APIRouter(prefix="/api", tags=["Profile"])


@router.get("/techstack", response_model=ProfileResponse)
async def get_techstack(
    username: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    """Everything the dashboard shows for one user."""
    return await ProfileService(db).get_profile(username)


@router.get("/repo-forks", response_model=RepoForksResponse)
async def get_repo_forks(
    owner: str = Query(..., min_length=1),
    repo: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    return await ProfileService(db).get_repo_forks(owner, repo)


@router.get("/relationship", response_model=RelationshipResponse)
async def get_relationship(
    viewer: str = Query(..., min_length=1),
    profile: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    """How the viewer is connected to the profile being viewed."""
    return await ProfileService(db).get_relationship(viewer, profile)
