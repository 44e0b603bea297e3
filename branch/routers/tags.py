"""
Tags router - free-form tags and the unified tag queries.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from branch.core.dependencies import get_current_user, get_db
from branch.models.user import User
from branch.schemas.tag import (
    TagAddRequest,
    TagDetailResponse,
    TagMutationResponse,
    TagRemoveRequest,
    UserTagsResponse,
)
from branch.services.tag_service import TagService

router = APIRouter(prefix="/api", tags=["Tags"])


@router.get("/tags", response_model=UserTagsResponse)
async def list_user_tags(
    username: str = Query(..., min_length=1),
    viewer: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Tags on a user's profile, with who added them."""
    return await TagService(db).get_user_tags(username, viewer)


@router.post("/add-tag", response_model=TagMutationResponse)
async def add_tag(
    data: TagAddRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Tag a user, or one of their repositories when repo_name is given.
    
    Adding a tag that is already there succeeds with already_present=true.
    """
    return await TagService(db).add_tag(current_user, data.tagged_username, data.tag, data.repo_name)


@router.post("/remove-tag", response_model=TagMutationResponse)
async def remove_tag(
    data: TagRemoveRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Remove a tag the logged-in user added (403 otherwise)."""
    return await TagService(db).remove_tag(current_user, data.tagged_username, data.tag, data.repo_name)


@router.get("/tag", response_model=TagDetailResponse)
async def get_tag(
    name: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    """Users and repositories carrying a tag."""
    return await TagService(db).get_entities_for_tag(name)
