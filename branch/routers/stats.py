"""
Statistics router - homepage aggregates and technology pages.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from branch.core.dependencies import get_db
from branch.schemas.stats import StatsResponse, TechDetailResponse
from branch.services.stats_service import StatsService

router = APIRouter(prefix="/api", tags=["Statistics"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(db: AsyncSession = Depends(get_db)):
    """Homepage statistics."""
    return await StatsService(db).get_stats()


@router.get("/tech", response_model=TechDetailResponse)
async def get_tech(
    tag: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    """Users and repositories using a technology."""
    return await StatsService(db).get_tech_detail(tag)
