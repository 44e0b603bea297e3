"""
Admin router - tag rename, migration re-run and consistency check.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from branch.core.dependencies import get_db, require_admin
from branch.models.user import User
from branch.schemas.migration import ConsistencyReport, MigrationReport
from branch.schemas.tag import TagRenameRequest, TagRenameResponse
from branch.services.tag_migration_service import TagMigrationService
from branch.services.tag_service import TagService

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.post("/rename-tag", response_model=TagRenameResponse)
async def rename_tag(
    data: TagRenameRequest,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Rename a tag everywhere, merging into existing new-name facts."""
    return await TagService(db).rename_tag(data.old_name, data.new_name)


@router.post("/migrate-tags", response_model=MigrationReport)
async def migrate_tags(
    force: bool = Query(False),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Copy legacy tag tables into tags_unified (no-op once done unless forced)."""
    return await TagMigrationService(db).migrate(force=force)


@router.get("/tag-consistency", response_model=ConsistencyReport)
async def tag_consistency(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await TagMigrationService(db).check_consistency()
