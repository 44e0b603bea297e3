"""
Legacy -> unified tag migration.

Copies tech_stack, ai_assistance, services and tags into tags_unified.
The copy is guarded by a presence check (any system-sourced fact in a
detected category means it already ran) and every insert is
insert-or-ignore, so a second run never adds rows. Legacy tables are only
read. Malformed legacy rows are logged and skipped one at a time.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from branch.db.session import get_async_session_context
from branch.models.unified_tag import EntityType, SourceType, TagCategory
from branch.repositories.legacy_fact_repository import LegacyFactRepository
from branch.repositories.unified_tag_repository import UnifiedTagRepository
from branch.schemas.migration import ConsistencyReport, MigrationReport, MissingFact

logger = logging.getLogger(__name__)

# Report buckets besides the category names
AI_TOOL_REPO = "ai_tool_repo"
AI_TOOL_USER = "ai_tool_user"


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class TagMigrationService:
    """Runs the one-shot copy and the operator consistency check."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
        self.legacy = LegacyFactRepository(db)
        self.unified = UnifiedTagRepository(db)
    
    async def _copy(self, report: MigrationReport, bucket: str, **fact) -> None:
        try:
            async with self.db.begin_nested():
                inserted = await self.unified.insert_fact(**fact)
        except SQLAlchemyError:
            logger.warning("Skipping legacy fact %r, insert failed", fact, exc_info=True)
            report.failed_rows += 1
            return
        if inserted:
            report.inserted[bucket] = report.inserted.get(bucket, 0) + 1
        else:
            report.ignored_duplicates += 1
    
    def _malformed(self, report: MigrationReport, table: str, row_id: int, reason: str) -> None:
        logger.warning("Skipping malformed %s row id=%s: %s", table, row_id, reason)
        report.malformed_rows += 1
    
    async def migrate(self, force: bool = False) -> MigrationReport:
        """
        Copy every legacy row into tags_unified.
        
        Args:
            force: bypass the presence guard; duplicates are still ignored
        """
        report = MigrationReport(forced=force)
        if not force and await self.unified.has_system_facts(TagCategory.DETECTED):
            logger.info("tags_unified already holds detected facts, skipping tag migration")
            report.skipped_already_migrated = True
            return report
        
        for row in await self.legacy.list_tech_stack():
            if _blank(row.technology):
                self._malformed(report, "tech_stack", row.id, "empty technology")
                continue
            if row.category not in (TagCategory.LANGUAGE, TagCategory.FRAMEWORK):
                self._malformed(report, "tech_stack", row.id, f"unknown category {row.category!r}")
                continue
            await self._copy(
                report,
                row.category,
                tag_name=row.technology,
                entity_type=EntityType.USER,
                entity_id=row.user_id,
                category=row.category,
                source_type=SourceType.SYSTEM,
            )
        
        tool_users: set[tuple[str, int]] = set()
        for row in await self.legacy.list_ai_assistance():
            if _blank(row.ai_tool) or _blank(row.repo_name):
                self._malformed(report, "ai_assistance", row.id, "empty ai_tool or repo_name")
                continue
            # entity_id is the owner's user id, never a repositories.id
            await self._copy(
                report,
                AI_TOOL_REPO,
                tag_name=row.ai_tool,
                entity_type=EntityType.REPO,
                entity_id=row.user_id,
                repo_name=row.repo_name,
                category=TagCategory.AI_TOOL,
                source_type=SourceType.SYSTEM,
            )
            tool_users.add((row.ai_tool, row.user_id))
        
        for tool, user_id in sorted(tool_users):
            await self._copy(
                report,
                AI_TOOL_USER,
                tag_name=tool,
                entity_type=EntityType.USER,
                entity_id=user_id,
                category=TagCategory.AI_TOOL,
                source_type=SourceType.SYSTEM,
            )
        
        for row in await self.legacy.list_services():
            if _blank(row.service_name):
                self._malformed(report, "services", row.id, "empty service_name")
                continue
            await self._copy(
                report,
                TagCategory.SERVICE,
                tag_name=row.service_name,
                entity_type=EntityType.USER,
                entity_id=row.user_id,
                category=TagCategory.SERVICE,
                source_type=SourceType.SYSTEM,
            )
        
        for tag, owner_id, repo_name in await self.legacy.list_tags_with_targets():
            if _blank(tag.tag):
                self._malformed(report, "tags", tag.id, "empty tag")
                continue
            if tag.tagged_entity_type == EntityType.USER:
                entity_id, target_repo = tag.tagged_entity_id, None
            elif tag.tagged_entity_type == EntityType.REPO:
                if owner_id is None:
                    self._malformed(report, "tags", tag.id, f"repository {tag.tagged_entity_id} not found")
                    continue
                entity_id, target_repo = owner_id, repo_name
            else:
                self._malformed(report, "tags", tag.id, f"unknown entity type {tag.tagged_entity_type!r}")
                continue
            await self._copy(
                report,
                TagCategory.USER_TAG,
                tag_name=tag.tag,
                entity_type=tag.tagged_entity_type,
                entity_id=entity_id,
                repo_name=target_repo,
                category=TagCategory.USER_TAG,
                source_type=SourceType.USER,
                source_user_id=tag.tagged_by_user_id,
            )
        
        logger.info(
            "Tag migration finished: inserted=%s duplicates=%s malformed=%s failed=%s",
            report.inserted, report.ignored_duplicates, report.malformed_rows, report.failed_rows,
        )
        return report
    
    async def check_consistency(self) -> ConsistencyReport:
        """
        Legacy facts with no unified counterpart.
        
        Facts are compared by uniqueness scope (tag, entity, repo_name): a
        legacy fact that collided with a unified row of another category
        during migration still counts as present.
        """
        legacy_keys = await self.legacy.list_fact_keys()
        unified_keys = await self.unified.list_fact_keys()
        present = {(k.tag_name, k.entity_type, k.entity_id, k.repo_name) for k in unified_keys}
        
        missing: list[MissingFact] = []
        seen: set[tuple] = set()
        for key in legacy_keys:
            scope = (key.tag_name, key.entity_type, key.entity_id, key.repo_name)
            if scope in present or scope in seen:
                continue
            seen.add(scope)
            missing.append(MissingFact(**key._asdict()))
        
        if missing:
            logger.warning("%s legacy facts are missing from tags_unified", len(missing))
        return ConsistencyReport(
            legacy_facts=len(legacy_keys),
            unified_facts=len(unified_keys),
            missing_in_unified=missing,
        )


async def run_tag_migration(force: bool = False) -> MigrationReport:
    """Run the migration in its own session (startup hook and CLI script)."""
    async with get_async_session_context() as db:
        return await TagMigrationService(db).migrate(force=force)
