"""
Unified tag repository - database operations for tags_unified.

All inserts are insert-or-ignore against the two partial unique indexes:
a duplicate fact is a no-op, reported through the returned flag.
"""

from typing import Optional

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from branch.db.dialect import dialect_insert
from branch.models.unified_tag import EntityType, SourceType, TagCategory, UnifiedTag
from branch.repositories.fact_store import DerivedFact, FactKey


def repo_name_matches(column, repo_name: Optional[str]):
    """NULL-safe equality for the optional repo_name discriminator."""
    if repo_name is None:
        return column.is_(None)
    return column == repo_name


class UnifiedTagRepository:
    """FactStore adapter over tags_unified, plus the unified read queries."""
    
    store_name = "unified"
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def insert_fact(
        self,
        *,
        tag_name: str,
        entity_type: str,
        entity_id: int,
        category: str,
        source_type: str,
        source_user_id: Optional[int] = None,
        repo_name: Optional[str] = None,
        confidence: float = 1.0,
    ) -> bool:
        """Insert a fact unless one already exists in its uniqueness scope."""
        stmt = dialect_insert(self.db, UnifiedTag.__table__).values(
            tag_name=tag_name,
            entity_type=entity_type,
            entity_id=entity_id,
            category=category,
            source_type=source_type,
            source_user_id=source_user_id,
            repo_name=repo_name,
            confidence=confidence,
        ).on_conflict_do_nothing()
        result = await self.db.execute(stmt)
        return bool(result.rowcount)
    
    async def record_fact(self, fact: DerivedFact) -> bool:
        return await self.insert_fact(
            tag_name=fact.tag_name,
            entity_type=fact.entity_type,
            entity_id=fact.owner_id,
            category=fact.category,
            source_type=fact.source_type,
            source_user_id=fact.source_user_id,
            repo_name=fact.repo_name,
        )
    
    async def get_fact(
        self,
        tag_name: str,
        entity_type: str,
        entity_id: int,
        repo_name: Optional[str] = None,
    ) -> Optional[UnifiedTag]:
        result = await self.db.execute(
            select(UnifiedTag).where(
                UnifiedTag.tag_name == tag_name,
                UnifiedTag.entity_type == entity_type,
                UnifiedTag.entity_id == entity_id,
                repo_name_matches(UnifiedTag.repo_name, repo_name),
            )
        )
        return result.scalar_one_or_none()
    
    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(UnifiedTag))
        return int(result.scalar_one())
    
    async def has_system_facts(self, categories: list[str]) -> bool:
        """Presence check used as the migration guard."""
        result = await self.db.execute(
            select(UnifiedTag.id)
            .where(
                UnifiedTag.source_type == SourceType.SYSTEM,
                UnifiedTag.category.in_(categories),
            )
            .limit(1)
        )
        return result.first() is not None
    
    async def list_user_facts(self, user_id: int) -> list[UnifiedTag]:
        """All user-level facts of a user."""
        result = await self.db.execute(
            select(UnifiedTag)
            .where(
                UnifiedTag.entity_type == EntityType.USER,
                UnifiedTag.entity_id == user_id,
            )
            .order_by(UnifiedTag.category, UnifiedTag.tag_name)
        )
        return list(result.scalars().all())
    
    async def repo_counts_by_tag(self, user_id: int, category: str) -> dict[str, int]:
        """Distinct repositories of a user carrying each tag of a category."""
        result = await self.db.execute(
            select(UnifiedTag.tag_name, func.count(func.distinct(UnifiedTag.repo_name)))
            .where(
                UnifiedTag.entity_type == EntityType.REPO,
                UnifiedTag.entity_id == user_id,
                UnifiedTag.category == category,
            )
            .group_by(UnifiedTag.tag_name)
        )
        return {tag_name: int(count) for tag_name, count in result.all()}
    
    async def list_entities_for_tag(self, tag_name: str) -> list[UnifiedTag]:
        result = await self.db.execute(
            select(UnifiedTag)
            .where(UnifiedTag.tag_name == tag_name)
            .order_by(UnifiedTag.entity_type, UnifiedTag.entity_id, UnifiedTag.repo_name)
        )
        return list(result.scalars().all())
    
    async def delete_sourced_fact(
        self,
        *,
        tag_name: str,
        entity_type: str,
        entity_id: int,
        repo_name: Optional[str],
        source_user_id: int,
    ) -> int:
        """Delete a fact only if source_user_id added it."""
        result = await self.db.execute(
            delete(UnifiedTag)
            .where(
                UnifiedTag.tag_name == tag_name,
                UnifiedTag.entity_type == entity_type,
                UnifiedTag.entity_id == entity_id,
                repo_name_matches(UnifiedTag.repo_name, repo_name),
                UnifiedTag.source_type == SourceType.USER,
                UnifiedTag.source_user_id == source_user_id,
            )
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)
    
    async def rename_tag(self, old_name: str, new_name: str) -> tuple[int, int]:
        """
        Rename old_name to new_name everywhere.
        
        Where the same entity already carries new_name, the old row is dropped
        instead of renamed (merge-by-drop), so no uniqueness scope is violated.
        
        Returns:
            (renamed rows, dropped rows)
        """
        existing = aliased(UnifiedTag)
        collision = (
            select(existing.id)
            .where(
                existing.tag_name == new_name,
                existing.entity_type == UnifiedTag.entity_type,
                existing.entity_id == UnifiedTag.entity_id,
                or_(
                    and_(existing.repo_name.is_(None), UnifiedTag.repo_name.is_(None)),
                    existing.repo_name == UnifiedTag.repo_name,
                ),
            )
            .correlate(UnifiedTag)
            .exists()
        )
        dropped = await self.db.execute(
            delete(UnifiedTag)
            .where(UnifiedTag.tag_name == old_name, collision)
            .execution_options(synchronize_session=False)
        )
        renamed = await self.db.execute(
            update(UnifiedTag)
            .where(UnifiedTag.tag_name == old_name)
            .values(tag_name=new_name)
            .execution_options(synchronize_session=False)
        )
        return int(renamed.rowcount or 0), int(dropped.rowcount or 0)
    
    async def list_fact_keys(self) -> list[FactKey]:
        result = await self.db.execute(
            select(
                UnifiedTag.tag_name,
                UnifiedTag.category,
                UnifiedTag.entity_type,
                UnifiedTag.entity_id,
                UnifiedTag.repo_name,
            )
        )
        return [FactKey(*row) for row in result.all()]
    
    # ----- Aggregates (stats, tech detail, relationship) -----
    
    async def count_distinct_detected_tags(self) -> int:
        result = await self.db.execute(
            select(func.count(func.distinct(UnifiedTag.tag_name))).where(
                UnifiedTag.category.in_(TagCategory.DETECTED)
            )
        )
        return int(result.scalar_one())
    
    async def popular_detected_tags(self, limit: int = 20) -> list[tuple[str, int, str]]:
        """
        Most widespread detected tags.
        
        Returns (tag_name, distinct users, category). A tag stored under several
        categories reports ai_tool before service before anything else.
        """
        user_counts = await self.db.execute(
            select(UnifiedTag.tag_name, func.count(func.distinct(UnifiedTag.entity_id)).label("user_count"))
            .where(UnifiedTag.category.in_(TagCategory.DETECTED))
            .group_by(UnifiedTag.tag_name)
            .order_by(func.count(func.distinct(UnifiedTag.entity_id)).desc(), UnifiedTag.tag_name)
            .limit(limit)
        )
        ranked = [(tag_name, int(count)) for tag_name, count in user_counts.all()]
        if not ranked:
            return []
        
        category_rows = await self.db.execute(
            select(UnifiedTag.tag_name, UnifiedTag.category)
            .where(
                UnifiedTag.tag_name.in_([tag_name for tag_name, _ in ranked]),
                UnifiedTag.category.in_(TagCategory.DETECTED),
            )
            .distinct()
        )
        categories: dict[str, set[str]] = {}
        for tag_name, category in category_rows.all():
            categories.setdefault(tag_name, set()).add(category)
        
        def _dominant(found: set[str]) -> str:
            for preferred in (TagCategory.AI_TOOL, TagCategory.SERVICE):
                if preferred in found:
                    return preferred
            return min(found)
        
        return [(tag_name, count, _dominant(categories[tag_name])) for tag_name, count in ranked]
    
    async def user_ids_with_tag(self, tag_name: str) -> list[int]:
        result = await self.db.execute(
            select(UnifiedTag.entity_id).where(UnifiedTag.tag_name == tag_name).distinct()
        )
        return [row[0] for row in result.all()]
    
    async def count_shared_user_tags(self, user_a: int, user_b: int) -> int:
        other = aliased(UnifiedTag)
        result = await self.db.execute(
            select(func.count(func.distinct(UnifiedTag.tag_name)))
            .select_from(UnifiedTag)
            .join(other, other.tag_name == UnifiedTag.tag_name)
            .where(
                UnifiedTag.category == TagCategory.USER_TAG,
                UnifiedTag.entity_type == EntityType.USER,
                UnifiedTag.entity_id == user_a,
                other.category == TagCategory.USER_TAG,
                other.entity_type == EntityType.USER,
                other.entity_id == user_b,
            )
        )
        return int(result.scalar_one())
    
    async def list_user_level_tag_names(self, user_id: int) -> set[str]:
        result = await self.db.execute(
            select(UnifiedTag.tag_name).where(
                UnifiedTag.entity_type == EntityType.USER,
                UnifiedTag.entity_id == user_id,
            )
        )
        return {row[0] for row in result.all()}
