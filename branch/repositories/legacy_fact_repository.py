"""
Legacy fact repository - database operations for the per-category tables
(tech_stack, ai_assistance, services, tags).

These tables are a deprecated replica of tags_unified. They keep receiving
writes during the transition and still hold the repo/mention counts the
profile endpoint reports.
"""

import logging
from typing import Optional

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from branch.db.dialect import dialect_insert
from branch.models.ai_assistance import AIAssistance
from branch.models.legacy_tag import LegacyTag
from branch.models.repository import Repository
from branch.models.service_usage import ServiceUsage
from branch.models.tech_stack import TechStack
from branch.models.unified_tag import EntityType, TagCategory
from branch.repositories.fact_store import DerivedFact, FactKey

logger = logging.getLogger(__name__)


class LegacyFactRepository:
    """FactStore adapter over the four legacy tables."""
    
    store_name = "legacy"
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def record_fact(self, fact: DerivedFact) -> bool:
        """Route a fact to the legacy table of its category."""
        if fact.category in (TagCategory.LANGUAGE, TagCategory.FRAMEWORK):
            if fact.repo_name is not None:
                # tech_stack only has per-user rows
                return False
            await self.upsert_tech(fact.owner_id, fact.tag_name, fact.category, fact.repo_count)
            return True
        if fact.category == TagCategory.AI_TOOL:
            if fact.repo_name is None:
                # ai_assistance only has per-repository rows
                return False
            await self.upsert_ai_assistance(
                fact.owner_id, fact.repo_name, fact.tag_name, fact.mention_count, fact.found_in
            )
            return True
        if fact.category == TagCategory.SERVICE:
            await self.upsert_service(
                fact.owner_id,
                fact.tag_name,
                fact.repo_count,
                fact.mention_count,
                accumulate=fact.accumulate_counts,
            )
            return True
        if fact.category == TagCategory.USER_TAG:
            if fact.source_user_id is None:
                raise ValueError("user_tag facts need a source_user_id")
            if fact.repo_name is None:
                return await self.add_tag(fact.source_user_id, EntityType.USER, fact.owner_id, fact.tag_name)
            repo_id = await self.get_repository_id(fact.owner_id, fact.repo_name)
            if repo_id is None:
                logger.warning(
                    "No repository row for user %s repo %s, legacy tag %r not written",
                    fact.owner_id, fact.repo_name, fact.tag_name,
                )
                return False
            return await self.add_tag(fact.source_user_id, EntityType.REPO, repo_id, fact.tag_name)
        raise ValueError(f"Unknown category {fact.category!r}")
    
    async def upsert_tech(self, user_id: int, technology: str, category: str, repo_count: int) -> None:
        stmt = dialect_insert(self.db, TechStack.__table__).values(
            user_id=user_id,
            technology=technology,
            category=category,
            repo_count=repo_count,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "technology"],
            set_={"repo_count": stmt.excluded.repo_count, "updated_at": func.now()},
        )
        await self.db.execute(stmt)
    
    async def upsert_ai_assistance(
        self,
        user_id: int,
        repo_name: str,
        ai_tool: str,
        mention_count: int,
        found_in: str = "README",
    ) -> None:
        stmt = dialect_insert(self.db, AIAssistance.__table__).values(
            user_id=user_id,
            repo_name=repo_name,
            ai_tool=ai_tool,
            mention_count=mention_count,
            found_in=found_in,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "repo_name", "ai_tool"],
            set_={"mention_count": stmt.excluded.mention_count, "updated_at": func.now()},
        )
        await self.db.execute(stmt)
    
    async def upsert_service(
        self,
        user_id: int,
        service_name: str,
        repo_count: int,
        mention_count: int,
        accumulate: bool = False,
    ) -> None:
        table = ServiceUsage.__table__
        stmt = dialect_insert(self.db, table).values(
            user_id=user_id,
            service_name=service_name,
            repo_count=repo_count,
            mention_count=mention_count,
        )
        if accumulate:
            set_ = {
                "repo_count": table.c.repo_count + stmt.excluded.repo_count,
                "mention_count": table.c.mention_count + stmt.excluded.mention_count,
                "updated_at": func.now(),
            }
        else:
            set_ = {
                "repo_count": stmt.excluded.repo_count,
                "mention_count": stmt.excluded.mention_count,
                "updated_at": func.now(),
            }
        stmt = stmt.on_conflict_do_update(index_elements=["user_id", "service_name"], set_=set_)
        await self.db.execute(stmt)
    
    async def add_tag(self, tagger_id: int, entity_type: str, entity_id: int, tag: str) -> bool:
        """Insert a legacy tag row; False when the tagger already added it."""
        stmt = dialect_insert(self.db, LegacyTag.__table__).values(
            tagged_by_user_id=tagger_id,
            tagged_entity_type=entity_type,
            tagged_entity_id=entity_id,
            tag=tag,
        ).on_conflict_do_nothing()
        result = await self.db.execute(stmt)
        return bool(result.rowcount)
    
    async def remove_tag(self, tagger_id: int, entity_type: str, entity_id: int, tag: str) -> int:
        result = await self.db.execute(
            delete(LegacyTag)
            .where(
                LegacyTag.tagged_by_user_id == tagger_id,
                LegacyTag.tagged_entity_type == entity_type,
                LegacyTag.tagged_entity_id == entity_id,
                LegacyTag.tag == tag,
            )
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)
    
    async def _rename_column(
        self,
        model,
        name_column: str,
        key_columns: tuple[str, ...],
        old_name: str,
        new_name: str,
    ) -> tuple[int, int]:
        """Rename one legacy name column, dropping rows whose key already holds new_name."""
        existing = aliased(model)
        collision = (
            select(existing.id)
            .where(
                getattr(existing, name_column) == new_name,
                *[getattr(existing, key) == getattr(model, key) for key in key_columns],
            )
            .correlate(model)
            .exists()
        )
        dropped = await self.db.execute(
            delete(model)
            .where(getattr(model, name_column) == old_name, collision)
            .execution_options(synchronize_session=False)
        )
        renamed = await self.db.execute(
            update(model)
            .where(getattr(model, name_column) == old_name)
            .values({name_column: new_name})
            .execution_options(synchronize_session=False)
        )
        return int(renamed.rowcount or 0), int(dropped.rowcount or 0)
    
    async def rename_tag(self, old_name: str, new_name: str) -> tuple[int, int]:
        """
        Rename old_name to new_name in all four legacy tables.
        
        Same merge-by-drop rule as tags_unified: a row whose key already
        carries new_name is dropped, and the surviving row keeps its counts.
        
        Returns:
            (renamed rows, dropped rows) summed over the tables
        """
        renamed = dropped = 0
        for model, name_column, key_columns in (
            (TechStack, "technology", ("user_id",)),
            (AIAssistance, "ai_tool", ("user_id", "repo_name")),
            (ServiceUsage, "service_name", ("user_id",)),
            (LegacyTag, "tag", ("tagged_by_user_id", "tagged_entity_type", "tagged_entity_id")),
        ):
            table_renamed, table_dropped = await self._rename_column(
                model, name_column, key_columns, old_name, new_name
            )
            renamed += table_renamed
            dropped += table_dropped
        return renamed, dropped
    
    async def get_repository_id(self, user_id: int, repo_name: str) -> Optional[int]:
        result = await self.db.execute(
            select(Repository.id).where(Repository.user_id == user_id, Repository.name == repo_name)
        )
        return result.scalar_one_or_none()
    
    # ----- Bulk reads (migration + consistency check) -----
    
    async def list_tech_stack(self) -> list[TechStack]:
        result = await self.db.execute(select(TechStack).order_by(TechStack.id))
        return list(result.scalars().all())
    
    async def list_ai_assistance(self) -> list[AIAssistance]:
        result = await self.db.execute(select(AIAssistance).order_by(AIAssistance.id))
        return list(result.scalars().all())
    
    async def list_services(self) -> list[ServiceUsage]:
        result = await self.db.execute(select(ServiceUsage).order_by(ServiceUsage.id))
        return list(result.scalars().all())
    
    async def list_tags_with_targets(self) -> list[tuple[LegacyTag, Optional[int], Optional[str]]]:
        """
        Legacy tags with the repository they point at, when they point at one.
        
        Returns (tag row, repository owner id, repository name); the last two
        are None for user tags and for repository tags whose repository is gone.
        """
        query = (
            select(LegacyTag, Repository.user_id, Repository.name)
            .outerjoin(
                Repository,
                and_(
                    LegacyTag.tagged_entity_type == EntityType.REPO,
                    Repository.id == LegacyTag.tagged_entity_id,
                ),
            )
            .order_by(LegacyTag.id)
        )
        result = await self.db.execute(query)
        return [(row[0], row[1], row[2]) for row in result.all()]
    
    async def list_fact_keys(self) -> list[FactKey]:
        """Every fact the legacy tables imply, in unified terms."""
        keys: list[FactKey] = []
        for row in await self.list_tech_stack():
            keys.append(FactKey(row.technology, row.category, EntityType.USER, row.user_id, None))
        
        ai_users: set[tuple[str, int]] = set()
        for row in await self.list_ai_assistance():
            keys.append(FactKey(row.ai_tool, TagCategory.AI_TOOL, EntityType.REPO, row.user_id, row.repo_name))
            ai_users.add((row.ai_tool, row.user_id))
        for tool, user_id in sorted(ai_users):
            keys.append(FactKey(tool, TagCategory.AI_TOOL, EntityType.USER, user_id, None))
        
        for row in await self.list_services():
            keys.append(FactKey(row.service_name, TagCategory.SERVICE, EntityType.USER, row.user_id, None))
        
        for tag, owner_id, repo_name in await self.list_tags_with_targets():
            if tag.tagged_entity_type == EntityType.USER:
                keys.append(FactKey(tag.tag, TagCategory.USER_TAG, EntityType.USER, tag.tagged_entity_id, None))
            elif owner_id is not None:
                keys.append(FactKey(tag.tag, TagCategory.USER_TAG, EntityType.REPO, owner_id, repo_name))
        return keys
    
    # ----- Count metadata for the read path -----
    
    async def tech_counts(self, user_id: int) -> dict[str, int]:
        result = await self.db.execute(
            select(TechStack.technology, TechStack.repo_count).where(TechStack.user_id == user_id)
        )
        return {technology: repo_count for technology, repo_count in result.all()}
    
    async def ai_mentions(self, user_id: int) -> dict[str, int]:
        result = await self.db.execute(
            select(AIAssistance.ai_tool, func.sum(AIAssistance.mention_count))
            .where(AIAssistance.user_id == user_id)
            .group_by(AIAssistance.ai_tool)
        )
        return {tool: int(total or 0) for tool, total in result.all()}
    
    async def service_counts(self, user_id: int) -> dict[str, tuple[int, int]]:
        result = await self.db.execute(
            select(ServiceUsage.service_name, ServiceUsage.repo_count, ServiceUsage.mention_count)
            .where(ServiceUsage.user_id == user_id)
        )
        return {name: (repo_count, mentions) for name, repo_count, mentions in result.all()}
