"""
Tag service - unified read queries and tag mutations.

Reads come from tags_unified. Responses keep the historical shape (separate
tech_stack / ai_assistance / services arrays) and take the repo and mention
counts from the legacy replica, which is the only place they are stored.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from branch.errors import AppError, NotFoundError, PermissionDeniedError, ValidationError
from branch.models.unified_tag import EntityType, SourceType, TagCategory, UnifiedTag
from branch.models.user import User
from branch.repositories.fact_store import DerivedFact
from branch.repositories.legacy_fact_repository import LegacyFactRepository
from branch.repositories.repository_repository import RepositoryRepository
from branch.repositories.unified_tag_repository import UnifiedTagRepository
from branch.repositories.user_repository import UserRepository
from branch.schemas.tag import (
    AIToolEntry,
    FactRead,
    ServiceEntry,
    TagDetailResponse,
    TaggedBy,
    TaggedRepository,
    TaggedUser,
    TagMutationResponse,
    TagRenameResponse,
    TechStackEntry,
    UserFacts,
    UserTagEntry,
    UserTagsResponse,
)
from branch.services.dual_write_service import DualWriteFactStore

logger = logging.getLogger(__name__)


class TagService:
    """Service for unified tag reads and user tag mutations."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
        self.unified = UnifiedTagRepository(db)
        self.legacy = LegacyFactRepository(db)
        self.users = UserRepository(db)
        self.repos = RepositoryRepository(db)
    
    async def _require_user(self, username: str) -> User:
        user = await self.users.get_by_username(username)
        if not user:
            raise NotFoundError("User not found", {"username": username})
        return user
    
    # ----- Reads -----
    
    async def get_facts_for_user(self, user_id: int) -> UserFacts:
        """User-level facts of a user, partitioned by category."""
        facts = await self.unified.list_user_facts(user_id)
        tech_counts = await self.legacy.tech_counts(user_id)
        ai_repo_counts = await self.unified.repo_counts_by_tag(user_id, TagCategory.AI_TOOL)
        ai_mentions = await self.legacy.ai_mentions(user_id)
        service_counts = await self.legacy.service_counts(user_id)
        
        result = UserFacts()
        for fact in facts:
            if fact.category in (TagCategory.LANGUAGE, TagCategory.FRAMEWORK):
                result.tech_stack.append(
                    TechStackEntry(
                        technology=fact.tag_name,
                        category=fact.category,
                        repo_count=tech_counts.get(fact.tag_name, 0),
                    )
                )
            elif fact.category == TagCategory.AI_TOOL:
                result.ai_assistance.append(
                    AIToolEntry(
                        tool=fact.tag_name,
                        repo_count=ai_repo_counts.get(fact.tag_name, 0),
                        mentions=ai_mentions.get(fact.tag_name, 0),
                    )
                )
            elif fact.category == TagCategory.SERVICE:
                repo_count, mentions = service_counts.get(fact.tag_name, (0, 0))
                result.services.append(
                    ServiceEntry(service=fact.tag_name, repo_count=repo_count, mentions=mentions)
                )
            else:
                result.tags.append(FactRead.model_validate(fact))
        
        result.tech_stack.sort(key=lambda e: (-e.repo_count, e.technology))
        result.ai_assistance.sort(key=lambda e: (-e.repo_count, -e.mentions, e.tool))
        result.services.sort(key=lambda e: (-e.repo_count, -e.mentions, e.service))
        return result
    
    async def get_entities_for_tag(self, tag_name: str) -> TagDetailResponse:
        """Users and repositories carrying a tag, with the provenance of each fact."""
        facts = await self.unified.list_entities_for_tag(tag_name)
        user_ids = {f.entity_id for f in facts} | {f.source_user_id for f in facts if f.source_user_id}
        users = await self.users.get_by_ids(sorted(user_ids))
        
        repo_pairs = sorted({(f.entity_id, f.repo_name) for f in facts if f.entity_type == EntityType.REPO})
        repos = {
            (repo.user_id, repo.name): repo
            for repo, _owner in await self.repos.list_by_owner_and_names(repo_pairs)
        }
        
        def sourced_by(fact: UnifiedTag) -> Optional[str]:
            if fact.source_type != SourceType.USER:
                return None
            tagger = users.get(fact.source_user_id)
            return tagger.username if tagger else None
        
        tagged_users: list[TaggedUser] = []
        tagged_repos: list[TaggedRepository] = []
        for fact in facts:
            owner = users.get(fact.entity_id)
            if owner is None:
                logger.warning("Fact %s points at missing user %s", fact.id, fact.entity_id)
                continue
            if fact.entity_type == EntityType.USER:
                tagged_users.append(
                    TaggedUser(
                        username=owner.username,
                        avatar_url=owner.avatar_url,
                        user_type=owner.user_type,
                        category=fact.category,
                        source=fact.source_type,
                        sourced_by=sourced_by(fact),
                    )
                )
            else:
                repo = repos.get((fact.entity_id, fact.repo_name))
                tagged_repos.append(
                    TaggedRepository(
                        name=fact.repo_name,
                        username=owner.username,
                        description=repo.description if repo else None,
                        url=repo.url if repo else None,
                        stars=repo.stars if repo else 0,
                        category=fact.category,
                        source=fact.source_type,
                        sourced_by=sourced_by(fact),
                    )
                )
        
        tagged_users.sort(key=lambda u: u.username.lower())
        tagged_repos.sort(key=lambda r: (-r.stars, r.name))
        return TagDetailResponse(tag=tag_name, users=tagged_users, repositories=tagged_repos)
    
    async def get_user_tags(self, username: str, viewer: Optional[str] = None) -> UserTagsResponse:
        """Free-form tags on a user's profile, colored relative to the viewer."""
        user = await self._require_user(username)
        facts = [
            fact for fact in await self.unified.list_user_facts(user.id)
            if fact.category == TagCategory.USER_TAG
        ]
        taggers = await self.users.get_by_ids(sorted({f.source_user_id for f in facts if f.source_user_id}))
        
        viewer_tags: set[str] = set()
        if viewer and viewer != username:
            viewer_user = await self.users.get_by_username(viewer)
            if viewer_user:
                viewer_tags = await self.unified.list_user_level_tag_names(viewer_user.id)
        
        entries: list[UserTagEntry] = []
        for fact in sorted(facts, key=lambda f: f.tag_name):
            tagger = taggers.get(fact.source_user_id)
            tagged_by = []
            if tagger:
                tagged_by.append(
                    TaggedBy(tagged_by_username=tagger.username, is_viewer=bool(viewer) and tagger.username == viewer)
                )
            entries.append(
                UserTagEntry(
                    tag=fact.tag_name,
                    tagged_by=tagged_by,
                    is_own_tag=fact.source_user_id == user.id,
                    is_on_viewer_profile=fact.tag_name in viewer_tags,
                )
            )
        return UserTagsResponse(username=username, tags=entries)
    
    # ----- Mutations -----
    
    async def add_tag(
        self,
        tagger: User,
        tagged_username: str,
        tag: str,
        repo_name: Optional[str] = None,
    ) -> TagMutationResponse:
        """
        Tag a user (repo_name absent) or one of their repositories.
        
        Adding a tag that already exists in the fact's uniqueness scope is a
        success with already_present=True.
        """
        target = await self._require_user(tagged_username)
        if repo_name is not None and await self.legacy.get_repository_id(target.id, repo_name) is None:
            raise NotFoundError("Repository not found", {"username": tagged_username, "repo_name": repo_name})
        
        store = DualWriteFactStore.for_session(self.db)
        outcome = await store.write(
            DerivedFact(
                tag_name=tag,
                category=TagCategory.USER_TAG,
                owner_id=target.id,
                repo_name=repo_name,
                source_user_id=tagger.id,
            )
        )
        if not outcome.unified_ok:
            raise AppError("Failed to add tag", {"tag": tag}, status_code=500, code="tag_write_failed")
        
        logger.info(
            "%s tagged %s%s with %r (new=%s)",
            tagger.username, tagged_username, f"/{repo_name}" if repo_name else "", tag, outcome.unified_inserted,
        )
        return TagMutationResponse(tag=tag, repo_name=repo_name, already_present=not outcome.unified_inserted)
    
    async def remove_tag(
        self,
        requester: User,
        tagged_username: str,
        tag: str,
        repo_name: Optional[str] = None,
    ) -> TagMutationResponse:
        """Remove a tag; only the user who added it may do so."""
        target = await self._require_user(tagged_username)
        entity_type = EntityType.REPO if repo_name is not None else EntityType.USER
        deleted = await self.unified.delete_sourced_fact(
            tag_name=tag,
            entity_type=entity_type,
            entity_id=target.id,
            repo_name=repo_name,
            source_user_id=requester.id,
        )
        if not deleted:
            raise PermissionDeniedError(
                "Tag not found or you don't have permission to remove it",
                {"tag": tag},
            )
        
        try:
            async with self.db.begin_nested():
                if repo_name is None:
                    await self.legacy.remove_tag(requester.id, EntityType.USER, target.id, tag)
                else:
                    repo_id = await self.legacy.get_repository_id(target.id, repo_name)
                    if repo_id is not None:
                        await self.legacy.remove_tag(requester.id, EntityType.REPO, repo_id, tag)
        except SQLAlchemyError:
            logger.exception("Legacy tag removal failed for %r on %s", tag, tagged_username)
        
        return TagMutationResponse(tag=tag, repo_name=repo_name)
    
    async def rename_tag(self, old_name: str, new_name: str) -> TagRenameResponse:
        if old_name == new_name:
            raise ValidationError("old_name and new_name are identical", {"fields": ["new_name"]})
        renamed, merged = await self.unified.rename_tag(old_name, new_name)
        
        # Legacy replica follows the rename, best effort
        try:
            async with self.db.begin_nested():
                await self.legacy.rename_tag(old_name, new_name)
        except SQLAlchemyError:
            logger.exception("Legacy rename of %r to %r failed", old_name, new_name)
        
        logger.info("Renamed tag %r to %r: %s renamed, %s merged", old_name, new_name, renamed, merged)
        return TagRenameResponse(old_name=old_name, new_name=new_name, renamed=renamed, merged=merged)
