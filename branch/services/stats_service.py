"""
Statistics service - homepage aggregates and technology detail pages.

Technology popularity comes from tags_unified; repositories are listed for
a technology only when an explicit repository-level fact names it.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from branch.models.unified_tag import EntityType, TagCategory
from branch.repositories.repository_repository import RepositoryRepository
from branch.repositories.unified_tag_repository import UnifiedTagRepository
from branch.repositories.user_repository import UserRepository
from branch.schemas.profile import UserSummary
from branch.schemas.stats import PopularTech, StatsResponse, TechDetailResponse, TechRepository, TechUser

CATEGORY_COLORS = {
    TagCategory.AI_TOOL: "blue",
    TagCategory.SERVICE: "green",
}
DEFAULT_COLOR = "gray"


class StatsService:
    
    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)
        self.repos = RepositoryRepository(db)
        self.unified = UnifiedTagRepository(db)
    
    async def get_stats(self) -> StatsResponse:
        popular = await self.unified.popular_detected_tags(limit=20)
        return StatsResponse(
            total_users=await self.users.count(),
            authenticated_users=await self.users.count(authenticated_only=True),
            total_repos=await self.repos.count(),
            total_technologies=await self.unified.count_distinct_detected_tags(),
            recent_auth_users=[
                UserSummary(username=u.username, avatar_url=u.avatar_url, user_type=u.user_type)
                for u in await self.users.recent(authenticated_only=True)
            ],
            recent_scanned=[
                UserSummary(username=u.username, avatar_url=u.avatar_url, user_type=u.user_type)
                for u in await self.users.recent(authenticated_only=False)
            ],
            popular_tech=[
                PopularTech(name=name, user_count=count, color=CATEGORY_COLORS.get(category, DEFAULT_COLOR))
                for name, count, category in popular
            ],
        )
    
    async def get_tech_detail(self, tag: str) -> TechDetailResponse:
        facts = await self.unified.list_entities_for_tag(tag)
        user_ids = sorted({fact.entity_id for fact in facts})
        users = await self.users.get_by_ids(user_ids)
        repo_counts = await self.repos.count_by_users(user_ids)
        
        repo_pairs = sorted({(f.entity_id, f.repo_name) for f in facts if f.entity_type == EntityType.REPO})
        repositories = [
            TechRepository(
                name=repo.name,
                description=repo.description,
                url=repo.url,
                stars=repo.stars,
                username=owner.username,
            )
            for repo, owner in await self.repos.list_by_owner_and_names(repo_pairs)
        ]
        
        tech_users = [
            TechUser(
                username=user.username,
                avatar_url=user.avatar_url,
                repo_count=repo_counts.get(user.id, 0),
                user_type=user.user_type,
            )
            for user in users.values()
        ]
        tech_users.sort(key=lambda u: (-u.repo_count, u.username))
        return TechDetailResponse(tag=tag, repositories=repositories, users=tech_users)
