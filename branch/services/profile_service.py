"""
Profile service - dashboard profile, fork graph, relationships, locations.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from branch.errors import NotFoundError, PermissionDeniedError
from branch.models.social_connection import ConnectionType
from branch.models.user import User
from branch.repositories.repository_repository import RepositoryRepository
from branch.repositories.social_repository import SocialRepository
from branch.repositories.unified_tag_repository import UnifiedTagRepository
from branch.repositories.user_repository import UserRepository
from branch.schemas.profile import (
    ContributedTo,
    ContributorEntry,
    ForkConnection,
    ForkedBy,
    ForkParent,
    LocationCount,
    LocationsResponse,
    LocationUsersResponse,
    ProfileResponse,
    Relationship,
    RelationshipResponse,
    RepoForksResponse,
    RepositoryRead,
    UpdateLocationResponse,
    UserSummary,
)
from branch.services.tag_service import TagService

logger = logging.getLogger(__name__)


def _plural(count: int, word: str) -> str:
    return f"{word}{'s' if count > 1 else ''}"


class ProfileService:
    """Read models for the dashboard pages."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)
        self.repos = RepositoryRepository(db)
        self.social = SocialRepository(db)
        self.unified = UnifiedTagRepository(db)
        self.tags = TagService(db)
    
    async def get_profile(self, username: str) -> ProfileResponse:
        user = await self.users.get_by_username(username)
        if not user:
            raise NotFoundError("User not found", {"username": username})
        
        repositories = await self.repos.list_for_user(user.id)
        facts = await self.tags.get_facts_for_user(user.id)
        
        followers = await self.social.list_connections(user.id, ConnectionType.FOLLOWER)
        following = await self.social.list_connections(user.id, ConnectionType.FOLLOWING)
        
        return ProfileResponse(
            username=user.username,
            avatar_url=user.avatar_url,
            location=user.location,
            last_scan=user.last_scan,
            user_type=user.user_type,
            scanned_by=user.scanned_by,
            total_repos=user.total_repos or 0,
            repos_scanned=len(repositories),
            has_more_repos=(user.total_repos or 0) > len(repositories),
            followers=[UserSummary(username=login, avatar_url=a, user_type=t) for login, a, t in followers],
            following=[UserSummary(username=login, avatar_url=a, user_type=t) for login, a, t in following],
            fork_connections=[
                ForkConnection(repo_owner=o, repo_name=r, owner_avatar=a, owner_user_type=t)
                for o, r, a, t in await self.social.forks_made_by(user.username)
            ],
            forked_by=[
                ForkedBy(username=f, repo_name=r, avatar_url=a, user_type=t)
                for f, r, a, t in await self.social.forks_of_owner(user.username)
            ],
            contributors=[
                ContributorEntry(username=c, repo_name=r, contributions=n, avatar_url=a, user_type=t)
                for c, r, n, a, t in await self.social.contributors_of_owner(user.username)
            ],
            contributed_to=[
                ContributedTo(repo_owner=o, repo_name=r, contributions=n, owner_avatar=a, owner_user_type=t)
                for o, r, n, a, t in await self.social.contributions_by(user.username)
            ],
            repositories=[RepositoryRead.model_validate(repo) for repo in repositories],
            tech_stack=facts.tech_stack,
            ai_assistance=facts.ai_assistance,
            services=facts.services,
        )
    
    async def get_repo_forks(self, owner: str, repo_name: str) -> RepoForksResponse:
        forkers = await self.social.forkers_of_repo(owner, repo_name)
        parent = await self.repos.get_fork_parent(owner, repo_name)
        return RepoForksResponse(
            owner=owner,
            repo_name=repo_name,
            forked_by=[UserSummary(username=f, avatar_url=a, user_type=t) for f, a, t in forkers],
            forked_from=(
                ForkParent(owner=parent[0], repo=parent[1], avatar_url=parent[2], user_type=parent[3])
                if parent else None
            ),
        )
    
    async def get_relationship(self, viewer: str, profile: str) -> RelationshipResponse:
        """How the viewer is connected to the profile being viewed."""
        if viewer == profile:
            return RelationshipResponse(relationships=[])
        
        relationships: list[Relationship] = []
        viewer_user = await self.users.get_by_username(viewer)
        profile_user = await self.users.get_by_username(profile)
        
        viewer_follows = bool(viewer_user) and await self.social.is_following(viewer_user.id, profile)
        profile_follows = bool(profile_user) and await self.social.is_following(profile_user.id, viewer)
        if viewer_follows and profile_follows:
            relationships.append(Relationship(type="mutual_follow", label="Mutual Follow"))
        elif viewer_follows:
            relationships.append(Relationship(type="following", label="You Follow"))
        elif profile_follows:
            relationships.append(Relationship(type="follower", label="Follows You"))
        
        shared_forks = await self.social.count_shared_forks(viewer, profile)
        if shared_forks:
            relationships.append(
                Relationship(type="shared_forks", label=f"{shared_forks} Shared {_plural(shared_forks, 'Fork')}")
            )
        
        contributed = await self.social.count_repos_contributed(profile, viewer)
        if contributed:
            relationships.append(
                Relationship(type="contributor", label=f"Contributed to {contributed} {_plural(contributed, 'Repo')}")
            )
        
        received = await self.social.count_repos_contributed(viewer, profile)
        if received:
            relationships.append(
                Relationship(
                    type="received_contribution",
                    label=f"Contributed to Your {received} {_plural(received, 'Repo')}",
                )
            )
        
        if viewer_user and profile_user:
            shared_tags = await self.unified.count_shared_user_tags(viewer_user.id, profile_user.id)
            if shared_tags:
                relationships.append(
                    Relationship(type="shared_tags", label=f"{shared_tags} Shared {_plural(shared_tags, 'Tag')}")
                )
        
        return RelationshipResponse(relationships=relationships)
    
    # ----- Locations -----
    
    async def update_location(self, requester: User, username: str, location: str) -> UpdateLocationResponse:
        """Users may only edit their own location."""
        if requester.username != username:
            raise PermissionDeniedError("You can only update your own location")
        await self.users.update_location(requester.id, location.strip())
        logger.info("Location of %s updated", username)
        return UpdateLocationResponse(location=location.strip())
    
    async def list_locations(self) -> LocationsResponse:
        return LocationsResponse(
            locations=[
                LocationCount(name=name, user_count=count)
                for name, count in await self.users.location_counts()
            ]
        )
    
    async def users_in_location(self, location: str) -> LocationUsersResponse:
        users = await self.users.list_by_location(location)
        return LocationUsersResponse(
            location=location,
            users=[UserSummary(username=u.username, avatar_url=u.avatar_url, user_type=u.user_type) for u in users],
        )
