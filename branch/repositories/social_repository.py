"""
Social repository - follower, fork and contributor edges.

Edges name the other side by GitHub login; the users table is outer-joined
by username so logins that are not (yet) users still show up.
"""

from typing import Optional

from sqlalchemy import func, intersect, select
from sqlalchemy.ext.asyncio import AsyncSession

from branch.db.dialect import dialect_insert
from branch.models.contributor import Contributor
from branch.models.fork import Fork
from branch.models.social_connection import ConnectionType, SocialConnection
from branch.models.user import User
from branch.repositories.user_repository import user_type_expr


class SocialRepository:
    """Repository for SocialConnection, Fork and Contributor edges."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    # ----- Writes -----
    
    async def upsert_connection(
        self,
        user_id: int,
        github_username: str,
        avatar_url: Optional[str],
        connection_type: str,
    ) -> None:
        stmt = dialect_insert(self.db, SocialConnection.__table__).values(
            user_id=user_id,
            github_username=github_username,
            avatar_url=avatar_url,
            connection_type=connection_type,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "github_username", "connection_type"],
            set_={"avatar_url": stmt.excluded.avatar_url, "updated_at": func.now()},
        )
        await self.db.execute(stmt)
    
    async def record_fork(
        self,
        repo_owner: str,
        repo_name: str,
        forker_username: str,
        forker_user_id: Optional[int],
    ) -> bool:
        stmt = dialect_insert(self.db, Fork.__table__).values(
            repo_owner=repo_owner,
            repo_name=repo_name,
            forker_username=forker_username,
            forker_user_id=forker_user_id,
        ).on_conflict_do_nothing()
        result = await self.db.execute(stmt)
        return bool(result.rowcount)
    
    async def upsert_contributor(
        self,
        repo_owner: str,
        repo_name: str,
        contributor_username: str,
        contributions: int,
    ) -> None:
        stmt = dialect_insert(self.db, Contributor.__table__).values(
            repo_owner=repo_owner,
            repo_name=repo_name,
            contributor_username=contributor_username,
            contributions=contributions,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["repo_owner", "repo_name", "contributor_username"],
            set_={"contributions": stmt.excluded.contributions, "updated_at": func.now()},
        )
        await self.db.execute(stmt)
    
    # ----- Follower / following -----
    
    async def count_connections(self, user_id: int, connection_type: str) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(SocialConnection)
            .where(
                SocialConnection.user_id == user_id,
                SocialConnection.connection_type == connection_type,
            )
        )
        return int(result.scalar_one())
    
    async def list_connections(self, user_id: int, connection_type: str) -> list[tuple]:
        """(login, avatar_url, user_type) ordered by login."""
        result = await self.db.execute(
            select(
                SocialConnection.github_username,
                SocialConnection.avatar_url,
                user_type_expr(),
            )
            .outerjoin(User, User.username == SocialConnection.github_username)
            .where(
                SocialConnection.user_id == user_id,
                SocialConnection.connection_type == connection_type,
            )
            .order_by(SocialConnection.github_username.asc())
        )
        return [tuple(row) for row in result.all()]
    
    async def is_following(self, follower_id: int, github_username: str) -> bool:
        result = await self.db.execute(
            select(SocialConnection.id)
            .where(
                SocialConnection.user_id == follower_id,
                SocialConnection.github_username == github_username,
                SocialConnection.connection_type == ConnectionType.FOLLOWING,
            )
            .limit(1)
        )
        return result.first() is not None
    
    # ----- Forks -----
    
    async def forks_made_by(self, username: str) -> list[tuple]:
        """Repositories this login forked: (owner, repo, owner avatar, owner user_type)."""
        result = await self.db.execute(
            select(Fork.repo_owner, Fork.repo_name, User.avatar_url, user_type_expr())
            .outerjoin(User, User.username == Fork.repo_owner)
            .where(Fork.forker_username == username)
            .distinct()
            .order_by(Fork.repo_owner.asc(), Fork.repo_name.asc())
        )
        return [tuple(row) for row in result.all()]
    
    async def forks_of_owner(self, owner: str) -> list[tuple]:
        """Forks of this login's repositories: (forker, repo, avatar, user_type)."""
        result = await self.db.execute(
            select(Fork.forker_username, Fork.repo_name, User.avatar_url, user_type_expr())
            .outerjoin(User, User.username == Fork.forker_username)
            .where(Fork.repo_owner == owner)
            .distinct()
            .order_by(Fork.forker_username.asc(), Fork.repo_name.asc())
        )
        return [tuple(row) for row in result.all()]
    
    async def forkers_of_repo(self, owner: str, repo_name: str) -> list[tuple]:
        """(forker, avatar, user_type) for one upstream repository."""
        result = await self.db.execute(
            select(Fork.forker_username, User.avatar_url, user_type_expr())
            .outerjoin(User, User.username == Fork.forker_username)
            .where(Fork.repo_owner == owner, Fork.repo_name == repo_name)
            .distinct()
            .order_by(Fork.forker_username.asc())
        )
        return [tuple(row) for row in result.all()]
    
    async def count_shared_forks(self, username_a: str, username_b: str) -> int:
        shared = intersect(
            select(Fork.repo_owner, Fork.repo_name).where(Fork.forker_username == username_a),
            select(Fork.repo_owner, Fork.repo_name).where(Fork.forker_username == username_b),
        ).subquery()
        result = await self.db.execute(select(func.count()).select_from(shared))
        return int(result.scalar_one())
    
    # ----- Contributors -----
    
    async def contributors_of_owner(self, owner: str) -> list[tuple]:
        """(contributor, repo, contributions, avatar, user_type) on this login's repositories."""
        result = await self.db.execute(
            select(
                Contributor.contributor_username,
                Contributor.repo_name,
                Contributor.contributions,
                User.avatar_url,
                user_type_expr(),
            )
            .outerjoin(User, User.username == Contributor.contributor_username)
            .where(Contributor.repo_owner == owner)
            .distinct()
            .order_by(Contributor.contributions.desc(), Contributor.contributor_username.asc())
        )
        return [tuple(row) for row in result.all()]
    
    async def contributions_by(self, username: str) -> list[tuple]:
        """(owner, repo, contributions, owner avatar, owner user_type) for other people's repositories."""
        result = await self.db.execute(
            select(
                Contributor.repo_owner,
                Contributor.repo_name,
                Contributor.contributions,
                User.avatar_url,
                user_type_expr(),
            )
            .outerjoin(User, User.username == Contributor.repo_owner)
            .where(Contributor.contributor_username == username)
            .distinct()
            .order_by(
                Contributor.contributions.desc(),
                Contributor.repo_owner.asc(),
                Contributor.repo_name.asc(),
            )
        )
        return [tuple(row) for row in result.all()]
    
    async def count_repos_contributed(self, owner: str, contributor: str) -> int:
        result = await self.db.execute(
            select(func.count(func.distinct(Contributor.repo_name))).where(
                Contributor.repo_owner == owner,
                Contributor.contributor_username == contributor,
            )
        )
        return int(result.scalar_one())
