"""
Repository repository - database operations for scanned GitHub repositories.
"""

from typing import Optional

from sqlalchemy import func, select, tuple_
from sqlalchemy.ext.asyncio import AsyncSession

from branch.db.dialect import dialect_insert
from branch.models.repository import Repository
from branch.models.user import User
from branch.repositories.user_repository import user_type_expr
from branch.schemas.github import GitHubRepo


def _row_values(user_id: int, repo: GitHubRepo) -> dict:
    return {
        "user_id": user_id,
        "name": repo.name,
        "description": repo.description,
        "language": repo.language,
        "stars": repo.stars,
        "url": repo.url,
        "is_fork": repo.is_fork,
        "fork_parent_owner": repo.parent_owner,
        "fork_parent_repo": repo.parent_name,
    }


class RepositoryRepository:
    """Repository for Repository database operations."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def upsert(self, user_id: int, repo: GitHubRepo) -> None:
        """Insert or refresh a repository, keyed by (owner, name)."""
        stmt = dialect_insert(self.db, Repository.__table__).values(**_row_values(user_id, repo))
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "name"],
            set_={
                "description": stmt.excluded.description,
                "language": stmt.excluded.language,
                "stars": stmt.excluded.stars,
                "url": stmt.excluded.url,
                "is_fork": stmt.excluded.is_fork,
                "fork_parent_owner": stmt.excluded.fork_parent_owner,
                "fork_parent_repo": stmt.excluded.fork_parent_repo,
                "updated_at": func.now(),
            },
        )
        await self.db.execute(stmt)
    
    async def insert_if_missing(self, user_id: int, repo: GitHubRepo) -> bool:
        """Insert a repository only if it is not stored yet."""
        stmt = dialect_insert(self.db, Repository.__table__).values(
            **_row_values(user_id, repo)
        ).on_conflict_do_nothing()
        result = await self.db.execute(stmt)
        return bool(result.rowcount)
    
    async def count_for_user(self, user_id: int) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Repository).where(Repository.user_id == user_id)
        )
        return int(result.scalar_one())
    
    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(Repository))
        return int(result.scalar_one())
    
    async def list_for_user(self, user_id: int) -> list[Repository]:
        result = await self.db.execute(
            select(Repository)
            .where(Repository.user_id == user_id)
            .order_by(Repository.stars.desc(), Repository.name.asc())
        )
        return list(result.scalars().all())
    
    async def language_counts(self, user_id: int) -> dict[str, int]:
        """Number of stored repositories per primary language."""
        result = await self.db.execute(
            select(Repository.language, func.count(Repository.id))
            .where(Repository.user_id == user_id, Repository.language.is_not(None))
            .group_by(Repository.language)
        )
        return {language: int(count) for language, count in result.all()}
    
    async def list_by_owner_and_names(self, pairs: list[tuple[int, str]]) -> list[tuple[Repository, User]]:
        """Repositories identified by (owner user id, name), with their owner."""
        if not pairs:
            return []
        result = await self.db.execute(
            select(Repository, User)
            .join(User, User.id == Repository.user_id)
            .where(tuple_(Repository.user_id, Repository.name).in_(pairs))
            .order_by(Repository.stars.desc(), Repository.name.asc())
        )
        return [(row[0], row[1]) for row in result.all()]
    
    async def count_by_users(self, user_ids: list[int]) -> dict[int, int]:
        if not user_ids:
            return {}
        result = await self.db.execute(
            select(Repository.user_id, func.count(Repository.id))
            .where(Repository.user_id.in_(user_ids))
            .group_by(Repository.user_id)
        )
        return {user_id: int(count) for user_id, count in result.all()}
    
    async def get_fork_parent(self, owner_username: str, repo_name: str) -> Optional[tuple]:
        """
        Upstream of owner/repo when it is a fork.
        
        Returns (parent owner, parent repo, parent avatar, parent user_type) or None.
        """
        owner = select(User.id).where(User.username == owner_username).scalar_subquery()
        parent = User.__table__.alias("parent_user")
        result = await self.db.execute(
            select(
                Repository.fork_parent_owner,
                Repository.fork_parent_repo,
                parent.c.avatar_url,
                user_type_expr(parent.c),
            )
            .outerjoin(parent, parent.c.username == Repository.fork_parent_owner)
            .where(
                Repository.user_id == owner,
                Repository.name == repo_name,
                Repository.is_fork.is_(True),
                Repository.fork_parent_owner.is_not(None),
            )
            .limit(1)
        )
        row = result.first()
        return tuple(row) if row else None
