"""
User repository - database operations for User.
"""

from typing import Optional

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from branch.db.dialect import dialect_insert
from branch.models.user import User, UserType


def user_type_expr(user=User):
    """SQL mirror of User.user_type, usable on outer-joined (NULL) rows."""
    return case(
        (user.access_token.is_not(None), UserType.AUTHENTICATED),
        (user.scanned_by.is_not(None), UserType.SCANNED),
        else_=UserType.UNSCANNED,
    )


class UserRepository:
    """Repository for User database operations."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Get a user by ID."""
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()
    
    async def get_by_username(self, username: str) -> Optional[User]:
        if not username or not username.strip():
            return None
        result = await self.db.execute(
            select(User).where(User.username == username.strip())
        )
        return result.scalars().first()
    
    async def get_by_usernames(self, usernames: list[str]) -> dict[str, User]:
        if not usernames:
            return {}
        result = await self.db.execute(select(User).where(User.username.in_(usernames)))
        return {user.username: user for user in result.scalars().all()}
    
    async def get_by_ids(self, user_ids: list[int]) -> dict[int, User]:
        if not user_ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(user_ids)))
        return {user.id: user for user in result.scalars().all()}
    
    async def upsert_from_oauth(
        self,
        *,
        github_id: int,
        username: str,
        avatar_url: Optional[str],
        access_token: str,
        github_location: Optional[str],
    ) -> User:
        """
        Store the account that just logged in.
        
        An existing user keeps a location it edited; the GitHub location only
        fills an empty one.
        """
        table = User.__table__
        stmt = dialect_insert(self.db, table).values(
            github_id=github_id,
            username=username,
            avatar_url=avatar_url,
            access_token=access_token,
            github_location=github_location,
            location=github_location,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["github_id"],
            set_={
                "username": stmt.excluded.username,
                "access_token": stmt.excluded.access_token,
                "avatar_url": stmt.excluded.avatar_url,
                "github_location": stmt.excluded.github_location,
                "location": func.coalesce(table.c.location, stmt.excluded.github_location),
            },
        )
        await self.db.execute(stmt)
        result = await self.db.execute(
            select(User).where(User.github_id == github_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()
    
    async def create_placeholder(
        self,
        *,
        github_id: int,
        username: str,
        avatar_url: Optional[str],
        github_location: Optional[str],
        scanned_by: Optional[str],
    ) -> User:
        """Create a user that has not logged in, remembering who scanned it."""
        user = User(
            github_id=github_id,
            username=username,
            avatar_url=avatar_url,
            github_location=github_location,
            location=github_location,
            scanned_by=scanned_by,
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        return user
    
    async def mark_scanned(self, user_id: int, total_repos: int) -> None:
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(last_scan=func.now(), total_repos=total_repos)
            .execution_options(synchronize_session=False)
        )
    
    async def update_location(self, user_id: int, location: str) -> None:
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(location=location)
            .execution_options(synchronize_session=False)
        )
    
    async def location_counts(self) -> list[tuple[str, int]]:
        user_count = func.count(User.id)
        result = await self.db.execute(
            select(User.location, user_count)
            .where(User.location.is_not(None), User.location != "")
            .group_by(User.location)
            .order_by(user_count.desc(), User.location.asc())
        )
        return [(location, int(count)) for location, count in result.all()]
    
    async def list_by_location(self, location: str) -> list[User]:
        result = await self.db.execute(
            select(User).where(User.location == location).order_by(User.username.asc())
        )
        return list(result.scalars().all())
    
    async def count(self, authenticated_only: bool = False) -> int:
        query = select(func.count()).select_from(User)
        if authenticated_only:
            query = query.where(User.access_token.is_not(None))
        result = await self.db.execute(query)
        return int(result.scalar_one())
    
    async def recent(self, *, authenticated_only: bool, limit: int = 6) -> list[User]:
        """Most recently active users (last scan, else sign-up)."""
        query = select(User)
        if authenticated_only:
            query = query.where(User.access_token.is_not(None))
        else:
            query = query.where(or_(User.access_token.is_not(None), User.scanned_by.is_not(None)))
        result = await self.db.execute(
            query.order_by(func.coalesce(User.last_scan, User.created_at).desc(), User.id.desc()).limit(limit)
        )
        return list(result.scalars().all())