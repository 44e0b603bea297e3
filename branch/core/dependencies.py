"""
FastAPI dependencies for authentication and shared services.
"""

from typing import Optional

from fastapi import Cookie, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from branch.core.config import settings
from branch.core.session import session_manager
from branch.db.session import get_db
from branch.errors import AuthenticationRequiredError, PermissionDeniedError
from branch.models.user import User
from branch.repositories.user_repository import UserRepository
from branch.services.github_client import GitHubClient
from branch.services.scan_service import GitHubClientFactory

__all__ = [
    "get_db",
    "get_optional_user",
    "get_current_user",
    "require_admin",
    "get_github_client_factory",
]


async def get_optional_user(
    session_token: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    Get the logged-in user from the session cookie, or None.
    
    A valid cookie for a user that no longer exists counts as logged out.
    """
    if not session_token:
        return None
    session_data = session_manager.verify_session_token(session_token)
    if not session_data:
        return None
    return await UserRepository(db).get_by_id(int(session_data["user_id"]))


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """Get the logged-in user; raises 401 when there is none."""
    if user is None:
        raise AuthenticationRequiredError("Login with GitHub first")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Restrict administrative endpoints to ADMIN_USERNAMES."""
    if user.username.lower() not in settings.admin_usernames:
        raise PermissionDeniedError("Administrator access required")
    return user


def get_github_client_factory() -> GitHubClientFactory:
    """Factory building a GitHub client for an access token (overridden in tests)."""
    return GitHubClient
