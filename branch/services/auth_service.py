"""
Authentication service - GitHub OAuth login.
"""

import logging
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from branch.core.session import session_manager
from branch.models.user import User
from branch.repositories.user_repository import UserRepository
from branch.services.github_client import GitHubClient, exchange_code_for_token

logger = logging.getLogger(__name__)


class AuthService:
    """Service for the OAuth callback."""
    
    def __init__(self, db: AsyncSession, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.db = db
        self.users = UserRepository(db)
        self.transport = transport
    
    async def login_with_code(self, code: str) -> tuple[User, str]:
        """
        Exchange an OAuth code, store the account and open a session.
        
        Returns:
            The stored user and a signed session token for the cookie
        """
        access_token = await exchange_code_for_token(code, transport=self.transport)
        async with GitHubClient(access_token, transport=self.transport) as client:
            account = await client.get_authenticated_user()
        
        user = await self.users.upsert_from_oauth(
            github_id=account.id,
            username=account.login,
            avatar_url=account.avatar_url,
            access_token=access_token,
            github_location=account.location,
        )
        logger.info("User %s logged in", user.username)
        return user, session_manager.create_session_token(user.id, user.username)
