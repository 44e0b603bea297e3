"""
Session cookie management.

The dashboard identifies the logged-in GitHub user with a signed cookie
created after the OAuth callback.
"""

from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from branch.core.config import settings


class SessionManager:
    """Manages signed session cookies."""
    
    def __init__(self, secret_key: Optional[str] = None, max_age: Optional[int] = None):
        self.serializer = URLSafeTimedSerializer(secret_key or settings.SECRET_KEY, salt="branch-session")
        self.max_age = max_age or settings.SESSION_MAX_AGE_SECONDS
    
    def create_session_token(self, user_id: int, username: str) -> str:
        """
        Create a signed session token.
        
        Args:
            user_id: Local user id
            username: GitHub login
            
        Returns:
            Signed token string
        """
        return self.serializer.dumps({"user_id": user_id, "username": username})
    
    def verify_session_token(self, token: str) -> Optional[dict]:
        """
        Verify and decode a session token.
        
        Returns:
            Dict with user_id and username if valid, None otherwise
        """
        try:
            return self.serializer.loads(token, max_age=self.max_age)
        except (BadSignature, SignatureExpired):
            return None


# Global session manager instance
session_manager = SessionManager()
