"""
User model.

A GitHub account known to the dashboard, either because it logged in
(has an access token) or because someone scanned it.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from branch.db.base import Base


class UserType:
    """Display state of a user, derived from how it entered the system."""
    AUTHENTICATED = "authenticated"
    SCANNED = "scanned"
    UNSCANNED = "unscanned"


class User(Base):
    """
    User table - GitHub accounts and their OAuth tokens.
    """
    
    __tablename__ = "users"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    
    github_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    
    username: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    
    access_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    
    # location is user-editable, github_location mirrors the profile
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    github_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    
    # Username of whoever scanned this account without it logging in
    scanned_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    
    total_repos: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    
    last_scan: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    
    @property
    def user_type(self) -> str:
        if self.access_token:
            return UserType.AUTHENTICATED
        if self.scanned_by:
            return UserType.SCANNED
        return UserType.UNSCANNED
