"""
Statistics Pydantic schemas.
"""

from typing import Optional

from pydantic import BaseModel

from branch.schemas.profile import UserSummary


class PopularTech(BaseModel):
    name: str
    user_count: int
    color: str


class StatsResponse(BaseModel):
    """Homepage aggregate counts."""
    
    total_users: int
    authenticated_users: int
    total_repos: int
    total_technologies: int
    recent_auth_users: list[UserSummary]
    recent_scanned: list[UserSummary]
    popular_tech: list[PopularTech]


class TechUser(BaseModel):
    username: str
    avatar_url: Optional[str] = None
    repo_count: int
    user_type: str


class TechRepository(BaseModel):
    name: str
    description: Optional[str] = None
    url: Optional[str] = None
    stars: int = 0
    username: str


class TechDetailResponse(BaseModel):
    tag: str
    repositories: list[TechRepository]
    users: list[TechUser]
