"""
Profile Pydantic schemas.

Shapes returned by the profile, relationship, fork and location endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from branch.schemas.tag import AIToolEntry, ServiceEntry, TechStackEntry


class UserSummary(BaseModel):
    username: str
    avatar_url: Optional[str] = None
    user_type: str


class UserRead(BaseModel):
    """Schema for reading the session user."""
    
    id: int
    github_id: int
    username: str
    avatar_url: Optional[str] = None
    location: Optional[str] = None
    user_type: str
    total_repos: int
    last_scan: Optional[datetime] = None
    
    model_config = ConfigDict(from_attributes=True)


class RepositoryRead(BaseModel):
    name: str
    description: Optional[str] = None
    language: Optional[str] = None
    stars: int
    url: Optional[str] = None
    
    model_config = ConfigDict(from_attributes=True)


class ForkConnection(BaseModel):
    repo_owner: str
    repo_name: str
    owner_avatar: Optional[str] = None
    owner_user_type: str


class ForkedBy(BaseModel):
    username: str
    repo_name: str
    avatar_url: Optional[str] = None
    user_type: str


class ContributorEntry(BaseModel):
    username: str
    repo_name: str
    contributions: int
    avatar_url: Optional[str] = None
    user_type: str


class ContributedTo(BaseModel):
    repo_owner: str
    repo_name: str
    contributions: int
    owner_avatar: Optional[str] = None
    owner_user_type: str


class ProfileResponse(BaseModel):
    """Everything the dashboard renders for one user."""
    
    username: str
    avatar_url: Optional[str] = None
    location: Optional[str] = None
    last_scan: Optional[datetime] = None
    user_type: str
    scanned_by: Optional[str] = None
    total_repos: int
    repos_scanned: int
    has_more_repos: bool
    followers: list[UserSummary] = Field(default_factory=list)
    following: list[UserSummary] = Field(default_factory=list)
    fork_connections: list[ForkConnection] = Field(default_factory=list)
    forked_by: list[ForkedBy] = Field(default_factory=list)
    contributors: list[ContributorEntry] = Field(default_factory=list)
    contributed_to: list[ContributedTo] = Field(default_factory=list)
    repositories: list[RepositoryRead] = Field(default_factory=list)
    tech_stack: list[TechStackEntry] = Field(default_factory=list)
    ai_assistance: list[AIToolEntry] = Field(default_factory=list)
    services: list[ServiceEntry] = Field(default_factory=list)


class ForkParent(BaseModel):
    owner: str
    repo: str
    avatar_url: Optional[str] = None
    user_type: str


class RepoForksResponse(BaseModel):
    owner: str
    repo_name: str
    forked_by: list[UserSummary]
    forked_from: Optional[ForkParent] = None


class Relationship(BaseModel):
    type: str
    label: str


class RelationshipResponse(BaseModel):
    relationships: list[Relationship]


class UpdateLocationRequest(BaseModel):
    username: str
    location: str


class UpdateLocationResponse(BaseModel):
    success: bool = True
    location: str


class LocationCount(BaseModel):
    name: str
    user_count: int


class LocationsResponse(BaseModel):
    locations: list[LocationCount]


class LocationUsersResponse(BaseModel):
    location: str
    users: list[UserSummary]
