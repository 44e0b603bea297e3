"""
GitHub API payload schemas.

Only the fields the scanner reads are declared; everything else in the
API responses is ignored.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GitHubAccount(BaseModel):
    """A user entry as returned by /user, /users/{login} and follower lists."""
    
    id: int
    login: str
    avatar_url: Optional[str] = None
    location: Optional[str] = None
    public_repos: int = 0
    
    model_config = ConfigDict(extra="ignore")


class GitHubOwner(BaseModel):
    login: str
    
    model_config = ConfigDict(extra="ignore")


class GitHubParent(BaseModel):
    name: str
    owner: GitHubOwner
    
    model_config = ConfigDict(extra="ignore")


class GitHubRepo(BaseModel):
    name: str
    description: Optional[str] = None
    language: Optional[str] = None
    topics: list[str] = Field(default_factory=list)
    stars: int = Field(default=0, alias="stargazers_count")
    url: Optional[str] = Field(default=None, alias="html_url")
    is_fork: bool = Field(default=False, alias="fork")
    parent: Optional[GitHubParent] = None
    
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    
    @property
    def parent_owner(self) -> Optional[str]:
        return self.parent.owner.login if self.parent else None
    
    @property
    def parent_name(self) -> Optional[str]:
        return self.parent.name if self.parent else None


class GitHubContributor(BaseModel):
    login: str
    contributions: int = 0
    
    model_config = ConfigDict(extra="ignore")


class GitHubFollow(BaseModel):
    login: str
    avatar_url: Optional[str] = None
    
    model_config = ConfigDict(extra="ignore")
