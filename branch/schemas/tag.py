"""
Tag Pydantic schemas.

Request bodies for the tag mutation endpoints and the response shapes of
the unified read queries.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class TagMutationBase(BaseModel):
    """Fields shared by add-tag and remove-tag."""
    
    tagged_username: str = Field(..., max_length=255)
    tag: str = Field(..., max_length=100)
    # Present: repository-level fact on tagged_username/repo_name. Absent: user-level fact.
    repo_name: Optional[str] = Field(default=None, max_length=255)
    
    @field_validator("tagged_username", "tag")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return _strip_required(value)
    
    @field_validator("repo_name")
    @classmethod
    def _blank_repo_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class TagAddRequest(TagMutationBase):
    """Schema for adding a tag."""


class TagRemoveRequest(TagMutationBase):
    """Schema for removing a tag the caller added."""


class TagRenameRequest(BaseModel):
    """Schema for the administrative rename."""
    
    old_name: str = Field(..., max_length=100)
    new_name: str = Field(..., max_length=100)
    
    @field_validator("old_name", "new_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return _strip_required(value)


class TagMutationResponse(BaseModel):
    """Success indicator plus the affected tag."""
    
    success: bool = True
    tag: str
    repo_name: Optional[str] = None
    already_present: bool = False


class TagRenameResponse(BaseModel):
    success: bool = True
    old_name: str
    new_name: str
    renamed: int
    merged: int


class FactRead(BaseModel):
    """One row of tags_unified."""
    
    id: int
    tag_name: str
    entity_type: str
    entity_id: int
    repo_name: Optional[str] = None
    category: str
    source_type: str
    source_user_id: Optional[int] = None
    confidence: float
    created_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class TechStackEntry(BaseModel):
    technology: str
    category: str
    repo_count: int


class AIToolEntry(BaseModel):
    tool: str
    repo_count: int
    mentions: int


class ServiceEntry(BaseModel):
    service: str
    repo_count: int
    mentions: int


class UserFacts(BaseModel):
    """
    Facts of one user, partitioned into the historically separate arrays.
    
    Callers of the profile endpoint expect tech_stack, ai_assistance and
    services as distinct lists; free-form tags come last.
    """
    
    tech_stack: list[TechStackEntry] = Field(default_factory=list)
    ai_assistance: list[AIToolEntry] = Field(default_factory=list)
    services: list[ServiceEntry] = Field(default_factory=list)
    tags: list[FactRead] = Field(default_factory=list)


class TaggedBy(BaseModel):
    tagged_by_username: str
    is_viewer: bool


class UserTagEntry(BaseModel):
    tag: str
    tagged_by: list[TaggedBy]
    is_own_tag: bool
    is_on_viewer_profile: bool


class UserTagsResponse(BaseModel):
    username: str
    tags: list[UserTagEntry]


class TaggedUser(BaseModel):
    """A user carrying a tag, with the provenance of the fact."""
    
    username: str
    avatar_url: Optional[str] = None
    user_type: str
    category: str
    source: str
    sourced_by: Optional[str] = None


class TaggedRepository(BaseModel):
    """A repository (owner + name) carrying a tag."""
    
    name: str
    username: str
    description: Optional[str] = None
    url: Optional[str] = None
    stars: int = 0
    category: str
    source: str
    sourced_by: Optional[str] = None


class TagDetailResponse(BaseModel):
    tag: str
    users: list[TaggedUser]
    repositories: list[TaggedRepository]
