"""
Schemas package.

Import all schemas here for easy access.
"""

from branch.schemas.tag import (
    TagAddRequest,
    TagRemoveRequest,
    TagRenameRequest,
    TagMutationResponse,
    TagRenameResponse,
    FactRead,
    UserFacts,
    UserTagsResponse,
    TagDetailResponse,
)
from branch.schemas.scan import ScanResponse, ScanMoreResponse, ScanSocialResponse
from branch.schemas.profile import ProfileResponse, RepoForksResponse, RelationshipResponse, UserRead
from branch.schemas.stats import StatsResponse, TechDetailResponse
from branch.schemas.migration import MigrationReport, ConsistencyReport

__all__ = [
    # Tags
    "TagAddRequest", "TagRemoveRequest", "TagRenameRequest",
    "TagMutationResponse", "TagRenameResponse",
    "FactRead", "UserFacts", "UserTagsResponse", "TagDetailResponse",
    # Scans
    "ScanResponse", "ScanMoreResponse", "ScanSocialResponse",
    # Profile
    "ProfileResponse", "RepoForksResponse", "RelationshipResponse", "UserRead",
    # Stats
    "StatsResponse", "TechDetailResponse",
    # Migration
    "MigrationReport", "ConsistencyReport",
]
