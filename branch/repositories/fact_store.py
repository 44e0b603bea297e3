"""
Fact store interface.

A fact is "tag X applies to user U" or "tag X applies to repository U/R".
The legacy per-category tables and the unified table both store facts;
each has an adapter implementing FactStore so callers can write to either
(or both, see DualWriteFactStore) through one contract.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional, Protocol

from branch.models.unified_tag import EntityType, SourceType


@dataclass(frozen=True)
class DerivedFact:
    """A fact derived by scanning or added by a user, before it is stored."""

    tag_name: str
    category: str
    owner_id: int
    repo_name: Optional[str] = None
    # Counts only the legacy tables keep
    repo_count: int = 0
    mention_count: int = 0
    found_in: str = "README"
    # Set for human-added tags
    source_user_id: Optional[int] = None
    # Add counts to the stored ones instead of replacing them (incremental scans)
    accumulate_counts: bool = False

    @property
    def entity_type(self) -> str:
        return EntityType.REPO if self.repo_name is not None else EntityType.USER

    @property
    def source_type(self) -> str:
        return SourceType.USER if self.source_user_id is not None else SourceType.SYSTEM


class FactKey(NamedTuple):
    """Identity of a fact, comparable across legacy and unified storage."""

    tag_name: str
    category: str
    entity_type: str
    entity_id: int
    repo_name: Optional[str]


class FactStore(Protocol):
    """Read/write contract shared by the legacy and unified adapters."""

    store_name: str

    async def record_fact(self, fact: DerivedFact) -> bool:
        """Insert or refresh a fact; True when the statement changed storage."""
        ...

    async def list_fact_keys(self) -> list[FactKey]:
        ...
