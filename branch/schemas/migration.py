"""
Schemas for the legacy -> unified tag migration and consistency check.
"""

from typing import Optional

from pydantic import BaseModel, Field, computed_field


class MigrationReport(BaseModel):
    """Summary of one migration run."""
    
    skipped_already_migrated: bool = False
    forced: bool = False
    inserted: dict[str, int] = Field(default_factory=dict)
    ignored_duplicates: int = 0
    malformed_rows: int = 0
    failed_rows: int = 0
    
    @computed_field
    @property
    def total_inserted(self) -> int:
        return sum(self.inserted.values())


class MissingFact(BaseModel):
    tag_name: str
    category: str
    entity_type: str
    entity_id: int
    repo_name: Optional[str] = None


class ConsistencyReport(BaseModel):
    """Legacy facts that have no counterpart in tags_unified."""
    
    legacy_facts: int
    unified_facts: int
    missing_in_unified: list[MissingFact]
    
    @computed_field
    @property
    def consistent(self) -> bool:
        return not self.missing_in_unified
