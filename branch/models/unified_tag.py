"""
UnifiedTag model.

One row asserts that a tag applies to a user or to a repository. Every
category (language, framework, ai_tool, service, user_tag) lives in this
table, replacing the four legacy per-category tables.

entity_id is always the owning user's id. Repository facts are identified
by (entity_id, repo_name) because repositories are not keyed separately here.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Float, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from branch.db.base import Base


class EntityType:
    USER = "user"
    REPO = "repo"

    ALL = [USER, REPO]


class SourceType:
    USER = "user"
    SYSTEM = "system"

    ALL = [USER, SYSTEM]


class TagCategory:
    LANGUAGE = "language"
    FRAMEWORK = "framework"
    AI_TOOL = "ai_tool"
    SERVICE = "service"
    USER_TAG = "user_tag"

    ALL = [LANGUAGE, FRAMEWORK, AI_TOOL, SERVICE, USER_TAG]
    # Categories filled by README/repository scanning
    DETECTED = [LANGUAGE, FRAMEWORK, AI_TOOL, SERVICE]


class UnifiedTag(Base):
    """tags_unified table."""
    
    __tablename__ = "tags_unified"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    
    tag_name: Mapped[str] = mapped_column(String(255), nullable=False)
    
    entity_type: Mapped[str] = mapped_column(String(10), nullable=False)
    
    # Owning user's id, also for repository facts
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    
    source_type: Mapped[str] = mapped_column(String(10), nullable=False)
    
    source_user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    
    repo_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    
    # Reserved for probabilistic detection; always 1.0 today
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=1.0, server_default=text("1.0"))
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    
    # NULL repo_name never equals another NULL, so one index over all four
    # columns would not deduplicate user-level facts: two partial indexes instead.
    __table_args__ = (
        Index(
            "uq_tags_unified_user_level",
            "tag_name", "entity_type", "entity_id",
            unique=True,
            postgresql_where=text("repo_name IS NULL"),
            sqlite_where=text("repo_name IS NULL"),
        ),
        Index(
            "uq_tags_unified_repo_level",
            "tag_name", "entity_type", "entity_id", "repo_name",
            unique=True,
            postgresql_where=text("repo_name IS NOT NULL"),
            sqlite_where=text("repo_name IS NOT NULL"),
        ),
        Index("ix_tags_unified_entity", "entity_type", "entity_id"),
        Index("ix_tags_unified_category", "category"),
        CheckConstraint("entity_type IN ('user', 'repo')", name="ck_tags_unified_entity_type"),
        CheckConstraint("source_type IN ('user', 'system')", name="ck_tags_unified_source_type"),
        CheckConstraint(
            "category IN ('language', 'framework', 'ai_tool', 'service', 'user_tag')",
            name="ck_tags_unified_category",
        ),
        CheckConstraint(
            "(source_type = 'user') = (source_user_id IS NOT NULL)",
            name="ck_tags_unified_source_user",
        ),
        CheckConstraint(
            "(entity_type = 'repo') = (repo_name IS NOT NULL)",
            name="ck_tags_unified_repo_name",
        ),
        CheckConstraint("confidence >= 0.0 AND confidence <= 1.0", name="ck_tags_unified_confidence"),
    )
