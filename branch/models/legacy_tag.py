"""
LegacyTag model.

Free-form labels one user attached to another user (or to a repository,
in which case tagged_entity_id is repositories.id).
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from branch.db.base import Base


class LegacyTag(Base):
    """Legacy tags table."""
    
    __tablename__ = "tags"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tagged_by_user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    tagged_entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    tagged_entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    tag: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    
    __table_args__ = (
        UniqueConstraint(
            "tagged_by_user_id", "tagged_entity_type", "tagged_entity_id", "tag",
            name="uq_tags_tagger_entity_tag",
        ),
    )
