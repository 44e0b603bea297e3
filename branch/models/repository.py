"""
Repository model.

A GitHub repository owned by a user, keyed by (owner user id, name).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from branch.db.base import Base


class Repository(Base):
    """Repositories table - metadata copied from the GitHub API."""
    
    __tablename__ = "repositories"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    language: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    stars: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    
    # Fork parent, when the repository is a fork
    is_fork: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    fork_parent_owner: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    fork_parent_repo: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_repositories_user_name"),
    )
