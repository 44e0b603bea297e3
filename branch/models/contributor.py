"""
Contributor model.

Someone other than the owner who committed to a scanned repository.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from branch.db.base import Base


class Contributor(Base):
    """Contributors table."""
    
    __tablename__ = "contributors"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    repo_owner: Mapped[str] = mapped_column(String(255), nullable=False)
    repo_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contributor_username: Mapped[str] = mapped_column(String(255), nullable=False)
    contributor_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    contributions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    
    __table_args__ = (
        UniqueConstraint(
            "repo_owner", "repo_name", "contributor_username",
            name="uq_contributors_repo_login",
        ),
    )
