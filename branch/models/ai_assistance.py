"""
AIAssistance model (legacy).

AI-tool mentions found in a repository README, keyed by owner + repo name.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from branch.db.base import Base


class AIAssistance(Base):
    """Legacy ai_assistance table."""
    
    __tablename__ = "ai_assistance"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    repo_name: Mapped[str] = mapped_column(String(255), nullable=False)
    ai_tool: Mapped[str] = mapped_column(String(100), nullable=False)
    mention_count: Mapped[int] = mapped_column(Integer, nullable=False)
    found_in: Mapped[str] = mapped_column(String(50), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    
    __table_args__ = (
        UniqueConstraint("user_id", "repo_name", "ai_tool", name="uq_ai_assistance_user_repo_tool"),
    )
