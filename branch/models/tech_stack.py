"""
TechStack model (legacy).

Per-user language/framework counts. Superseded by tags_unified but still
dual-written while the unified table rolls out.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from branch.db.base import Base


class TechStack(Base):
    """Legacy tech_stack table."""
    
    __tablename__ = "tech_stack"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    technology: Mapped[str] = mapped_column(String(255), nullable=False)
    # 'language' (repo primary language) or 'framework' (repo topic)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    repo_count: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    
    __table_args__ = (
        UniqueConstraint("user_id", "technology", name="uq_tech_stack_user_technology"),
    )
