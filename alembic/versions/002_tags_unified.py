"""Add tags_unified

Revision ID: 002_tags_unified
Revises: 001_initial
Create Date: 2026-10-02

One table for every tag fact. repo_name is NULL for user-level facts, and
NULL never equals NULL in a unique index, so user-level and repo-level
uniqueness are two partial unique indexes instead of one index over all
four columns. Both PostgreSQL and SQLite accept the WHERE clause.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "002_tags_unified"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create tags_unified with its partial unique indexes."""
    op.create_table(
        "tags_unified",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tag_name", sa.String(255), nullable=False),
        sa.Column("entity_type", sa.String(10), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("source_type", sa.String(10), nullable=False),
        sa.Column("source_user_id", sa.Integer(), nullable=True),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("repo_name", sa.String(255), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=False, server_default=sa.text("1.0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("entity_type IN ('user', 'repo')", name="ck_tags_unified_entity_type"),
        sa.CheckConstraint("source_type IN ('user', 'system')", name="ck_tags_unified_source_type"),
        sa.CheckConstraint(
            "category IN ('language', 'framework', 'ai_tool', 'service', 'user_tag')",
            name="ck_tags_unified_category",
        ),
        sa.CheckConstraint(
            "(source_type = 'user') = (source_user_id IS NOT NULL)",
            name="ck_tags_unified_source_user",
        ),
        sa.CheckConstraint(
            "(entity_type = 'repo') = (repo_name IS NOT NULL)",
            name="ck_tags_unified_repo_name",
        ),
        sa.CheckConstraint("confidence >= 0.0 AND confidence <= 1.0", name="ck_tags_unified_confidence"),
    )
    op.execute(
        """
        CREATE UNIQUE INDEX uq_tags_unified_user_level
        ON tags_unified (tag_name, entity_type, entity_id)
        WHERE repo_name IS NULL
        """
    )
    op.execute(
        """
        CREATE UNIQUE INDEX uq_tags_unified_repo_level
        ON tags_unified (tag_name, entity_type, entity_id, repo_name)
        WHERE repo_name IS NOT NULL
        """
    )
    op.create_index("ix_tags_unified_entity", "tags_unified", ["entity_type", "entity_id"])
    op.create_index("ix_tags_unified_category", "tags_unified", ["category"])


def downgrade() -> None:
    """Drop tags_unified; the legacy tables are untouched."""
    op.drop_index("ix_tags_unified_category", table_name="tags_unified")
    op.drop_index("ix_tags_unified_entity", table_name="tags_unified")
    op.execute("DROP INDEX IF EXISTS uq_tags_unified_repo_level")
    op.execute("DROP INDEX IF EXISTS uq_tags_unified_user_level")
    op.drop_table("tags_unified")
