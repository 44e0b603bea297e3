"""
Initial migration - users, repositories, legacy fact tables and graph edges.

Revision ID: 001_initial
Revises: 
Create Date: 2026-09-14

tech_stack, ai_assistance, services and tags are the per-category fact
tables that tags_unified (002) replaces.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""
    
    # ===== USERS TABLE =====
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('github_id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(255), nullable=False),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('access_token', sa.Text(), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('github_location', sa.String(255), nullable=True),
        sa.Column('scanned_by', sa.String(255), nullable=True),
        sa.Column('total_repos', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('last_scan', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('github_id', name='uq_users_github_id'),
    )
    op.create_index('ix_users_username', 'users', ['username'])
    
    # ===== REPOSITORIES TABLE =====
    op.create_table(
        'repositories',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('language', sa.String(100), nullable=True),
        sa.Column('stars', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('url', sa.Text(), nullable=True),
        sa.Column('is_fork', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('fork_parent_owner', sa.String(255), nullable=True),
        sa.Column('fork_parent_repo', sa.String(255), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'name', name='uq_repositories_user_name'),
    )
    
    # ===== LEGACY FACT TABLES =====
    op.create_table(
        'tech_stack',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('technology', sa.String(255), nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('repo_count', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'technology', name='uq_tech_stack_user_technology'),
    )
    
    op.create_table(
        'ai_assistance',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('repo_name', sa.String(255), nullable=False),
        sa.Column('ai_tool', sa.String(100), nullable=False),
        sa.Column('mention_count', sa.Integer(), nullable=False),
        sa.Column('found_in', sa.String(50), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'repo_name', 'ai_tool', name='uq_ai_assistance_user_repo_tool'),
    )
    
    op.create_table(
        'services',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('service_name', sa.String(100), nullable=False),
        sa.Column('repo_count', sa.Integer(), nullable=False),
        sa.Column('mention_count', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'service_name', name='uq_services_user_service'),
    )
    
    op.create_table(
        'tags',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tagged_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('tagged_entity_type', sa.String(20), nullable=False),
        sa.Column('tagged_entity_id', sa.Integer(), nullable=False),
        sa.Column('tag', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            'tagged_by_user_id', 'tagged_entity_type', 'tagged_entity_id', 'tag',
            name='uq_tags_tagger_entity_tag',
        ),
    )
    
    # ===== GRAPH EDGES =====
    op.create_table(
        'forks',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('repo_owner', sa.String(255), nullable=False),
        sa.Column('repo_name', sa.String(255), nullable=False),
        sa.Column('forker_username', sa.String(255), nullable=False),
        sa.Column('forker_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('forked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('repo_owner', 'repo_name', 'forker_username', name='uq_forks_repo_forker'),
    )
    
    op.create_table(
        'social_connections',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('github_username', sa.String(255), nullable=False),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('connection_type', sa.String(20), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            'user_id', 'github_username', 'connection_type',
            name='uq_social_connections_user_login_type',
        ),
    )
    
    op.create_table(
        'contributors',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('repo_owner', sa.String(255), nullable=False),
        sa.Column('repo_name', sa.String(255), nullable=False),
        sa.Column('contributor_username', sa.String(255), nullable=False),
        sa.Column('contributor_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('contributions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            'repo_owner', 'repo_name', 'contributor_username',
            name='uq_contributors_repo_login',
        ),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('contributors')
    op.drop_table('social_connections')
    op.drop_table('forks')
    op.drop_table('tags')
    op.drop_table('services')
    op.drop_table('ai_assistance')
    op.drop_table('tech_stack')
    op.drop_table('repositories')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
