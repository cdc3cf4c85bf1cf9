"""Create issue search tables

Revision ID: create_issue_search_tables
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'create_issue_search_tables'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create source tables, permission tables and the issue index table."""
    op.create_table('components',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('uuid', sa.String(length=50), nullable=False),
        sa.Column('kee', sa.String(length=400), nullable=False),
        sa.Column('name', sa.String(length=2000), nullable=True),
        sa.Column('long_name', sa.String(length=2000), nullable=True),
        sa.Column('qualifier', sa.String(length=10), nullable=False),
        sa.Column('scope', sa.String(length=3), nullable=False),
        sa.Column('path', sa.String(length=2000), nullable=True),
        sa.Column('language', sa.String(length=20), nullable=True),
        sa.Column('enabled', sa.Boolean(), nullable=False),
        sa.Column('parent_uuid', sa.String(length=50), nullable=True),
        sa.Column('project_uuid', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid')
    )
    op.create_index('ix_components_kee', 'components', ['kee'], unique=False)
    op.create_index('ix_components_project_uuid', 'components', ['project_uuid'], unique=False)
    op.create_index('ix_components_parent_uuid', 'components', ['parent_uuid'], unique=False)

    op.create_table('rules',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('repository', sa.String(length=255), nullable=False),
        sa.Column('rule_key', sa.String(length=200), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=40), nullable=False),
        sa.Column('language', sa.String(length=20), nullable=True),
        sa.Column('severity', sa.String(length=10), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('repository', 'rule_key', name='uq_rules_repository_rule_key')
    )

    op.create_table('issues',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('kee', sa.String(length=50), nullable=False),
        sa.Column('rule_id', sa.Integer(), nullable=False),
        sa.Column('component_uuid', sa.String(length=50), nullable=False),
        sa.Column('project_uuid', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('resolution', sa.String(length=20), nullable=True),
        sa.Column('severity', sa.String(length=10), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('line', sa.Integer(), nullable=True),
        sa.Column('technical_debt', sa.Integer(), nullable=True),
        sa.Column('assignee', sa.String(length=255), nullable=True),
        sa.Column('reporter', sa.String(length=255), nullable=True),
        sa.Column('author_login', sa.String(length=255), nullable=True),
        sa.Column('action_plan_key', sa.String(length=50), nullable=True),
        sa.Column('issue_attributes', sa.JSON(), nullable=True),
        sa.Column('issue_creation_date', sa.DateTime(), nullable=True),
        sa.Column('issue_update_date', sa.DateTime(), nullable=True),
        sa.Column('issue_close_date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.ForeignKeyConstraint(['rule_id'], ['rules.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kee')
    )
    op.create_index('ix_issues_component_uuid', 'issues', ['component_uuid'], unique=False)
    op.create_index('ix_issues_project_uuid', 'issues', ['project_uuid'], unique=False)
    op.create_index('ix_issues_action_plan_key', 'issues', ['action_plan_key'], unique=False)

    op.create_table('issue_changes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('kee', sa.String(length=50), nullable=True),
        sa.Column('issue_key', sa.String(length=50), nullable=False),
        sa.Column('user_login', sa.String(length=255), nullable=True),
        sa.Column('change_type', sa.String(length=40), nullable=False),
        sa.Column('change_data', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_issue_changes_issue_key', 'issue_changes', ['issue_key'], unique=False)

    op.create_table('action_plans',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('kee', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('project_uuid', sa.String(length=50), nullable=True),
        sa.Column('user_login', sa.String(length=255), nullable=True),
        sa.Column('deadline', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kee')
    )

    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('login', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('email', sa.String(length=100), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('login')
    )

    op.create_table('group_memberships',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('login', sa.String(length=255), nullable=False),
        sa.Column('group_name', sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_group_memberships_login', 'group_memberships', ['login'], unique=False)

    op.create_table('permission_grants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_login', sa.String(length=255), nullable=True),
        sa.Column('group_name', sa.String(length=255), nullable=True),
        sa.Column('component_uuid', sa.String(length=50), nullable=True),
        sa.Column('role', sa.String(length=64), nullable=False),
        sa.CheckConstraint('(user_login IS NULL) <> (group_name IS NULL)', name='ck_permission_grants_single_subject'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_permission_grants_component_uuid', 'permission_grants', ['component_uuid'], unique=False)

    op.create_table('issue_index',
        sa.Column('key', sa.String(length=50), nullable=False),
        sa.Column('rule_key', sa.String(length=512), nullable=False),
        sa.Column('language', sa.String(length=20), nullable=True),
        sa.Column('component_uuid', sa.String(length=50), nullable=False),
        sa.Column('project_uuid', sa.String(length=50), nullable=False),
        sa.Column('file_path', sa.String(length=2000), nullable=True),
        sa.Column('line', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('resolution', sa.String(length=20), nullable=True),
        sa.Column('severity', sa.String(length=10), nullable=True),
        sa.Column('severity_value', sa.Integer(), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('debt', sa.Integer(), nullable=True),
        sa.Column('assignee', sa.String(length=255), nullable=True),
        sa.Column('reporter', sa.String(length=255), nullable=True),
        sa.Column('author_login', sa.String(length=255), nullable=True),
        sa.Column('action_plan_key', sa.String(length=50), nullable=True),
        sa.Column('attributes', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('indexed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('key')
    )
    op.create_index('ix_issue_index_component_uuid', 'issue_index', ['component_uuid'], unique=False)
    op.create_index('ix_issue_index_project_uuid', 'issue_index', ['project_uuid'], unique=False)
    op.create_index('ix_issue_index_updated_at', 'issue_index', ['updated_at'], unique=False)
    op.create_index('ix_issue_index_created_at', 'issue_index', ['created_at'], unique=False)


def downgrade() -> None:
    """Drop every issue search table."""
    op.drop_table('issue_index')
    op.drop_table('permission_grants')
    op.drop_table('group_memberships')
    op.drop_table('users')
    op.drop_table('action_plans')
    op.drop_table('issue_changes')
    op.drop_table('issues')
    op.drop_table('rules')
    op.drop_table('components')
