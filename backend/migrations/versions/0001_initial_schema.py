"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the AssetMan schema from scratch:
- users, session_tokens: accounts (location scoped) and opaque session tokens
- categories, assets: inventory with generated asset codes
- assignments, return_requests: hand-out and return lifecycle

Every domain table carries the audit/soft-delete columns
(created/updated/deleted at + by, is_deleted).
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('updated_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('deleted_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
    ]


# Enum columns (type, location, gender, state) are plain strings; the models validate them.
def upgrade():
    # ============================================================================
    # users: staff and admin accounts, one location each
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('staff_code', sa.String(length=16), nullable=False),
        sa.Column('first_name', sa.String(length=128), nullable=False),
        sa.Column('last_name', sa.String(length=128), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_password_updated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('joined_date', sa.Date(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('location', sa.String(length=32), nullable=False),
        sa.Column('gender', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_staff_code', 'users', ['staff_code'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_location', 'users', ['location'])
    op.create_index('ix_users_location_type', 'users', ['location', 'type'])
    op.create_index('ix_users_is_deleted', 'users', ['is_deleted'])

    # ============================================================================
    # session_tokens: SHA-256 hashes of opaque bearer tokens
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)

    # ============================================================================
    # categories: name and 2-letter prefix, both unique
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('prefix', sa.String(length=2), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sa.UniqueConstraint('prefix'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_categories_is_deleted', 'categories', ['is_deleted'])

    # ============================================================================
    # assets: code = category prefix + 6 digits, never reused
    # ============================================================================
    op.create_table(
        'assets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('specification', sa.Text(), nullable=False),
        sa.Column('state', sa.String(length=32), nullable=False),
        sa.Column('installed_date', sa.Date(), nullable=False),
        sa.Column('location', sa.String(length=32), nullable=False),
        sa.Column('category_id', sa.Integer(),
                  sa.ForeignKey('categories.id', ondelete='RESTRICT'), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_assets_code', 'assets', ['code'], unique=True)
    op.create_index('ix_assets_state', 'assets', ['state'])
    op.create_index('ix_assets_location', 'assets', ['location'])
    op.create_index('ix_assets_location_state', 'assets', ['location', 'state'])
    op.create_index('ix_assets_category_id', 'assets', ['category_id'])
    op.create_index('ix_assets_is_deleted', 'assets', ['is_deleted'])

    # ============================================================================
    # assignments
    # ============================================================================
    op.create_table(
        'assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('asset_id', sa.Integer(), sa.ForeignKey('assets.id'), nullable=False),
        sa.Column('assignor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('assignee_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('assigned_date', sa.Date(), nullable=False),
        sa.Column('note', sa.String(length=500), nullable=True),
        sa.Column('state', sa.String(length=32), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_assignments_asset_id', 'assignments', ['asset_id'])
    op.create_index('ix_assignments_assignor_id', 'assignments', ['assignor_id'])
    op.create_index('ix_assignments_assignee_id', 'assignments', ['assignee_id'])
    op.create_index('ix_assignments_assigned_date', 'assignments', ['assigned_date'])
    op.create_index('ix_assignments_state', 'assignments', ['state'])
    op.create_index('ix_assignments_asset_state', 'assignments', ['asset_id', 'state'])
    op.create_index('ix_assignments_is_deleted', 'assignments', ['is_deleted'])

    # ============================================================================
    # return_requests
    # ============================================================================
    op.create_table(
        'return_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('assignment_id', sa.Integer(), sa.ForeignKey('assignments.id'), nullable=False),
        sa.Column('requester_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('acceptor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('returned_date', sa.Date(), nullable=True),
        sa.Column('state', sa.String(length=32), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_return_requests_assignment_id', 'return_requests', ['assignment_id'])
    op.create_index('ix_return_requests_requester_id', 'return_requests', ['requester_id'])
    op.create_index('ix_return_requests_acceptor_id', 'return_requests', ['acceptor_id'])
    op.create_index('ix_return_requests_returned_date', 'return_requests', ['returned_date'])
    op.create_index('ix_return_requests_state', 'return_requests', ['state'])
    op.create_index('ix_return_requests_is_deleted', 'return_requests', ['is_deleted'])


def downgrade():
    op.drop_table('return_requests')
    op.drop_table('assignments')
    op.drop_table('assets')
    op.drop_table('categories')
    op.drop_table('session_tokens')
    op.drop_table('users')
