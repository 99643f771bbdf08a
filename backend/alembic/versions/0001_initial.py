"""Initial schema - users and trading accounts

Revision ID: 0001
Revises: None
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create all tables."""

    # ===========================================
    # 1. USERS TABLE
    # ===========================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('email', sa.String(255), unique=True, index=True, nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(50), nullable=False),
        sa.Column('last_name', sa.String(50), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='user', index=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('login_id', sa.BigInteger(), unique=True, nullable=True, index=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), index=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
    )

    # ===========================================
    # 2. TRADING_ACCOUNTS TABLE
    # ===========================================
    op.create_table(
        'trading_accounts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('login', sa.BigInteger(), unique=True, nullable=False, index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('server', sa.String(100), nullable=False),
        sa.Column('group', sa.String(100), nullable=False),
        sa.Column('leverage', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('account_type', sa.String(10), nullable=False, server_default='demo', index=True),
        sa.Column('balance', sa.Numeric(20, 6), nullable=False, server_default='0'),
        sa.Column('equity', sa.Numeric(20, 6), nullable=False, server_default='0'),
        sa.Column('margin', sa.Numeric(20, 6), nullable=False, server_default='0'),
        sa.Column('free_margin', sa.Numeric(20, 6), nullable=False, server_default='0'),
        sa.Column('margin_level', sa.Numeric(20, 6), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
    )
    op.create_index(
        'ix_trading_accounts_created_at_desc',
        'trading_accounts',
        [sa.text('created_at DESC')],
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('ix_trading_accounts_created_at_desc', table_name='trading_accounts')
    op.drop_table('trading_accounts')
    op.drop_table('users')
