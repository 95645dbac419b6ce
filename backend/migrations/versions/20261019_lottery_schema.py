"""Lottery schema: tenancy, auth, shifts, inventory, business days

Revision ID: 20261019_lottery
Revises:
Create Date: 2026-10-19

This migration adds:
1. organizations, stores (store timezone for business dates)
2. users, session_tokens
3. terminals, cashiers, shifts
4. lottery_games, lottery_bins, lottery_packs
5. shift_openings, shift_closings (unique per shift and pack)
6. lottery_business_days (unique per store and date), lottery_day_packs
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_lottery'
down_revision = None
branch_labels = None
depends_on = None


def _status(name, *values):
    return sa.Enum(*values, name=name, native_enum=False, length=16)


def upgrade():
    # ==========================================================================
    # 1. TENANCY
    # ==========================================================================
    op.create_table('organizations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_organizations_code', 'organizations', ['code'], unique=True)
    op.create_index('ix_organizations_is_active', 'organizations', ['is_active'])

    op.create_table('stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='America/New_York'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'name', name='uq_stores_org_name'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_stores_org_id', 'stores', ['org_id'])
    op.create_index('ix_stores_code', 'stores', ['code'])

    # ==========================================================================
    # 2. AUTH
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'username', name='uq_users_org_username'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_users_org_id', 'users', ['org_id'])
    op.create_index('ix_users_username', 'users', ['username'])

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_org_id', 'session_tokens', ['org_id'])
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ==========================================================================
    # 3. TERMINALS, CASHIERS, SHIFTS
    # ==========================================================================
    op.create_table('terminals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('terminal_number', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'terminal_number', name='uq_terminals_store_number'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_terminals_store_id', 'terminals', ['store_id'])
    op.create_index('ix_terminals_is_active', 'terminals', ['is_active'])

    op.create_table('cashiers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'employee_id', name='uq_cashiers_store_employee'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_cashiers_store_id', 'cashiers', ['store_id'])

    op.create_table('shifts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('cashier_id', sa.Integer(), nullable=False),
        sa.Column('terminal_id', sa.Integer(), nullable=True),
        sa.Column('opened_by', sa.Integer(), nullable=True),
        sa.Column('status', _status('shiftstatus', 'NOT_STARTED', 'OPEN', 'ACTIVE', 'CLOSED'), nullable=False),
        sa.Column('opening_cash', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('closing_cash', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['cashier_id'], ['cashiers.id']),
        sa.ForeignKeyConstraint(['opened_by'], ['users.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['terminal_id'], ['terminals.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_shifts_store_id', 'shifts', ['store_id'])
    op.create_index('ix_shifts_cashier_id', 'shifts', ['cashier_id'])
    op.create_index('ix_shifts_terminal_id', 'shifts', ['terminal_id'])
    op.create_index('ix_shifts_status', 'shifts', ['status'])
    op.create_index('ix_shifts_opened_at', 'shifts', ['opened_at'])
    op.create_index('ix_shifts_store_status', 'shifts', ['store_id', 'status'])

    # ==========================================================================
    # 4. LOTTERY INVENTORY
    # ==========================================================================
    op.create_table('lottery_games',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('game_code', sa.String(length=8), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('pack_value', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('status', _status('gamestatus', 'ACTIVE', 'INACTIVE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_lottery_games_store_id', 'lottery_games', ['store_id'])
    op.create_index('ix_lottery_games_game_code', 'lottery_games', ['game_code'])

    op.create_table('lottery_bins',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_lottery_bins_store_id', 'lottery_bins', ['store_id'])
    op.create_index('ix_lottery_bins_store_active', 'lottery_bins', ['store_id', 'is_active'])

    op.create_table('lottery_packs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('pack_number', sa.String(length=32), nullable=False),
        sa.Column('serial_start', sa.String(length=3), nullable=False),
        sa.Column('serial_end', sa.String(length=3), nullable=False),
        sa.Column('status', _status('packstatus', 'RECEIVED', 'ACTIVE', 'DEPLETED', 'RETURNED'), nullable=False),
        sa.Column('current_bin_id', sa.Integer(), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('activated_by', sa.Integer(), nullable=True),
        sa.Column('depleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('depleted_by', sa.Integer(), nullable=True),
        sa.Column('returned_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['activated_by'], ['users.id']),
        sa.ForeignKeyConstraint(['current_bin_id'], ['lottery_bins.id']),
        sa.ForeignKeyConstraint(['depleted_by'], ['users.id']),
        sa.ForeignKeyConstraint(['game_id'], ['lottery_games.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'pack_number', name='uq_lottery_packs_store_number'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_lottery_packs_game_id', 'lottery_packs', ['game_id'])
    op.create_index('ix_lottery_packs_store_id', 'lottery_packs', ['store_id'])
    op.create_index('ix_lottery_packs_current_bin_id', 'lottery_packs', ['current_bin_id'])
    op.create_index('ix_lottery_packs_store_status', 'lottery_packs', ['store_id', 'status'])

    # ==========================================================================
    # 5. SHIFT SERIAL READINGS
    # ==========================================================================
    op.create_table('shift_openings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('pack_id', sa.Integer(), nullable=False),
        sa.Column('opening_serial', sa.String(length=3), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['pack_id'], ['lottery_packs.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shift_id', 'pack_id', name='uq_shift_openings_shift_pack'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_shift_openings_shift_id', 'shift_openings', ['shift_id'])
    op.create_index('ix_shift_openings_pack_id', 'shift_openings', ['pack_id'])

    op.create_table('shift_closings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('pack_id', sa.Integer(), nullable=False),
        sa.Column('cashier_id', sa.Integer(), nullable=False),
        sa.Column('closed_by', sa.Integer(), nullable=True),
        sa.Column('closing_serial', sa.String(length=3), nullable=False),
        sa.Column('entry_method', _status('entrymethod', 'SCAN', 'MANUAL'), nullable=False),
        sa.Column('is_sold_out', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['cashier_id'], ['cashiers.id']),
        sa.ForeignKeyConstraint(['closed_by'], ['users.id']),
        sa.ForeignKeyConstraint(['pack_id'], ['lottery_packs.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shift_id', 'pack_id', name='uq_shift_closings_shift_pack'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_shift_closings_shift_id', 'shift_closings', ['shift_id'])
    op.create_index('ix_shift_closings_pack_id', 'shift_closings', ['pack_id'])
    op.create_index('ix_shift_closings_cashier_id', 'shift_closings', ['cashier_id'])

    # ==========================================================================
    # 6. BUSINESS DAYS
    # ==========================================================================
    op.create_table('lottery_business_days',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('business_date', sa.Date(), nullable=False),
        sa.Column('status', _status('businessdaystatus', 'OPEN', 'CLOSED'), nullable=False),
        sa.Column('opened_by', sa.Integer(), nullable=True),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('closed_by', sa.Integer(), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['closed_by'], ['users.id']),
        sa.ForeignKeyConstraint(['opened_by'], ['users.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'business_date', name='uq_lottery_business_days_store_date'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_lottery_business_days_store_id', 'lottery_business_days', ['store_id'])
    op.create_index('ix_lottery_business_days_business_date', 'lottery_business_days', ['business_date'])
    op.create_index('ix_lottery_business_days_closed_at', 'lottery_business_days', ['closed_at'])

    op.create_table('lottery_day_packs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('day_id', sa.Integer(), nullable=False),
        sa.Column('pack_id', sa.Integer(), nullable=False),
        sa.Column('bin_id', sa.Integer(), nullable=True),
        sa.Column('starting_serial', sa.String(length=3), nullable=False),
        sa.Column('ending_serial', sa.String(length=3), nullable=True),
        sa.Column('tickets_sold', sa.Integer(), nullable=False),
        sa.Column('sales_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('entry_method', _status('entrymethod', 'SCAN', 'MANUAL'), nullable=True),
        sa.Column('is_sold_out', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['bin_id'], ['lottery_bins.id']),
        sa.ForeignKeyConstraint(['day_id'], ['lottery_business_days.id']),
        sa.ForeignKeyConstraint(['pack_id'], ['lottery_packs.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('day_id', 'pack_id', name='uq_lottery_day_packs_day_pack'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_lottery_day_packs_day_id', 'lottery_day_packs', ['day_id'])
    op.create_index('ix_lottery_day_packs_pack_id', 'lottery_day_packs', ['pack_id'])


def downgrade():
    op.drop_table('lottery_day_packs')
    op.drop_table('lottery_business_days')
    op.drop_table('shift_closings')
    op.drop_table('shift_openings')
    op.drop_table('lottery_packs')
    op.drop_table('lottery_bins')
    op.drop_table('lottery_games')
    op.drop_table('shifts')
    op.drop_table('cashiers')
    op.drop_table('terminals')
    op.drop_table('session_tokens')
    op.drop_table('users')
    op.drop_table('stores')
    op.drop_table('organizations')
