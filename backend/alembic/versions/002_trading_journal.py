"""trading_journal

Revision ID: 002
Revises: 001
Create Date: 2025-06-09 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


USER_OWNED_TABLES = ("trading_journal", "user_settings", "position_calculations")


def owner_policy(table: str) -> str:
    """Row level security: a signed-in user only sees and writes their own rows."""
    return f"""
ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;
CREATE POLICY {table}_owner ON {table}
    FOR ALL TO authenticated
    USING (user_id = auth.uid()::text)
    WITH CHECK (user_id = auth.uid()::text);
"""


def upgrade() -> None:
    postgres = op.get_bind().dialect.name == 'postgresql'
    # Clients insert journal rows and calculations without an id
    id_default = sa.text('gen_random_uuid()::text') if postgres else None

    op.create_table(
        'trading_journal',
        sa.Column('id', sa.String(36), nullable=False, server_default=id_default),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('trade_date', sa.Date(), nullable=False),
        sa.Column('pnl', sa.Float(), nullable=False, server_default='0.0'),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('has_traded', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'trade_date', name='uq_trading_journal_user_date'),
    )
    op.create_index('ix_trading_journal_user_id', 'trading_journal', ['user_id'])

    op.create_table(
        'user_settings',
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('initial_capital', sa.Float(), nullable=False, server_default='0.0'),
        sa.Column('current_balance', sa.Float(), nullable=False, server_default='0.0'),
        sa.Column('risk_per_trade', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('daily_loss_max', sa.Float(), nullable=False, server_default='3.0'),
        sa.Column('weekly_target', sa.Float(), nullable=False, server_default='2.0'),
        sa.Column('monthly_target', sa.Float(), nullable=False, server_default='8.0'),
        sa.Column('secure_mode', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('user_id'),
        sa.ForeignKeyConstraint(['user_id'], ['user_profiles.id'], ondelete='CASCADE'),
    )

    op.create_table(
        'position_calculations',
        sa.Column('id', sa.String(36), nullable=False, server_default=id_default),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('calculation_data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['user_profiles.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_position_calculations_user_id', 'position_calculations', ['user_id'])
    op.create_index('ix_position_calculations_created_at', 'position_calculations', ['created_at'])

    if postgres:
        for table in USER_OWNED_TABLES:
            op.execute(owner_policy(table))


def downgrade() -> None:
    op.drop_index('ix_position_calculations_created_at', table_name='position_calculations')
    op.drop_index('ix_position_calculations_user_id', table_name='position_calculations')
    op.drop_table('position_calculations')

    op.drop_table('user_settings')

    op.drop_index('ix_trading_journal_user_id', table_name='trading_journal')
    op.drop_table('trading_journal')
