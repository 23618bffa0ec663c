"""initial_models

Revision ID: 001
Revises:
Create Date: 2025-06-02 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ACTIVATE_SUBSCRIPTION_FUNCTION = """
CREATE OR REPLACE FUNCTION activate_user_subscription(user_id text)
RETURNS void
LANGUAGE plpgsql
SECURITY DEFINER
SET search_path = public
AS $$
BEGIN
    -- Callers may only activate their own account
    IF activate_user_subscription.user_id IS DISTINCT FROM auth.uid()::text THEN
        RAISE EXCEPTION 'forbidden' USING ERRCODE = '42501';
    END IF;

    INSERT INTO user_profiles (id, email, role, is_subscribed, created_at, updated_at)
    VALUES (
        activate_user_subscription.user_id,
        (SELECT u.email FROM auth.users u WHERE u.id::text = activate_user_subscription.user_id),
        'user', true, now(), now()
    )
    ON CONFLICT (id) DO UPDATE SET is_subscribed = true, updated_at = now();
END;
$$;

REVOKE EXECUTE ON FUNCTION activate_user_subscription(text) FROM PUBLIC, anon;
GRANT EXECUTE ON FUNCTION activate_user_subscription(text) TO authenticated;
"""


def upgrade() -> None:
    # Profiles, keyed by the auth user id
    op.create_table(
        'user_profiles',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('is_subscribed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('subscription_status', sa.String(50), nullable=True),
        sa.Column('subscription_end_date', sa.DateTime(), nullable=True),
        sa.Column('stripe_customer_id', sa.String(255), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_profile_email', 'user_profiles', ['email'])
    op.create_index('idx_profile_stripe_customer_id', 'user_profiles', ['stripe_customer_id'])
    op.create_index('idx_profile_is_subscribed', 'user_profiles', ['is_subscribed'])

    op.create_table(
        'subscription_plans',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('features', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'payments',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=True),
        sa.Column('plan_id', sa.String(36), nullable=True),
        sa.Column('amount', sa.Float(), nullable=False, server_default='0.0'),
        sa.Column('currency', sa.String(10), nullable=False, server_default='eur'),
        sa.Column('status', sa.String(50), nullable=False, server_default='completed'),
        sa.Column('transaction_id', sa.String(255), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['user_profiles.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['plan_id'], ['subscription_plans.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('transaction_id'),
    )
    op.create_index('idx_payment_user_id', 'payments', ['user_id'])
    op.create_index('idx_payment_status', 'payments', ['status'])
    op.create_index('idx_payment_created_at', 'payments', ['created_at'])

    op.create_table(
        'site_settings',
        sa.Column('key', sa.String(255), nullable=False),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('category', sa.String(50), nullable=False, server_default='general'),
        sa.Column('updated_by', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('key'),
    )
    op.create_index('ix_site_settings_category', 'site_settings', ['category'])

    if op.get_bind().dialect.name == 'postgresql':
        op.execute(ACTIVATE_SUBSCRIPTION_FUNCTION)


def downgrade() -> None:
    if op.get_bind().dialect.name == 'postgresql':
        op.execute("DROP FUNCTION IF EXISTS activate_user_subscription(text)")

    op.drop_index('ix_site_settings_category', table_name='site_settings')
    op.drop_table('site_settings')

    op.drop_index('idx_payment_created_at', table_name='payments')
    op.drop_index('idx_payment_status', table_name='payments')
    op.drop_index('idx_payment_user_id', table_name='payments')
    op.drop_table('payments')

    op.drop_table('subscription_plans')

    op.drop_index('idx_profile_is_subscribed', table_name='user_profiles')
    op.drop_index('idx_profile_stripe_customer_id', table_name='user_profiles')
    op.drop_index('idx_profile_email', table_name='user_profiles')
    op.drop_table('user_profiles')
