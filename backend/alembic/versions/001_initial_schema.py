"""Initial schema - time and billing tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

WHAT: Creates users, matters, billing_codes, role_rates, invoices and
time_entries.

WHY: Every money column is integer cents and every duration integer
minutes. The partial unique index on time_entries(user_id) WHERE
status = 'running' is what guarantees one running timer per user, so it
must exist in every deployed database, not only in test schemas.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade() -> None:
    """
    Create the billing schema.

    WHY: users and matters are read-only references owned by other
    services; only the columns billing needs are kept here.
    """
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=100), nullable=False, server_default='Staff'),
        sa.Column('billable_rate_dollars', sa.Numeric(precision=10, scale=2), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'matters',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('client_name', sa.String(length=255), nullable=False),
        sa.Column('client_address', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_matters_id', 'matters', ['id'])

    op.create_table(
        'billing_codes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('fixed_rate_cents', sa.Integer(), nullable=True),
        sa.Column('override_role', sa.String(length=100), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
        sa.CheckConstraint(
            'fixed_rate_cents IS NULL OR fixed_rate_cents >= 0',
            name='ck_billing_codes_non_negative_rate',
        ),
    )

    op.create_table(
        'role_rates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=100), nullable=False),
        sa.Column('rate_cents', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('role'),
        sa.CheckConstraint('rate_cents >= 0', name='ck_role_rates_non_negative'),
    )

    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=50), nullable=False),
        sa.Column('matter_id', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('amount_paid_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('balance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['matter_id'], ['matters.id']),
        sa.UniqueConstraint('invoice_number'),
        sa.CheckConstraint('tax_cents >= 0', name='ck_invoices_tax_non_negative'),
        sa.CheckConstraint(
            'amount_paid_cents >= 0 AND amount_paid_cents <= total_cents',
            name='ck_invoices_paid_within_total',
        ),
    )
    op.create_index('ix_invoices_matter_id', 'invoices', ['matter_id'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])

    op.create_table(
        'time_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('matter_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('billing_code_id', sa.Integer(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('raw_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('billed_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rate_cents_applied', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('invoice_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['matter_id'], ['matters.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['billing_code_id'], ['billing_codes.id']),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id']),
        sa.CheckConstraint('raw_minutes >= 0', name='ck_time_entries_raw_minutes'),
        sa.CheckConstraint('billed_minutes >= 0', name='ck_time_entries_billed_minutes'),
        sa.CheckConstraint('amount_cents >= 0', name='ck_time_entries_amount_cents'),
        sa.CheckConstraint(
            'ended_at IS NULL OR started_at IS NULL OR ended_at >= started_at',
            name='ck_time_entries_valid_time_range',
        ),
    )
    op.create_index('ix_time_entries_matter_id', 'time_entries', ['matter_id'])
    op.create_index('ix_time_entries_user_id', 'time_entries', ['user_id'])
    op.create_index('ix_time_entries_status', 'time_entries', ['status'])
    op.create_index('ix_time_entries_invoice_id', 'time_entries', ['invoice_id'])
    op.create_index('ix_time_entries_created_at', 'time_entries', ['created_at'])

    # One running timer per user
    op.create_index(
        'uq_time_entries_one_running_per_user',
        'time_entries',
        ['user_id'],
        unique=True,
        sqlite_where=sa.text("status = 'running'"),
        postgresql_where=sa.text("status = 'running'"),
    )


def downgrade() -> None:
    """Drop all billing tables in reverse dependency order."""
    op.drop_index('uq_time_entries_one_running_per_user', table_name='time_entries')
    op.drop_index('ix_time_entries_created_at', table_name='time_entries')
    op.drop_index('ix_time_entries_invoice_id', table_name='time_entries')
    op.drop_index('ix_time_entries_status', table_name='time_entries')
    op.drop_index('ix_time_entries_user_id', table_name='time_entries')
    op.drop_index('ix_time_entries_matter_id', table_name='time_entries')
    op.drop_table('time_entries')

    op.drop_index('ix_invoices_status', table_name='invoices')
    op.drop_index('ix_invoices_matter_id', table_name='invoices')
    op.drop_table('invoices')

    op.drop_table('role_rates')
    op.drop_table('billing_codes')

    op.drop_index('ix_matters_id', table_name='matters')
    op.drop_table('matters')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
