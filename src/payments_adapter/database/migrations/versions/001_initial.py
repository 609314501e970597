"""Initial migration - create payment_attempts, refunds, and payouts tables

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-19

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
    op.create_table(
        'payment_attempts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('merchant_id', sa.String(64), nullable=False),
        sa.Column('connector', sa.String(50), nullable=False),
        sa.Column('status', sa.String(50), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('capture_method', sa.String(20), nullable=False, server_default='automatic'),
        sa.Column('amount_captured', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('connector_transaction_id', sa.String(128), nullable=True),
        sa.Column('connector_metadata_json', sa.Text(), nullable=True),
        sa.Column('error_code', sa.String(64), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_payment_attempts_merchant_id', 'payment_attempts', ['merchant_id'])
    op.create_index('ix_payment_attempts_status', 'payment_attempts', ['status'])
    op.create_index(
        'ix_payment_attempts_connector_transaction_id',
        'payment_attempts',
        ['connector_transaction_id'],
    )

    op.create_table(
        'refunds',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('attempt_id', sa.String(36), sa.ForeignKey('payment_attempts.id'), nullable=False),
        sa.Column('merchant_id', sa.String(64), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('status', sa.String(50), nullable=False),
        sa.Column('connector_refund_id', sa.String(128), nullable=True),
        sa.Column('error_code', sa.String(64), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_refunds_attempt_id', 'refunds', ['attempt_id'])

    # (merchant_id, payout_id) is the payout identity; the constraint backs
    # the duplicate check when two creates race.
    op.create_table(
        'payouts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('payout_id', sa.String(64), nullable=False),
        sa.Column('merchant_id', sa.String(64), nullable=False),
        sa.Column('customer_id', sa.String(64), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('status', sa.String(50), nullable=False),
        sa.Column('connector', sa.String(50), nullable=True),
        sa.Column('connector_payout_id', sa.String(128), nullable=True),
        sa.Column('method_data_json', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('merchant_id', 'payout_id', name='uq_payouts_merchant_id_payout_id'),
    )
    op.create_index('ix_payouts_status', 'payouts', ['status'])


def downgrade() -> None:
    op.drop_index('ix_payouts_status', table_name='payouts')
    op.drop_table('payouts')

    op.drop_index('ix_refunds_attempt_id', table_name='refunds')
    op.drop_table('refunds')

    op.drop_index('ix_payment_attempts_connector_transaction_id', table_name='payment_attempts')
    op.drop_index('ix_payment_attempts_status', table_name='payment_attempts')
    op.drop_index('ix_payment_attempts_merchant_id', table_name='payment_attempts')
    op.drop_table('payment_attempts')
