"""Initial migration - member, payment and queue

Revision ID: 001
Revises: 
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create member table
    op.create_table('member',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False, comment='Display name'),
        sa.Column('email', sa.String(length=255), nullable=True, comment='Primary contact email'),
        sa.Column('status', sa.String(length=32), nullable=False, comment='Eligibility status (Active, Inactive, Suspended, Won, Paid)'),
        sa.Column('join_date', sa.DateTime(timezone=True), nullable=True, comment='When the member account was created'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Create payment table
    op.create_table('payment',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('memberid', sa.Integer(), nullable=False, comment='Paying member'),
        sa.Column('amount', sa.BigInteger(), nullable=False, comment='Amount in cents'),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=False, comment='When the payment was made'),
        sa.Column('status', sa.String(length=16), nullable=False, comment='Completed, Pending or Failed'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['memberid'], ['member.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    # Create queue table
    op.create_table('queue',
        sa.Column('memberid', sa.Integer(), nullable=False, comment='Queued member'),
        sa.Column('queue_position', sa.Integer(), nullable=False, comment='1-based dense rank'),
        sa.Column('subscription_active', sa.Boolean(), nullable=False, comment="Whether the member's subscription is active"),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='Last time the position was written'),
        sa.ForeignKeyConstraint(['memberid'], ['member.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('memberid')
    )

    # Create indexes
    op.create_index('idx_member_status', 'member', ['status'])
    op.create_index('idx_payment_member_date', 'payment', ['memberid', 'payment_date'])
    op.create_index('idx_payment_status', 'payment', ['status'])
    op.create_index('idx_queue_position', 'queue', ['queue_position'])


def downgrade() -> None:
    # Drop indexes
    op.drop_index('idx_queue_position', table_name='queue')
    op.drop_index('idx_payment_status', table_name='payment')
    op.drop_index('idx_payment_member_date', table_name='payment')
    op.drop_index('idx_member_status', table_name='member')

    # Drop tables
    op.drop_table('queue')
    op.drop_table('payment')
    op.drop_table('member')
