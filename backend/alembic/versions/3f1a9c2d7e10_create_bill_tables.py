"""create users, bills, bill_items and item_assignments

Revision ID: 3f1a9c2d7e10
Revises:
Create Date: 2026-10-16 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = '3f1a9c2d7e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

billvisibility = postgresql.ENUM('PRIVATE', 'READ_ONLY', 'PUBLIC', name='billvisibility', create_type=False)


def upgrade() -> None:
    billvisibility.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )

    op.create_table(
        'bills',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('reference', sa.String(32), nullable=False),
        sa.Column('visibility', billvisibility, nullable=False, server_default='PRIVATE'),
        sa.Column('share_token', sa.String(64), nullable=True),
        sa.Column('currency', sa.String(3), nullable=False, server_default='RM'),
        sa.Column('service_charge', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('tax_rate', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('discount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_bills_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_bills'),
        sa.UniqueConstraint('reference', name='uq_bills_reference'),
        sa.UniqueConstraint('share_token', name='uq_bills_share_token'),
        # share_token is present exactly when the bill is shared
        sa.CheckConstraint(
            "(visibility = 'PRIVATE') = (share_token IS NULL)",
            name='ck_bills_share_token_matches_visibility',
        ),
    )
    op.create_index('ix_bills_user_id', 'bills', ['user_id'])

    op.create_table(
        'bill_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('bill_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('item_code', sa.String(), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('assigned_to', sa.String(), nullable=True),
        sa.Column('paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], name='fk_bill_items_bill_id_bills'),
        sa.PrimaryKeyConstraint('id', name='pk_bill_items'),
        sa.CheckConstraint('quantity > 0', name='ck_bill_items_quantity_positive'),
    )
    op.create_index('ix_bill_items_bill_id', 'bill_items', ['bill_id'])

    op.create_table(
        'item_assignments',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('item_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['item_id'], ['bill_items.id'], name='fk_item_assignments_item_id_bill_items'),
        sa.PrimaryKeyConstraint('id', name='pk_item_assignments'),
    )
    op.create_index('ix_item_assignments_item_id', 'item_assignments', ['item_id'])


def downgrade() -> None:
    op.drop_index('ix_item_assignments_item_id', table_name='item_assignments')
    op.drop_table('item_assignments')
    op.drop_index('ix_bill_items_bill_id', table_name='bill_items')
    op.drop_table('bill_items')
    op.drop_index('ix_bills_user_id', table_name='bills')
    op.drop_table('bills')
    op.drop_table('users')
    billvisibility.drop(op.get_bind(), checkfirst=True)
