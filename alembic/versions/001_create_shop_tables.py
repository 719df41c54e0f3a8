"""Create shop_settings, shop_connections, sync_logs and product_syncs tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17

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
    """Create shop bookkeeping tables."""
    op.create_table(
        'shop_settings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('shop', sa.String(255), nullable=False),
        sa.Column('shopify_token', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('ix_shop_settings_shop', 'shop_settings', ['shop'], unique=True)

    op.create_table(
        'shop_connections',
        sa.Column('shop_id', sa.String(255), primary_key=True),
        sa.Column('shop_domain', sa.String(255), nullable=False, index=True),
        sa.Column('shop_url', sa.String(500), nullable=False),
        sa.Column('access_token', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('last_sync', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'sync_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('shop_id', sa.String(255), nullable=False, index=True),
        sa.Column('sync_type', sa.String(20), nullable=False),
        sa.Column('products_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    op.create_table(
        'product_syncs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('shop_id', sa.String(255), nullable=False, index=True),
        sa.Column('shopify_product_id', sa.String(255), nullable=False, index=True),
        sa.Column('saas_product_id', sa.String(255), nullable=True),
        sa.Column('sync_direction', sa.String(30), nullable=False),
        sa.Column('last_sync', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )


def downgrade() -> None:
    """Drop shop bookkeeping tables."""
    op.drop_table('product_syncs')
    op.drop_table('sync_logs')
    op.drop_table('shop_connections')
    op.drop_index('ix_shop_settings_shop', table_name='shop_settings')
    op.drop_table('shop_settings')
