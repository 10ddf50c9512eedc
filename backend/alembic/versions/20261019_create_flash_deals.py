"""create_flash_deals

Revision ID: 001_create_flash_deals
Revises:
Create Date: 2026-10-19

Creates the products table with its flash deal projection columns, the
flash_deals campaign table and the flash_deal_line_items table.

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_create_flash_deals'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'products',
        sa.Column('product_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deal_is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deal_campaign_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('deal_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('deal_discount_percent', sa.Float(), nullable=True),
        sa.Column('deal_start_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deal_end_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deal_max_quantity', sa.Integer(), nullable=True),
        sa.Column('deal_sold_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deal_priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deal_created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('stock >= 0', name='chk_product_stock_positive'),
        sa.CheckConstraint('price > 0', name='chk_product_price_positive'),
    )
    op.create_index('idx_products_deal_active', 'products', ['deal_is_active'])

    op.create_table(
        'flash_deals',
        sa.Column('campaign_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('deal_kind', sa.String(20), nullable=False),
        sa.Column('discount_mode', sa.String(20), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='scheduled'),
        sa.Column('show_on_homepage', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('badge_text', sa.String(100), nullable=True),
        sa.Column('show_countdown', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('eligible_sections', postgresql.ARRAY(sa.String(20)), nullable=False),
        sa.Column('max_orders_per_user', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('payment_method_restrictions', postgresql.ARRAY(sa.String(50)), nullable=True),
        sa.Column('geo_restrictions', postgresql.ARRAY(sa.String(50)), nullable=True),
        sa.Column('enable_captcha', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('updated_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('paused_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('ended_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('paused_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_revenue', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total_units_sold', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('average_order_value', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('conversion_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('end_time > start_time', name='chk_flash_deal_time'),
        sa.CheckConstraint('priority >= 0', name='chk_flash_deal_priority'),
        sa.CheckConstraint('max_orders_per_user >= 1', name='chk_flash_deal_max_orders'),
    )
    op.create_index('idx_flash_deals_status', 'flash_deals', ['status'])
    op.create_index('idx_flash_deals_time', 'flash_deals', ['start_time', 'end_time'])
    op.create_index('idx_flash_deals_deleted_at', 'flash_deals', ['deleted_at'])
    op.create_index('idx_flash_deals_created_at', 'flash_deals', ['created_at'])

    op.create_table(
        'flash_deal_line_items',
        sa.Column('line_item_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'campaign_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('flash_deals.campaign_id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'product_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('products.product_id'),
            nullable=False,
        ),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('base_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('deal_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('discount_percent', sa.Float(), nullable=True),
        sa.Column('deal_quantity', sa.Integer(), nullable=False),
        sa.Column('initial_stock', sa.Integer(), nullable=False),
        sa.Column('sold_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_quantity_per_user', sa.Integer(), nullable=False),
        sa.Column('min_order_quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.UniqueConstraint('campaign_id', 'product_id', name='uq_flash_deal_line_items_product'),
        sa.CheckConstraint('base_price > 0', name='chk_line_item_base_price'),
        sa.CheckConstraint('deal_price > 0', name='chk_line_item_deal_price'),
        sa.CheckConstraint(
            'discount_percent IS NULL OR (discount_percent >= 0 AND discount_percent <= 100)',
            name='chk_line_item_discount_percent',
        ),
        sa.CheckConstraint('deal_quantity >= 1', name='chk_line_item_deal_quantity'),
        sa.CheckConstraint('initial_stock >= 1', name='chk_line_item_initial_stock'),
        sa.CheckConstraint('sold_quantity >= 0', name='chk_line_item_sold_quantity'),
    )
    op.create_index('idx_flash_deal_line_items_product', 'flash_deal_line_items', ['product_id'])


def downgrade() -> None:
    op.drop_index('idx_flash_deal_line_items_product', table_name='flash_deal_line_items')
    op.drop_table('flash_deal_line_items')
    op.drop_index('idx_flash_deals_created_at', table_name='flash_deals')
    op.drop_index('idx_flash_deals_deleted_at', table_name='flash_deals')
    op.drop_index('idx_flash_deals_time', table_name='flash_deals')
    op.drop_index('idx_flash_deals_status', table_name='flash_deals')
    op.drop_table('flash_deals')
    op.drop_index('idx_products_deal_active', table_name='products')
    op.drop_table('products')
