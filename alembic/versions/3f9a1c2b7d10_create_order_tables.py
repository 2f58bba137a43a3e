"""create_order_tables

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ORDER_STATUSES = (
    'pending', 'confirmed', 'processing', 'packed', 'shipped',
    'out_for_delivery', 'delivered', 'cancelled', 'refunded',
)
PAYMENT_STATUSES = ('pending', 'paid', 'failed', 'refunded', 'partially_refunded')
FULFILLMENT_STATUSES = ('unfulfilled', 'partially_fulfilled', 'fulfilled', 'returned')
ITEM_FULFILLMENT_STATUSES = ('unfulfilled', 'fulfilled', 'returned', 'cancelled')
COUPON_TYPES = ('percentage', 'fixed_amount', 'free_shipping')

order_status_enum = postgresql.ENUM(*ORDER_STATUSES, name='order_status_enum', create_type=False)
payment_status_enum = postgresql.ENUM(*PAYMENT_STATUSES, name='order_payment_status_enum', create_type=False)
fulfillment_status_enum = postgresql.ENUM(*FULFILLMENT_STATUSES, name='order_fulfillment_status_enum', create_type=False)
item_fulfillment_status_enum = postgresql.ENUM(*ITEM_FULFILLMENT_STATUSES, name='order_item_fulfillment_status_enum', create_type=False)
coupon_type_enum = postgresql.ENUM(*COUPON_TYPES, name='coupon_type_enum', create_type=False)

ENUMS = (
    order_status_enum,
    payment_status_enum,
    fulfillment_status_enum,
    item_fulfillment_status_enum,
    coupon_type_enum,
)


def upgrade() -> None:
    """Upgrade schema - Add order, coupon and status history tables."""
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    # Coupons
    op.create_table(
        'coupons',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', coupon_type_enum, nullable=False),
        sa.Column('value', sa.Numeric(10, 2), nullable=False),
        sa.Column('min_purchase_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('max_discount_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('usage_limit_per_user', sa.Integer(), nullable=True),
        sa.Column('times_used', sa.Integer(), server_default='0', nullable=False),
        sa.Column('valid_from', sa.DateTime(timezone=True), nullable=True),
        sa.Column('valid_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('value >= 0', name=op.f('ck_coupons_value_non_negative')),
        sa.CheckConstraint('times_used >= 0', name=op.f('ck_coupons_times_used_non_negative')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_coupons')),
    )
    op.create_index(op.f('ix_coupons_code'), 'coupons', ['code'], unique=True)

    # Orders
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=50), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('status', order_status_enum, server_default='pending', nullable=False),
        sa.Column('payment_status', payment_status_enum, server_default='pending', nullable=False),
        sa.Column('fulfillment_status', fulfillment_status_enum, server_default='unfulfilled', nullable=False),
        sa.Column('subtotal', sa.Numeric(10, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('shipping_amount', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('discount_amount', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), server_default='INR', nullable=False),
        sa.Column('shipping_address_id', sa.Integer(), nullable=True),
        sa.Column('billing_address_id', sa.Integer(), nullable=True),
        sa.Column('shipping_address', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('billing_address', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('shipping_method', sa.String(length=50), nullable=True),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('carrier', sa.String(length=100), nullable=True),
        sa.Column('estimated_delivery_date', sa.Date(), nullable=True),
        sa.Column('actual_delivery_date', sa.Date(), nullable=True),
        sa.Column('coupon_code', sa.String(length=50), nullable=True),
        sa.Column('coupon_discount', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by', sa.Integer(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('stock_reserved', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('shipped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('subtotal >= 0', name=op.f('ck_orders_subtotal_non_negative')),
        sa.CheckConstraint('tax_amount >= 0', name=op.f('ck_orders_tax_non_negative')),
        sa.CheckConstraint('shipping_amount >= 0', name=op.f('ck_orders_shipping_non_negative')),
        sa.CheckConstraint('discount_amount >= 0', name=op.f('ck_orders_discount_non_negative')),
        sa.CheckConstraint('total_amount >= 0', name=op.f('ck_orders_total_non_negative')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_orders_user_id_users'), ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['cancelled_by'], ['users.id'], name=op.f('fk_orders_cancelled_by_users'), ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['shipping_address_id'], ['addresses.id'], name=op.f('fk_orders_shipping_address_id_addresses'), ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['billing_address_id'], ['addresses.id'], name=op.f('fk_orders_billing_address_id_addresses'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_orders')),
    )
    op.create_index(op.f('ix_orders_order_number'), 'orders', ['order_number'], unique=True)
    op.create_index(op.f('ix_orders_user_id'), 'orders', ['user_id'])
    op.create_index(op.f('ix_orders_status'), 'orders', ['status'])
    op.create_index(op.f('ix_orders_payment_status'), 'orders', ['payment_status'])
    op.create_index(op.f('ix_orders_created_at'), 'orders', ['created_at'])

    # Order items (snapshots)
    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('product_sku', sa.String(length=100), nullable=True),
        sa.Column('product_image_url', sa.Text(), nullable=True),
        sa.Column('variant_name', sa.String(length=100), nullable=True),
        sa.Column('variant_attributes', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('total_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('discount', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('tax', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('fulfillment_status', item_fulfillment_status_enum, server_default='unfulfilled', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity > 0', name=op.f('ck_order_items_positive_quantity')),
        sa.CheckConstraint('unit_price >= 0', name=op.f('ck_order_items_unit_price_non_negative')),
        sa.CheckConstraint('total_price >= 0', name=op.f('ck_order_items_total_price_non_negative')),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], name=op.f('fk_order_items_order_id_orders'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name=op.f('fk_order_items_product_id_products'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_order_items')),
    )
    op.create_index(op.f('ix_order_items_order_id'), 'order_items', ['order_id'])
    op.create_index(op.f('ix_order_items_product_id'), 'order_items', ['product_id'])

    # Status history (append-only)
    op.create_table(
        'order_status_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('old_status', order_status_enum, nullable=True),
        sa.Column('new_status', order_status_enum, nullable=False),
        sa.Column('changed_by', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], name=op.f('fk_order_status_history_order_id_orders'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['changed_by'], ['users.id'], name=op.f('fk_order_status_history_changed_by_users'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_order_status_history')),
    )
    op.create_index('ix_order_status_history_order_id', 'order_status_history', ['order_id'])

    # Coupon usage
    op.create_table(
        'coupon_usage',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('coupon_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('discount_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['coupon_id'], ['coupons.id'], name=op.f('fk_coupon_usage_coupon_id_coupons'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_coupon_usage_user_id_users'), ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], name=op.f('fk_coupon_usage_order_id_orders'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_coupon_usage')),
    )
    op.create_index('ix_coupon_usage_coupon_user', 'coupon_usage', ['coupon_id', 'user_id'])


def downgrade() -> None:
    """Downgrade schema - Drop order tables."""
    op.drop_index('ix_coupon_usage_coupon_user', table_name='coupon_usage')
    op.drop_table('coupon_usage')
    op.drop_index('ix_order_status_history_order_id', table_name='order_status_history')
    op.drop_table('order_status_history')
    op.drop_index(op.f('ix_order_items_product_id'), table_name='order_items')
    op.drop_index(op.f('ix_order_items_order_id'), table_name='order_items')
    op.drop_table('order_items')
    op.drop_index(op.f('ix_orders_created_at'), table_name='orders')
    op.drop_index(op.f('ix_orders_payment_status'), table_name='orders')
    op.drop_index(op.f('ix_orders_status'), table_name='orders')
    op.drop_index(op.f('ix_orders_user_id'), table_name='orders')
    op.drop_index(op.f('ix_orders_order_number'), table_name='orders')
    op.drop_table('orders')
    op.drop_index(op.f('ix_coupons_code'), table_name='coupons')
    op.drop_table('coupons')

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
