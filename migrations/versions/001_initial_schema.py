"""Initial schema: warehouses, inventory, stock_reservations, stock_movements, erp_reservations

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'warehouses',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code')
    )
    op.create_index('ix_warehouses_is_default', 'warehouses', ['is_default'])

    op.create_table(
        'inventory',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('warehouse_id', sa.String(length=36), nullable=False),
        sa.Column('quantity_on_hand', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_reserved', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pieces_per_box', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('sqm_per_box', sa.Numeric(precision=10, scale=4), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'warehouse_id', name='uq_inventory_product_warehouse'),
        sa.CheckConstraint('quantity_reserved >= 0', name='ck_inventory_reserved_non_negative'),
        sa.CheckConstraint('quantity_reserved <= quantity_on_hand', name='ck_inventory_reserved_le_on_hand')
    )
    op.create_index('ix_inventory_product_id', 'inventory', ['product_id'])
    op.create_index('ix_inventory_warehouse_id', 'inventory', ['warehouse_id'])

    op.create_table(
        'stock_reservations',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('inventory_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('warehouse_id', sa.String(length=36), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.String(length=64), nullable=True),
        sa.Column('cart_session_id', sa.String(length=64), nullable=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('erp_sku', sa.String(length=100), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'RELEASED', 'FULFILLED', 'EXPIRED', name='reservationstatus'),
                  nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('released_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['inventory_id'], ['inventory.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_stock_reservations_inventory_id', 'stock_reservations', ['inventory_id'])
    op.create_index('ix_stock_reservations_product_id', 'stock_reservations', ['product_id'])
    op.create_index('ix_stock_reservations_order_id', 'stock_reservations', ['order_id'])
    op.create_index('ix_stock_reservations_cart_session_id', 'stock_reservations', ['cart_session_id'])
    op.create_index('ix_stock_reservations_user_id', 'stock_reservations', ['user_id'])
    op.create_index('ix_stock_reservations_status', 'stock_reservations', ['status'])
    op.create_index('ix_stock_reservations_expires_at', 'stock_reservations', ['expires_at'])

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('movement_type', sa.Enum('RESERVATION', 'RELEASE', 'ADJUSTMENT', 'FULFILLMENT',
                                           name='stockmovementtype'), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('from_warehouse_id', sa.String(length=36), nullable=True),
        sa.Column('to_warehouse_id', sa.String(length=36), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.String(length=64), nullable=True),
        sa.Column('performed_by', sa.String(length=64), nullable=False, server_default='system'),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum('COMPLETED', 'FAILED', name='movementstatus'), nullable=False),
        sa.Column('reference', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_stock_movements_movement_type', 'stock_movements', ['movement_type'])
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_order_id', 'stock_movements', ['order_id'])
    op.create_index('ix_stock_movements_reference', 'stock_movements', ['reference'])
    op.create_index('ix_stock_movements_created_at', 'stock_movements', ['created_at'])

    op.create_table(
        'erp_reservations',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('reservation_key', sa.String(length=100), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('session_id', sa.String(length=64), nullable=True),
        sa.Column('sku', sa.String(length=100), nullable=False),
        sa.Column('location_code', sa.String(length=50), nullable=False, server_default='MAIN'),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'RESERVED', 'RELEASED', name='externalreservationstatus'),
                  nullable=False),
        sa.Column('erp_reservation_id', sa.String(length=100), nullable=True),
        sa.Column('available_quantity', sa.Integer(), nullable=True),
        sa.Column('error_code', sa.String(length=50), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('reserved_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reservation_key')
    )
    op.create_index('ix_erp_reservations_sku', 'erp_reservations', ['sku'])
    op.create_index('ix_erp_reservations_status', 'erp_reservations', ['status'])


def downgrade():
    op.drop_table('erp_reservations')
    op.drop_table('stock_movements')
    op.drop_table('stock_reservations')
    op.drop_table('inventory')
    op.drop_table('warehouses')
