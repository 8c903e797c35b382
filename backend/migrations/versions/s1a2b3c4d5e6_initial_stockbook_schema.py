"""initial stockbook schema

Revision ID: s1a2b3c4d5e6
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the three collections:
- products: product registry, unique code
- stock_entries: one row per (product_id, date) calendar day
- sales: recorded sales with product code/name snapshots

Quantities are integer grams and money integer cents.

stock_entries.product_id and sales.product_id carry no foreign key, so a
product can be deleted while rows that reference it remain.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 's1a2b3c4d5e6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # products
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_products_code'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_name', 'products', ['name'])

    # ============================================================================
    # stock_entries: per-product, per-day ledger
    # ============================================================================
    op.create_table(
        'stock_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('total_stock_grams', sa.BigInteger(), nullable=False),
        sa.Column('remain_stock_grams', sa.BigInteger(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'date', name='uq_stock_entries_product_date'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_entries_product_id', 'stock_entries', ['product_id'])
    op.create_index('ix_stock_entries_date', 'stock_entries', ['date'])

    # ============================================================================
    # sales
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_code', sa.String(length=64), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity_grams', sa.BigInteger(), nullable=False),
        sa.Column('price_per_kg_cents', sa.BigInteger(), nullable=False),
        sa.Column('total_value_cents', sa.BigInteger(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('payment_mode', sa.String(length=16), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_product_id', 'sales', ['product_id'])
    op.create_index('ix_sales_payment_status', 'sales', ['payment_status'])
    op.create_index('ix_sales_date', 'sales', ['date'])
    op.create_index('ix_sales_product_code_date', 'sales', ['product_code', 'date'])
    op.create_index('ix_sales_payment', 'sales', ['payment_mode', 'payment_status'])


def downgrade():
    op.drop_index('ix_sales_payment', table_name='sales')
    op.drop_index('ix_sales_product_code_date', table_name='sales')
    op.drop_index('ix_sales_date', table_name='sales')
    op.drop_index('ix_sales_payment_status', table_name='sales')
    op.drop_index('ix_sales_product_id', table_name='sales')
    op.drop_table('sales')

    op.drop_index('ix_stock_entries_date', table_name='stock_entries')
    op.drop_index('ix_stock_entries_product_id', table_name='stock_entries')
    op.drop_table('stock_entries')

    op.drop_index('ix_products_name', table_name='products')
    op.drop_table('products')
