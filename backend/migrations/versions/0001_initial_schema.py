"""initial schema: authz, audit, vendors, transactions, invoices, purchase orders, company

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

BigId = sa.BigInteger().with_variant(sa.Integer(), 'sqlite')
MONEY = sa.Numeric(14, 2)


def _timestamps(updated=True):
    cols = [sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()))
    return cols


def _money_header():
    return [
        sa.Column('discount', MONEY, nullable=False, server_default='0'),
        sa.Column('shipping_cost', MONEY, nullable=False, server_default='0'),
        sa.Column('subtotal', MONEY, nullable=False, server_default='0'),
        sa.Column('total_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=8), nullable=False, server_default='INR'),
    ]


def upgrade():
    op.create_table('permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False, unique=True),
        sa.Column('description', sa.String(length=255)),
    )
    op.create_index('ix_permissions_name', 'permissions', ['name'])

    op.create_table('roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False, unique=True),
        sa.Column('description', sa.String(length=255)),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False, unique=True),
        sa.Column('full_name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=128), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_ceo', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table('role_permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('role_id', 'permission_id', name='uq_role_permission'),
    )

    op.create_table('user_roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assigned_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', name='uq_user_role_user'),
    )

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=False),
        sa.Column('actor_email', sa.String(length=128)),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64)),
        sa.Column('entity_id', sa.String(length=64)),
        sa.Column('meta', sa.JSON()),
        *_timestamps(updated=False),
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity', 'entity_id'])

    op.create_table('vendors',
        sa.Column('id', BigId, primary_key=True),
        sa.Column('vendor_name', sa.String(length=255), nullable=False, unique=True),
        sa.Column('gst_no', sa.String(length=15)),
        sa.Column('vendor_type', sa.String(length=64)),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('phone', sa.String(length=20)),
        sa.Column('address', sa.String(length=500)),
        sa.Column('bank_name', sa.String(length=255)),
        sa.Column('bank_account_number', sa.String(length=50)),
        sa.Column('ifsc_code', sa.String(length=11)),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('payables', MONEY),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        *_timestamps(),
    )
    op.create_index('ix_vendors_vendor_name', 'vendors', ['vendor_name'])
    op.create_index('ix_vendors_email', 'vendors', ['email'])
    op.create_index('ix_vendors_is_active', 'vendors', ['is_active'])

    op.create_table('financial_transactions',
        sa.Column('id', BigId, primary_key=True),
        sa.Column('project_id', sa.Integer()),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('transaction_method', sa.String(length=64), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(length=500)),
        sa.Column('reference_number', sa.String(length=64)),
        sa.Column('vendor_id', BigId, sa.ForeignKey('vendors.id', ondelete='SET NULL')),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='spend'),
        *_timestamps(),
    )
    op.create_index('ix_financial_transactions_project_id', 'financial_transactions', ['project_id'])
    op.create_index('ix_financial_transactions_transaction_date', 'financial_transactions', ['transaction_date'])
    op.create_index('ix_financial_transactions_vendor_id', 'financial_transactions', ['vendor_id'])

    op.create_table('invoices',
        sa.Column('id', BigId, primary_key=True),
        sa.Column('customer_id', sa.Integer()),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_address', sa.String(length=500)),
        sa.Column('invoice_number', sa.String(length=64), nullable=False, unique=True),
        sa.Column('invoice_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date()),
        sa.Column('payment_terms', sa.String(length=64)),
        sa.Column('status', sa.String(length=32)),
        sa.Column('memo', sa.String(length=1000)),
        *_money_header(),
        *_timestamps(),
    )
    op.create_index('ix_invoices_invoice_date', 'invoices', ['invoice_date'])

    op.create_table('invoice_items',
        sa.Column('id', BigId, primary_key=True),
        sa.Column('invoice_id', BigId, sa.ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=500)),
        sa.Column('quantity', sa.Numeric(12, 3), nullable=False),
        sa.Column('rate', MONEY, nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('total_amount', MONEY, nullable=False),
    )
    op.create_index('ix_invoice_items_invoice_id', 'invoice_items', ['invoice_id'])

    op.create_table('purchase_orders',
        sa.Column('id', BigId, primary_key=True),
        sa.Column('vendor_id', BigId, sa.ForeignKey('vendors.id', ondelete='SET NULL')),
        sa.Column('po_number', sa.String(length=64), nullable=False, unique=True),
        sa.Column('order_date', sa.Date()),
        sa.Column('expected_delivery', sa.Date()),
        sa.Column('billing_address', sa.String(length=500)),
        sa.Column('status', sa.String(length=32)),
        sa.Column('memo', sa.String(length=1000)),
        *_money_header(),
        *_timestamps(),
    )
    op.create_index('ix_purchase_orders_vendor_id', 'purchase_orders', ['vendor_id'])
    op.create_index('ix_purchase_orders_order_date', 'purchase_orders', ['order_date'])

    op.create_table('purchase_order_items',
        sa.Column('id', BigId, primary_key=True),
        sa.Column('purchase_order_id', BigId, sa.ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=500)),
        sa.Column('quantity', sa.Numeric(12, 3), nullable=False),
        sa.Column('rate', MONEY, nullable=False),
        sa.Column('tax_rate', sa.Numeric(6, 4), nullable=False, server_default='0'),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('total_amount', MONEY, nullable=False),
    )
    op.create_index('ix_purchase_order_items_purchase_order_id', 'purchase_order_items', ['purchase_order_id'])

    op.create_table('company_details',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=500)),
        sa.Column('city', sa.String(length=128)),
        sa.Column('state', sa.String(length=128)),
        sa.Column('pin_code', sa.String(length=16)),
        sa.Column('country', sa.String(length=64)),
        sa.Column('phone', sa.String(length=20)),
        sa.Column('email', sa.String(length=255)),
        sa.Column('gst_no', sa.String(length=15)),
        sa.Column('registration_number', sa.String(length=64)),
        sa.Column('logo', sa.LargeBinary()),
        sa.Column('logo_mimetype', sa.String(length=64)),
        sa.Column('is_own_company', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )


def downgrade():
    for table in (
        'company_details', 'purchase_order_items', 'purchase_orders', 'invoice_items', 'invoices',
        'financial_transactions', 'vendors', 'audit_logs', 'user_roles', 'role_permissions', 'users',
        'roles', 'permissions',
    ):
        op.drop_table(table)
