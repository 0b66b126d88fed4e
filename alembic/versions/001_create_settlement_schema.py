"""Create vendor settlement schema

Revision ID: 001_settlement
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB

# revision identifiers
revision = '001_settlement'
down_revision = None
branch_labels = None
depends_on = None


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    ]


def upgrade():
    """Create catalog, vendor and settlement tables"""

    # ====================
    # CATEGORIES
    # ====================
    op.create_table(
        'categories',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('parent_id', UUID(as_uuid=True), sa.ForeignKey('categories.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('level', sa.Integer, server_default='0', nullable=False, comment='Number of ancestors (root = 0)'),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('sort_order', sa.Integer, server_default='0'),
        sa.Column('is_active', sa.Boolean, server_default='true'),
        sa.Column('is_visible', sa.Boolean, server_default='true'),
        sa.Column('has_custom_commission', sa.Boolean, server_default='false'),
        sa.Column('default_commission_type', sa.String(50), server_default='PERCENTAGE', nullable=False),
        sa.Column('default_commission_value', sa.Numeric(14, 2), server_default='0', nullable=False),
        *timestamps(),
    )
    op.create_index('ix_categories_slug', 'categories', ['slug'], unique=True)
    op.create_index('ix_categories_parent_id', 'categories', ['parent_id'])

    # ====================
    # VENDORS
    # ====================
    op.create_table(
        'vendors',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('legal_name', sa.String(200), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('gst_number', sa.String(15), nullable=True, unique=True),
        sa.Column('pan_number', sa.String(10), nullable=True, unique=True),
        sa.Column('status', sa.String(50), server_default='PENDING', nullable=False,
                  comment='PENDING, ACTIVE, SUSPENDED, REJECTED'),
        *timestamps(),
    )
    op.create_index('ix_vendors_email', 'vendors', ['email'], unique=True)
    op.create_index('ix_vendors_status', 'vendors', ['status'])
    op.create_index('ix_vendors_created_at', 'vendors', ['created_at'])

    op.create_table(
        'vendor_addresses',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(50), server_default='BUSINESS', nullable=False),
        sa.Column('line1', sa.String(255), nullable=False),
        sa.Column('line2', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('state', sa.String(100), nullable=False),
        sa.Column('country', sa.String(50), server_default='India'),
        sa.Column('postal_code', sa.String(10), nullable=False),
        sa.Column('is_default', sa.Boolean, server_default='false'),
        *timestamps(),
    )
    op.create_index('ix_vendor_addresses_vendor_id', 'vendor_addresses', ['vendor_id'])

    op.create_table(
        'vendor_bank_accounts',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('account_holder', sa.String(200), nullable=False),
        sa.Column('account_number', sa.String(30), nullable=False),
        sa.Column('ifsc', sa.String(11), nullable=False),
        sa.Column('bank_name', sa.String(100), nullable=False),
        sa.Column('branch', sa.String(100), nullable=True),
        sa.Column('status', sa.String(50), server_default='UNVERIFIED', nullable=False),
        *timestamps(),
    )
    op.create_index('ix_vendor_bank_accounts_vendor_id', 'vendor_bank_accounts', ['vendor_id'])

    op.create_table(
        'vendor_kyc',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('doc_type', sa.String(50), nullable=False),
        sa.Column('doc_url', sa.String(500), nullable=False),
        sa.Column('status', sa.String(50), server_default='PENDING', nullable=False,
                  comment='PENDING, APPROVED, REJECTED'),
        sa.Column('remarks', sa.Text, nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_vendor_kyc_vendor_id', 'vendor_kyc', ['vendor_id'])
    op.create_index('ix_vendor_kyc_status', 'vendor_kyc', ['status'])
    op.create_index('ix_vendor_kyc_created_at', 'vendor_kyc', ['created_at'])

    op.create_table(
        'vendor_settings',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('auto_payout', sa.Boolean, server_default='false'),
        sa.Column('default_commission_type', sa.String(50), server_default='PERCENTAGE', nullable=False),
        sa.Column('default_commission_value', sa.Numeric(14, 2), server_default='5', nullable=False),
        *timestamps(),
    )

    op.create_table(
        'vendor_issues',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('status', sa.String(50), server_default='OPEN', nullable=False),
        *timestamps(),
    )
    op.create_index('ix_vendor_issues_vendor_id', 'vendor_issues', ['vendor_id'])

    op.create_table(
        'vendor_portal_users',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('full_name', sa.String(200), nullable=True),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true'),
        sa.Column('must_change_password', sa.Boolean, server_default='true'),
        *timestamps(),
    )
    op.create_index('ix_vendor_portal_users_vendor_id', 'vendor_portal_users', ['vendor_id'])

    # ====================
    # PRODUCTS (category reference only)
    # ====================
    op.create_table(
        'products',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('sku', sa.String(50), nullable=True, unique=True),
        sa.Column('category_id', UUID(as_uuid=True), sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True),
        sa.Column('vendor_id', UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_active', sa.Boolean, server_default='true'),
        *timestamps(),
    )
    op.create_index('ix_products_category_id', 'products', ['category_id'])

    # ====================
    # COMMISSION RULES
    # ====================
    op.create_table(
        'commission_rules',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category_id', UUID(as_uuid=True), sa.ForeignKey('categories.id', ondelete='CASCADE'),
                  nullable=True, comment='NULL means vendor-wide rule'),
        sa.Column('type', sa.String(50), server_default='PERCENTAGE', nullable=False),
        sa.Column('value', sa.Numeric(14, 2), nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true'),
        *timestamps(),
    )
    op.create_index('ix_commission_rules_vendor_category', 'commission_rules', ['vendor_id', 'category_id'])

    # ====================
    # PLATFORM SETTINGS
    # ====================
    op.create_table(
        'platform_settings',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('key', sa.String(100), nullable=False, unique=True),
        sa.Column('value', JSONB, nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        *timestamps(),
    )

    # ====================
    # SETTLEMENT
    # ====================
    op.create_table(
        'vendor_sales',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category_id', UUID(as_uuid=True), sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True),
        sa.Column('order_reference', sa.String(50), nullable=True),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=False),
        *timestamps(),
    )
    op.create_index('ix_vendor_sales_vendor_sold_at', 'vendor_sales', ['vendor_id', 'sold_at'])

    op.create_table(
        'vendor_statements',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('period_start', sa.Date, nullable=False),
        sa.Column('period_end', sa.Date, nullable=False),
        sa.Column('total_sales', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('total_fees', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('net_amount', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('sales_count', sa.Integer, server_default='0', nullable=False),
        sa.Column('status', sa.String(50), server_default='DRAFT', nullable=False, comment='DRAFT, FINALIZED'),
        sa.Column('requires_review', sa.Boolean, server_default='false', nullable=False),
        sa.Column('finalized_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_vendor_statements_vendor_period', 'vendor_statements',
                    ['vendor_id', 'period_start', 'period_end'])
    op.create_index('ix_vendor_statements_period_end', 'vendor_statements', ['period_end'])
    op.create_index('ix_vendor_statements_status', 'vendor_statements', ['status'])

    op.create_table(
        'payouts',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('statement_id', UUID(as_uuid=True), sa.ForeignKey('vendor_statements.id', ondelete='RESTRICT'),
                  nullable=True),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', sa.String(50), server_default='INITIATED', nullable=False,
                  comment='INITIATED, COMPLETED, FAILED'),
        sa.Column('reference', sa.String(100), nullable=True),
        sa.Column('batch_reference', sa.String(50), nullable=True),
        sa.Column('failure_reason', sa.Text, nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_payouts_vendor_id', 'payouts', ['vendor_id'])
    op.create_index('ix_payouts_status', 'payouts', ['status'])
    op.create_index('ix_payouts_batch_reference', 'payouts', ['batch_reference'])
    # At most one non-FAILED payout per statement
    op.create_index(
        'uq_payouts_active_statement',
        'payouts',
        ['statement_id'],
        unique=True,
        postgresql_where=sa.text("status <> 'FAILED'"),
    )


def downgrade():
    """Drop settlement schema"""
    op.drop_table('payouts')
    op.drop_table('vendor_statements')
    op.drop_table('vendor_sales')
    op.drop_table('platform_settings')
    op.drop_table('commission_rules')
    op.drop_table('products')
    op.drop_table('vendor_portal_users')
    op.drop_table('vendor_issues')
    op.drop_table('vendor_settings')
    op.drop_table('vendor_kyc')
    op.drop_table('vendor_bank_accounts')
    op.drop_table('vendor_addresses')
    op.drop_table('vendors')
    op.drop_table('categories')
