"""Initial bakery schema

Revision ID: 3b9d2f61a7c4
Revises:
Create Date: 2026-10-19 09:12:04.118230

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3b9d2f61a7c4'
down_revision = None
branch_labels = None
depends_on = None

QTY = sa.Numeric(18, 6)


def upgrade():
    op.create_table(
        'bakery',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bakery_slug', 'bakery', ['slug'], unique=True)

    op.create_table(
        'vendor',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bakery_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=200), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['bakery_id'], ['bakery.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bakery_id', 'name', name='uq_vendor_bakery_name'),
    )
    op.create_index('ix_vendor_bakery_id', 'vendor', ['bakery_id'])

    op.create_table(
        'unit_conversion',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('from_unit', sa.String(length=20), nullable=False),
        sa.Column('to_unit', sa.String(length=20), nullable=False),
        sa.Column('factor', sa.Numeric(24, 12), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.CheckConstraint('factor > 0', name='ck_unit_conversion_factor_positive'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('from_unit', 'to_unit', name='uq_unit_conversion_pair'),
    )
    op.create_index('ix_unit_conversion_from_unit', 'unit_conversion', ['from_unit'])

    op.create_table(
        'ingredient',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bakery_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False),
        sa.Column('cost_per_unit', QTY, nullable=False),
        sa.Column('current_qty', QTY, nullable=False),
        sa.Column('low_stock_threshold', QTY, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['bakery_id'], ['bakery.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bakery_id', 'name', name='uq_ingredient_bakery_name'),
    )
    op.create_index('ix_ingredient_bakery_id', 'ingredient', ['bakery_id'])
    op.create_index('ix_ingredient_name', 'ingredient', ['name'])

    op.create_table(
        'recipe',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bakery_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('yield_qty', QTY, nullable=False),
        sa.Column('yield_unit', sa.String(length=20), nullable=False),
        sa.Column('total_cost', QTY, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['bakery_id'], ['bakery.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bakery_id', 'name', name='uq_recipe_bakery_name'),
    )
    op.create_index('ix_recipe_bakery_id', 'recipe', ['bakery_id'])
    op.create_index('ix_recipe_name', 'recipe', ['name'])

    op.create_table(
        'recipe_section',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recipe_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('instructions', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipe.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_recipe_section_recipe_id', 'recipe_section', ['recipe_id'])

    op.create_table(
        'recipe_section_ingredient',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('section_id', sa.Integer(), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), nullable=False),
        sa.Column('quantity', QTY, nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False),
        sa.Column('preparation', sa.String(length=200), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['section_id'], ['recipe_section.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['ingredient_id'], ['ingredient.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_recipe_section_ingredient_section_id', 'recipe_section_ingredient', ['section_id'])
    op.create_index('ix_recipe_section_ingredient_ingredient_id', 'recipe_section_ingredient', ['ingredient_id'])

    op.create_table(
        'production_sheet',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bakery_id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('scheduled_for', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('completed', sa.Boolean(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('completed_by', sa.String(length=100), nullable=True),
        sa.Column('snapshot_data', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['bakery_id'], ['bakery.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_production_sheet_bakery_id', 'production_sheet', ['bakery_id'])
    op.create_index('ix_production_sheet_completed', 'production_sheet', ['completed'])

    op.create_table(
        'production_sheet_recipe',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('production_sheet_id', sa.Integer(), nullable=False),
        sa.Column('recipe_id', sa.Integer(), nullable=False),
        sa.Column('scale', QTY, nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['production_sheet_id'], ['production_sheet.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipe.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('production_sheet_id', 'recipe_id', name='uq_sheet_recipe'),
    )
    op.create_index('ix_production_sheet_recipe_production_sheet_id', 'production_sheet_recipe',
                    ['production_sheet_id'])
    op.create_index('ix_production_sheet_recipe_recipe_id', 'production_sheet_recipe', ['recipe_id'])

    op.create_table(
        'inventory_lot',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bakery_id', sa.Integer(), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), nullable=False),
        sa.Column('purchase_qty', QTY, nullable=False),
        sa.Column('purchase_unit', sa.String(length=20), nullable=False),
        sa.Column('remaining_qty', QTY, nullable=False),
        sa.Column('cost_per_unit', QTY, nullable=False),
        sa.Column('purchased_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('vendor_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('remaining_qty >= 0', name='ck_lot_remaining_non_negative'),
        sa.CheckConstraint('remaining_qty <= purchase_qty', name='ck_lot_remaining_le_purchase'),
        sa.ForeignKeyConstraint(['bakery_id'], ['bakery.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['ingredient_id'], ['ingredient.id']),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendor.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_lot_bakery_id', 'inventory_lot', ['bakery_id'])
    op.create_index('ix_lot_fifo', 'inventory_lot', ['ingredient_id', 'purchased_at', 'id'])

    op.create_table(
        'inventory_transaction',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bakery_id', sa.Integer(), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), nullable=False),
        sa.Column('lot_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('quantity', QTY, nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False),
        sa.Column('production_sheet_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['bakery_id'], ['bakery.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['ingredient_id'], ['ingredient.id']),
        sa.ForeignKeyConstraint(['lot_id'], ['inventory_lot.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['production_sheet_id'], ['production_sheet.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_transaction_bakery_id', 'inventory_transaction', ['bakery_id'])
    op.create_index('ix_inventory_transaction_ingredient_id', 'inventory_transaction', ['ingredient_id'])
    op.create_index('ix_inventory_transaction_type', 'inventory_transaction', ['type'])
    op.create_index('ix_inventory_transaction_production_sheet_id', 'inventory_transaction',
                    ['production_sheet_id'])
    op.create_index('ix_inventory_transaction_created_at', 'inventory_transaction', ['created_at'])

    op.create_table(
        'inventory_usage',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('lot_id', sa.Integer(), nullable=False),
        sa.Column('quantity', QTY, nullable=False),
        sa.ForeignKeyConstraint(['transaction_id'], ['inventory_transaction.id']),
        sa.ForeignKeyConstraint(['lot_id'], ['inventory_lot.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_usage_transaction_id', 'inventory_usage', ['transaction_id'])
    op.create_index('ix_inventory_usage_lot_id', 'inventory_usage', ['lot_id'])


def downgrade():
    op.drop_table('inventory_usage')
    op.drop_table('inventory_transaction')
    op.drop_table('inventory_lot')
    op.drop_table('production_sheet_recipe')
    op.drop_table('production_sheet')
    op.drop_table('recipe_section_ingredient')
    op.drop_table('recipe_section')
    op.drop_table('recipe')
    op.drop_table('ingredient')
    op.drop_table('unit_conversion')
    op.drop_table('vendor')
    op.drop_table('bakery')
