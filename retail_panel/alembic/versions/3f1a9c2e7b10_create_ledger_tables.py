"""create products, product sizes, sales and sale lines

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-02-10
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f1a9c2e7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

product_status = sa.Enum("active", "inactive", name="product_status")


def upgrade() -> None:
    op.create_table(
        "products",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("sku", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(128), nullable=False),
        sa.Column("distributor", sa.String(255)),
        sa.Column("image", sa.String(512), nullable=False, server_default=""),
        sa.Column("cost_price", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("public_price", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("margin_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("margin_percentage", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_stock", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("status", product_status, nullable=False, server_default="active"),
        sa.Column("type", sa.String(32)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("stock >= 0", name="ck_product_stock_nonneg"),
        sa.CheckConstraint("cost_price >= 0", name="ck_product_cost_nonneg"),
        sa.CheckConstraint("public_price >= 0", name="ck_product_price_nonneg"),
    )
    op.create_index("ix_products_type", "products", ["type"])

    op.create_table(
        "product_sizes",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "product_id",
            sa.BigInteger(),
            sa.ForeignKey("products.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("size", sa.String(32), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("product_id", "size", name="uq_product_size"),
        sa.CheckConstraint("stock >= 0", name="ck_product_size_stock_nonneg"),
    )
    op.create_index("ix_product_sizes_product_id", "product_sizes", ["product_id"])

    op.create_table(
        "sales",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_profit", sa.Numeric(14, 2), nullable=False),
        sa.Column("payment_method", sa.String(64), nullable=False),
        sa.Column("channel", sa.String(128), nullable=False),
        sa.Column("customer_name", sa.String(255)),
        sa.Column("customer_contact", sa.String(255)),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_by", sa.String(128)),
        sa.Column("external_order_id", sa.String(128)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("channel", "external_order_id", name="uq_sale_channel_external_order"),
    )
    op.create_index("ix_sales_date", "sales", ["date"])

    op.create_table(
        "sale_lines",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "sale_id",
            sa.BigInteger(),
            sa.ForeignKey("sales.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            sa.BigInteger(),
            sa.ForeignKey("products.id", ondelete="SET NULL"),
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("size", sa.String(32)),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("unit_cost", sa.Numeric(14, 2), nullable=False),
        sa.Column("subtotal", sa.Numeric(14, 2), nullable=False),
        sa.CheckConstraint("quantity >= 1", name="ck_sale_line_qty_pos"),
        sa.CheckConstraint("unit_cost >= 0", name="ck_sale_line_unit_cost_nonneg"),
    )
    op.create_index("ix_sale_lines_sale_id", "sale_lines", ["sale_id"])
    op.create_index("ix_sale_lines_product_id", "sale_lines", ["product_id"])


def downgrade() -> None:
    op.drop_index("ix_sale_lines_product_id", table_name="sale_lines")
    op.drop_index("ix_sale_lines_sale_id", table_name="sale_lines")
    op.drop_table("sale_lines")
    op.drop_index("ix_sales_date", table_name="sales")
    op.drop_table("sales")
    op.drop_index("ix_product_sizes_product_id", table_name="product_sizes")
    op.drop_table("product_sizes")
    op.drop_index("ix_products_type", table_name="products")
    op.drop_table("products")
    product_status.drop(op.get_bind(), checkfirst=True)
