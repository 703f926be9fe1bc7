"""initial checkout schema

Revision ID: 5f2a9c1d7e40
Revises:
Create Date: 2026-10-18 10:12:31.482113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5f2a9c1d7e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name, nullable=False, **kw):
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable, **kw)


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("can_login", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)

    op.create_table(
        "school",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("discount_prefix", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "buyer",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False, unique=True),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("address_line1", sa.String(), nullable=True),
        sa.Column("reference", sa.String(), nullable=True),
        sa.Column("district", sa.String(), nullable=True),
        sa.Column("school_id", sa.Integer(), sa.ForeignKey("school.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "product",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("sale_code", sa.String(), nullable=True),
        sa.Column("visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
    )

    op.create_table(
        "pack",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("sale_code", sa.String(), nullable=True),
        sa.Column("visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "packitem",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pack_id", sa.Integer(), sa.ForeignKey("pack.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("product.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint("quantity >= 1", name="ck_packitem_quantity_positive"),
    )
    op.create_index("ix_packitem_pack_id", "packitem", ["pack_id"])

    op.create_table(
        "price_list",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("currency", sa.String(), nullable=False, server_default="PEN"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "price_list_item",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("price_list_id", sa.Integer(), sa.ForeignKey("price_list.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("product.id"), nullable=True),
        sa.Column("pack_id", sa.Integer(), sa.ForeignKey("pack.id"), nullable=True),
        _money("price"),
        sa.CheckConstraint(
            "(product_id IS NULL) <> (pack_id IS NULL)",
            name="ck_price_list_item_one_target",
        ),
    )
    op.create_index("ix_price_list_item_price_list_id", "price_list_item", ["price_list_id"])
    op.create_index("ix_price_list_item_product_id", "price_list_item", ["product_id"])
    op.create_index("ix_price_list_item_pack_id", "price_list_item", ["pack_id"])

    op.create_table(
        "discount",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(), nullable=False, unique=True),
        sa.Column("type", sa.String(), nullable=False, server_default="PERCENT"),
        _money("value"),
        sa.Column("currency", sa.String(), nullable=False, server_default="PEN"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("starts_at", sa.DateTime(), nullable=True),
        sa.Column("ends_at", sa.DateTime(), nullable=True),
        _money("min_subtotal", nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("uses_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("scope", sa.String(), nullable=False, server_default="ALL"),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("product.id"), nullable=True),
        sa.Column("price_list_id", sa.Integer(), sa.ForeignKey("price_list.id"), nullable=True),
        sa.Column("school_id", sa.Integer(), sa.ForeignKey("school.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_discount_code", "discount", ["code"])

    op.create_table(
        "order",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("buyer_id", sa.Integer(), sa.ForeignKey("buyer.id"), nullable=False),
        sa.Column("customer_name", sa.String(), nullable=False, server_default=""),
        sa.Column("customer_email", sa.String(), nullable=False, server_default=""),
        sa.Column("customer_phone", sa.String(), nullable=False, server_default=""),
        sa.Column("shipping_address", sa.String(), nullable=False),
        sa.Column("shipping_reference", sa.String(), nullable=True),
        sa.Column("shipping_district", sa.String(), nullable=True),
        sa.Column("shipping_notes", sa.String(), nullable=True),
        sa.Column("currency", sa.String(), nullable=False, server_default="PEN"),
        _money("subtotal"),
        _money("discount_amount", server_default="0"),
        _money("total"),
        sa.Column("discount_code", sa.String(), nullable=True),
        sa.Column("discount_id", sa.Integer(), sa.ForeignKey("discount.id"), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="PAYMENT_PENDING"),
        sa.Column("fulfillment_status", sa.String(), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("total >= 0", name="ck_order_total_non_negative"),
    )
    op.create_index("ix_order_buyer_id", "order", ["buyer_id"])
    op.create_index("ix_order_status", "order", ["status"])

    op.create_table(
        "order_item",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False),
        sa.Column("kind", sa.String(), nullable=False, server_default="PRODUCT"),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("product.id"), nullable=True),
        sa.Column("pack_id", sa.Integer(), sa.ForeignKey("pack.id"), nullable=True),
        sa.Column("title_snapshot", sa.String(), nullable=False),
        sa.Column("sale_code_snapshot", sa.String(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        _money("unit_list_price"),
        _money("unit_price"),
        _money("line_total"),
    )
    op.create_index("ix_order_item_order_id", "order_item", ["order_id"])

    op.create_table(
        "payment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False),
        sa.Column("provider", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="CREATED"),
        _money("amount"),
        sa.Column("currency", sa.String(), nullable=False, server_default="PEN"),
        sa.Column("preference_id", sa.String(), nullable=True),
        sa.Column("raw", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_payment_order_id", "payment", ["order_id"])
    op.create_index("ix_payment_preference_id", "payment", ["preference_id"])

    op.create_table(
        "stock_reservation",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("product.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="ACTIVE"),
        sa.Column("release_reason", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("released_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_stock_reservation_order_id", "stock_reservation", ["order_id"])
    op.create_index("ix_stock_reservation_product_id", "stock_reservation", ["product_id"])
    op.create_index("ix_stock_reservation_status", "stock_reservation", ["status"])

    op.create_table(
        "discount_redemption",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("discount_id", sa.Integer(), sa.ForeignKey("discount.id"), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("buyer_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        _money("amount"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_discount_redemption_discount_id", "discount_redemption", ["discount_id"])
    op.create_index("ix_discount_redemption_order_id", "discount_redemption", ["order_id"])
    op.create_index("ix_discount_redemption_buyer_id", "discount_redemption", ["buyer_id"])

    op.create_table(
        "order_event",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False, server_default="order_placed"),
        sa.Column("label", sa.String(), nullable=False),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_order_event_order_created", "order_event", ["order_id", "created_at"])


def downgrade():
    op.drop_table("order_event")
    op.drop_table("discount_redemption")
    op.drop_table("stock_reservation")
    op.drop_table("payment")
    op.drop_table("order_item")
    op.drop_table("order")
    op.drop_table("discount")
    op.drop_table("price_list_item")
    op.drop_table("price_list")
    op.drop_table("packitem")
    op.drop_table("pack")
    op.drop_table("product")
    op.drop_table("buyer")
    op.drop_table("school")
    op.drop_table("user")
