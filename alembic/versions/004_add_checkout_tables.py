"""Add buy-now sessions and orders

Revision ID: 004
Revises: 003
Create Date: 2025-03-10

Creates the checkout tables:
- buy_now_sessions: 24h single-product checkout drafts
- orders: one placed product with price, shipping, bargain and customer snapshots
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "buy_now_sessions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("product_image", sa.String(1024), nullable=True),
        sa.Column("selected_size", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer(), server_default="1", nullable=False),
        sa.Column("unit_price", sa.Float(), nullable=False),
        sa.Column("shipping_options", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_buy_now_sessions_user_id", "buy_now_sessions", ["user_id"])
    op.create_index("idx_buy_now_sessions_product_id", "buy_now_sessions", ["product_id"])
    op.create_index("idx_buy_now_sessions_status", "buy_now_sessions", ["status"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "session_id",
            sa.Uuid(),
            sa.ForeignKey("buy_now_sessions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("product_image", sa.String(1024), nullable=True),
        sa.Column("selected_size", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer(), server_default="1", nullable=False),
        sa.Column("unit_price_snapshot", sa.Float(), nullable=False),
        sa.Column("shipping_type", sa.String(50), nullable=False),
        sa.Column("shipping_charge_snapshot", sa.Float(), server_default="0", nullable=False),
        sa.Column("gift_box", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("gift_box_fee", sa.Float(), server_default="0", nullable=False),
        sa.Column("bargain_discount", sa.Float(), server_default="0", nullable=False),
        sa.Column("bargain_final_price", sa.Float(), nullable=True),
        sa.Column("bargain_chat_log", sa.JSON(), nullable=False),
        sa.Column("tax_amount", sa.Float(), server_default="0", nullable=False),
        sa.Column("subtotal", sa.Float(), nullable=False),
        sa.Column("total", sa.Float(), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_first_name", sa.String(255), nullable=False),
        sa.Column("customer_last_name", sa.String(255), nullable=False),
        sa.Column("customer_province", sa.String(255), nullable=False),
        sa.Column("customer_city", sa.String(255), nullable=False),
        sa.Column("customer_address", sa.Text(), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=False),
        sa.Column("status", sa.String(32), server_default="pending", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_orders_user_id", "orders", ["user_id"])
    op.create_index("idx_orders_product_id", "orders", ["product_id"])
    op.create_index("idx_orders_session_id", "orders", ["session_id"])
    op.create_index("idx_orders_status", "orders", ["status"])
    op.create_index("idx_orders_created_at", "orders", ["created_at"])


def downgrade() -> None:
    op.drop_table("orders")
    op.drop_table("buy_now_sessions")
