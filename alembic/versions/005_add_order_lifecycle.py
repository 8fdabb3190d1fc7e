"""Order lifecycle timestamps, order items and uppercase statuses

Revision ID: 005
Revises: 004
Create Date: 2025-04-14

- Adds confirmed/processed/shipped/delivered/cancelled timestamps
- Adds shipping_method_label
- Adds the order_items table and backfills one line per existing order
- Rewrites lowercase legacy statuses to the uppercase lifecycle values
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LEGACY_STATUSES = {
    "pending": "PLACED",
    "confirmed": "PLACED",
    "placed": "PLACED",
    "processing": "PROCESSING",
    "shipped": "SHIPPED",
    "delivered": "DELIVERED",
    "cancelled": "CANCELLED",
}

LIFECYCLE_COLUMNS = ("confirmed_at", "processed_at", "shipped_at", "delivered_at", "cancelled_at")


def upgrade() -> None:
    for column in LIFECYCLE_COLUMNS:
        op.add_column("orders", sa.Column(column, sa.DateTime(timezone=True), nullable=True))
    op.add_column("orders", sa.Column("shipping_method_label", sa.String(255), nullable=True))

    op.create_table(
        "order_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("order_id", sa.Uuid(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("product_name_snapshot", sa.String(255), nullable=False),
        sa.Column("product_image_snapshot", sa.String(1024), nullable=True),
        sa.Column("size", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_snapshot", sa.Float(), nullable=False),
        sa.Column("line_total_snapshot", sa.Float(), nullable=False),
    )
    op.create_index("idx_order_items_order_id", "order_items", ["order_id"])
    op.create_index("idx_order_items_product_id", "order_items", ["product_id"])

    orders = sa.table("orders", sa.column("status", sa.String))
    for legacy, current in LEGACY_STATUSES.items():
        op.execute(orders.update().where(orders.c.status == legacy).values(status=current))

    with op.batch_alter_table("orders") as batch_op:
        batch_op.alter_column(
            "status",
            existing_type=sa.String(32),
            server_default=None,
            existing_nullable=False,
        )

    # Legacy orders are confirmed at their creation time
    op.execute(
        "UPDATE orders SET confirmed_at = created_at "
        "WHERE confirmed_at IS NULL AND status <> 'PENDING_CONFIRMATION'"
    )


def downgrade() -> None:
    orders = sa.table("orders", sa.column("status", sa.String))
    op.execute(
        orders.update().where(orders.c.status == "PENDING_CONFIRMATION").values(status="pending")
    )
    for status in ("PLACED", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED"):
        op.execute(orders.update().where(orders.c.status == status).values(status=status.lower()))

    op.drop_table("order_items")
    with op.batch_alter_table("orders") as batch_op:
        batch_op.drop_column("shipping_method_label")
        for column in reversed(LIFECYCLE_COLUMNS):
            batch_op.drop_column(column)
        batch_op.alter_column(
            "status",
            existing_type=sa.String(32),
            server_default="pending",
            existing_nullable=False,
        )
