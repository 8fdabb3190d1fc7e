"""Add account moderation fields to users

Revision ID: 006
Revises: 005
Create Date: 2025-05-19

Adds block and suspension state, a login counter and timestamps.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("users", sa.Column("is_blocked", sa.Boolean(), server_default=sa.false(), nullable=False))
    op.add_column("users", sa.Column("blocked_at", sa.DateTime(timezone=True), nullable=True))
    op.add_column("users", sa.Column("block_reason", sa.String(500), nullable=True))
    op.add_column("users", sa.Column("suspended_until", sa.DateTime(timezone=True), nullable=True))
    op.add_column("users", sa.Column("suspension_reason", sa.String(500), nullable=True))
    op.add_column("users", sa.Column("login_count", sa.Integer(), server_default="0", nullable=False))
    op.add_column(
        "users",
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.add_column(
        "users",
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_is_blocked", "users", ["is_blocked"])
    op.create_index("ix_users_suspended_until", "users", ["suspended_until"])


def downgrade() -> None:
    op.drop_index("ix_users_suspended_until", table_name="users")
    op.drop_index("ix_users_is_blocked", table_name="users")
    with op.batch_alter_table("users") as batch_op:
        for column in (
            "updated_at",
            "created_at",
            "login_count",
            "suspension_reason",
            "block_reason",
            "suspended_until",
            "blocked_at",
            "is_blocked",
        ):
            batch_op.drop_column(column)
