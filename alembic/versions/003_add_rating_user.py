"""Tie product ratings to the rating user

Revision ID: 003
Revises: 002
Create Date: 2025-02-03

Ratings written before this revision have no author. They are given
user_id 0 and then removed, since they cannot satisfy the foreign key
and would block the one-rating-per-user constraint.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("product_ratings", sa.Column("user_id", sa.Integer(), nullable=True))
    op.execute("UPDATE product_ratings SET user_id = 0 WHERE user_id IS NULL")
    op.execute("DELETE FROM product_ratings WHERE user_id = 0")

    with op.batch_alter_table("product_ratings") as batch_op:
        batch_op.alter_column("user_id", existing_type=sa.Integer(), nullable=False)
        batch_op.create_foreign_key(
            "fk_product_ratings_user_id",
            "users",
            ["user_id"],
            ["id"],
            ondelete="CASCADE",
        )
        batch_op.create_unique_constraint(
            "product_ratings_product_id_user_id", ["product_id", "user_id"]
        )


def downgrade() -> None:
    with op.batch_alter_table("product_ratings") as batch_op:
        batch_op.drop_constraint("product_ratings_product_id_user_id", type_="unique")
        batch_op.drop_constraint("fk_product_ratings_user_id", type_="foreignkey")
        batch_op.drop_column("user_id")
