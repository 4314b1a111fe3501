"""Create seller_cache table

Revision ID: 001_seller_cache
Revises:
Create Date: 2026-10-17

Adds:
  - seller_cache (seller_id PK, verdict, confidence, evidence, details, last_updated)
  - idx_seller_cache_last_updated for the expiry sweep
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001_seller_cache"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "seller_cache",
        sa.Column("seller_id", sa.String(), primary_key=True),
        sa.Column("is_target_seller", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("confidence", sa.Float(), nullable=False, server_default="0"),
        sa.Column("evidence", sa.JSON(), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_seller_cache_last_updated", "seller_cache", ["last_updated"])


def downgrade() -> None:
    op.drop_index("idx_seller_cache_last_updated", table_name="seller_cache")
    op.drop_table("seller_cache")
