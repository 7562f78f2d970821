"""Watchlist entries table.

Revision ID: 0001_watchlist_entries
Revises:
Create Date: 2026-10-19 00:00:00.000000+00:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_watchlist_entries"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "watchlist_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("token_address", sa.String(128), nullable=False),
        sa.Column("chain_id", sa.String(32), nullable=False),
        sa.Column("subscriber_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("symbol", sa.String(64), nullable=False),
        sa.Column("drop_threshold", sa.Float(), nullable=False),
        sa.Column("reference_price", sa.Float(), nullable=False),
        sa.Column("initial_price", sa.Float(), nullable=False),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "token_address",
            "chain_id",
            "subscriber_id",
            name="uq_watchlist_entries_token_chain_subscriber",
        ),
    )
    op.create_index("idx_watchlist_entries_subscriber", "watchlist_entries", ["subscriber_id"])


def downgrade() -> None:
    op.drop_index("idx_watchlist_entries_subscriber", table_name="watchlist_entries")
    op.drop_table("watchlist_entries")
