"""Catalog baseline: coffee items, search history cache, and notes."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261004_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "coffee",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("origin", sa.String(), nullable=True),
        sa.Column("region", sa.String(), nullable=True),
        sa.Column("tasting_notes", sa.Text(), nullable=True),
        sa.Column("processing", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("stock_status", sa.String(), nullable=True),
        sa.Column("first_scraped_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_scraped_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("1"), nullable=False),
        sa.Column("description_embedding", sa.LargeBinary(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("url"),
    )
    op.create_index("idx_coffee_is_active", "coffee", ["is_active"], unique=False)

    op.create_table(
        "search_history",
        sa.Column("query_text", sa.String(), nullable=False),
        sa.Column("embedding", sa.LargeBinary(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("query_text"),
    )
    op.create_index(
        "ix_search_history_created_at",
        "search_history",
        ["created_at"],
        unique=False,
    )

    op.create_table(
        "my_notes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("coffee_url", sa.String(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("purchased_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["coffee_url"], ["coffee.url"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_my_notes_coffee_url", "my_notes", ["coffee_url"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_my_notes_coffee_url", table_name="my_notes")
    op.drop_table("my_notes")
    op.drop_index("ix_search_history_created_at", table_name="search_history")
    op.drop_table("search_history")
    op.drop_index("idx_coffee_is_active", table_name="coffee")
    op.drop_table("coffee")
