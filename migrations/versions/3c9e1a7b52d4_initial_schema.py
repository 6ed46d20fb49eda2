"""initial schema

Revision ID: 3c9e1a7b52d4
Revises:
Create Date: 2026-10-17 09:12:44.518203

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c9e1a7b52d4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create profiles, catalog, segments, rentals, nonces and upload jobs."""
    op.create_table(
        "profiles",
        sa.Column("wallet_address", sa.String(length=42), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("wallet_address"),
    )
    op.create_table(
        "auth_nonces",
        sa.Column("wallet_address", sa.String(length=42), nullable=False),
        sa.Column("challenge", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("wallet_address"),
    )
    op.create_table(
        "catalog_items",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("media_type", sa.String(length=10), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("artist", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("cover_url", sa.Text(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=False),
        sa.Column("price_wei", sa.String(length=78), nullable=False),
        sa.Column("entry_point_id", sa.Text(), nullable=True),
        sa.Column("entry_point_tx_hash", sa.Text(), nullable=True),
        sa.Column("chain_key", sa.String(length=66), nullable=False),
        sa.Column("created_by", sa.String(length=42), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_catalog_items_chain_key", "catalog_items", ["chain_key"], unique=True)
    op.create_table(
        "segments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("catalog_item_id", sa.String(length=36), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("data_entity_id", sa.Text(), nullable=False),
        sa.Column("data_tx_hash", sa.Text(), nullable=True),
        sa.Column("metadata_entity_id", sa.Text(), nullable=False),
        sa.Column("next_metadata_id", sa.Text(), nullable=True),
        sa.Column("size_bytes", sa.Integer(), nullable=False),
        sa.Column("duration_seconds", sa.Float(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["catalog_item_id"], ["catalog_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("catalog_item_id", "sequence", name="uq_segments_item_sequence"),
        sa.UniqueConstraint("metadata_entity_id"),
    )
    op.create_index("ix_segments_catalog_item_id", "segments", ["catalog_item_id"])
    op.create_table(
        "rentals",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("wallet_address", sa.String(length=42), nullable=False),
        sa.Column("catalog_item_id", sa.String(length=36), nullable=False),
        sa.Column("tx_hash", sa.String(length=66), nullable=False),
        sa.Column("chain_rental_id", sa.String(length=66), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("rental_duration_days", sa.Integer(), nullable=False),
        sa.Column("paid_wei", sa.String(length=78), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("cloned_entry_point_id", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["wallet_address"], ["profiles.wallet_address"]),
        sa.ForeignKeyConstraint(["catalog_item_id"], ["catalog_items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tx_hash"),
    )
    op.create_index("ix_rentals_wallet_address", "rentals", ["wallet_address"])
    op.create_table(
        "upload_jobs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("wallet_address", sa.String(length=42), nullable=False),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("catalog_item_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["catalog_item_id"], ["catalog_items.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_upload_jobs_wallet_address", "upload_jobs", ["wallet_address"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index("ix_upload_jobs_wallet_address", table_name="upload_jobs")
    op.drop_table("upload_jobs")
    op.drop_index("ix_rentals_wallet_address", table_name="rentals")
    op.drop_table("rentals")
    op.drop_index("ix_segments_catalog_item_id", table_name="segments")
    op.drop_table("segments")
    op.drop_index("ix_catalog_items_chain_key", table_name="catalog_items")
    op.drop_table("catalog_items")
    op.drop_table("auth_nonces")
    op.drop_table("profiles")
