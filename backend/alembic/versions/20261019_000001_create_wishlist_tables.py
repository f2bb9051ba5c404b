"""Create wishlist tables (stores, wishlist_entries, conversion_records)

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 10:00:00.000000

WHAT:
    Creates the wishlist schema:
    - stores: installed shops and their Admin API access tokens
    - wishlist_entries: one row per (store, customer, product)
    - conversion_records: the one-time AI score per wishlist entry

WHY:
    Unique constraints close the concurrent-add race at the storage layer:
    uq_wishlist_entry prevents duplicate entries and uq_conversion_wishlist
    prevents a second score for the same entry.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_000001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    store_status = sa.Enum("installed", "uninstalled", name="storestatusenum")

    op.create_table(
        "stores",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("shop", sa.String(), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("status", store_status, nullable=False, server_default="installed"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_stores_shop", "stores", ["shop"], unique=True)

    op.create_table(
        "wishlist_entries",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("store_id", sa.Uuid(), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.String(), nullable=False),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("store_id", "customer_id", "product_id", name="uq_wishlist_entry"),
    )
    op.create_index("ix_wishlist_entries_store_id", "wishlist_entries", ["store_id"])

    op.create_table(
        "conversion_records",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "wishlist_id",
            sa.Uuid(),
            sa.ForeignKey("wishlist_entries.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("order_ids", sa.JSON(), nullable=False),
        sa.Column("order_history", sa.JSON(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("wishlist_id", name="uq_conversion_wishlist"),
        sa.CheckConstraint("score >= 0 AND score <= 100", name="ck_conversion_score_range"),
    )


def downgrade() -> None:
    op.drop_table("conversion_records")
    op.drop_index("ix_wishlist_entries_store_id", table_name="wishlist_entries")
    op.drop_table("wishlist_entries")
    op.drop_index("ix_stores_shop", table_name="stores")
    op.drop_table("stores")
    sa.Enum(name="storestatusenum").drop(op.get_bind(), checkfirst=True)
