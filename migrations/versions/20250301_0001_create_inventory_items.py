"""create inventory items table

Revision ID: 20250301_0001
Revises:
Create Date: 2025-03-01 00:00:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20250301_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("location", sa.String(length=16), nullable=False),
        sa.Column(
            "quantity",
            sa.String(length=64),
            nullable=False,
            server_default="1",
        ),
        sa.Column(
            "unit",
            sa.String(length=64),
            nullable=False,
            server_default="",
        ),
        sa.Column("confidence", sa.Integer(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column(
            "added_date",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "location in ('Fridge','Cabinet')",
            name="ck_inventory_items_location",
        ),
        sa.CheckConstraint(
            "confidence is null or (confidence >= 0 and confidence <= 100)",
            name="ck_inventory_items_confidence",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index(
        "ix_inventory_items_name_lower",
        "inventory_items",
        [sa.text("lower(name)")],
    )
    op.create_index(
        "ix_inventory_items_location",
        "inventory_items",
        ["location"],
    )


def downgrade() -> None:
    op.drop_index("ix_inventory_items_location", table_name="inventory_items")
    op.drop_index("ix_inventory_items_name_lower", table_name="inventory_items")
    op.drop_table("inventory_items")
