"""create_store_records

Creates the durable key space for the entity stores:
  - store_records: one row per store name, holding that family's JSON array

Created conditionally so the migration can run against a database that
already received the table via db.create_all() at startup.

Revision ID: 5c1e9a7b2d40
Revises:
Create Date: 2026-10-19 09:12:44.120381
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '5c1e9a7b2d40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing = set(sa_inspect(bind).get_table_names())

    if "store_records" not in existing:
        op.create_table(
            "store_records",
            sa.Column("store_name", sa.String(length=80), nullable=False,
                      comment="e.g. project-storage"),
            sa.Column("payload", sa.Text(), nullable=False,
                      comment="JSON array of entity dicts"),
            sa.Column("item_count", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("store_name"),
        )


def downgrade():
    op.drop_table("store_records")
