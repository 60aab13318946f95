"""Create snippets and packages tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the `snippets` and `packages` tables with their indexes.
How:   SQLite AUTOINCREMENT primary keys, so ids are never reused after a
       delete (snippet mirror files are named after the id).

Rollback: downgrade() drops both tables (all stored rows are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "snippets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("language", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=True),
        # Authoritative content; snippets/<id>.<ext> mirrors it
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("online_id", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )
    op.create_index("idx_snippets_language", "snippets", ["language"])
    op.create_index("idx_snippets_category", "snippets", ["category"])

    op.create_table(
        "packages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("version", sa.String(), nullable=False, server_default=sa.text("'1.0.0'")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("author", sa.String(), nullable=False, server_default=sa.text("'N/A'")),
        sa.Column("language", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("package_path", sa.String(), nullable=False),
        sa.Column("manifest_path", sa.String(), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("online_id", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )
    op.create_index("idx_packages_language", "packages", ["language"])
    op.create_index("idx_packages_category", "packages", ["category"])


def downgrade() -> None:
    op.drop_index("idx_packages_category", table_name="packages")
    op.drop_index("idx_packages_language", table_name="packages")
    op.drop_table("packages")

    op.drop_index("idx_snippets_category", table_name="snippets")
    op.drop_index("idx_snippets_language", table_name="snippets")
    op.drop_table("snippets")
