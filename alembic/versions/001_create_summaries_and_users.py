"""Create summaries and users tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Creates `summaries` (summary history) and `users` (signed-in identities).
How:   Portable column types (sa.Uuid, timezone-aware DateTime, JSON) so the same
       migration runs on PostgreSQL and SQLite.

Rollback: downgrade() drops both tables (all history is lost).
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
        "summaries",
        sa.Column("id", sa.Uuid(), nullable=False),
        # NULL owner: global record created by a guest or anonymous caller
        sa.Column("owner_id", sa.String(64), nullable=True),
        sa.Column("original_text", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        # Ordered list of key point strings
        sa.Column("key_points", sa.JSON(), nullable=False),
        sa.Column("source", sa.String(32), nullable=False, server_default="text_input"),
        sa.Column("filename", sa.String(255), nullable=True),
        sa.Column("mime_type", sa.String(255), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("word_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("summary_word_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("key_points_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("schema_version", sa.String(16), nullable=False, server_default="2.0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    # History list: WHERE owner_id = :owner ORDER BY created_at DESC
    op.create_index(
        "idx_summaries_owner_created",
        "summaries",
        ["owner_id", "created_at"],
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("picture", sa.String(1024), nullable=True),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("provider_id", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "last_login",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("provider", "provider_id", name="uq_users_provider_identity"),
    )
    op.create_index("ix_users_email", "users", ["email"])


def downgrade() -> None:
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_index("idx_summaries_owner_created", table_name="summaries")
    op.drop_table("summaries")
