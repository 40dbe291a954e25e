"""Create notes, study_materials and profiles tables

Revision ID: 001
Revises: None
Create Date: 2024-06-10 00:00:00.000000+00:00

What:  Initial schema for the three record kinds.
How:   Portable column types (sa.Uuid, sa.JSON) so the same migration runs on
       PostgreSQL and SQLite. Ids are generated by the application.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "notes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("summary", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "content",
            sa.Text(),
            nullable=False,
            server_default=sa.text("''"),
            comment="Original or extracted text; empty when not retained",
        ),
        sa.Column("questions", sa.JSON(), nullable=False, comment="Ordered [{question, answer}] history"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_notes"),
    )
    op.create_index("idx_notes_created_at", "notes", [sa.text("created_at DESC")])

    op.create_table(
        "study_materials",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("original_filename", sa.String(255), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("file_type", sa.String(16), nullable=False),
        sa.Column("file_url", sa.String(1024), nullable=False, comment="Public URL of the stored binary"),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("date_uploaded", sa.String(10), nullable=False, comment="YYYY-MM-DD"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_study_materials"),
        sa.CheckConstraint("file_type IN ('pdf', 'image')", name="ck_study_materials_file_type"),
    )
    op.create_index("idx_study_materials_created_at", "study_materials", [sa.text("created_at DESC")])

    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("avatar_url", sa.String(1024), nullable=True),
        sa.Column("university", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("major", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("notification_preferences", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_profiles"),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_profiles_email", table_name="profiles")
    op.drop_table("profiles")
    op.drop_index("idx_study_materials_created_at", table_name="study_materials")
    op.drop_table("study_materials")
    op.drop_index("idx_notes_created_at", table_name="notes")
    op.drop_table("notes")
