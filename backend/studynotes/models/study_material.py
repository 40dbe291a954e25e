"""
StudyNotes Backend — StudyMaterial SQLAlchemy Model
=====================================================

What:  ORM model for the `study_materials` table (uploaded PDFs/images in the vault).
Who:   Used only by the DocumentStore and by Alembic.

Invariants:
    - file_url points at a binary in the uploads directory for the lifetime
      of the row; deleting the row removes that binary (best effort)
    - Rows are never updated in place
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from studynotes.database import Base


class StudyMaterial(Base):
    """An uploaded file with its extracted-content summary and stored-file reference."""

    __tablename__ = "study_materials"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # LLM-suggested, 2-3 words
    title: Mapped[str] = mapped_column(String(255), nullable=False)

    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)

    # Display name shown in the vault; defaults to the title
    filename: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # "pdf" or "image"
    file_type: Mapped[str] = mapped_column(String(16), nullable=False)

    file_url: Mapped[str] = mapped_column(String(1024), nullable=False)

    summary: Mapped[str] = mapped_column(Text, nullable=False)

    # Date-only ISO string, e.g. "2024-01-15"
    date_uploaded: Mapped[str] = mapped_column(String(10), nullable=False)

    # Sort key for "newest upload first"; date_uploaded alone has day granularity
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_study_materials_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<StudyMaterial(id={self.id}, title='{self.title}', file_type='{self.file_type}')>"
