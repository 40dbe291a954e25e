"""
StudyNotes Backend — Note SQLAlchemy Model
============================================

What:  ORM model representing the `notes` table.
Why:   Maps Python objects to database rows for type-safe database operations.
Who:   Used only by the DocumentStore and by Alembic for schema management.

Table Design Rationale:
    - UUID primary key: generated client-side so the store can return it
      without a second round trip
    - summary/content: TEXT, no artificial length limit; content may be "" when
      the caller chose not to retain the source text
    - questions: JSON array of {question, answer} pairs accumulated over a session
    - created_at: UTC, set once at insert and never patched

    Index on created_at DESC:
        Optimizes the most common query pattern: "show me my recent notes"
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from studynotes.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Note(Base):
    """
    A persisted text artifact with title, summary, original content and Q&A history.

    Lifecycle:
        1. Created on PDF upload, manual-text ingestion, or a direct POST /notes
        2. title/content/summary may be edited; created_at never changes
        3. Deleted by id (hard delete)
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier",
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        comment="Short title: user-provided, derived from filename, or LLM-suggested",
    )

    summary: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Summary produced by the generation gateway or entered by the user",
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Original or extracted text; empty when not retained",
    )

    questions: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Ordered list of {question, answer} pairs",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        comment="When this note was created (UTC)",
    )

    __table_args__ = (
        Index("idx_notes_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title='{self.title}', created_at='{self.created_at}')>"
