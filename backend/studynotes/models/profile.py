"""
StudyNotes Backend — Profile SQLAlchemy Model
===============================================

What:  ORM model for the `profiles` table.
Why:   email is the natural key; the unique constraint guarantees that an
       upsert race can never leave two rows for one address.
"""

import uuid
from typing import Dict

from sqlalchemy import JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from studynotes.database import Base

DEFAULT_NOTIFICATION_PREFERENCES: Dict[str, bool] = {
    "studyReminders": True,
    "aiInsights": True,
    "weeklyReports": False,
    "newFeatures": True,
}


class Profile(Base):
    """A user profile addressed by email."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    university: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    major: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    notification_preferences: Mapped[Dict[str, bool]] = mapped_column(
        JSON,
        nullable=False,
        default=lambda: dict(DEFAULT_NOTIFICATION_PREFERENCES),
    )

    def __repr__(self) -> str:
        return f"<Profile(email='{self.email}')>"
