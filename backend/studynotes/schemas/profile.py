"""
StudyNotes Backend — Profile Schemas
======================================
"""

from typing import Optional

from pydantic import Field

from studynotes.schemas.common import CamelModel


class NotificationPreferences(CamelModel):
    """Named boolean flags controlling which notifications a user receives."""
    study_reminders: bool = True
    ai_insights: bool = True
    weekly_reports: bool = False
    new_features: bool = True


class NotificationPreferencesUpdate(CamelModel):
    """Body of PUT /api/profile/{email}/notifications. Omitted flags are unchanged."""
    study_reminders: Optional[bool] = None
    ai_insights: Optional[bool] = None
    weekly_reports: Optional[bool] = None
    new_features: Optional[bool] = None


class ProfileRecord(CamelModel):
    """Canonical profile as returned by the store and the API."""
    id: str
    name: str = ""
    email: str
    avatar_url: Optional[str] = None
    university: str = ""
    major: str = ""
    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )


class ProfileUpdateResponse(CamelModel):
    """Response of POST /api/profile/update."""
    message: str
    profile: ProfileRecord
