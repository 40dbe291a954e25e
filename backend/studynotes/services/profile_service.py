"""
StudyNotes Backend — Profile Service
======================================

What:  Upsert-by-email, lookup and notification preferences for profiles.
How:   find_by_key(email) decides between insert and update, so repeated
       updates for one address mutate a single record. The unique index on
       profiles.email backs this up: if two first-time updates race, the loser's
       insert fails and is retried as an update.

Emails are compared trimmed and lowercased.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from studynotes.exceptions import DatabaseError, NotFoundError, UnsupportedTypeError, ValidationError
from studynotes.models.profile import DEFAULT_NOTIFICATION_PREFERENCES
from studynotes.schemas.profile import NotificationPreferencesUpdate, ProfileRecord
from studynotes.services.file_service import FileService, file_kind, relative_path_from_url
from studynotes.store import DocumentStore, RecordKind

logger = logging.getLogger(__name__)

AVATAR_SUBDIR = "avatars"


@dataclass
class AvatarUpload:
    content: bytes
    filename: str
    mime_type: Optional[str]


def normalize_email(email: Optional[str]) -> str:
    normalized = (email or "").strip().lower()
    if not normalized or "@" not in normalized:
        raise ValidationError(message="A valid 'email' is required", field="email")
    return normalized


class ProfileService:
    def __init__(self, store: DocumentStore, files: FileService):
        self.store = store
        self.files = files

    async def get_profile(self, email: str) -> ProfileRecord:
        """
        Raises:
            NotFoundError: No profile for this email (or not an email at all)
        """
        try:
            normalized = normalize_email(email)
        except ValidationError:
            # Same as a malformed record id: nothing can match it
            raise NotFoundError(resource="profile", resource_id=(email or "").strip())
        profile = await self.store.find_by_key(RecordKind.PROFILE, "email", normalized)
        if profile is None:
            raise NotFoundError(resource="profile", resource_id=normalized)
        return profile

    async def _store_avatar(self, avatar: AvatarUpload) -> str:
        if file_kind(avatar.mime_type) != "image":
            raise UnsupportedTypeError(avatar.mime_type, allowed=["image/*"])
        self.files.validate_size(len(avatar.content))
        _, relative_path = await self.files.store_file(
            avatar.content, avatar.filename, subdir=AVATAR_SUBDIR
        )
        return relative_path

    async def upsert_profile(
        self,
        email: str,
        name: str = "",
        university: str = "",
        major: str = "",
        avatar: Optional[AvatarUpload] = None,
    ) -> Tuple[ProfileRecord, bool]:
        """
        Create the profile for `email` or update it in place.

        Returns:
            (profile, created)

        Raises:
            ValidationError / UnsupportedTypeError: Bad email or avatar
        """
        normalized = normalize_email(email)
        values = {
            "name": (name or "").strip(),
            "university": (university or "").strip(),
            "major": (major or "").strip(),
        }

        avatar_path = await self._store_avatar(avatar) if avatar is not None else None
        if avatar_path is not None:
            values["avatar_url"] = self.files.public_url(avatar_path)

        try:
            existing = await self.store.find_by_key(RecordKind.PROFILE, "email", normalized)
            if existing is None:
                try:
                    profile = await self.store.insert(
                        RecordKind.PROFILE,
                        {
                            **values,
                            "email": normalized,
                            "notification_preferences": dict(DEFAULT_NOTIFICATION_PREFERENCES),
                        },
                    )
                    logger.info("Created profile for %s", normalized)
                    return profile, True
                except DatabaseError:
                    existing = await self.store.find_by_key(RecordKind.PROFILE, "email", normalized)
                    if existing is None:
                        raise
                    logger.info("Profile for %s was created concurrently; updating instead", normalized)

            profile = await self.store.update_by_id(RecordKind.PROFILE, existing.id, values)
        except Exception:
            if avatar_path is not None:
                await self.files.remove_file(avatar_path)
            raise

        if avatar_path is not None and existing.avatar_url:
            old_path = relative_path_from_url(existing.avatar_url)
            if old_path and old_path != avatar_path:
                await self.files.remove_file(old_path)

        logger.info("Updated profile for %s", normalized)
        return profile, False

    async def update_notifications(
        self,
        email: str,
        patch: NotificationPreferencesUpdate,
    ) -> ProfileRecord:
        """
        Merge the given flags into the profile's preferences.

        Raises:
            ValidationError: No flags supplied
            NotFoundError:   No profile for this email
        """
        changes = patch.model_dump(by_alias=True, exclude_none=True)
        if not changes:
            raise ValidationError(message="No notification preferences were provided.")
        profile = await self.get_profile(email)
        merged = {**profile.notification_preferences.model_dump(by_alias=True), **changes}
        return await self.store.update_by_id(
            RecordKind.PROFILE, profile.id, {"notification_preferences": merged}
        )
