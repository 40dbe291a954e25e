"""
StudyNotes Backend — Profile Routes
=====================================

What:  Profile upsert (multipart, optional avatar), lookup by email, and
       notification preference updates.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from studynotes.dependencies import get_profile_service
from studynotes.schemas.common import ErrorResponse
from studynotes.schemas.profile import (
    NotificationPreferencesUpdate,
    ProfileRecord,
    ProfileUpdateResponse,
)
from studynotes.services.profile_service import AvatarUpload, ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["Profile"])

NOT_FOUND = {404: {"description": "Profile not found", "model": ErrorResponse}}


@router.post(
    "/update",
    response_model=ProfileUpdateResponse,
    responses={
        400: {"description": "Missing email or invalid avatar", "model": ErrorResponse},
        415: {"description": "Avatar is not an image", "model": ErrorResponse},
    },
    summary="Create or update the profile for an email",
)
async def update_profile(
    email: str = Form(...),
    name: str = Form(""),
    university: str = Form(""),
    major: str = Form(""),
    avatar: Optional[UploadFile] = File(None),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileUpdateResponse:
    upload = None
    # Browsers send an empty file part when no avatar was chosen
    if avatar is not None and avatar.filename:
        upload = AvatarUpload(
            content=await avatar.read(profiles.files.max_file_size + 1),
            filename=avatar.filename,
            mime_type=avatar.content_type,
        )

    profile, created = await profiles.upsert_profile(
        email=email,
        name=name,
        university=university,
        major=major,
        avatar=upload,
    )
    message = "Profile created successfully" if created else "Profile updated successfully"
    return ProfileUpdateResponse(message=message, profile=profile)


@router.get("/{email}", response_model=ProfileRecord, responses=NOT_FOUND)
async def get_profile(
    email: str,
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileRecord:
    return await profiles.get_profile(email)


@router.put(
    "/{email}/notifications",
    response_model=ProfileRecord,
    responses=NOT_FOUND,
    summary="Update notification preferences",
)
async def update_notifications(
    email: str,
    body: NotificationPreferencesUpdate,
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileRecord:
    return await profiles.update_notifications(email, body)
