"""
StudyNotes Backend — StudyMaterial Schemas
============================================
"""

from typing import Literal

from pydantic import Field

from studynotes.schemas.common import CamelModel


class StudyMaterialRecord(CamelModel):
    """
    Canonical study material as returned by the store and the API.

    file_url is the public view URL; its last path segment is the stored
    filename accepted by GET /download/{filename}.
    """
    id: str
    title: str
    original_filename: str
    filename: str
    file_type: Literal["pdf", "image"]
    file_url: str
    summary: str
    date_uploaded: str = Field(description="Date-only ISO string, e.g. 2024-01-15")
