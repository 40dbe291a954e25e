"""
StudyNotes Backend — Note Schemas
===================================

What:  API contract for notes: the canonical record, create/update bodies,
       and the request/response shapes of the text ingestion and PDF upload flows.
Who:   Returned by the DocumentStore (NoteRecord) and used by the notes routes.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from studynotes.schemas.common import CamelModel


class QuestionAnswer(CamelModel):
    """One question/answer pair accumulated on a note."""
    question: str
    answer: str


class NoteRecord(CamelModel):
    """
    Canonical note as returned by the store and the API.

    `id` is the only identifier field; there is no `_id` variant.
    """
    id: str = Field(description="Server-assigned identifier")
    title: str = Field(default="", description="Short title")
    summary: str = Field(default="", description="Generated or user-entered summary")
    content: str = Field(default="", description="Original or extracted text; may be empty")
    questions: List[QuestionAnswer] = Field(default_factory=list)
    created_at: datetime = Field(description="Creation timestamp (UTC), immutable")


class NoteCreate(CamelModel):
    """
    Body of POST /notes.

    Any `id` or `createdAt` sent by the client is ignored: both are assigned
    by the server.
    """
    title: str = Field(default="Untitled", max_length=255)
    summary: str = ""
    content: str = ""
    questions: List[QuestionAnswer] = Field(default_factory=list)


class NoteUpdate(CamelModel):
    """Body of PUT /notes/{id}. Omitted fields are left unchanged."""
    title: Optional[str] = Field(default=None, max_length=255)
    content: Optional[str] = None
    summary: Optional[str] = None


class TextIngestRequest(CamelModel):
    """Body of POST /notes/from-text."""
    text: str = Field(description="Raw text to summarize and store")
    title: Optional[str] = Field(default=None, max_length=255)
    keep_content: bool = Field(default=True, description="Store the raw text as the note content")


class PdfUploadResponse(CamelModel):
    """
    Response of POST /upload-pdf.

    summary/content mirror the historical response shape; `note` is the
    persisted record created by the same call.
    """
    summary: str
    content: str
    title: str
    note: NoteRecord
