"""
StudyNotes Backend — Note Service
===================================

What:  Record operations on notes that don't involve generation: listing with
       search, create, fetch, edit, Q&A history and delete.
How:   Thin rules over the DocumentStore; the store already maps missing ids
       to NotFoundError.
"""

import logging
from typing import List, Optional, Tuple

from studynotes.exceptions import ValidationError
from studynotes.schemas.note import NoteCreate, NoteRecord, NoteUpdate, QuestionAnswer
from studynotes.store import DocumentStore, RecordKind

logger = logging.getLogger(__name__)


class NoteService:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def list_notes(
        self,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[NoteRecord], int]:
        """
        Notes newest first.

        Returns:
            (page, total) where total counts every note matching `search`.
        """
        notes = await self.store.find_all(
            RecordKind.NOTE, "created_at", "desc", search=search, limit=limit, offset=offset
        )
        total = await self.store.count(RecordKind.NOTE, search=search)
        return notes, total

    async def get_note(self, note_id: str) -> NoteRecord:
        return await self.store.find_by_id(RecordKind.NOTE, note_id)

    async def create_note(self, data: NoteCreate) -> NoteRecord:
        """Store a client-built note as-is; id and createdAt come from the server."""
        values = data.model_dump()
        values["title"] = values["title"].strip() or "Untitled"
        return await self.store.insert(RecordKind.NOTE, values)

    async def update_note(self, note_id: str, patch: NoteUpdate) -> NoteRecord:
        """
        Edit title/content/summary.

        Raises:
            ValidationError: Nothing to change, or a blank title
            NotFoundError:   Unknown id
        """
        changes = patch.model_dump(exclude_none=True)
        if not changes:
            raise ValidationError(message="No fields to update were provided.")
        if "title" in changes and not changes["title"].strip():
            raise ValidationError(message="'title' must not be empty", field="title")
        return await self.store.update_by_id(RecordKind.NOTE, note_id, changes)

    async def add_question(self, note_id: str, qa: QuestionAnswer) -> NoteRecord:
        """Append one question/answer pair to the note's history."""
        if not qa.question.strip():
            raise ValidationError(message="'question' must not be empty", field="question")
        return await self.store.append_to_list(RecordKind.NOTE, note_id, "questions", qa.model_dump())

    async def delete_note(self, note_id: str) -> NoteRecord:
        return await self.store.delete_by_id(RecordKind.NOTE, note_id)
