"""
StudyNotes Backend — Notes Route Handlers
===========================================

What:  CRUD for notes plus manual text ingestion and Q&A history.
How:   Listing returns a plain JSON array (the client renders it directly);
       the total matching count travels in X-Total-Count.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from studynotes.dependencies import get_note_service, get_pipeline
from studynotes.schemas.common import ErrorResponse, MessageResponse
from studynotes.schemas.note import (
    NoteCreate,
    NoteRecord,
    NoteUpdate,
    QuestionAnswer,
    TextIngestRequest,
)
from studynotes.services.ingestion_service import IngestionPipeline
from studynotes.services.note_service import NoteService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notes"])

NOT_FOUND = {404: {"description": "Note not found", "model": ErrorResponse}}


@router.get(
    "/notes",
    response_model=List[NoteRecord],
    summary="List notes, newest first",
)
async def list_notes(
    response: Response,
    q: Optional[str] = Query(
        default=None,
        max_length=200,
        description="Case-insensitive search over title, summary and content",
    ),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    notes: NoteService = Depends(get_note_service),
) -> List[NoteRecord]:
    records, total = await notes.list_notes(search=q, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(total)
    return records


@router.post(
    "/notes",
    status_code=201,
    response_model=NoteRecord,
    summary="Create a note from client-supplied fields",
)
async def create_note(
    body: NoteCreate,
    notes: NoteService = Depends(get_note_service),
) -> NoteRecord:
    return await notes.create_note(body)


@router.post(
    "/notes/from-text",
    status_code=201,
    response_model=NoteRecord,
    responses={
        400: {"description": "Empty text", "model": ErrorResponse},
        502: {"description": "Generation provider failed", "model": ErrorResponse},
    },
    summary="Summarize pasted text and store it as a note",
)
async def create_note_from_text(
    body: TextIngestRequest,
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> NoteRecord:
    return await pipeline.ingest_text(body.text, title=body.title, keep_content=body.keep_content)


@router.get("/notes/{note_id}", response_model=NoteRecord, responses=NOT_FOUND)
async def get_note(
    note_id: str,
    notes: NoteService = Depends(get_note_service),
) -> NoteRecord:
    return await notes.get_note(note_id)


@router.put(
    "/notes/{note_id}",
    response_model=NoteRecord,
    responses=NOT_FOUND,
    summary="Edit a note's title, content or summary",
)
async def update_note(
    note_id: str,
    body: NoteUpdate,
    notes: NoteService = Depends(get_note_service),
) -> NoteRecord:
    return await notes.update_note(note_id, body)


@router.post(
    "/notes/{note_id}/questions",
    response_model=NoteRecord,
    responses=NOT_FOUND,
    summary="Append a question/answer pair to a note",
)
async def add_question(
    note_id: str,
    body: QuestionAnswer,
    notes: NoteService = Depends(get_note_service),
) -> NoteRecord:
    return await notes.add_question(note_id, body)


@router.delete("/notes/{note_id}", response_model=MessageResponse, responses=NOT_FOUND)
async def delete_note(
    note_id: str,
    notes: NoteService = Depends(get_note_service),
) -> MessageResponse:
    await notes.delete_note(note_id)
    return MessageResponse(message="Note deleted successfully")
