"""
StudyNotes Backend — Summarize / Ask / PDF Upload Routes
==========================================================

What:  The generation endpoints used by the notes page.
       POST /summarize   {notes}            → {summary}
       POST /ask         {notes, question}  → {answer}   (free text)
       POST /upload-pdf  multipart `file` (or `pdf`) → {summary, content, title, note}
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from studynotes.dependencies import get_files, get_llm, get_pipeline
from studynotes.exceptions import ValidationError
from studynotes.schemas.ai import AskRequest, AskResponse, SummarizeRequest, SummarizeResponse
from studynotes.schemas.common import ErrorResponse
from studynotes.schemas.note import PdfUploadResponse
from studynotes.services.file_service import FileService
from studynotes.services.ingestion_service import IngestionPipeline
from studynotes.services.llm_base import LLMService
from studynotes.store import RecordKind

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Generation"])

GENERATION_ERRORS = {
    400: {"description": "Empty input", "model": ErrorResponse},
    502: {"description": "Generation provider failed", "model": ErrorResponse},
}


@router.post("/summarize", response_model=SummarizeResponse, responses=GENERATION_ERRORS)
async def summarize(
    body: SummarizeRequest,
    llm: LLMService = Depends(get_llm),
) -> SummarizeResponse:
    summary = await llm.summarize_text(body.notes)
    return SummarizeResponse(summary=summary)


@router.post("/ask", response_model=AskResponse, responses=GENERATION_ERRORS)
async def ask(
    body: AskRequest,
    llm: LLMService = Depends(get_llm),
) -> AskResponse:
    answer = await llm.answer_question(body.notes, body.question)
    return AskResponse(answer=answer)


@router.post(
    "/upload-pdf",
    status_code=201,
    response_model=PdfUploadResponse,
    responses={
        **GENERATION_ERRORS,
        415: {"description": "Not a PDF or image", "model": ErrorResponse},
        500: {"description": "Text extraction failed", "model": ErrorResponse},
    },
    summary="Extract, summarize and store an uploaded document as a note",
)
async def upload_pdf(
    file: Optional[UploadFile] = File(None, description="PDF (or image) document"),
    pdf: Optional[UploadFile] = File(None, description="Same as `file`; field name sent by the notes page"),
    pipeline: IngestionPipeline = Depends(get_pipeline),
    files: FileService = Depends(get_files),
) -> PdfUploadResponse:
    upload = file or pdf
    if upload is None:
        raise ValidationError(message="No file uploaded.", field="file")

    # One byte past the limit is enough to reject an oversized upload
    content = await upload.read(files.max_file_size + 1)
    note = await pipeline.ingest_file(
        content,
        upload.content_type,
        upload.filename or "document",
        target=RecordKind.NOTE,
    )
    return PdfUploadResponse(summary=note.summary, content=note.content, title=note.title, note=note)
