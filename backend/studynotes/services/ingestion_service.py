"""
StudyNotes Backend — Ingestion Pipeline
=========================================

What:  Turns one uploaded artifact (file or pasted text) into a persisted Note
       or StudyMaterial enriched with a generated summary and, for materials,
       a generated title.
Who:   POST /notes/from-text, POST /upload-pdf, POST /upload-study-material.

Orchestration Flow (file upload):
    ┌──────────┐   ┌───────────┐   ┌────────────────────┐   ┌──────────────┐
    │ Validate │──▶│  Extract  │──▶│ Summarize (+ title │──▶│ Store binary │──▶ insert
    │ type/size│   │ PDF / OCR │   │   concurrently)    │   │ (materials)  │
    └──────────┘   └───────────┘   └────────────────────┘   └──────────────┘

    On failure at any step nothing is persisted:
    - Validation fails    → ValidationError / UnsupportedTypeError, zero outbound calls
    - Extraction fails    → ExtractionError (OCR working file already removed)
    - Generation fails    → UpstreamError / ParseError
    - Insert fails        → stored binary is removed, error propagates

No deduplication: the same file uploaded twice yields two records.
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple, Union

from studynotes.exceptions import ParseError, ValidationError
from studynotes.schemas.note import NoteRecord
from studynotes.schemas.study_material import StudyMaterialRecord
from studynotes.services.file_service import FileService, normalize_mime_type
from studynotes.services.llm_base import LLMService
from studynotes.services.text_extractor import TextExtractor
from studynotes.store import DocumentStore, RecordKind

logger = logging.getLogger(__name__)

MANUAL_NOTE_TITLE = "Manual Note"
UNTITLED_DOCUMENT = "Untitled Document"


class IngestionPipeline:
    """
    Coordinates TextExtractor, LLMService, FileService and the DocumentStore.

    Holds references only; every call is independent.
    """

    def __init__(
        self,
        store: DocumentStore,
        llm: LLMService,
        extractor: TextExtractor,
        files: FileService,
    ):
        self.store = store
        self.llm = llm
        self.extractor = extractor
        self.files = files

    async def ingest_text(
        self,
        raw_text: str,
        title: Optional[str] = None,
        keep_content: bool = True,
    ) -> NoteRecord:
        """
        Summarize pasted text and store it as a Note.

        One generation call produces both the summary and the suggested title.

        Args:
            title:        Caller-chosen title; overrides the suggested one
            keep_content: Store raw_text as the note content (else "")

        Raises:
            ValidationError: raw_text is empty or whitespace (no outbound call)
            UpstreamError / ParseError: generation failed (no record written)
        """
        if raw_text is None or not raw_text.strip():
            raise ValidationError(message="'text' must not be empty", field="text")

        structured = await self.llm.summarize_structured(raw_text)
        if not structured.summary.strip():
            raise ParseError(
                message="The AI service returned an empty summary.",
                context={"operation": "ingest_text"},
            )

        note_title = (title or "").strip() or structured.title.strip() or MANUAL_NOTE_TITLE
        note = await self.store.insert(
            RecordKind.NOTE,
            {
                "title": note_title[:255],
                "summary": structured.summary.strip(),
                "content": raw_text if keep_content else "",
                "questions": [],
            },
        )
        logger.info("Ingested text note %s (%d chars, keep_content=%s)", note.id, len(raw_text), keep_content)
        return note

    async def ingest_file(
        self,
        content: bytes,
        mime_type: Optional[str],
        filename: str,
        target: RecordKind = RecordKind.STUDY_MATERIAL,
        keep_content: bool = True,
    ) -> Union[NoteRecord, StudyMaterialRecord]:
        """
        Extract, summarize and persist an uploaded PDF or image.

        Args:
            target: RecordKind.NOTE (document upload; the binary is not kept)
                    or RecordKind.STUDY_MATERIAL (vault upload; binary stored
                    and referenced by fileUrl)
            keep_content: For notes, store the extracted text as content

        Raises:
            UnsupportedTypeError: Not application/pdf or image/*
            ValidationError:      Empty or oversized upload
            ExtractionError:      Parsing/OCR failed
            UpstreamError:        Summary or title generation failed
        """
        if target not in (RecordKind.NOTE, RecordKind.STUDY_MATERIAL):
            raise ValueError(f"Cannot ingest a file as {target.value}")

        file_type = self.files.validate_upload(content, mime_type)
        logger.info("Ingesting %s '%s' (%d bytes) as %s", file_type, filename, len(content), target.value)

        text = await self.extractor.extract(content, normalize_mime_type(mime_type))

        if target == RecordKind.NOTE:
            summary = await self.llm.summarize_text(text, document=True)
            return await self._persist_note(text, summary, filename, keep_content)

        summary, suggested_title = await self._summarize_and_title(text)
        return await self._persist_material(content, file_type, filename, summary, suggested_title)

    async def _summarize_and_title(self, text: str) -> Tuple[str, str]:
        """
        Run summary and title generation concurrently.

        The first failure cancels the other call and is re-raised once both
        tasks have settled, so no provider call outlives the request.
        """
        summary_task = asyncio.create_task(self.llm.summarize_text(text, document=True))
        title_task = asyncio.create_task(self.llm.suggest_title(text))
        tasks = (summary_task, title_task)

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        # Retrieve every finished task's outcome; the summary's error wins
        errors = [task.exception() for task in tasks if task in done and task.exception() is not None]
        if errors:
            raise errors[0]
        return summary_task.result(), title_task.result()

    async def _persist_note(
        self,
        text: str,
        summary: str,
        filename: str,
        keep_content: bool,
    ) -> NoteRecord:
        title = Path(filename or "").stem.strip() or UNTITLED_DOCUMENT
        note = await self.store.insert(
            RecordKind.NOTE,
            {
                "title": title[:255],
                "summary": summary,
                "content": text if keep_content else "",
                "questions": [],
            },
        )
        logger.info("Ingested document '%s' as note %s", filename, note.id)
        return note

    async def _persist_material(
        self,
        content: bytes,
        file_type: str,
        filename: str,
        summary: str,
        suggested_title: str,
    ) -> StudyMaterialRecord:
        title = suggested_title or Path(filename or "").stem.strip() or UNTITLED_DOCUMENT
        _, relative_path = await self.files.store_file(content, filename)

        try:
            material = await self.store.insert(
                RecordKind.STUDY_MATERIAL,
                {
                    "title": title[:255],
                    "original_filename": (filename or relative_path)[:255],
                    "filename": title[:255],
                    "file_type": file_type,
                    "file_url": self.files.public_url(relative_path),
                    "summary": summary,
                    "date_uploaded": datetime.now(timezone.utc).date().isoformat(),
                },
            )
        except Exception:
            # A binary without a record is unreachable
            await self.files.remove_file(relative_path)
            raise

        logger.info("Ingested '%s' as study material %s (%s)", filename, material.id, relative_path)
        return material
