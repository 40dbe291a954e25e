"""
StudyNotes Backend — Ingestion Pipeline Tests
===============================================

What:  Tests for IngestionPipeline.ingest_text / ingest_file.
How:   Real store, file storage and PDF extraction; FakeLLM for generation,
       pytesseract patched for images.

What we test:
    ✅ Text → summarized Note (title precedence, keep_content)
    ✅ PDF → Note; PDF/image → StudyMaterial with stored binary
    ✅ Nothing is persisted when validation, extraction or generation fails
    ✅ Unsupported type / empty input → zero provider calls
    ✅ No deduplication: identical uploads yield distinct records
    ✅ OCR leaves no working files behind
    ✅ A failed insert removes the stored binary
    ✅ A failed summary or title call cancels its concurrent sibling
"""

import asyncio
import os
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from studynotes.exceptions import (
    DatabaseError,
    ExtractionError,
    ParseError,
    UnsupportedTypeError,
    UpstreamError,
    ValidationError,
)
from studynotes.services.ingestion_service import MANUAL_NOTE_TITLE
from studynotes.store import RecordKind

from conftest import SAMPLE_PDF_TEXT

OCR = "studynotes.services.text_extractor.pytesseract.image_to_string"


async def record_count(store) -> int:
    return await store.count(RecordKind.NOTE) + await store.count(RecordKind.STUDY_MATERIAL)


def stored_files(files):
    return [p for p in files.uploads_dir.rglob("*") if p.is_file()]


class TestIngestText:

    @pytest.mark.asyncio
    async def test_text_becomes_summarized_note(self, pipeline, fake_llm, store):
        note = await pipeline.ingest_text("Plants turn light into sugar.")

        assert note.title == "Photosynthesis Basics"
        assert note.summary == "1. Light reactions\nPlants capture light."
        assert note.content == "Plants turn light into sugar."
        assert note.questions == []
        assert fake_llm.calls == ["summarize_structured"]
        assert await store.find_by_id(RecordKind.NOTE, note.id) == note

    @pytest.mark.asyncio
    async def test_caller_title_wins(self, pipeline):
        note = await pipeline.ingest_text("Some text", title="  My Title ")
        assert note.title == "My Title"

    @pytest.mark.asyncio
    async def test_blank_suggested_title_falls_back(self, pipeline, fake_llm):
        fake_llm.responses["summarize_structured"] = (
            '{"title": " ", "summary": "S", "keyTopics": [], "wordCount": 2}'
        )
        note = await pipeline.ingest_text("Some text")
        assert note.title == MANUAL_NOTE_TITLE

    @pytest.mark.asyncio
    async def test_content_can_be_dropped(self, pipeline):
        note = await pipeline.ingest_text("Private scratch text", keep_content=False)
        assert note.content == ""
        assert note.summary

    @pytest.mark.asyncio
    async def test_whitespace_text_makes_no_call_and_no_record(self, pipeline, fake_llm, store):
        with pytest.raises(ValidationError):
            await pipeline.ingest_text("   \n\t ")

        assert fake_llm.calls == []
        assert await record_count(store) == 0

    @pytest.mark.asyncio
    async def test_unparseable_output_persists_nothing(self, pipeline, fake_llm, store):
        fake_llm.responses["summarize_structured"] = "Sure! Here's a summary of your notes."

        with pytest.raises(ParseError):
            await pipeline.ingest_text("Some text")
        assert await record_count(store) == 0

    @pytest.mark.asyncio
    async def test_empty_structured_summary_persists_nothing(self, pipeline, fake_llm, store):
        fake_llm.responses["summarize_structured"] = (
            '{"title": "T", "summary": "  ", "keyTopics": [], "wordCount": 0}'
        )
        with pytest.raises(ParseError):
            await pipeline.ingest_text("Some text")
        assert await record_count(store) == 0

    @pytest.mark.asyncio
    async def test_provider_failure_persists_nothing(self, pipeline, fake_llm, store):
        fake_llm.responses["summarize_structured"] = UpstreamError(provider="fake")

        with pytest.raises(UpstreamError):
            await pipeline.ingest_text("Some text")
        assert await record_count(store) == 0


class TestIngestFileAsNote:

    @pytest.mark.asyncio
    async def test_pdf_becomes_note_titled_after_file(self, pipeline, fake_llm, files, sample_pdf_bytes):
        note = await pipeline.ingest_file(
            sample_pdf_bytes, "application/pdf", "Chapter 3.pdf", target=RecordKind.NOTE
        )

        assert note.title == "Chapter 3"
        assert SAMPLE_PDF_TEXT in note.content
        assert note.summary == "1. Overview\nA short generated summary."
        assert fake_llm.calls == ["summarize_text"]
        assert SAMPLE_PDF_TEXT in fake_llm.prompts[0]
        # Document uploads keep only the text
        assert stored_files(files) == []

    @pytest.mark.asyncio
    async def test_content_can_be_dropped(self, pipeline, sample_pdf_bytes):
        note = await pipeline.ingest_file(
            sample_pdf_bytes, "application/pdf", "a.pdf", target=RecordKind.NOTE, keep_content=False
        )
        assert note.content == ""

    @pytest.mark.asyncio
    async def test_profiles_are_not_an_ingestion_target(self, pipeline, sample_pdf_bytes):
        with pytest.raises(ValueError):
            await pipeline.ingest_file(sample_pdf_bytes, "application/pdf", "a.pdf", target=RecordKind.PROFILE)


class TestIngestFileAsMaterial:

    @pytest.mark.asyncio
    async def test_pdf_becomes_study_material(self, pipeline, fake_llm, files, store, sample_pdf_bytes):
        material = await pipeline.ingest_file(sample_pdf_bytes, "application/pdf", "bio notes.pdf")

        assert material.title == "Cell Biology"
        assert material.filename == "Cell Biology"
        assert material.original_filename == "bio notes.pdf"
        assert material.file_type == "pdf"
        assert material.summary == "1. Overview\nA short generated summary."
        assert material.date_uploaded == datetime.now(timezone.utc).date().isoformat()
        assert sorted(fake_llm.calls) == ["suggest_title", "summarize_text"]

        assert material.file_url.startswith("http://test/uploads/")
        stored_name = material.file_url.rsplit("/", 1)[-1]
        assert stored_name.endswith("-bio-notes.pdf")
        assert files.resolve_path(stored_name).read_bytes() == sample_pdf_bytes
        assert await store.count(RecordKind.STUDY_MATERIAL) == 1

    @pytest.mark.asyncio
    async def test_image_is_ocrd_and_leaves_no_working_files(
        self, pipeline, fake_llm, work_dir, sample_png_bytes
    ):
        with patch(OCR, return_value="Mitochondria is the powerhouse"):
            material = await pipeline.ingest_file(sample_png_bytes, "image/png", "board.png")

        assert material.file_type == "image"
        assert any("Mitochondria" in p for p in fake_llm.prompts)
        assert os.listdir(work_dir) == []

    @pytest.mark.asyncio
    async def test_unusable_title_falls_back_to_file_stem(self, pipeline, fake_llm, sample_pdf_bytes):
        fake_llm.responses["suggest_title"] = "'123'"
        material = await pipeline.ingest_file(sample_pdf_bytes, "application/pdf", "Week 4 Review.pdf")
        assert material.title == "Week 4 Review"

    @pytest.mark.asyncio
    async def test_identical_uploads_are_not_deduplicated(self, pipeline, files, sample_pdf_bytes):
        first = await pipeline.ingest_file(sample_pdf_bytes, "application/pdf", "same.pdf")
        second = await pipeline.ingest_file(sample_pdf_bytes, "application/pdf", "same.pdf")

        assert first.id != second.id
        assert first.file_url != second.file_url
        assert len(stored_files(files)) == 2


class TestIngestFileFailures:

    @pytest.mark.asyncio
    async def test_unsupported_type_makes_no_calls(self, pipeline, fake_llm, store, files):
        with patch(OCR) as ocr:
            with pytest.raises(UnsupportedTypeError):
                await pipeline.ingest_file(b"just text", "text/plain", "notes.txt")

        ocr.assert_not_called()
        assert fake_llm.calls == []
        assert await record_count(store) == 0
        assert stored_files(files) == []

    @pytest.mark.asyncio
    async def test_oversized_upload_rejected_before_extraction(self, pipeline, fake_llm, files):
        too_big = b"%PDF" + b"0" * files.max_file_size
        with pytest.raises(ValidationError, match="exceeds maximum"):
            await pipeline.ingest_file(too_big, "application/pdf", "big.pdf")
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_extraction_failure_persists_nothing(self, pipeline, fake_llm, store, files, work_dir, sample_png_bytes):
        with patch(OCR, side_effect=RuntimeError("tesseract crashed")):
            with pytest.raises(ExtractionError):
                await pipeline.ingest_file(sample_png_bytes, "image/png", "board.png")

        assert fake_llm.calls == []
        assert await record_count(store) == 0
        assert stored_files(files) == []
        assert os.listdir(work_dir) == []

    @pytest.mark.asyncio
    async def test_generation_failure_persists_nothing(self, pipeline, fake_llm, store, files, sample_pdf_bytes):
        fake_llm.responses["summarize_text"] = UpstreamError(provider="fake")

        with pytest.raises(UpstreamError):
            await pipeline.ingest_file(sample_pdf_bytes, "application/pdf", "a.pdf")

        assert await record_count(store) == 0
        assert stored_files(files) == []

    @pytest.mark.asyncio
    async def test_failed_insert_removes_stored_binary(self, pipeline, store, files, sample_pdf_bytes):
        with patch.object(store, "insert", AsyncMock(side_effect=DatabaseError())):
            with pytest.raises(DatabaseError):
                await pipeline.ingest_file(sample_pdf_bytes, "application/pdf", "a.pdf")

        assert stored_files(files) == []


class TestConcurrentGeneration:
    """Summary and title run together; a failure in one cancels the other."""

    @staticmethod
    def slow_call(state):
        async def call(*args, **kwargs):
            state["started"] = True
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                state["cancelled"] = True
                raise
            state["finished"] = True
            return "too late"

        return call

    @pytest.mark.asyncio
    async def test_failed_summary_cancels_title_call(self, pipeline, fake_llm, store, files, sample_pdf_bytes):
        fake_llm.responses["summarize_text"] = UpstreamError(provider="fake")
        title_state = {}

        with patch.object(fake_llm, "suggest_title", self.slow_call(title_state)):
            with pytest.raises(UpstreamError):
                await pipeline.ingest_file(sample_pdf_bytes, "application/pdf", "a.pdf")

        assert title_state == {"started": True, "cancelled": True}
        assert await record_count(store) == 0
        assert stored_files(files) == []

    @pytest.mark.asyncio
    async def test_failed_title_cancels_summary_call(self, pipeline, fake_llm, store, sample_pdf_bytes):
        fake_llm.responses["suggest_title"] = UpstreamError(provider="fake")
        summary_state = {}

        with patch.object(fake_llm, "summarize_text", self.slow_call(summary_state)):
            with pytest.raises(UpstreamError):
                await pipeline.ingest_file(sample_pdf_bytes, "application/pdf", "a.pdf")

        assert summary_state == {"started": True, "cancelled": True}
        assert await record_count(store) == 0
