"""
StudyNotes Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Every layer is tested against a real DocumentStore on a throwaway
       SQLite file and real file storage under tmp_path; only the network
       providers are replaced by in-process fakes.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── store:        DocumentStore on tmp_path/test.db with tables created
    ├── files:        FileService rooted at tmp_path/uploads (1MB limit)
    ├── extractor:    Real TextExtractor (PyMuPDF; pytesseract patched per test)
    ├── fake_llm:     FakeLLM answering per operation, recording every call
    ├── fake_speech:  FakeSpeech returning fixed MP3 bytes
    ├── pipeline:     IngestionPipeline wired from the above
    ├── app:          create_app() with app.state populated by hand
    └── client:       HTTPX AsyncClient over ASGITransport

The lifespan does not run under ASGITransport, which is why `app` installs
the services itself.
"""

import io
import json
import os
import tempfile
from typing import Dict, List, Optional, Union

import pymupdf
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must happen before any studynotes import: config.settings and main.app are
# built at import time
_TEST_ROOT = tempfile.mkdtemp(prefix="studynotes_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT}/import.db"
os.environ["OPENROUTER_API_KEY"] = "test-key-not-real"
os.environ["ELEVENLABS_API_KEY"] = "test-key-not-real"
os.environ["UPLOADS_DIR"] = os.path.join(_TEST_ROOT, "uploads")
os.environ["WORK_DIR"] = os.path.join(_TEST_ROOT, "work")
os.environ["LOG_LEVEL"] = "WARNING"

from studynotes.config import Settings  # noqa: E402
from studynotes.database import (  # noqa: E402
    create_engine_from_settings,
    create_session_factory,
    create_tables,
    dispose_engine,
)
from studynotes.main import create_app  # noqa: E402
from studynotes.services import prompts  # noqa: E402
from studynotes.services.file_service import FileService  # noqa: E402
from studynotes.services.ingestion_service import IngestionPipeline  # noqa: E402
from studynotes.services.llm_base import LLMService  # noqa: E402
from studynotes.services.note_service import NoteService  # noqa: E402
from studynotes.services.profile_service import ProfileService  # noqa: E402
from studynotes.services.speech_service import SpeechService  # noqa: E402
from studynotes.services.study_material_service import StudyMaterialService  # noqa: E402
from studynotes.services.text_extractor import TextExtractor  # noqa: E402
from studynotes.store import DocumentStore  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Provider Fakes
# ══════════════════════════════════════════════════════════════════════════

STRUCTURED_SUMMARY_JSON = json.dumps(
    {
        "title": "Photosynthesis Basics",
        "summary": "1. Light reactions\nPlants capture light.",
        "keyTopics": ["light reactions", "chlorophyll"],
        "wordCount": 7,
    }
)

DEFAULT_RESPONSES: Dict[str, str] = {
    "summarize_text": "1. Overview\nA short generated summary.",
    "summarize_structured": STRUCTURED_SUMMARY_JSON,
    "answer_question": "Chlorophyll absorbs light.",
    "answer_question_structured": '{"answer": "Chlorophyll absorbs light.", "confidence": "high"}',
    "generate_questions": "1. What is photosynthesis?\n2. Where does it happen?",
    "reverse_learn": "Here is the concept worked backward.",
    "suggest_title": "Cell Biology",
}


class FakeLLM(LLMService):
    """
    In-process generation provider.

    Each operation answers with the configured string, or raises the
    configured exception. `calls` lists operation names in call order, so
    tests can assert that nothing reached the provider.
    """

    provider_name = "fake"

    def __init__(
        self,
        responses: Optional[Dict[str, Union[str, Exception]]] = None,
        healthy: bool = True,
    ):
        self.responses: Dict[str, Union[str, Exception]] = {**DEFAULT_RESPONSES, **(responses or {})}
        self.healthy = healthy
        self.calls: List[str] = []
        self.prompts: List[str] = []

    async def complete(self, prompt, system=prompts.DEFAULT_SYSTEM, *, operation="complete"):
        self.calls.append(operation)
        self.prompts.append(prompt)
        result = self.responses[operation]
        if isinstance(result, Exception):
            raise result
        return result

    async def health_check(self) -> bool:
        return self.healthy


class FakeSpeech(SpeechService):
    """Speech provider returning fixed bytes (or raising `error`)."""

    provider_name = "fake-speech"

    def __init__(self, audio: bytes = b"ID3fake-mp3-bytes", error: Optional[Exception] = None):
        self.audio = audio
        self.error = error
        self.calls: List[str] = []

    async def render(self, text: str) -> bytes:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.audio


# ══════════════════════════════════════════════════════════════════════════
# Infrastructure Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings isolated from .env and the process environment's paths."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        openrouter_api_key="test-key-not-real",
        elevenlabs_api_key="test-key-not-real",
        uploads_dir=str(tmp_path / "uploads"),
        work_dir=str(tmp_path / "work"),
        max_file_size=1_048_576,
        public_base_url="http://test",
        retry_max_attempts=2,
        retry_min_wait=0,
        retry_max_wait=0,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def store(test_settings):
    """
    DocumentStore on a fresh SQLite file.

    Why a file and not :memory:? aiosqlite connections from the pool would
    each see their own empty in-memory database.
    """
    engine = create_engine_from_settings(test_settings)
    await create_tables(engine)
    yield DocumentStore(create_session_factory(engine), timeout=test_settings.db_timeout)
    await dispose_engine(engine)


@pytest.fixture
def files(test_settings) -> FileService:
    return FileService(
        uploads_dir=test_settings.uploads_dir,
        max_file_size=test_settings.max_file_size,
        public_base_url=test_settings.public_base_url,
    )


@pytest.fixture
def work_dir(test_settings) -> str:
    return test_settings.work_dir


@pytest.fixture
def extractor(work_dir) -> TextExtractor:
    return TextExtractor(work_dir=work_dir, timeout=10.0)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_speech() -> FakeSpeech:
    return FakeSpeech()


@pytest.fixture
def pipeline(store, fake_llm, extractor, files) -> IngestionPipeline:
    return IngestionPipeline(store=store, llm=fake_llm, extractor=extractor, files=files)


@pytest.fixture
def app(test_settings, store, files, extractor, fake_llm, fake_speech, pipeline):
    """
    Application with every service installed on app.state.

    Mirrors studynotes.main.install_services, with the providers swapped for fakes.
    """
    application = create_app(test_settings)
    application.state.store = store
    application.state.files = files
    application.state.extractor = extractor
    application.state.llm = fake_llm
    application.state.speech = fake_speech
    application.state.pipeline = pipeline
    application.state.notes = NoteService(store)
    application.state.materials = StudyMaterialService(store, files)
    application.state.profiles = ProfileService(store, files)
    return application


@pytest_asyncio.fixture
async def client(app):
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


# ══════════════════════════════════════════════════════════════════════════
# Sample Uploads
# ══════════════════════════════════════════════════════════════════════════

SAMPLE_PDF_TEXT = "Photosynthesis converts light energy into chemical energy."


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """A one-page PDF with a single line of extractable text."""
    doc = pymupdf.open()
    page = doc.new_page()
    page.insert_text((72, 72), SAMPLE_PDF_TEXT)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def blank_pdf_bytes() -> bytes:
    """A valid PDF whose only page has no text."""
    doc = pymupdf.open()
    doc.new_page()
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def sample_png_bytes() -> bytes:
    """A small real PNG (OCR itself is patched in tests that use it)."""
    buffer = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buffer, format="PNG")
    return buffer.getvalue()
