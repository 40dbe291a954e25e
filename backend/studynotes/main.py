"""
StudyNotes Backend — FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       the lifespan validates configuration and builds every service.
Who:   uvicorn (`uvicorn studynotes.main:app`).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │  Middleware:  Request ID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:  /notes  /summarize /ask /upload-pdf            │
    │           /upload-study-material /study-materials        │
    │           /api/profile/*  /api/{analyze-text,...,tts}    │
    │           /health                                        │
    │                                                          │
    │  app.state (built in lifespan, injected per request):    │
    │    store · llm · speech · files · extractor · pipeline   │
    │    notes · materials · profiles                          │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Validate configuration; missing keys stop the process
    3. Build engine, DocumentStore, providers and services
    4. Optionally create tables

    Shutdown:
    1. Close provider HTTP clients
    2. Dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from studynotes import __version__
from studynotes.config import Settings, settings as default_settings
from studynotes.database import (
    create_engine_from_settings,
    create_session_factory,
    create_tables,
    dispose_engine,
)
from studynotes.exceptions import (
    ConfigurationError,
    DatabaseError,
    ExtractionError,
    FileStorageError,
    NotFoundError,
    ParseError,
    StudyNotesError,
    UnsupportedTypeError,
    UpstreamError,
    ValidationError,
)
from studynotes.middleware.logging import RequestLoggingMiddleware
from studynotes.middleware.request_id import RequestIDMiddleware, request_id_var
from studynotes.routes import ai, assistant, health, notes, profile, study_materials
from studynotes.services.file_service import FileService
from studynotes.services.gemini_service import GeminiService
from studynotes.services.ingestion_service import IngestionPipeline
from studynotes.services.llm_base import LLMService
from studynotes.services.note_service import NoteService
from studynotes.services.openrouter_service import OpenRouterService
from studynotes.services.profile_service import ProfileService
from studynotes.services.speech_service import ElevenLabsService
from studynotes.services.study_material_service import StudyMaterialService
from studynotes.services.text_extractor import TextExtractor
from studynotes.store import DocumentStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once at startup.

    Format: 2024-01-15T12:00:00 [INFO] studynotes.store: Inserted note ...
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # These log every operation at DEBUG/INFO
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "PIL"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Service Construction
# ══════════════════════════════════════════════════════════════════════════

def build_llm(config: Settings) -> LLMService:
    if config.llm_provider == "gemini":
        return GeminiService.from_settings(config)
    return OpenRouterService.from_settings(config)


def install_services(app: FastAPI, config: Settings, store: DocumentStore) -> None:
    """
    Build every service around `store` and attach them to app.state.

    Routes only ever see these instances through studynotes.dependencies.
    """
    files = FileService(
        uploads_dir=config.uploads_dir,
        max_file_size=config.max_file_size,
        public_base_url=config.public_base_url,
    )
    extractor = TextExtractor(work_dir=config.work_dir, timeout=config.extraction_timeout)
    llm = build_llm(config)

    app.state.store = store
    app.state.files = files
    app.state.extractor = extractor
    app.state.llm = llm
    app.state.speech = ElevenLabsService.from_settings(config)
    app.state.pipeline = IngestionPipeline(store=store, llm=llm, extractor=extractor, files=files)
    app.state.notes = NoteService(store)
    app.state.materials = StudyMaterialService(store, files)
    app.state.profiles = ProfileService(store, files)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(config.log_level)
    logger.info("=" * 60)
    logger.info("StudyNotes Backend starting up...")

    try:
        config.validate_required()
    except ConfigurationError as e:
        logger.critical("%s", e.message)
        logger.critical("Fix the configuration and restart the server.")
        raise

    engine = create_engine_from_settings(config)
    if config.auto_create_tables:
        await create_tables(engine)
        logger.info("Database tables ensured")

    store = DocumentStore(create_session_factory(engine), timeout=config.db_timeout)
    install_services(app, config, store)

    logger.info("Generation provider: %s", app.state.llm.provider_name)
    logger.info("Uploads directory: %s", app.state.files.uploads_dir)
    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("StudyNotes Backend shutting down...")
    await app.state.llm.aclose()
    await app.state.speech.aclose()
    await dispose_engine(engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy to HTTP responses.

        ValidationError        → 400 validation_error
        UnsupportedTypeError   → 415 unsupported_type
        NotFoundError          → 404 not_found
        ExtractionError        → 500 extraction_error
        UpstreamError          → 502 upstream_error
        ParseError             → 502 parse_error
        FileStorageError       → 500 server_error
        DatabaseError          → 500 server_error (generic message)
        StudyNotesError        → 500 server_error
        Exception              → 500 internal_server_error

    Server-side errors never carry their context in the response body; it is
    logged with the request ID instead.
    """

    @app.exception_handler(UnsupportedTypeError)
    async def handle_unsupported_type(request: Request, exc: UnsupportedTypeError):
        logger.warning("[%s] Unsupported type: %s", request_id_var.get(""), exc.mime_type)
        return _error_response(415, "unsupported_type", exc.message, exc.context)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        logger.info("[%s] Not found: %s %s", request_id_var.get(""), exc.resource, exc.resource_id)
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(ExtractionError)
    async def handle_extraction_error(request: Request, exc: ExtractionError):
        logger.error("[%s] Extraction error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "extraction_error", exc.message)

    @app.exception_handler(UpstreamError)
    async def handle_upstream_error(request: Request, exc: UpstreamError):
        logger.error("[%s] Upstream error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(502, "upstream_error", exc.message)

    @app.exception_handler(ParseError)
    async def handle_parse_error(request: Request, exc: ParseError):
        logger.error("[%s] Parse error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(502, "parse_error", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("[%s] File storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(StudyNotesError)
    async def handle_app_error(request: Request, exc: StudyNotesError):
        logger.error("[%s] Application error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(config: Optional[Settings] = None) -> FastAPI:
    """
    Assemble the application.

    Args:
        config: Settings to run with; defaults to the environment-loaded ones.
    """
    config = config or default_settings
    app = FastAPI(
        title="StudyNotes API",
        description=(
            "Study notes backend: upload PDFs or images, summarize and question "
            "them with an LLM, and keep notes, study materials and profiles."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = config

    # Middleware executes in reverse order of addition
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Content-Disposition"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(notes.router)
    app.include_router(ai.router)
    app.include_router(study_materials.router)
    app.include_router(assistant.router)
    app.include_router(profile.router)
    app.include_router(health.router)

    return app


app = create_app()
