"""
StudyNotes Backend — Request Dependencies
===========================================

What:  FastAPI dependencies that hand routes the services built at startup.
How:   The lifespan stores one instance of each service on app.state; these
       getters read it back from the current request. Tests either set
       app.state directly or use app.dependency_overrides.

There are no module-level service instances anywhere in the package.
"""

from fastapi import Request

from studynotes.services.file_service import FileService
from studynotes.services.ingestion_service import IngestionPipeline
from studynotes.services.llm_base import LLMService
from studynotes.services.note_service import NoteService
from studynotes.services.profile_service import ProfileService
from studynotes.services.speech_service import SpeechService
from studynotes.services.study_material_service import StudyMaterialService
from studynotes.store import DocumentStore


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_llm(request: Request) -> LLMService:
    return request.app.state.llm


def get_speech(request: Request) -> SpeechService:
    return request.app.state.speech


def get_files(request: Request) -> FileService:
    return request.app.state.files


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def get_note_service(request: Request) -> NoteService:
    return request.app.state.notes


def get_material_service(request: Request) -> StudyMaterialService:
    return request.app.state.materials


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profiles
