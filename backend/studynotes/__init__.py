"""
StudyNotes Backend — Application Package Initializer
=====================================================

What: Marks the `studynotes` directory as a Python package.
Why:  Enables module imports like `from studynotes.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend is layered the same way for every feature:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Ingestion, Gateway...)  │  ← Orchestration, validation
    ├─────────────────────────────────────┤
    │    DocumentStore + Schemas/Models   │  ← Canonical records, ORM rows
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy engine
    └─────────────────────────────────────┘

    Services never touch ORM rows directly; they go through the DocumentStore,
    which returns Pydantic records carrying a single canonical `id` field.
"""

__version__ = "1.0.0"
