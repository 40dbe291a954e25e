"""
StudyNotes Backend — Document Store Access Layer
==================================================

What:  CRUD over the three record kinds (Note, StudyMaterial, Profile).
Why:   One boundary between services and SQLAlchemy. Rows never leave this
       module; callers receive Pydantic records with a single canonical `id`
       string, so `_id`/`id` normalization never leaks into services or routes.
How:   Each operation opens its own session and commits once, which gives
       per-record atomicity without multi-record transactions. Every call is
       bounded by `timeout` seconds.

Contract:
    find_all(kind, sort_key, direction)   → ordered list of records
    insert(kind, values)                  → record with assigned id
    update_by_id(kind, id, patch)         → updated record | NotFoundError
    append_to_list(kind, id, field, item) → updated record | NotFoundError
    delete_by_id(kind, id)                → deleted record | NotFoundError
    find_by_key(kind, key, value)         → record | None (at most one)

Error translation:
    SQLAlchemyError / timeout → DatabaseError (500, generic message)
    Unknown or malformed id   → NotFoundError (404)
"""

import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, or_, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studynotes.database import Base
from studynotes.exceptions import DatabaseError, NotFoundError, StudyNotesError, ValidationError
from studynotes.models import Note, Profile, StudyMaterial
from studynotes.schemas.note import NoteRecord
from studynotes.schemas.profile import ProfileRecord
from studynotes.schemas.study_material import StudyMaterialRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecordKind(str, enum.Enum):
    NOTE = "note"
    STUDY_MATERIAL = "study material"
    PROFILE = "profile"


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _note_record(row: Note) -> NoteRecord:
    return NoteRecord(
        id=str(row.id),
        title=row.title,
        summary=row.summary,
        content=row.content,
        questions=list(row.questions or []),
        created_at=_as_utc(row.created_at),
    )


def _material_record(row: StudyMaterial) -> StudyMaterialRecord:
    return StudyMaterialRecord(
        id=str(row.id),
        title=row.title,
        original_filename=row.original_filename,
        filename=row.filename or row.title,
        file_type=row.file_type,
        file_url=row.file_url,
        summary=row.summary,
        date_uploaded=row.date_uploaded,
    )


def _profile_record(row: Profile) -> ProfileRecord:
    return ProfileRecord(
        id=str(row.id),
        name=row.name,
        email=row.email,
        avatar_url=row.avatar_url,
        university=row.university,
        major=row.major,
        notification_preferences=row.notification_preferences or {},
    )


@dataclass(frozen=True)
class _KindMapping:
    model: Type[Base]
    to_record: Callable[[Any], BaseModel]
    search_columns: Tuple[str, ...]
    immutable: Tuple[str, ...]


_KINDS: Dict[RecordKind, _KindMapping] = {
    RecordKind.NOTE: _KindMapping(
        model=Note,
        to_record=_note_record,
        search_columns=("title", "summary", "content"),
        immutable=("id", "created_at"),
    ),
    RecordKind.STUDY_MATERIAL: _KindMapping(
        model=StudyMaterial,
        to_record=_material_record,
        search_columns=("filename", "title", "summary"),
        immutable=("id", "created_at"),
    ),
    RecordKind.PROFILE: _KindMapping(
        model=Profile,
        to_record=_profile_record,
        search_columns=("name", "email"),
        immutable=("id",),
    ),
}


class DocumentStore:
    """
    Async CRUD adapter over the ORM models.

    Owned by the application (app.state.store) and injected into services;
    holds no per-request state.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float = 10.0,
    ):
        self._session_factory = session_factory
        self.timeout = timeout
        # Serializes read-modify-write appends within this process
        self._append_lock = asyncio.Lock()

    # ── Internals ─────────────────────────────────────────────────────────

    async def _run(
        self,
        operation: str,
        kind: RecordKind,
        work: Callable[[AsyncSession], Awaitable[T]],
        **context: Any,
    ) -> T:
        """
        Execute `work` in its own session/transaction with a timeout.

        Commits on success, rolls back on any error, and translates driver
        failures into DatabaseError with the operation and key logged.
        """
        async def _in_session() -> T:
            async with self._session_factory() as session:
                try:
                    result = await work(session)
                    await session.commit()
                    return result
                except Exception:
                    await session.rollback()
                    raise

        try:
            return await asyncio.wait_for(_in_session(), timeout=self.timeout)
        except StudyNotesError:
            raise
        except asyncio.TimeoutError:
            logger.error(
                "Store %s on %s timed out after %.1fs | %s",
                operation, kind.value, self.timeout, context,
            )
            raise DatabaseError(
                message="The database did not respond in time. Please try again later.",
                context={"operation": operation, "kind": kind.value, **context},
            )
        except SQLAlchemyError as e:
            logger.error(
                "Store %s on %s failed: %s | %s",
                operation, kind.value, str(e), context,
                exc_info=True,
            )
            raise DatabaseError(
                context={"operation": operation, "kind": kind.value, "error_type": type(e).__name__, **context},
            )

    @staticmethod
    def _parse_id(kind: RecordKind, record_id: str) -> uuid.UUID:
        # A malformed id can't exist in the store, so it is "not found", not "invalid"
        try:
            return uuid.UUID(str(record_id))
        except ValueError:
            raise NotFoundError(resource=kind.value, resource_id=str(record_id))

    @staticmethod
    def _column(mapping: _KindMapping, name: str):
        if name not in mapping.model.__table__.columns:
            raise ValidationError(
                message=f"Unknown field '{name}'",
                field=name,
                context={"table": mapping.model.__tablename__},
            )
        return getattr(mapping.model, name)

    def _search_clause(self, mapping: _KindMapping, search: Optional[str]):
        if not search or not search.strip():
            return None
        term = search.strip()
        return or_(
            *[getattr(mapping.model, col).icontains(term, autoescape=True) for col in mapping.search_columns]
        )

    # ── Queries ───────────────────────────────────────────────────────────

    async def find_all(
        self,
        kind: RecordKind,
        sort_key: str = "created_at",
        direction: str = "desc",
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Any]:
        """
        Return records of `kind` ordered by `sort_key`.

        Args:
            direction: "desc" (newest first) or "asc"
            search:    Case-insensitive substring matched against the kind's
                       text columns (title/summary/content for notes)
            limit/offset: Optional window over the ordered result
        """
        mapping = _KINDS[kind]
        column = self._column(mapping, sort_key)
        if direction not in ("asc", "desc"):
            raise ValidationError(message=f"Invalid sort direction '{direction}'", field="direction")

        async def work(session: AsyncSession) -> List[Any]:
            order = column.desc() if direction == "desc" else column.asc()
            query = select(mapping.model).order_by(order)
            clause = self._search_clause(mapping, search)
            if clause is not None:
                query = query.where(clause)
            if offset:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)
            result = await session.execute(query)
            return [mapping.to_record(row) for row in result.scalars().all()]

        return await self._run("find_all", kind, work, sort_key=sort_key, search=search)

    async def count(self, kind: RecordKind, search: Optional[str] = None) -> int:
        """Number of records of `kind` matching the optional search term."""
        mapping = _KINDS[kind]

        async def work(session: AsyncSession) -> int:
            query = select(func.count()).select_from(mapping.model)
            clause = self._search_clause(mapping, search)
            if clause is not None:
                query = query.where(clause)
            result = await session.execute(query)
            return int(result.scalar() or 0)

        return await self._run("count", kind, work, search=search)

    async def find_by_id(self, kind: RecordKind, record_id: str) -> Any:
        """Return one record or raise NotFoundError."""
        mapping = _KINDS[kind]
        pk = self._parse_id(kind, record_id)

        async def work(session: AsyncSession) -> Any:
            row = await session.get(mapping.model, pk)
            if row is None:
                raise NotFoundError(resource=kind.value, resource_id=str(record_id))
            return mapping.to_record(row)

        return await self._run("find_by_id", kind, work, record_id=str(record_id))

    async def find_by_key(self, kind: RecordKind, key: str, value: Any) -> Optional[Any]:
        """
        Look a record up by a unique attribute (e.g. Profile.email).

        Returns:
            The record, or None when nothing matches.
        """
        mapping = _KINDS[kind]
        column = self._column(mapping, key)

        async def work(session: AsyncSession) -> Optional[Any]:
            result = await session.execute(select(mapping.model).where(column == value).limit(1))
            row = result.scalar_one_or_none()
            return mapping.to_record(row) if row is not None else None

        return await self._run("find_by_key", kind, work, key=key, value=value)

    # ── Mutations ─────────────────────────────────────────────────────────

    async def insert(self, kind: RecordKind, values: Dict[str, Any]) -> Any:
        """
        Insert a new record; the server assigns `id` (and `created_at` where present).

        Client-supplied id/created_at values are discarded.
        """
        mapping = _KINDS[kind]
        data = {k: v for k, v in values.items() if k not in mapping.immutable}
        for name in data:
            self._column(mapping, name)

        async def work(session: AsyncSession) -> Any:
            row = mapping.model(**data)
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return mapping.to_record(row)

        record = await self._run("insert", kind, work)
        logger.info("Inserted %s %s", kind.value, record.id)
        return record

    async def update_by_id(self, kind: RecordKind, record_id: str, patch: Dict[str, Any]) -> Any:
        """
        Apply `patch` to one record.

        Raises:
            NotFoundError:   No record with this id
            ValidationError: Patch names an unknown or immutable field
        """
        mapping = _KINDS[kind]
        pk = self._parse_id(kind, record_id)
        for name in patch:
            if name in mapping.immutable:
                raise ValidationError(message=f"Field '{name}' cannot be modified", field=name)
            self._column(mapping, name)

        async def work(session: AsyncSession) -> Any:
            row = await session.get(mapping.model, pk)
            if row is None:
                raise NotFoundError(resource=kind.value, resource_id=str(record_id))
            for name, value in patch.items():
                setattr(row, name, value)
            await session.flush()
            return mapping.to_record(row)

        record = await self._run("update_by_id", kind, work, record_id=str(record_id))
        logger.info("Updated %s %s (%s)", kind.value, record_id, ", ".join(sorted(patch)))
        return record

    async def append_to_list(self, kind: RecordKind, record_id: str, field: str, item: Any) -> Any:
        """
        Append `item` to a list-valued field in one unit of work.

        The row is locked for update (where the backend supports it) and
        appends from this process are serialized, so concurrent appends to
        the same record never drop each other.

        Raises:
            NotFoundError:   No record with this id
            ValidationError: Unknown or immutable field
        """
        mapping = _KINDS[kind]
        pk = self._parse_id(kind, record_id)
        if field in mapping.immutable:
            raise ValidationError(message=f"Field '{field}' cannot be modified", field=field)
        self._column(mapping, field)

        async def work(session: AsyncSession) -> Any:
            result = await session.execute(
                select(mapping.model).where(mapping.model.id == pk).with_for_update()
            )
            row = result.scalar_one_or_none()
            if row is None:
                raise NotFoundError(resource=kind.value, resource_id=str(record_id))
            # New list object so the JSON column is flagged dirty
            setattr(row, field, list(getattr(row, field) or []) + [item])
            await session.flush()
            return mapping.to_record(row)

        async with self._append_lock:
            record = await self._run("append_to_list", kind, work, record_id=str(record_id), field=field)
        logger.info("Appended to %s %s (%s)", kind.value, record_id, field)
        return record

    async def delete_by_id(self, kind: RecordKind, record_id: str) -> Any:
        """
        Delete one record and return what was deleted.

        Raises:
            NotFoundError: No record with this id (store unchanged)
        """
        mapping = _KINDS[kind]
        pk = self._parse_id(kind, record_id)

        async def work(session: AsyncSession) -> Any:
            row = await session.get(mapping.model, pk)
            if row is None:
                raise NotFoundError(resource=kind.value, resource_id=str(record_id))
            record = mapping.to_record(row)
            await session.delete(row)
            return record

        record = await self._run("delete_by_id", kind, work, record_id=str(record_id))
        logger.info("Deleted %s %s", kind.value, record_id)
        return record

    async def ping(self) -> bool:
        """Lightweight connectivity probe (SELECT 1) used by the health check."""
        try:
            async def work(session: AsyncSession) -> bool:
                await session.execute(text("SELECT 1"))
                return True

            return await self._run("ping", RecordKind.NOTE, work)
        except DatabaseError:
            return False
