"""
StudyNotes Backend — Document Store Tests
===========================================

What:  Tests for DocumentStore CRUD against a real SQLite database.
Why:   The store is the only place rows become records; id normalization,
       ordering and error translation must hold for every caller.

What we test:
    ✅ insert assigns id (and createdAt), ignoring client values
    ✅ find_all newest first, with search and windowing
    ✅ update/delete of unknown or malformed ids → NotFoundError, store unchanged
    ✅ concurrent list appends all survive
    ✅ immutable and unknown fields rejected
    ✅ find_by_key returns at most one record
    ✅ driver failures → DatabaseError
"""

import asyncio
import uuid
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from studynotes.exceptions import DatabaseError, NotFoundError, ValidationError
from studynotes.store import DocumentStore, RecordKind


def note_values(title="Biology", summary="Cells", content="Cells are small."):
    return {"title": title, "summary": summary, "content": content, "questions": []}


class TestInsertAndFind:

    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_created_at(self, store):
        note = await store.insert(RecordKind.NOTE, note_values())

        assert uuid.UUID(note.id)
        assert note.created_at.tzinfo is not None
        assert note.questions == []

        fetched = await store.find_by_id(RecordKind.NOTE, note.id)
        assert fetched == note

    @pytest.mark.asyncio
    async def test_client_supplied_id_and_created_at_are_ignored(self, store):
        client_id = str(uuid.uuid4())
        note = await store.insert(
            RecordKind.NOTE,
            {**note_values(), "id": client_id, "created_at": datetime(2000, 1, 1, tzinfo=timezone.utc)},
        )
        assert note.id != client_id
        assert note.created_at.year > 2000

    @pytest.mark.asyncio
    async def test_record_serializes_with_single_id_field(self, store):
        note = await store.insert(RecordKind.NOTE, note_values())
        body = note.model_dump(by_alias=True)

        assert body["id"] == note.id
        assert "_id" not in body
        assert "createdAt" in body

    @pytest.mark.asyncio
    async def test_find_all_newest_first(self, store):
        first = await store.insert(RecordKind.NOTE, note_values(title="first"))
        await asyncio.sleep(0.01)
        second = await store.insert(RecordKind.NOTE, note_values(title="second"))

        newest_first = await store.find_all(RecordKind.NOTE)
        oldest_first = await store.find_all(RecordKind.NOTE, direction="asc")

        assert [n.id for n in newest_first] == [second.id, first.id]
        assert [n.id for n in oldest_first] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_find_all_search_and_window(self, store):
        await store.insert(RecordKind.NOTE, note_values(title="Photosynthesis", content="light"))
        await store.insert(RecordKind.NOTE, note_values(title="Mitosis", content="cell division"))
        await store.insert(RecordKind.NOTE, note_values(title="Meiosis", summary="Cell Division again"))

        matches = await store.find_all(RecordKind.NOTE, search="cell DIVISION")
        assert {n.title for n in matches} == {"Mitosis", "Meiosis"}
        assert await store.count(RecordKind.NOTE, search="cell division") == 2
        assert await store.count(RecordKind.NOTE) == 3

        page = await store.find_all(RecordKind.NOTE, limit=1, offset=1)
        assert len(page) == 1

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, store):
        await store.insert(RecordKind.NOTE, note_values(title="100% effort"))
        await store.insert(RecordKind.NOTE, note_values(title="1000 words"))

        matches = await store.find_all(RecordKind.NOTE, search="100%")
        assert [n.title for n in matches] == ["100% effort"]

    @pytest.mark.asyncio
    async def test_unknown_sort_key_rejected(self, store):
        with pytest.raises(ValidationError):
            await store.find_all(RecordKind.NOTE, sort_key="nonexistent")

    @pytest.mark.asyncio
    async def test_find_by_key(self, store):
        await store.insert(
            RecordKind.PROFILE,
            {"email": "ada@example.com", "name": "Ada", "notification_preferences": {}},
        )

        found = await store.find_by_key(RecordKind.PROFILE, "email", "ada@example.com")
        assert found.name == "Ada"
        assert await store.find_by_key(RecordKind.PROFILE, "email", "bob@example.com") is None

    @pytest.mark.asyncio
    async def test_duplicate_unique_key_is_database_error(self, store):
        values = {"email": "ada@example.com", "notification_preferences": {}}
        await store.insert(RecordKind.PROFILE, values)

        with pytest.raises(DatabaseError):
            await store.insert(RecordKind.PROFILE, values)
        assert len(await store.find_all(RecordKind.PROFILE, sort_key="email")) == 1


class TestUpdateAndDelete:

    @pytest.mark.asyncio
    async def test_update_changes_only_patched_fields(self, store):
        note = await store.insert(RecordKind.NOTE, note_values())

        updated = await store.update_by_id(RecordKind.NOTE, note.id, {"title": "Renamed"})

        assert updated.title == "Renamed"
        assert updated.summary == note.summary
        assert updated.created_at == note.created_at

    @pytest.mark.asyncio
    async def test_update_immutable_field_rejected(self, store):
        note = await store.insert(RecordKind.NOTE, note_values())
        with pytest.raises(ValidationError):
            await store.update_by_id(RecordKind.NOTE, note.id, {"created_at": datetime.now(timezone.utc)})
        with pytest.raises(ValidationError):
            await store.update_by_id(RecordKind.NOTE, note.id, {"id": str(uuid.uuid4())})

    @pytest.mark.asyncio
    async def test_update_unknown_field_rejected(self, store):
        note = await store.insert(RecordKind.NOTE, note_values())
        with pytest.raises(ValidationError):
            await store.update_by_id(RecordKind.NOTE, note.id, {"colour": "red"})

    @pytest.mark.asyncio
    async def test_update_unknown_id_is_not_found(self, store):
        with pytest.raises(NotFoundError):
            await store.update_by_id(RecordKind.NOTE, str(uuid.uuid4()), {"title": "x"})

    @pytest.mark.asyncio
    async def test_concurrent_appends_are_all_kept(self, store):
        note = await store.insert(RecordKind.NOTE, note_values())
        pairs = [{"question": f"Q{i}?", "answer": f"A{i}"} for i in range(5)]

        await asyncio.gather(
            *[store.append_to_list(RecordKind.NOTE, note.id, "questions", pair) for pair in pairs]
        )

        stored = await store.find_by_id(RecordKind.NOTE, note.id)
        assert sorted(q.question for q in stored.questions) == [p["question"] for p in pairs]

    @pytest.mark.asyncio
    async def test_append_to_unknown_note_or_field(self, store):
        note = await store.insert(RecordKind.NOTE, note_values())
        with pytest.raises(NotFoundError):
            await store.append_to_list(RecordKind.NOTE, str(uuid.uuid4()), "questions", {})
        with pytest.raises(ValidationError):
            await store.append_to_list(RecordKind.NOTE, note.id, "colour", "red")

    @pytest.mark.asyncio
    async def test_delete_returns_record_and_removes_it(self, store):
        note = await store.insert(RecordKind.NOTE, note_values())

        deleted = await store.delete_by_id(RecordKind.NOTE, note.id)

        assert deleted.id == note.id
        with pytest.raises(NotFoundError):
            await store.find_by_id(RecordKind.NOTE, note.id)

    @pytest.mark.asyncio
    async def test_delete_unknown_or_malformed_id_leaves_store_unchanged(self, store):
        await store.insert(RecordKind.NOTE, note_values())

        for bad_id in (str(uuid.uuid4()), "not-a-uuid", "507f1f77bcf86cd799439011"):
            with pytest.raises(NotFoundError):
                await store.delete_by_id(RecordKind.NOTE, bad_id)

        assert await store.count(RecordKind.NOTE) == 1


class TestErrorTranslation:

    @pytest.mark.asyncio
    async def test_ping(self, store):
        assert await store.ping() is True

    @pytest.mark.asyncio
    async def test_timeout_becomes_database_error(self):
        class SlowSession:
            async def __aenter__(self):
                await asyncio.sleep(1)
                return MagicMock()

            async def __aexit__(self, *args):
                return False

        slow_store = DocumentStore(lambda: SlowSession(), timeout=0.05)

        with pytest.raises(DatabaseError, match="did not respond in time"):
            await slow_store.find_all(RecordKind.NOTE)
        assert await slow_store.ping() is False
