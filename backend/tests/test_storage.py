"""Tests for storage backends."""
import json

import httpx
import pytest

from sermon_relay.core.exceptions import StorageError
from sermon_relay.services import storage as storage_module
from sermon_relay.services.storage import (
    InMemoryStorage,
    SupabaseStorage,
    generate_unique_room_code,
)


async def test_in_memory_room_lifecycle():
    storage = InMemoryStorage()
    room = await storage.create_room("ABCD1234")

    assert (await storage.get_room_by_code("ABCD1234")).id == room.id
    await storage.end_room("ABCD1234")
    assert await storage.get_room_by_code("ABCD1234") is None


async def test_in_memory_transcripts_are_kept_in_order():
    storage = InMemoryStorage()
    room = await storage.create_room("ABCD1234")
    await storage.save_transcript(room.id, "one", None, "en")
    await storage.save_transcript(room.id, "one", "uno", "es")
    await storage.save_transcript(room.id + 100, "other", None, "en")

    records = await storage.get_transcripts_by_room(room.id)

    assert [(r.language, r.translated_text) for r in records] == [("en", None), ("es", "uno")]


async def test_unique_room_code_gives_up_after_repeated_collisions(monkeypatch):
    storage = InMemoryStorage()
    await storage.create_room("TAKEN000")
    monkeypatch.setattr(storage_module, "generate_room_code", lambda: "TAKEN000")

    with pytest.raises(StorageError):
        await generate_unique_room_code(storage)


def _supabase(handler):
    client = httpx.AsyncClient(base_url="https://db.test/rest/v1", transport=httpx.MockTransport(handler))
    return SupabaseStorage(client)


async def test_supabase_get_room_by_code_queries_active_rooms():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json=[{"id": 7, "room_code": "ABCD1234", "is_active": True, "created_at": "2024-01-01T00:00:00Z"}],
        )

    storage = _supabase(handler)
    room = await storage.get_room_by_code("ABCD1234")

    assert room.id == 7
    assert seen[0].url.path == "/rest/v1/sermon_rooms"
    assert seen[0].url.params["room_code"] == "eq.ABCD1234"
    assert seen[0].url.params["is_active"] == "eq.true"


async def test_supabase_missing_room_is_none():
    storage = _supabase(lambda request: httpx.Response(200, json=[]))

    assert await storage.get_room_by_code("NOPE0000") is None


async def test_supabase_save_transcript_posts_row():
    def handler(request):
        row = json.loads(request.content)
        assert request.headers["Prefer"] == "return=representation"
        return httpx.Response(201, json=[{"id": 1, "created_at": "2024-01-01T00:00:00Z", **row}])

    storage = _supabase(handler)
    record = await storage.save_transcript(3, "Hello", "Hola", "es")

    assert record.room_id == 3
    assert record.translated_text == "Hola"


async def test_supabase_http_failure_raises_storage_error():
    storage = _supabase(lambda request: httpx.Response(500, json={"message": "boom"}))

    with pytest.raises(StorageError) as exc_info:
        await storage.add_listener(1, "es")
    assert exc_info.value.operation == "add_listener"


def test_supabase_requires_credentials():
    with pytest.raises(ValueError):
        SupabaseStorage.from_credentials("", "")


async def test_in_memory_transcripts_filter_and_page():
    storage = InMemoryStorage()
    room = await storage.create_room("ABCD1234")
    for text in ["one", "two", "three"]:
        await storage.save_transcript(room.id, text, None, "en")
        await storage.save_transcript(room.id, text, f"es {text}", "es")

    spanish = await storage.get_transcripts_by_room(room.id, language="es")
    first_page = await storage.get_transcripts_by_room(room.id, language="en", limit=2)
    second_page = await storage.get_transcripts_by_room(room.id, language="en", limit=2, offset=2)
    offset_only = await storage.get_transcripts_by_room(room.id, offset=5)

    assert [r.translated_text for r in spanish] == ["es one", "es two", "es three"]
    assert [r.original_text for r in first_page] == ["one", "two"]
    assert [r.original_text for r in second_page] == ["three"]
    assert [r.language for r in offset_only] == ["es"]


async def test_in_memory_search_matches_either_text_newest_first():
    storage = InMemoryStorage()
    room = await storage.create_room("ABCD1234")
    other = await storage.create_room("WXYZ9876")
    await storage.save_transcript(room.id, "The Lord is my shepherd", None, "en")
    await storage.save_transcript(room.id, "The Lord is my shepherd", "El Señor es mi pastor", "es")
    await storage.save_transcript(other.id, "my SHEPHERD", None, "en")

    everywhere = await storage.search_transcripts("shepherd")
    by_translation = await storage.search_transcripts("pastor")
    in_room = await storage.search_transcripts("shepherd", room_id=room.id, language="en")

    assert [r.room_id for r in everywhere] == [other.id, room.id, room.id]
    assert [r.language for r in by_translation] == ["es"]
    assert [(r.room_id, r.language) for r in in_room] == [(room.id, "en")]
    assert len(await storage.search_transcripts("shepherd", limit=1)) == 1


async def test_in_memory_transcript_lookup_and_delete():
    storage = InMemoryStorage()
    room = await storage.create_room("ABCD1234")
    kept = await storage.save_transcript(room.id, "one", None, "en")
    dropped = await storage.save_transcript(room.id, "two", None, "en")

    await storage.delete_transcript(dropped.id)

    assert (await storage.get_transcript(kept.id)).original_text == "one"
    assert await storage.get_transcript(dropped.id) is None

    await storage.delete_transcripts_by_room(room.id)
    assert await storage.get_transcripts_by_room(room.id) == []


async def test_in_memory_active_rooms_newest_first():
    storage = InMemoryStorage()
    older = await storage.create_room("OLDER000")
    ended = await storage.create_room("ENDED000")
    newer = await storage.create_room("NEWER000")
    await storage.end_room(ended.room_code)

    rooms = await storage.list_active_rooms()

    assert [r.id for r in rooms] == [newer.id, older.id]
    assert [r.id for r in await storage.list_active_rooms(limit=1)] == [newer.id]


async def test_in_memory_remove_listener():
    storage = InMemoryStorage()
    room = await storage.create_room("ABCD1234")
    listener = await storage.add_listener(room.id, "es")

    assert await storage.remove_listener(listener.id) is True
    assert await storage.remove_listener(listener.id) is False
    assert await storage.get_listeners_by_room(room.id) == []


async def test_supabase_search_sends_or_filter_newest_first():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json=[{"id": 4, "room_id": 2, "original_text": "Amen", "language": "en",
                   "created_at": "2024-01-01T00:00:00Z"}],
        )

    storage = _supabase(handler)
    records = await storage.search_transcripts("amen", room_id=2, language="en", limit=10)

    params = seen[0].url.params
    assert [r.id for r in records] == [4]
    assert params["or"] == '(original_text.ilike."*amen*",translated_text.ilike."*amen*")'
    assert params["order"] == "created_at.desc"
    assert params["limit"] == "10"
    assert params["room_id"] == "eq.2"
    assert params["language"] == "eq.en"


async def test_supabase_room_transcripts_offset_defaults_page_size():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    storage = _supabase(handler)
    await storage.get_transcripts_by_room(2, language="es", offset=20)

    params = seen[0].url.params
    assert params["order"] == "created_at.asc"
    assert params["language"] == "eq.es"
    assert params["offset"] == "20"
    assert params["limit"] == "50"


async def test_supabase_list_active_rooms():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    storage = _supabase(handler)
    assert await storage.list_active_rooms() == []

    params = seen[0].url.params
    assert params["is_active"] == "eq.true"
    assert params["order"] == "created_at.desc"
    assert params["limit"] == "50"


async def test_supabase_remove_listener_deletes_by_id():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"id": 9, "room_id": 1, "preferred_language": "es",
                                          "joined_at": "2024-01-01T00:00:00Z"}])

    storage = _supabase(handler)

    assert await storage.remove_listener(9) is True
    assert seen[0].method == "DELETE"
    assert seen[0].url.path == "/rest/v1/listeners"
    assert seen[0].url.params["id"] == "eq.9"


async def test_supabase_delete_failure_raises_storage_error():
    storage = _supabase(lambda request: httpx.Response(500, json={"message": "boom"}))

    with pytest.raises(StorageError) as exc_info:
        await storage.delete_transcripts_by_room(1)
    assert exc_info.value.operation == "delete_transcripts_by_room"
