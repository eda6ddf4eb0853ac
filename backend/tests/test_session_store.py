"""Tests for speaking sessions and delta extraction."""
from sermon_relay.services.session_store import SessionStore, extract_delta


def test_extract_delta_returns_new_suffix():
    assert extract_delta("Hello world", "Hello world and welcome") == "and welcome"


def test_extract_delta_from_empty_transcript():
    assert extract_delta("", "  In the beginning  ") == "In the beginning"


def test_extract_delta_is_empty_for_repeated_transcript():
    assert extract_delta("Grace and peace", "Grace and peace") == ""


def test_extract_delta_keeps_whole_text_when_provider_rewrites():
    # earlier words were corrected, so the old transcript is no longer contained
    assert extract_delta("Hello word", "Hello world, friends") == "Hello world, friends"


def test_advance_replaces_stored_transcript():
    store = SessionStore()
    session = store.start_session("ROOM1")

    assert SessionStore.advance(session, "Blessed are") == "Blessed are"
    assert SessionStore.advance(session, "Blessed are the meek") == "the meek"
    assert SessionStore.advance(session, "Blessed are the meek") == ""
    assert session.transcript == "Blessed are the meek"


def test_blank_transcription_keeps_running_transcript():
    store = SessionStore()
    session = store.start_session("ROOM")
    SessionStore.advance(session, "The Lord is my shepherd")

    assert SessionStore.advance(session, "") == ""
    assert SessionStore.advance(session, "   ") == ""
    assert session.transcript == "The Lord is my shepherd"
    assert SessionStore.advance(session, "The Lord is my shepherd I shall not want") == "I shall not want"


def test_append_audio_keeps_only_recent_chunks():
    store = SessionStore(max_chunks=10)
    store.start_session("ROOM1")
    for i in range(15):
        session = store.append_audio("ROOM1", bytes([i]))

    assert len(session.audio_chunks) == 10
    assert session.audio_chunks[0] == bytes([5])
    assert session.buffered_audio() == bytes(range(5, 15))


def test_truncation_does_not_touch_transcript():
    store = SessionStore(max_chunks=2)
    session = store.start_session("ROOM1")
    SessionStore.advance(session, "first words")
    for i in range(5):
        store.append_audio("ROOM1", b"x")

    assert session.transcript == "first words"


def test_start_session_resets_existing_session():
    store = SessionStore()
    session = store.start_session("ROOM1")
    store.append_audio("ROOM1", b"abc")
    SessionStore.advance(session, "some text")

    fresh = store.start_session("ROOM1")

    assert store.get("ROOM1") is fresh
    assert fresh.transcript == ""
    assert fresh.audio_chunks == []
    assert store.active_keys() == ["ROOM1"]


def test_end_session_discards_session():
    store = SessionStore()
    store.start_session("ROOM1")
    store.end_session("ROOM1")
    store.end_session("ROOM1")

    assert store.get("ROOM1") is None
