from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from noted import db
from noted.errors import NotFoundError, StoreError
from noted.store import NoteStore


def test_create_and_get_note(store: NoteStore) -> None:
    note = store.create_note("Title", "Body", source="cli", source_ref="ref-1")

    fetched = store.get_note(note.id)
    assert fetched.title == "Title"
    assert fetched.content == "Body"
    assert fetched.source == "cli"
    assert fetched.source_ref == "ref-1"
    assert fetched.created_at is not None
    assert fetched.expires_at is None
    assert fetched.embedding_synced is False


def test_get_missing_note_raises(store: NoteStore) -> None:
    with pytest.raises(NotFoundError, match="note #7 not found"):
        store.get_note(7)


def test_delete_note_and_missing(store: NoteStore) -> None:
    note = store.create_note("t", "c")
    store.delete_note(note.id)
    with pytest.raises(NotFoundError):
        store.get_note(note.id)
    with pytest.raises(NotFoundError):
        store.delete_note(note.id)


def test_update_note_clears_embedding_flag(store: NoteStore) -> None:
    note = store.create_note("t", "c")
    store.mark_embedding_synced(note.id)
    assert store.get_note(note.id).embedding_synced is True

    updated = store.update_note(note.id, content="new body")

    assert updated.title == "t"
    assert updated.content == "new body"
    assert updated.embedding_synced is False
    assert [n.id for n in store.unsynced_notes()] == [note.id]


def test_tags_are_shared_and_cascade(store: NoteStore) -> None:
    a = store.create_note("a", "a")
    b = store.create_note("b", "b")
    tag = store.create_tag("work")
    assert store.create_tag("work").id == tag.id
    store.attach_tag(a.id, tag.id)
    store.attach_tag(a.id, tag.id)
    store.attach_tag(b.id, tag.id)

    assert [t.name for t in store.tags_for_note(a.id)] == ["work"]
    assert {n.id for n in store.notes_tagged_with("work")} == {a.id, b.id}

    store.delete_note(a.id)
    assert [n.id for n in store.notes_tagged_with("work")] == [b.id]

    store.detach_tag(b.id, tag.id)
    counts = {t["name"]: t["note_count"] for t in store.list_tags_with_counts()}
    assert counts == {"work": 0}
    assert store.delete_unused_tags() == 1
    assert store.list_tags_with_counts() == []


def test_search_text_orders_by_update(store: NoteStore) -> None:
    older = store.create_note("first", "shared word")
    newer = store.create_note("second", "shared word")
    store.update_note(older.id, title="first edited")

    results = store.search_text("SHARED", 10)

    assert [n.id for n in results] == [older.id, newer.id]
    assert store.search_text("shared", 1)[0].id == older.id


def test_search_text_escapes_wildcards(store: NoteStore) -> None:
    store.create_note("a", "snake_case_name")
    store.create_note("b", "snakeXcase")

    assert [n.content for n in store.search_text("snake_case", 10)] == ["snake_case_name"]


def test_delete_expired_notes(store: NoteStore) -> None:
    past = dt.datetime.now(dt.UTC) - dt.timedelta(seconds=1)
    future = dt.datetime.now(dt.UTC) + dt.timedelta(hours=1)
    expired = store.create_note("old", "x", expires_at=past)
    live = store.create_note("new", "x", expires_at=future)
    forever = store.create_note("forever", "x")

    assert store.delete_expired_notes() == 1
    with pytest.raises(NotFoundError):
        store.get_note(expired.id)
    assert store.get_note(live.id)
    assert store.get_note(forever.id)
    assert store.delete_expired_notes() == 0


def test_naive_expiry_is_treated_as_utc(store: NoteStore) -> None:
    naive = dt.datetime.now(dt.UTC).replace(tzinfo=None) + dt.timedelta(hours=2)
    note = store.create_note("t", "c", expires_at=naive)
    assert note.expires_at == naive.replace(tzinfo=dt.UTC)


def test_list_notes_filters(store: NoteStore) -> None:
    folder = store.create_folder("projects")
    in_folder = store.create_note("a", "a", folder_id=folder.id)
    tagged = store.create_note("b", "b")
    store.create_note("c", "c")
    store.attach_tag(tagged.id, store.create_tag("pinned").id)

    assert len(store.list_notes()) == 3
    assert len(store.list_notes(limit=2)) == 2
    assert [n.id for n in store.list_notes(tag="pinned")] == [tagged.id]
    assert [n.id for n in store.list_notes(folder_id=folder.id)] == [in_folder.id]


def test_folders(store: NoteStore) -> None:
    parent = store.create_folder("work")
    child = store.create_folder("reports", parent.id)
    note = store.create_note("t", "c")
    store.move_note_to_folder(note.id, child.id)

    assert [f.name for f in store.list_folders()] == ["reports", "work"]
    assert child.parent_id == parent.id
    assert store.get_note(note.id).folder_id == child.id

    store.delete_folder(child.id)
    assert store.get_note(note.id).folder_id is None
    with pytest.raises(NotFoundError):
        store.delete_folder(child.id)
    with pytest.raises(NotFoundError):
        store.move_note_to_folder(999, parent.id)


def test_pin_and_unpin_note(store: NoteStore) -> None:
    note = store.create_note("t", "c")
    assert note.pinned is False
    assert note.pinned_at is None

    pinned = store.pin_note(note.id)
    assert pinned.pinned is True
    assert pinned.pinned_at is not None
    assert pinned.to_dict()["pinned"] is True

    unpinned = store.unpin_note(note.id)
    assert unpinned.pinned is False
    assert unpinned.pinned_at is None
    assert "pinned_at" not in unpinned.to_dict()

    with pytest.raises(NotFoundError):
        store.pin_note(999)
    with pytest.raises(NotFoundError):
        store.unpin_note(999)


def test_replace_note_tags(store: NoteStore) -> None:
    note = store.create_note("t", "c")
    store.attach_tag(note.id, store.create_tag("old").id)

    tags = store.replace_note_tags(note.id, ["new", "work", "new"])

    assert [tag.name for tag in tags] == ["new", "work"]
    assert store.replace_note_tags(note.id, []) == []
    assert [t["name"] for t in store.list_tags_with_counts()] == ["new", "old", "work"]
    with pytest.raises(NotFoundError):
        store.replace_note_tags(999, ["x"])


def test_unknown_folder_is_store_error(store: NoteStore) -> None:
    with pytest.raises(StoreError):
        store.create_note("t", "c", folder_id=12345)


def test_stats(store: NoteStore) -> None:
    note = store.create_note("t", "c")
    store.attach_tag(note.id, store.create_tag("memory").id)
    store.create_note("plain", "c")

    stats = store.stats()

    assert stats["notes"] == 2
    assert stats["memories"] == 1
    assert stats["tags"] == 1
    assert stats["folders"] == 0
    assert stats["db_size_bytes"] >= 0
    assert stats["db_path"] == str(store.db_path)


def test_store_creates_parent_directory(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "dir" / "notes.sqlite"
    note_store = NoteStore(path)
    try:
        assert path.exists()
        row = note_store.conn.execute("PRAGMA user_version").fetchone()
        assert int(row[0]) == db.SCHEMA_VERSION
    finally:
        note_store.close()
