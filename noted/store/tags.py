from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .types import Note, Tag
from .utils import row_to_note, store_errors

if TYPE_CHECKING:
    from ._store import NoteStore


def split_tag_list(value: str | None) -> list[str]:
    """Split a comma separated tag list, dropping blanks and duplicates."""

    tags: list[str] = []
    seen: set[str] = set()
    for part in (value or "").split(","):
        name = part.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        tags.append(name)
    return tags


def create_tag(store: NoteStore, name: str) -> Tag:
    with store_errors("create tag"):
        store.conn.execute("INSERT OR IGNORE INTO tags(name) VALUES (?)", (name,))
        row = store.conn.execute("SELECT id, name FROM tags WHERE name = ?", (name,)).fetchone()
        store.conn.commit()
    return Tag(id=int(row["id"]), name=row["name"])


def attach_tag(store: NoteStore, note_id: int, tag_id: int) -> None:
    with store_errors("attach tag"):
        store.conn.execute(
            "INSERT OR IGNORE INTO note_tags(note_id, tag_id) VALUES (?, ?)",
            (note_id, tag_id),
        )
        store.conn.commit()


def detach_tag(store: NoteStore, note_id: int, tag_id: int) -> None:
    with store_errors("detach tag"):
        store.conn.execute(
            "DELETE FROM note_tags WHERE note_id = ? AND tag_id = ?",
            (note_id, tag_id),
        )
        store.conn.commit()


def replace_note_tags(store: NoteStore, note_id: int, names: list[str]) -> list[Tag]:
    """Make ``names`` the complete tag set of a note."""

    with store_errors("replace tags"):
        store.conn.execute("DELETE FROM note_tags WHERE note_id = ?", (note_id,))
        for name in names:
            store.conn.execute("INSERT OR IGNORE INTO tags(name) VALUES (?)", (name,))
            store.conn.execute(
                """
                INSERT OR IGNORE INTO note_tags(note_id, tag_id)
                SELECT ?, id FROM tags WHERE name = ?
                """,
                (note_id, name),
            )
        store.conn.commit()
    return tags_for_note(store, note_id)


def tags_for_note(store: NoteStore, note_id: int) -> list[Tag]:
    with store_errors("load tags"):
        rows = store.conn.execute(
            """
            SELECT tags.id, tags.name
            FROM tags
            JOIN note_tags ON note_tags.tag_id = tags.id
            WHERE note_tags.note_id = ?
            ORDER BY tags.name
            """,
            (note_id,),
        ).fetchall()
    return [Tag(id=int(row["id"]), name=row["name"]) for row in rows]


def notes_tagged_with(store: NoteStore, name: str) -> list[Note]:
    with store_errors("list notes by tag"):
        rows = store.conn.execute(
            """
            SELECT notes.*
            FROM notes
            JOIN note_tags ON note_tags.note_id = notes.id
            JOIN tags ON tags.id = note_tags.tag_id
            WHERE tags.name = ?
            ORDER BY notes.created_at DESC, notes.id DESC
            """,
            (name,),
        ).fetchall()
    return [row_to_note(row) for row in rows]


def list_tags_with_counts(store: NoteStore) -> list[dict[str, Any]]:
    with store_errors("list tags"):
        rows = store.conn.execute(
            """
            SELECT tags.id, tags.name, COUNT(note_tags.note_id) AS note_count
            FROM tags
            LEFT JOIN note_tags ON note_tags.tag_id = tags.id
            GROUP BY tags.id
            ORDER BY tags.name
            """
        ).fetchall()
    return [
        {"id": int(row["id"]), "name": row["name"], "note_count": int(row["note_count"])}
        for row in rows
    ]


def delete_unused_tags(store: NoteStore) -> int:
    with store_errors("delete unused tags"):
        cur = store.conn.execute(
            "DELETE FROM tags WHERE id NOT IN (SELECT DISTINCT tag_id FROM note_tags)"
        )
        store.conn.commit()
    return int(cur.rowcount or 0)
