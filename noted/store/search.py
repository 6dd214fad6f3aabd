from __future__ import annotations

from typing import TYPE_CHECKING

from .. import db
from .types import Note
from .utils import LIKE_ESCAPE, contains_pattern, row_to_note, store_errors

if TYPE_CHECKING:
    from ._store import NoteStore


def search_text(store: NoteStore, pattern: str, limit: int) -> list[Note]:
    """Literal substring match on title or content, most recently updated first.

    SQLite's LIKE folds ASCII case, so the match is case-insensitive.
    """

    like = contains_pattern(pattern)
    with store_errors("search notes"):
        rows = store.conn.execute(
            f"""
            SELECT * FROM notes
            WHERE content LIKE ? ESCAPE '{LIKE_ESCAPE}'
               OR title LIKE ? ESCAPE '{LIKE_ESCAPE}'
            ORDER BY updated_at DESC, id DESC
            LIMIT ?
            """,
            (like, like, int(limit)),
        ).fetchall()
    return [row_to_note(row) for row in rows]


def delete_expired_notes(store: NoteStore) -> int:
    now = db.now_iso()
    with store_errors("delete expired notes"):
        cur = store.conn.execute(
            "DELETE FROM notes WHERE expires_at IS NOT NULL AND expires_at < ?",
            (now,),
        )
        store.conn.commit()
    return int(cur.rowcount or 0)
