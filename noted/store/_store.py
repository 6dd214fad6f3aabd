from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Any

from .. import db
from ..errors import NotFoundError, StoreError
from . import search as store_search
from . import tags as store_tags
from .types import Folder, Note, Tag
from .utils import row_to_folder, row_to_note, store_errors

logger = logging.getLogger(__name__)


class NoteStore:
    def __init__(
        self,
        db_path: Path | str = db.DEFAULT_DB_PATH,
        *,
        check_same_thread: bool = True,
    ):
        self.db_path = Path(db_path).expanduser()
        with store_errors("open database"):
            self.conn = db.connect(self.db_path, check_same_thread=check_same_thread)
            db.initialize_schema(self.conn)

    def close(self) -> None:
        self.conn.close()

    def create_note(
        self,
        title: str,
        content: str,
        *,
        expires_at: dt.datetime | None = None,
        source: str | None = None,
        source_ref: str | None = None,
        folder_id: int | None = None,
    ) -> Note:
        now = db.now_iso()
        with store_errors("create note"):
            cur = self.conn.execute(
                """
                INSERT INTO notes(
                    title,
                    content,
                    created_at,
                    updated_at,
                    embedding_synced,
                    expires_at,
                    source,
                    source_ref,
                    folder_id
                )
                VALUES (?, ?, ?, ?, 0, ?, ?, ?, ?)
                """,
                (
                    title,
                    content,
                    now,
                    now,
                    db.to_iso(expires_at) if expires_at else None,
                    source or None,
                    source_ref or None,
                    folder_id,
                ),
            )
            self.conn.commit()
        lastrowid = cur.lastrowid
        if lastrowid is None:
            raise StoreError("Failed to create note")
        return self.get_note(int(lastrowid))

    def get_note(self, note_id: int) -> Note:
        with store_errors("get note"):
            row = self.conn.execute("SELECT * FROM notes WHERE id = ?", (note_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"note #{note_id} not found")
        return row_to_note(row)

    def update_note(
        self,
        note_id: int,
        *,
        title: str | None = None,
        content: str | None = None,
    ) -> Note:
        current = self.get_note(note_id)
        with store_errors("update note"):
            self.conn.execute(
                """
                UPDATE notes
                SET title = ?, content = ?, updated_at = ?, embedding_synced = 0
                WHERE id = ?
                """,
                (
                    current.title if title is None else title,
                    current.content if content is None else content,
                    db.now_iso(),
                    note_id,
                ),
            )
            self.conn.commit()
        return self.get_note(note_id)

    def delete_note(self, note_id: int) -> None:
        with store_errors("delete note"):
            cur = self.conn.execute("DELETE FROM notes WHERE id = ?", (note_id,))
            self.conn.commit()
        if not cur.rowcount:
            raise NotFoundError(f"note #{note_id} not found")

    def list_notes(
        self,
        limit: int = 20,
        offset: int = 0,
        *,
        tag: str | None = None,
        folder_id: int | None = None,
    ) -> list[Note]:
        params: list[Any] = []
        joins = ""
        where = ["1=1"]
        if tag:
            joins = (
                " JOIN note_tags ON note_tags.note_id = notes.id"
                " JOIN tags ON tags.id = note_tags.tag_id"
            )
            where.append("tags.name = ?")
            params.append(tag)
        if folder_id is not None:
            where.append("notes.folder_id = ?")
            params.append(folder_id)
        with store_errors("list notes"):
            rows = self.conn.execute(
                f"""
                SELECT notes.* FROM notes{joins}
                WHERE {" AND ".join(where)}
                ORDER BY notes.created_at DESC, notes.id DESC
                LIMIT ? OFFSET ?
                """,
                (*params, int(limit), int(offset)),
            ).fetchall()
        return [row_to_note(row) for row in rows]

    def all_notes(self) -> list[Note]:
        with store_errors("list notes"):
            rows = self.conn.execute("SELECT * FROM notes ORDER BY created_at DESC").fetchall()
        return [row_to_note(row) for row in rows]

    def unsynced_notes(self) -> list[Note]:
        with store_errors("list unsynced notes"):
            rows = self.conn.execute(
                "SELECT * FROM notes WHERE embedding_synced = 0 ORDER BY id"
            ).fetchall()
        return [row_to_note(row) for row in rows]

    def mark_embedding_synced(self, note_id: int) -> None:
        with store_errors("mark embedding synced"):
            self.conn.execute("UPDATE notes SET embedding_synced = 1 WHERE id = ?", (note_id,))
            self.conn.commit()

    def create_tag(self, name: str) -> Tag:
        return store_tags.create_tag(self, name)

    def attach_tag(self, note_id: int, tag_id: int) -> None:
        store_tags.attach_tag(self, note_id, tag_id)

    def detach_tag(self, note_id: int, tag_id: int) -> None:
        store_tags.detach_tag(self, note_id, tag_id)

    def replace_note_tags(self, note_id: int, names: list[str]) -> list[Tag]:
        self.get_note(note_id)
        return store_tags.replace_note_tags(self, note_id, names)

    def tags_for_note(self, note_id: int) -> list[Tag]:
        return store_tags.tags_for_note(self, note_id)

    def notes_tagged_with(self, name: str) -> list[Note]:
        return store_tags.notes_tagged_with(self, name)

    def list_tags_with_counts(self) -> list[dict[str, Any]]:
        return store_tags.list_tags_with_counts(self)

    def delete_unused_tags(self) -> int:
        return store_tags.delete_unused_tags(self)

    def search_text(self, pattern: str, limit: int) -> list[Note]:
        return store_search.search_text(self, pattern, limit)

    def delete_expired_notes(self) -> int:
        deleted = store_search.delete_expired_notes(self)
        if deleted:
            logger.info("deleted %d expired notes", deleted)
        return deleted

    def create_folder(self, name: str, parent_id: int | None = None) -> Folder:
        now = db.now_iso()
        with store_errors("create folder"):
            cur = self.conn.execute(
                "INSERT INTO folders(name, parent_id, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (name, parent_id, now, now),
            )
            self.conn.commit()
            row = self.conn.execute(
                "SELECT * FROM folders WHERE id = ?", (cur.lastrowid,)
            ).fetchone()
        return row_to_folder(row)

    def list_folders(self) -> list[Folder]:
        with store_errors("list folders"):
            rows = self.conn.execute("SELECT * FROM folders ORDER BY name, id").fetchall()
        return [row_to_folder(row) for row in rows]

    def delete_folder(self, folder_id: int) -> None:
        with store_errors("delete folder"):
            cur = self.conn.execute("DELETE FROM folders WHERE id = ?", (folder_id,))
            self.conn.commit()
        if not cur.rowcount:
            raise NotFoundError(f"folder #{folder_id} not found")

    def move_note_to_folder(self, note_id: int, folder_id: int | None) -> None:
        with store_errors("move note"):
            cur = self.conn.execute(
                "UPDATE notes SET folder_id = ?, updated_at = ? WHERE id = ?",
                (folder_id, db.now_iso(), note_id),
            )
            self.conn.commit()
        if not cur.rowcount:
            raise NotFoundError(f"note #{note_id} not found")

    def pin_note(self, note_id: int) -> Note:
        with store_errors("pin note"):
            cur = self.conn.execute(
                "UPDATE notes SET pinned = 1, pinned_at = ? WHERE id = ?",
                (db.now_iso(), note_id),
            )
            self.conn.commit()
        if not cur.rowcount:
            raise NotFoundError(f"note #{note_id} not found")
        return self.get_note(note_id)

    def unpin_note(self, note_id: int) -> Note:
        with store_errors("unpin note"):
            cur = self.conn.execute(
                "UPDATE notes SET pinned = 0, pinned_at = NULL WHERE id = ?", (note_id,)
            )
            self.conn.commit()
        if not cur.rowcount:
            raise NotFoundError(f"note #{note_id} not found")
        return self.get_note(note_id)

    def stats(self) -> dict[str, Any]:
        with store_errors("collect stats"):
            notes = self.conn.execute("SELECT COUNT(*) FROM notes").fetchone()[0]
            tags = self.conn.execute("SELECT COUNT(*) FROM tags").fetchone()[0]
            folders = self.conn.execute("SELECT COUNT(*) FROM folders").fetchone()[0]
            memories = self.conn.execute(
                """
                SELECT COUNT(*) FROM note_tags
                JOIN tags ON tags.id = note_tags.tag_id
                WHERE tags.name = 'memory'
                """
            ).fetchone()[0]
        size_bytes = self.db_path.stat().st_size if self.db_path.exists() else 0
        return {
            "notes": int(notes),
            "memories": int(memories),
            "tags": int(tags),
            "folders": int(folders),
            "db_size_bytes": int(size_bytes),
            "db_path": str(self.db_path),
        }
