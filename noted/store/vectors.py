from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .. import db
from ..config import DEFAULT_EMBEDDING_MODEL, NotedConfig
from ..errors import IndexUnavailable, StoreError
from ..semantic import embed_texts, get_embedding_client, hash_text

if TYPE_CHECKING:
    from ._store import NoteStore

logger = logging.getLogger(__name__)


@dataclass
class SemanticResult:
    note_id: int
    score: float


def embedding_text(title: str, content: str) -> str:
    return f"{title}\n\n{content}"


class SqliteVecIndex:
    """Note embeddings kept in a ``vec0`` table next to the notes, keyed by note id."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        model: str = DEFAULT_EMBEDDING_MODEL,
        dims: int = 384,
    ) -> None:
        self.conn = conn
        self.model = model
        self.dims = dims
        db.load_sqlite_vec(conn)
        conn.execute(
            f"""
            CREATE VIRTUAL TABLE IF NOT EXISTS note_vectors USING vec0(
                embedding float[{int(dims)}],
                content_hash TEXT,
                model TEXT
            )
            """
        )
        conn.commit()

    def _embed(self, text: str) -> bytes:
        if get_embedding_client(self.model) is None:
            raise IndexUnavailable(f"embedding model {self.model} is not available")
        embeddings = embed_texts([text], self.model)
        if not embeddings:
            raise IndexUnavailable("embedding client returned no vectors")
        return embeddings[0]

    def search(self, query: str, limit: int) -> list[SemanticResult]:
        vector = self._embed(query)
        rows = self.conn.execute(
            """
            SELECT rowid, distance
            FROM note_vectors
            WHERE embedding MATCH ?
              AND k = ?
            ORDER BY distance ASC
            """,
            (vector, int(limit)),
        ).fetchall()
        return [
            SemanticResult(note_id=int(row["rowid"]), score=1.0 / (1.0 + float(row["distance"])))
            for row in rows
        ]

    def sync_note(self, note_id: int, title: str, content: str) -> None:
        text = embedding_text(title, content)
        vector = self._embed(text)
        self.conn.execute("DELETE FROM note_vectors WHERE rowid = ?", (note_id,))
        self.conn.execute(
            """
            INSERT INTO note_vectors(rowid, embedding, content_hash, model)
            VALUES (?, ?, ?, ?)
            """,
            (note_id, vector, hash_text(text), self.model),
        )
        self.conn.commit()

    def delete(self, note_id: int) -> None:
        self.conn.execute("DELETE FROM note_vectors WHERE rowid = ?", (note_id,))
        self.conn.commit()

    def prune_orphans(self) -> int:
        rows = self.conn.execute(
            """
            SELECT rowid FROM note_vectors
            WHERE rowid NOT IN (SELECT id FROM notes)
            """
        ).fetchall()
        for row in rows:
            self.delete(int(row["rowid"]))
        return len(rows)


def open_vector_index(store: NoteStore, config: NotedConfig) -> SqliteVecIndex | None:
    if config.embedding_disabled:
        return None
    try:
        return SqliteVecIndex(
            store.conn, model=config.embedding_model, dims=config.embedding_dims
        )
    except (RuntimeError, sqlite3.Error) as exc:
        logger.info("vector index unavailable, using keyword search only: %s", exc)
        return None


def sync_notes(store: NoteStore, index: SqliteVecIndex, *, force: bool = False) -> dict[str, int]:
    notes = store.all_notes() if force else store.unsynced_notes()
    synced = 0
    failed = 0
    for note in notes:
        try:
            index.sync_note(note.id, note.title, note.content)
        except (IndexUnavailable, sqlite3.Error) as exc:
            logger.warning("failed to sync note #%d", note.id, exc_info=exc)
            failed += 1
            continue
        store.mark_embedding_synced(note.id)
        synced += 1
    try:
        pruned = index.prune_orphans()
    except sqlite3.Error as exc:
        raise StoreError(f"prune vectors failed: {exc}") from exc
    return {"checked": len(notes), "synced": synced, "failed": failed, "pruned": pruned}
