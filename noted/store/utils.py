from __future__ import annotations

import contextlib
import sqlite3
from collections.abc import Iterator

from .. import db
from ..errors import StoreError
from .types import Folder, Note

LIKE_ESCAPE = "\\"


@contextlib.contextmanager
def store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StoreError(f"{action} failed: {exc}") from exc


def escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(value: str) -> str:
    return f"%{escape_like(value)}%"


def row_to_note(row: sqlite3.Row) -> Note:
    return Note(
        id=int(row["id"]),
        title=row["title"] or "",
        content=row["content"] or "",
        created_at=db.parse_ts(row["created_at"]),
        updated_at=db.parse_ts(row["updated_at"]),
        expires_at=db.parse_ts(row["expires_at"]),
        source=row["source"],
        source_ref=row["source_ref"],
        folder_id=row["folder_id"],
        embedding_synced=bool(row["embedding_synced"]),
        pinned=bool(row["pinned"]),
        pinned_at=db.parse_ts(row["pinned_at"]),
    )


def row_to_folder(row: sqlite3.Row) -> Folder:
    return Folder(
        id=int(row["id"]),
        name=row["name"],
        parent_id=row["parent_id"],
        created_at=db.parse_ts(row["created_at"]),
    )
