from __future__ import annotations

from ..semantic import embed_texts, get_embedding_client, hash_text
from ._store import NoteStore
from .types import Folder, Note, Tag
from .vectors import SemanticResult, SqliteVecIndex, open_vector_index, sync_notes

__all__ = [
    "Folder",
    "Note",
    "NoteStore",
    "SemanticResult",
    "SqliteVecIndex",
    "Tag",
    "embed_texts",
    "get_embedding_client",
    "hash_text",
    "open_vector_index",
    "sync_notes",
]
