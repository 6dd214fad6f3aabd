from __future__ import annotations

import datetime as dt
import logging

from ..errors import ValidationError
from . import codec
from .types import Memory, NoteBackend, VectorIndex

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "fact"
DEFAULT_IMPORTANCE = 3
TITLE_MAX_CHARS = 50


def derive_title(content: str) -> str:
    if len(content) > TITLE_MAX_CHARS:
        return content[:TITLE_MAX_CHARS] + "..."
    return content


def remember(
    store: NoteBackend,
    index: VectorIndex | None,
    *,
    content: str,
    title: str = "",
    category: str = "",
    importance: int | None = 0,
    ttl: dt.timedelta | None = None,
    source: str = "",
    source_ref: str = "",
) -> Memory:
    if not content:
        raise ValidationError("content is required")

    if importance is None or not 1 <= importance <= 5:
        importance = DEFAULT_IMPORTANCE
    if not category:
        category = DEFAULT_CATEGORY
    elif not codec.is_valid_category(category):
        # Kept as given; unknown categories are stored and recalled like any other.
        logger.debug("remember: unrecognized category %r", category)
    title = title or derive_title(content)

    expires_at = None
    if ttl is not None and ttl > dt.timedelta(0):
        expires_at = dt.datetime.now(dt.UTC) + ttl

    note = store.create_note(
        title,
        content,
        expires_at=expires_at,
        source=source or None,
        source_ref=source_ref or None,
    )
    tag_names = codec.encode(category, importance)
    for name in tag_names:
        tag = store.create_tag(name)
        store.attach_tag(note.id, tag.id)

    if index is not None:
        try:
            index.sync_note(note.id, note.title, note.content)
            store.mark_embedding_synced(note.id)
        except Exception as exc:
            logger.warning("remember: index sync failed for note #%d", note.id, exc_info=exc)

    return Memory(
        id=note.id,
        title=note.title,
        content=note.content,
        category=category,
        importance=importance,
        tags=tag_names,
        created_at=note.created_at,
        updated_at=note.updated_at,
        expires_at=note.expires_at,
        source=note.source,
        source_ref=note.source_ref,
    )
