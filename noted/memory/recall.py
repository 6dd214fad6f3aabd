from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from ..errors import NotFoundError, ValidationError
from ..store.types import Note
from .types import Memory, NoteBackend, RecallResult, VectorIndex, note_to_memory

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5


def _collect(
    store: NoteBackend,
    candidates: Iterable[tuple[Note, float | None]],
    category: str,
    limit: int,
) -> list[Memory]:
    memories: list[Memory] = []
    for note, score in candidates:
        if len(memories) >= limit:
            break
        memory = note_to_memory(store, note)
        if memory is None:
            continue
        if category and memory.category != category:
            continue
        memory.score = score
        memories.append(memory)
    return memories


def _semantic_candidates(
    store: NoteBackend, index: VectorIndex, query: str, limit: int
) -> Iterator[tuple[Note, float | None]]:
    try:
        hits = index.search(query, limit)
    except Exception as exc:
        logger.warning("recall: semantic search failed, using keyword search", exc_info=exc)
        return
    for hit in hits:
        try:
            note = store.get_note(hit.note_id)
        except NotFoundError:
            # The vector outlived its note (deleted or expired).
            continue
        yield note, hit.score


def _keyword_candidates(
    store: NoteBackend, query: str, limit: int
) -> Iterator[tuple[Note, float | None]]:
    for note in store.search_text(query, limit):
        yield note, None


def recall(
    store: NoteBackend,
    index: VectorIndex | None,
    *,
    query: str,
    limit: int = DEFAULT_LIMIT,
    category: str = "",
    use_semantic: bool = True,
) -> RecallResult:
    """Find memories matching ``query``.

    Expired notes are swept first, along with any vectors they leave
    behind. When an index is available and ``use_semantic`` is set,
    candidates come from the index in rank order; if none of them survive
    filtering the literal title/content search is used instead. Both paths
    over-fetch ``limit * 2`` candidates and share the same memory and
    category filtering.
    """

    if not query or not query.strip():
        raise ValidationError("query is required")
    if limit <= 0:
        limit = DEFAULT_LIMIT

    swept = store.delete_expired_notes()
    if swept and index is not None:
        try:
            index.prune_orphans()
        except Exception as exc:
            logger.warning("recall: pruning vectors of expired notes failed", exc_info=exc)

    if index is not None and use_semantic:
        memories = _collect(
            store,
            _semantic_candidates(store, index, query, limit * 2),
            category,
            limit,
        )
        if memories:
            return RecallResult(query=query, method="semantic", memories=memories)

    memories = _collect(store, _keyword_candidates(store, query, limit * 2), category, limit)
    return RecallResult(query=query, method="keyword", memories=memories)
