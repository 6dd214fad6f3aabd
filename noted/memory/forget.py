from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from ..errors import NotFoundError, StoreError
from ..store.types import Note
from . import codec
from .types import ForgetResult, Memory, NoteBackend, VectorIndex, note_to_memory

logger = logging.getLogger(__name__)

QUERY_CANDIDATE_LIMIT = 1000


def _age_days(memory: Memory, now: dt.datetime) -> float | None:
    if memory.created_at is None:
        return None
    return (now - memory.created_at).total_seconds() / 86400.0


def _matches(
    memory: Memory,
    *,
    now: dt.datetime,
    older_than_days: int,
    importance_below: int,
    category: str,
) -> bool:
    if older_than_days > 0:
        age = _age_days(memory, now)
        if age is not None and age < older_than_days:
            return False
    if category and memory.category != category:
        return False
    if importance_below > 0 and memory.importance >= importance_below:
        return False
    return True


def _delete_from_index(index: VectorIndex | None, note_id: int) -> None:
    if index is None:
        return
    try:
        index.delete(note_id)
    except Exception as exc:
        logger.warning("forget: index delete failed for note #%d", note_id, exc_info=exc)


def _forget_one(
    store: NoteBackend,
    index: VectorIndex | None,
    memory_id: int,
    dry_run: bool,
    criteria: dict[str, Any],
) -> ForgetResult:
    try:
        note = store.get_note(memory_id)
    except NotFoundError:
        raise NotFoundError(f"memory #{memory_id} not found") from None
    memory = note_to_memory(store, note)
    if memory is None:
        raise NotFoundError(f"note #{memory_id} is not a memory")
    if dry_run:
        return ForgetResult(dry_run=True, memories=[memory], criteria=criteria)
    _delete_from_index(index, memory_id)
    store.delete_note(memory_id)
    return ForgetResult(dry_run=False, memories=[memory], deleted=1)


def forget(
    store: NoteBackend,
    index: VectorIndex | None,
    *,
    older_than_days: int | None = 0,
    importance_below: int | None = 0,
    category: str = "",
    query: str = "",
    memory_id: int | None = 0,
    dry_run: bool = False,
) -> ForgetResult:
    """Delete memories matching every given criterion.

    With ``memory_id`` only that memory is considered and the other filters
    are ignored. Without any criterion at all the call is always a dry run.
    """

    older_than_days = older_than_days or 0
    importance_below = importance_below or 0
    memory_id = memory_id or 0
    category = category or ""
    query = query or ""
    criteria = {
        "older_than_days": older_than_days,
        "importance_below": importance_below,
        "category": category,
        "query": query,
        "id": memory_id,
    }

    has_criteria = bool(older_than_days or importance_below or category or query or memory_id)
    if not dry_run and not has_criteria:
        logger.info("forget: no criteria given, running as dry run")
        dry_run = True

    if memory_id:
        return _forget_one(store, index, memory_id, dry_run, criteria)

    notes: list[Note]
    if query:
        notes = store.search_text(query, QUERY_CANDIDATE_LIMIT)
    else:
        notes = store.notes_tagged_with(codec.MEMORY_TAG)

    now = dt.datetime.now(dt.UTC)
    candidates: list[Memory] = []
    for note in notes:
        memory = note_to_memory(store, note)
        if memory is None:
            continue
        if _matches(
            memory,
            now=now,
            older_than_days=older_than_days,
            importance_below=importance_below,
            category=category,
        ):
            candidates.append(memory)

    if dry_run:
        return ForgetResult(dry_run=True, memories=candidates, criteria=criteria)

    deleted: list[Memory] = []
    for memory in candidates:
        _delete_from_index(index, memory.id)
        try:
            store.delete_note(memory.id)
        except (NotFoundError, StoreError) as exc:
            logger.warning("forget: could not delete memory #%d", memory.id, exc_info=exc)
            continue
        deleted.append(memory)
    return ForgetResult(dry_run=False, memories=deleted, deleted=len(deleted))
