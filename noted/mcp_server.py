from __future__ import annotations

import atexit
import datetime as dt
import logging
import threading
import weakref
from collections.abc import Callable
from pathlib import Path
from typing import Any, Dict, Optional

try:
    from mcp.server.fastmcp import FastMCP
except Exception as exc:  # pragma: no cover
    raise SystemExit(
        "mcp package is required for the MCP server. Install with `pip install -e .`"
    ) from exc

from .config import load_config
from .durations import parse_duration
from .errors import NotedError, ValidationError
from .memory import forget, recall, remember
from .store import NoteStore, SqliteVecIndex, open_vector_index, sync_notes

logger = logging.getLogger(__name__)

Handler = Callable[[NoteStore, Optional[SqliteVecIndex]], Dict[str, Any]]


def build_store(*, check_same_thread: bool = True) -> NoteStore:
    return NoteStore(Path(load_config().db_path), check_same_thread=check_same_thread)


def guarded(handler: Handler, store: NoteStore, index: SqliteVecIndex | None) -> Dict[str, Any]:
    """Run a tool handler, reporting domain errors as ``{"error": ...}``."""

    try:
        return handler(store, index)
    except NotedError as exc:
        return {"error": str(exc)}


def _ttl(value: str | None) -> dt.timedelta | None:
    if not value:
        return None
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise ValidationError(f"invalid ttl: {exc}") from None


def remember_tool(
    store: NoteStore,
    index: SqliteVecIndex | None,
    *,
    content: str,
    title: str = "",
    category: str = "",
    importance: int = 0,
    ttl: str | None = None,
    source: str = "",
    source_ref: str = "",
) -> Dict[str, Any]:
    memory = remember(
        store,
        index,
        content=content,
        title=title,
        category=category,
        importance=importance,
        ttl=_ttl(ttl),
        source=source,
        source_ref=source_ref,
    )
    data = memory.to_dict()
    data["status"] = "remembered"
    return data


def recall_tool(
    store: NoteStore,
    index: SqliteVecIndex | None,
    *,
    query: str,
    limit: int = 0,
    category: str = "",
    use_semantic: bool = True,
) -> Dict[str, Any]:
    limit = limit or load_config().recall_limit
    result = recall(
        store, index, query=query, limit=limit, category=category, use_semantic=use_semantic
    )
    return result.to_dict()


def forget_tool(
    store: NoteStore,
    index: SqliteVecIndex | None,
    *,
    older_than_days: int = 0,
    importance_below: int = 0,
    category: str = "",
    query: str = "",
    memory_id: int = 0,
    dry_run: bool = True,
) -> Dict[str, Any]:
    result = forget(
        store,
        index,
        older_than_days=older_than_days,
        importance_below=importance_below,
        category=category,
        query=query,
        memory_id=memory_id,
        dry_run=dry_run,
    )
    return result.to_dict()


def create_tool(
    store: NoteStore,
    index: SqliteVecIndex | None,
    *,
    title: str,
    content: str,
    tags: list[str] | None = None,
    ttl: str | None = None,
    source: str | None = None,
    source_ref: str | None = None,
    folder_id: int | None = None,
) -> Dict[str, Any]:
    if not content:
        raise ValidationError("content is required")
    delta = _ttl(ttl)
    note = store.create_note(
        title,
        content,
        expires_at=dt.datetime.now(dt.UTC) + delta if delta else None,
        source=source,
        source_ref=source_ref,
        folder_id=folder_id,
    )
    for name in tags or []:
        name = name.strip()
        if name:
            store.attach_tag(note.id, store.create_tag(name).id)
    if index is not None:
        try:
            index.sync_note(note.id, note.title, note.content)
            store.mark_embedding_synced(note.id)
        except Exception as exc:
            logger.warning("create: index sync failed for note #%d", note.id, exc_info=exc)
    return _note_dict(store, note.id)


def _note_dict(store: NoteStore, note_id: int) -> Dict[str, Any]:
    data = store.get_note(note_id).to_dict()
    data["tags"] = [tag.name for tag in store.tags_for_note(note_id)]
    return data


def get_tool(store: NoteStore, index: SqliteVecIndex | None, *, note_id: int) -> Dict[str, Any]:
    return _note_dict(store, note_id)


def list_tool(
    store: NoteStore,
    index: SqliteVecIndex | None,
    *,
    limit: int = 20,
    offset: int = 0,
    tag: str | None = None,
    folder_id: int | None = None,
) -> Dict[str, Any]:
    notes = store.list_notes(limit=limit, offset=offset, tag=tag, folder_id=folder_id)
    return {"items": [note.to_dict() for note in notes]}


def search_tool(
    store: NoteStore, index: SqliteVecIndex | None, *, pattern: str, limit: int = 20
) -> Dict[str, Any]:
    if not pattern:
        raise ValidationError("pattern is required")
    return {"items": [note.to_dict() for note in store.search_text(pattern, limit)]}


def delete_tool(
    store: NoteStore, index: SqliteVecIndex | None, *, note_id: int
) -> Dict[str, Any]:
    store.get_note(note_id)
    if index is not None:
        try:
            index.delete(note_id)
        except Exception as exc:
            logger.warning("delete: index delete failed for note #%d", note_id, exc_info=exc)
    store.delete_note(note_id)
    return {"id": note_id, "status": "deleted"}


def tags_tool(store: NoteStore, index: SqliteVecIndex | None) -> Dict[str, Any]:
    return {"tags": store.list_tags_with_counts()}


def semantic_search_tool(
    store: NoteStore, index: SqliteVecIndex | None, *, query: str, limit: int = 10
) -> Dict[str, Any]:
    if not query or not query.strip():
        raise ValidationError("query is required")
    if index is None:
        return {"error": "vector index unavailable"}
    items = []
    for hit in index.search(query, limit):
        try:
            data = store.get_note(hit.note_id).to_dict()
        except NotedError:
            continue
        data["score"] = hit.score
        items.append(data)
    return {"query": query, "items": items}


def sync_tool(
    store: NoteStore, index: SqliteVecIndex | None, *, force: bool = False
) -> Dict[str, Any]:
    if index is None:
        return {"error": "vector index unavailable"}
    return sync_notes(store, index, force=force)


def build_server() -> FastMCP:
    mcp = FastMCP("noted")
    config = load_config()
    thread_local = threading.local()
    store_lock = threading.Lock()
    store_pool: weakref.WeakSet[NoteStore] = weakref.WeakSet()

    def get_store() -> NoteStore:
        store = getattr(thread_local, "store", None)
        if store is None:
            store = build_store()
            thread_local.store = store
            thread_local.index = open_vector_index(store, config)
            with store_lock:
                store_pool.add(store)
        return store

    def close_all_stores() -> None:
        with store_lock:
            stores = list(store_pool)
        for store in stores:
            try:
                store.close()
            except Exception:
                continue

    atexit.register(close_all_stores)

    def with_store(handler: Handler) -> Dict[str, Any]:
        store = get_store()
        return guarded(handler, store, thread_local.index)

    @mcp.tool()
    def noted_remember(
        content: str,
        title: str = "",
        category: str = "",
        importance: int = 0,
        ttl: Optional[str] = None,
        source: str = "",
        source_ref: str = "",
    ) -> Dict[str, Any]:
        """Store a memory (category: user-pref, project, decision, fact or todo; importance 1-5)."""
        return with_store(
            lambda store, index: remember_tool(
                store,
                index,
                content=content,
                title=title,
                category=category,
                importance=importance,
                ttl=ttl,
                source=source,
                source_ref=source_ref,
            )
        )

    @mcp.tool()
    def noted_recall(
        query: str,
        limit: int = 0,
        category: str = "",
        use_semantic: bool = True,
    ) -> Dict[str, Any]:
        """Recall memories matching a query."""
        return with_store(
            lambda store, index: recall_tool(
                store,
                index,
                query=query,
                limit=limit,
                category=category,
                use_semantic=use_semantic,
            )
        )

    @mcp.tool()
    def noted_forget(
        older_than_days: int = 0,
        importance_below: int = 0,
        category: str = "",
        query: str = "",
        id: int = 0,
        dry_run: bool = True,
    ) -> Dict[str, Any]:
        """Delete memories matching all criteria. Dry run unless dry_run=false."""
        return with_store(
            lambda store, index: forget_tool(
                store,
                index,
                older_than_days=older_than_days,
                importance_below=importance_below,
                category=category,
                query=query,
                memory_id=id,
                dry_run=dry_run,
            )
        )

    @mcp.tool()
    def noted_create(
        title: str,
        content: str,
        tags: Optional[list[str]] = None,
        ttl: Optional[str] = None,
        source: Optional[str] = None,
        source_ref: Optional[str] = None,
        folder_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Create a plain note."""
        return with_store(
            lambda store, index: create_tool(
                store,
                index,
                title=title,
                content=content,
                tags=tags,
                ttl=ttl,
                source=source,
                source_ref=source_ref,
                folder_id=folder_id,
            )
        )

    @mcp.tool()
    def noted_get(id: int) -> Dict[str, Any]:
        """Fetch a note by id."""
        return with_store(lambda store, index: get_tool(store, index, note_id=id))

    @mcp.tool()
    def noted_list(
        limit: int = 20,
        offset: int = 0,
        tag: Optional[str] = None,
        folder_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """List notes, newest first."""
        return with_store(
            lambda store, index: list_tool(
                store, index, limit=limit, offset=offset, tag=tag, folder_id=folder_id
            )
        )

    @mcp.tool()
    def noted_search(pattern: str, limit: int = 20) -> Dict[str, Any]:
        """Literal substring search over titles and content."""
        return with_store(
            lambda store, index: search_tool(store, index, pattern=pattern, limit=limit)
        )

    @mcp.tool()
    def noted_delete(id: int) -> Dict[str, Any]:
        """Delete a note by id."""
        return with_store(lambda store, index: delete_tool(store, index, note_id=id))

    @mcp.tool()
    def noted_tags() -> Dict[str, Any]:
        """List tags with note counts."""
        return with_store(tags_tool)

    @mcp.tool()
    def noted_semantic_search(query: str, limit: int = 10) -> Dict[str, Any]:
        """Nearest-neighbour search over note embeddings."""
        return with_store(
            lambda store, index: semantic_search_tool(store, index, query=query, limit=limit)
        )

    @mcp.tool()
    def noted_sync(force: bool = False) -> Dict[str, Any]:
        """Embed notes whose vectors are missing or stale."""
        return with_store(lambda store, index: sync_tool(store, index, force=force))

    return mcp


def run() -> None:
    server = build_server()
    server.run()


if __name__ == "__main__":
    run()
