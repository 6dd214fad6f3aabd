from __future__ import annotations

import datetime as dt
from typing import Any

import typer
from rich import print
from rich.markup import escape

from ..memory import ForgetResult, Memory, forget, recall, remember
from .common import cli_errors, echo_json, local_stamp, parse_duration_or_exit, preview, rfc3339


def remember_cmd(
    *,
    store_from_path,
    index_for_store,
    db_path: str | None,
    content: str,
    title: str,
    category: str,
    importance: int,
    ttl: str | None,
    source: str | None,
    source_ref: str | None,
    as_json: bool,
) -> None:
    """Store a memory for later recall."""

    ttl_delta = parse_duration_or_exit(ttl, option="TTL") if ttl else None
    with cli_errors():
        store = store_from_path(db_path)
        try:
            memory = remember(
                store,
                index_for_store(store),
                content=content,
                title=title or "",
                category=category or "",
                importance=importance,
                ttl=ttl_delta,
                source=source or "",
                source_ref=source_ref or "",
            )
        finally:
            store.close()

    if as_json:
        payload: dict[str, Any] = {
            "id": memory.id,
            "title": memory.title,
            "category": memory.category,
            "importance": memory.importance,
        }
        if memory.expires_at is not None:
            payload["expires_at"] = rfc3339(memory.expires_at)
        if memory.source:
            payload["source"] = memory.source
        if memory.source_ref:
            payload["source_ref"] = memory.source_ref
        payload["status"] = "remembered"
        echo_json(payload)
        return

    print(f"Remembered #{memory.id}: {escape(memory.title)}")
    print(f"  Category:   {escape(memory.category)}")
    print(f"  Importance: {memory.importance}")
    if memory.expires_at is not None:
        print(f"  Expires:    {local_stamp(memory.expires_at)}")
    if memory.source:
        print(f"  Source:     {escape(memory.source)}")
        if memory.source_ref:
            print(f"  Reference:  {escape(memory.source_ref)}")


def _recall_item(memory: Memory) -> dict[str, Any]:
    item: dict[str, Any] = {
        "id": memory.id,
        "title": memory.title,
        "content": memory.content,
        "category": memory.category,
        "importance": memory.importance,
    }
    if memory.score is not None:
        item["score"] = memory.score
    if memory.source:
        item["source"] = memory.source
    if memory.source_ref:
        item["source_ref"] = memory.source_ref
    return item


def recall_cmd(
    *,
    store_from_path,
    index_for_store,
    db_path: str | None,
    query: str,
    limit: int,
    category: str | None,
    semantic: bool,
    as_json: bool,
) -> None:
    """Recall memories by search query."""

    with cli_errors():
        store = store_from_path(db_path)
        try:
            index = index_for_store(store) if semantic else None
            result = recall(
                store,
                index,
                query=query,
                limit=limit,
                category=category or "",
                use_semantic=semantic,
            )
        finally:
            store.close()

    if as_json:
        echo_json(
            {
                "query": result.query,
                "method": result.method,
                "count": result.count,
                "memories": [_recall_item(memory) for memory in result.memories],
            }
        )
        return

    if not result.count:
        print("No memories found.")
        return

    now = dt.datetime.now(dt.UTC)
    print(f"Found {result.count} memories (via {result.method} search):\n")
    for memory in result.memories:
        print(f"#{memory.id:<4} \\[{escape(memory.category)}] {escape(memory.title)}")
        if memory.score is not None:
            print(f"      Score: {memory.score:.2f}")
        stars = "*" * max(memory.importance, 0)
        print(f"      Importance: {stars} ({memory.importance}/5)")
        print(f"      {escape(preview(memory.content))}")
        if memory.source:
            where = f"{memory.source} @ {memory.source_ref}" if memory.source_ref else memory.source
            print(f"      Source: {escape(where)}")
        if memory.expires_at is not None:
            if memory.expires_at < now:
                print("      \\[EXPIRED]")
            else:
                print(f"      Expires: {local_stamp(memory.expires_at)}")
        print()


def _forget_item(memory: Memory) -> dict[str, Any]:
    return {
        "id": memory.id,
        "title": memory.title,
        "category": memory.category,
        "importance": memory.importance,
    }


def _forget_payload(result: ForgetResult) -> dict[str, Any]:
    items = [_forget_item(memory) for memory in result.memories]
    if result.dry_run:
        return {"dry_run": True, "would_delete": result.would_delete, "memories": items}
    return {"dry_run": False, "deleted": result.deleted, "memories": items}


def forget_cmd(
    *,
    store_from_path,
    index_for_store,
    db_path: str | None,
    older_than: str | None,
    importance_below: int,
    category: str | None,
    query: str | None,
    memory_id: int,
    force: bool,
    as_json: bool,
) -> None:
    """Delete old or low-importance memories (dry run unless --force)."""

    older_than_days = 0
    if older_than:
        delta = parse_duration_or_exit(older_than, option="--older-than")
        older_than_days = max(int(delta.total_seconds() // 86400), 1)

    if not (older_than_days or importance_below or category or query or memory_id):
        print(
            "[red]At least one filter is required "
            "(--older-than, --importance-below, --category, --query or --id)[/red]"
        )
        raise typer.Exit(code=1)

    criteria = {
        "older_than_days": older_than_days,
        "importance_below": importance_below,
        "category": category or "",
        "query": query or "",
        "memory_id": memory_id,
    }

    with cli_errors():
        store = store_from_path(db_path)
        try:
            index = index_for_store(store)
            preview_result = forget(store, index, dry_run=True, **criteria)

            if not preview_result.memories:
                if as_json:
                    echo_json(
                        _forget_payload(ForgetResult(dry_run=not force, memories=[]))
                    )
                else:
                    print("No memories match the specified criteria.")
                return

            if not as_json:
                count = len(preview_result.memories)
                if force:
                    print(f"The following {count} memories will be deleted:\n")
                else:
                    print(f"The following {count} memories would be deleted (dry run):\n")
                for memory in preview_result.memories:
                    print(
                        f"#{memory.id:<4} \\[{escape(memory.category)}] "
                        f"({memory.importance}) {escape(memory.title)}"
                    )
                print()

            if not force:
                if as_json:
                    echo_json(_forget_payload(preview_result))
                else:
                    print("Use --force to actually delete these memories.")
                return

            if not as_json:
                confirmed = typer.confirm(
                    f"Are you sure you want to delete {len(preview_result.memories)} memories?",
                    default=False,
                )
                if not confirmed:
                    print("Aborted.")
                    return

            result = forget(store, index, dry_run=False, **criteria)
        finally:
            store.close()

    if as_json:
        echo_json(_forget_payload(result))
        return
    print(f"Deleted {result.deleted} memories.")
