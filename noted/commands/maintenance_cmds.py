from __future__ import annotations

import typer
from rich import print

from ..store import sync_notes
from .common import cli_errors, echo_json


def init_db_cmd(*, store_from_path, db_path: str | None) -> None:
    """Create the SQLite database (no-op if it already exists)."""

    with cli_errors():
        store = store_from_path(db_path)
        store.close()
    print(f"Initialized database at {store.db_path}")


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    if size < 1024 * 1024 * 1024:
        return f"{size / 1024 / 1024:.1f} MB"
    return f"{size / 1024 / 1024 / 1024:.1f} GB"


def stats_cmd(*, store_from_path, db_path: str | None, as_json: bool) -> None:
    with cli_errors():
        store = store_from_path(db_path)
        try:
            stats_data = store.stats()
        finally:
            store.close()

    if as_json:
        echo_json(stats_data)
        return
    print("[bold]Database[/bold]")
    print(f"- Path: {stats_data['db_path']}")
    print(f"- Size: {format_bytes(int(stats_data['db_size_bytes']))}")
    print(f"- Notes: {stats_data['notes']} (memories {stats_data['memories']})")
    print(f"- Tags: {stats_data['tags']}")
    print(f"- Folders: {stats_data['folders']}")


def sync_cmd(
    *, store_from_path, index_for_store, db_path: str | None, force: bool, as_json: bool
) -> None:
    """Embed notes whose vectors are missing or stale."""

    with cli_errors():
        store = store_from_path(db_path)
        try:
            index = index_for_store(store)
            if index is None:
                print(
                    "[red]Vector index unavailable "
                    "(embeddings disabled or sqlite-vec failed to load)[/red]"
                )
                raise typer.Exit(code=1)
            result = sync_notes(store, index, force=force)
        finally:
            store.close()

    if as_json:
        echo_json(result)
        return
    print(
        f"Synced {result['synced']} of {result['checked']} notes "
        f"({result['failed']} failed, {result['pruned']} orphaned vectors pruned)"
    )
    if result["failed"]:
        raise typer.Exit(code=1)


def mcp_cmd() -> None:
    """Run the MCP server."""

    from noted.mcp_server import run as mcp_run

    mcp_run()
