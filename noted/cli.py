from __future__ import annotations

import logging

import typer
from rich import print

from . import __version__
from .commands.common import index_for_store as _index_for_store
from .commands.common import store_from_path as _store
from .commands.maintenance_cmds import init_db_cmd, mcp_cmd, stats_cmd, sync_cmd
from .commands.memory_cmds import forget_cmd, recall_cmd, remember_cmd
from .commands.note_cmds import (
    add_cmd,
    delete_cmd,
    edit_cmd,
    folder_create_cmd,
    folder_delete_cmd,
    folder_list_cmd,
    grep_cmd,
    list_cmd,
    pin_cmd,
    show_cmd,
    tags_cmd,
    unpin_cmd,
)
from .config import load_config

app = typer.Typer(help="noted: notes and agent memory in a local SQLite database")
folder_app = typer.Typer(help="Manage folders")
app.add_typer(folder_app, name="folder")


@app.callback()
def root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging before any command runs."""

    level_name = "DEBUG" if verbose else load_config().log_level
    level = logging.getLevelName(str(level_name).upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@app.command()
def remember(
    content: str = typer.Argument(..., help="What to remember"),
    title: str = typer.Option(None, "--title", "-t", help="Title (defaults to content prefix)"),
    category: str = typer.Option(
        "fact", "--category", "-c", help="user-pref, project, decision, fact or todo"
    ),
    importance: int = typer.Option(3, "--importance", "-i", help="Importance 1-5"),
    ttl: str = typer.Option(None, "--ttl", help="Expire after a duration such as 24h or 7d"),
    source: str = typer.Option(None, "--source", help="Where the memory came from"),
    source_ref: str = typer.Option(None, "--source-ref", help="Reference within the source"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Store a memory for later recall."""
    remember_cmd(
        store_from_path=_store,
        index_for_store=_index_for_store,
        db_path=db_path,
        content=content,
        title=title,
        category=category,
        importance=importance,
        ttl=ttl,
        source=source,
        source_ref=source_ref,
        as_json=as_json,
    )


@app.command()
def recall(
    query: str = typer.Argument(..., help="Search query"),
    limit: int = typer.Option(None, "--limit", "-n", help="Max results (default 5)"),
    category: str = typer.Option(None, "--category", "-c", help="Only this category"),
    semantic: bool = typer.Option(True, "--semantic/--no-semantic", help="Try vector search"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Recall memories by search query."""
    recall_cmd(
        store_from_path=_store,
        index_for_store=_index_for_store,
        db_path=db_path,
        query=query,
        limit=limit if limit is not None else load_config().recall_limit,
        category=category,
        semantic=semantic,
        as_json=as_json,
    )


@app.command()
def forget(
    older_than: str = typer.Option(None, "--older-than", help="Older than a duration, e.g. 30d"),
    importance_below: int = typer.Option(
        0, "--importance-below", help="Importance strictly below N"
    ),
    category: str = typer.Option(None, "--category", "-c", help="Only this category"),
    query: str = typer.Option(None, "--query", "-q", help="Only memories matching text"),
    memory_id: int = typer.Option(0, "--id", help="A single memory id"),
    force: bool = typer.Option(False, "--force", "-f", help="Actually delete"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Delete memories matching every filter (dry run unless --force)."""
    forget_cmd(
        store_from_path=_store,
        index_for_store=_index_for_store,
        db_path=db_path,
        older_than=older_than,
        importance_below=importance_below,
        category=category,
        query=query,
        memory_id=memory_id,
        force=force,
        as_json=as_json,
    )


@app.command()
def add(
    title: str = typer.Argument(..., help="Note title"),
    content: str = typer.Option(None, "--content", help="Note body (reads stdin if omitted)"),
    tags: str = typer.Option(None, "--tags", help="Comma separated tags"),
    ttl: str = typer.Option(None, "--ttl", help="Expire after a duration such as 24h or 7d"),
    source: str = typer.Option(None, "--source", help="Where the note came from"),
    source_ref: str = typer.Option(None, "--source-ref", help="Reference within the source"),
    folder_id: int = typer.Option(None, "--folder", help="Folder id"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Add a note."""
    add_cmd(
        store_from_path=_store,
        db_path=db_path,
        title=title,
        content=content,
        tags=tags,
        ttl=ttl,
        source=source,
        source_ref=source_ref,
        folder_id=folder_id,
        as_json=as_json,
    )


@app.command()
def show(
    note_id: int = typer.Argument(..., help="Note id"),
    raw: bool = typer.Option(False, "--raw", help="Print only the content"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Show a note."""
    show_cmd(store_from_path=_store, db_path=db_path, note_id=note_id, raw=raw, as_json=as_json)


@app.command("list")
def list_notes(
    limit: int = typer.Option(20, "--limit", "-n", help="Max notes"),
    tag: str = typer.Option(None, "--tag", help="Only notes with this tag"),
    folder_id: int = typer.Option(None, "--folder", help="Only notes in this folder"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """List recent notes."""
    list_cmd(
        store_from_path=_store,
        db_path=db_path,
        limit=limit,
        tag=tag,
        folder_id=folder_id,
        as_json=as_json,
    )


@app.command()
def edit(
    note_id: int = typer.Argument(..., help="Note id"),
    title: str = typer.Option(None, "--title", "-t", help="New title"),
    content: str = typer.Option(None, "--content", "-c", help="New content"),
    tags: str = typer.Option(
        None, "--tags", "-T", help="Replace all tags (comma separated, empty clears)"
    ),
    folder_id: int = typer.Option(None, "--folder", help="Move to folder id (0 for none)"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Edit a note's title, content, tags or folder."""
    edit_cmd(
        store_from_path=_store,
        index_for_store=_index_for_store,
        db_path=db_path,
        note_id=note_id,
        title=title,
        content=content,
        tags=tags,
        folder_id=folder_id,
        as_json=as_json,
    )


@app.command()
def pin(
    note_id: int = typer.Argument(..., help="Note id"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Pin a note."""
    pin_cmd(store_from_path=_store, db_path=db_path, note_id=note_id, as_json=as_json)


@app.command()
def unpin(
    note_id: int = typer.Argument(..., help="Note id"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Unpin a note."""
    unpin_cmd(store_from_path=_store, db_path=db_path, note_id=note_id, as_json=as_json)


@app.command()
def delete(
    note_id: int = typer.Argument(..., help="Note id"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Delete a note."""
    delete_cmd(
        store_from_path=_store,
        index_for_store=_index_for_store,
        db_path=db_path,
        note_id=note_id,
        force=force,
        as_json=as_json,
    )


@app.command()
def grep(
    pattern: str = typer.Argument(..., help="Literal text to find"),
    limit: int = typer.Option(20, "--limit", "-n", help="Max matches"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Search note titles and content."""
    grep_cmd(
        store_from_path=_store, db_path=db_path, pattern=pattern, limit=limit, as_json=as_json
    )


@app.command()
def tags(
    count: bool = typer.Option(False, "--count", help="Show note counts"),
    delete_unused: bool = typer.Option(False, "--delete-unused", help="Drop tags with no notes"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """List tags."""
    tags_cmd(
        store_from_path=_store,
        db_path=db_path,
        show_count=count,
        delete_unused=delete_unused,
        as_json=as_json,
    )


@folder_app.command("list")
def folder_list(
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """List folders."""
    folder_list_cmd(store_from_path=_store, db_path=db_path, as_json=as_json)


@folder_app.command("create")
def folder_create(
    name: str = typer.Argument(..., help="Folder name"),
    parent_id: int = typer.Option(None, "--parent", help="Parent folder id"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Create a folder."""
    folder_create_cmd(
        store_from_path=_store, db_path=db_path, name=name, parent_id=parent_id, as_json=as_json
    )


@folder_app.command("delete")
def folder_delete(
    folder_id: int = typer.Argument(..., help="Folder id"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Delete a folder (its notes are kept)."""
    folder_delete_cmd(
        store_from_path=_store, db_path=db_path, folder_id=folder_id, force=force, as_json=as_json
    )


@app.command()
def stats(
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Show database statistics."""
    stats_cmd(store_from_path=_store, db_path=db_path, as_json=as_json)


@app.command()
def sync(
    force: bool = typer.Option(False, "--force", "-f", help="Re-embed every note"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Embed notes whose vectors are missing or stale."""
    sync_cmd(
        store_from_path=_store,
        index_for_store=_index_for_store,
        db_path=db_path,
        force=force,
        as_json=as_json,
    )


@app.command("init-db")
def init_db(db_path: str = typer.Option(None, help="Path to SQLite database")) -> None:
    """Create the SQLite database (no-op if it already exists)."""
    init_db_cmd(store_from_path=_store, db_path=db_path)


@app.command()
def mcp() -> None:
    """Run the MCP server."""
    mcp_cmd()


@app.command("version")
def version() -> None:
    """Print version."""

    print(__version__)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
