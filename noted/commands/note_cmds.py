from __future__ import annotations

import datetime as dt
import logging
import sys

import typer
from rich import print
from rich.markup import escape

from ..errors import ValidationError
from ..store import Note, NoteStore
from ..store.tags import split_tag_list
from .common import cli_errors, echo_json, local_stamp, parse_duration_or_exit, preview, rfc3339

logger = logging.getLogger(__name__)


def _tag_names(store: NoteStore, note_id: int) -> list[str]:
    return [tag.name for tag in store.tags_for_note(note_id)]


def _note_payload(store: NoteStore, note: Note) -> dict[str, object]:
    data = note.to_dict()
    data["tags"] = _tag_names(store, note.id)
    return data


def add_cmd(
    *,
    store_from_path,
    db_path: str | None,
    title: str,
    content: str | None,
    tags: str | None,
    ttl: str | None,
    source: str | None,
    source_ref: str | None,
    folder_id: int | None,
    as_json: bool,
) -> None:
    """Add a new note."""

    if content is None and not sys.stdin.isatty():
        content = sys.stdin.read()
    expires_at = None
    if ttl:
        expires_at = dt.datetime.now(dt.UTC) + parse_duration_or_exit(ttl, option="TTL")

    with cli_errors():
        if not content:
            raise ValidationError("content is required (use --content or pipe it on stdin)")
        store = store_from_path(db_path)
        try:
            note = store.create_note(
                title,
                content,
                expires_at=expires_at,
                source=source,
                source_ref=source_ref,
                folder_id=folder_id,
            )
            for name in split_tag_list(tags):
                tag = store.create_tag(name)
                store.attach_tag(note.id, tag.id)
        finally:
            store.close()

    if as_json:
        payload: dict[str, object] = {"id": note.id, "title": note.title}
        if note.expires_at is not None:
            payload["expires_at"] = rfc3339(note.expires_at)
        if note.source:
            payload["source"] = note.source
        if note.source_ref:
            payload["source_ref"] = note.source_ref
        echo_json(payload)
        return
    print(f"Created note #{note.id}: {escape(note.title)}")


def show_cmd(
    *, store_from_path, db_path: str | None, note_id: int, raw: bool, as_json: bool
) -> None:
    """Print a note."""

    with cli_errors():
        store = store_from_path(db_path)
        try:
            note = store.get_note(note_id)
            payload = _note_payload(store, note)
        finally:
            store.close()

    if as_json:
        echo_json(payload)
        return
    if raw:
        typer.echo(note.content)
        return
    pin = " (pinned)" if note.pinned else ""
    print(f"[bold]#{note.id} {escape(note.title)}[/bold]{pin}")
    tags = payload.get("tags") or []
    if tags:
        print(f"Tags: {escape(', '.join(tags))}")  # type: ignore[arg-type]
    print(f"Created: {local_stamp(note.created_at)}  Updated: {local_stamp(note.updated_at)}")
    if note.expires_at is not None:
        print(f"Expires: {local_stamp(note.expires_at)}")
    print()
    print(escape(note.content))


def list_cmd(
    *,
    store_from_path,
    db_path: str | None,
    limit: int,
    tag: str | None,
    folder_id: int | None,
    as_json: bool,
) -> None:
    """List notes, newest first."""

    with cli_errors():
        store = store_from_path(db_path)
        try:
            notes = store.list_notes(limit=limit, tag=tag, folder_id=folder_id)
            payload = [_note_payload(store, note) for note in notes]
        finally:
            store.close()

    if as_json:
        echo_json(payload)
        return
    if not notes:
        print("No notes found.")
        return
    for item in payload:
        tags = ", ".join(item["tags"])  # type: ignore[arg-type]
        suffix = f" \\[{escape(tags)}]" if tags else ""
        marker = "*" if item.get("pinned") else " "
        print(f"{marker}#{item['id']:<4} {escape(str(item['title']))}{suffix}")


def edit_cmd(
    *,
    store_from_path,
    index_for_store,
    db_path: str | None,
    note_id: int,
    title: str | None,
    content: str | None,
    tags: str | None = None,
    folder_id: int | None = None,
    as_json: bool = False,
) -> None:
    """Update a note's title, content, tags or folder.

    ``tags`` replaces the whole tag set; an empty string clears it. A
    ``folder_id`` of 0 takes the note out of its folder.
    """

    with cli_errors():
        if title is None and content is None and tags is None and folder_id is None:
            raise ValidationError(
                "nothing to update (use --title, --content, --tags or --folder)"
            )
        store = store_from_path(db_path)
        try:
            if title is not None or content is not None:
                note = store.update_note(note_id, title=title, content=content)
                index = index_for_store(store)
                if index is not None:
                    try:
                        index.sync_note(note.id, note.title, note.content)
                        store.mark_embedding_synced(note.id)
                    except Exception as exc:
                        logger.warning(
                            "edit: index sync failed for note #%d", note.id, exc_info=exc
                        )
            else:
                note = store.get_note(note_id)
            if tags is not None:
                store.replace_note_tags(note.id, split_tag_list(tags))
            if folder_id is not None:
                store.move_note_to_folder(note.id, folder_id or None)
            tag_names = _tag_names(store, note.id)
        finally:
            store.close()

    if as_json:
        echo_json({"id": note.id, "title": note.title, "tags": tag_names})
        return
    print(f"Updated note #{note.id}")


def _set_pinned(*, store_from_path, db_path: str | None, note_id: int, pinned: bool) -> Note:
    with cli_errors():
        store = store_from_path(db_path)
        try:
            return store.pin_note(note_id) if pinned else store.unpin_note(note_id)
        finally:
            store.close()


def pin_cmd(*, store_from_path, db_path: str | None, note_id: int, as_json: bool) -> None:
    """Pin a note."""

    note = _set_pinned(
        store_from_path=store_from_path, db_path=db_path, note_id=note_id, pinned=True
    )
    if as_json:
        echo_json({"id": note.id, "title": note.title, "pinned": True})
        return
    print(f"Pinned note #{note.id}: {escape(note.title)}")


def unpin_cmd(*, store_from_path, db_path: str | None, note_id: int, as_json: bool) -> None:
    """Unpin a note."""

    note = _set_pinned(
        store_from_path=store_from_path, db_path=db_path, note_id=note_id, pinned=False
    )
    if as_json:
        echo_json({"id": note.id, "title": note.title, "pinned": False})
        return
    print(f"Unpinned note #{note.id}: {escape(note.title)}")


def delete_cmd(
    *,
    store_from_path,
    index_for_store,
    db_path: str | None,
    note_id: int,
    force: bool,
    as_json: bool,
) -> None:
    """Delete a note."""

    with cli_errors():
        store = store_from_path(db_path)
        try:
            note = store.get_note(note_id)
            if not force and not as_json:
                if not typer.confirm(f"Delete note #{note.id} ({note.title})?", default=False):
                    print("Aborted.")
                    return
            index = index_for_store(store)
            if index is not None:
                try:
                    index.delete(note.id)
                except Exception as exc:
                    logger.warning("delete: index delete failed for note #%d", note.id, exc_info=exc)
            store.delete_note(note.id)
        finally:
            store.close()

    if as_json:
        echo_json({"id": note.id, "status": "deleted"})
        return
    print(f"Deleted note #{note.id}")


def grep_cmd(
    *, store_from_path, db_path: str | None, pattern: str, limit: int, as_json: bool
) -> None:
    """Literal text search over titles and content."""

    with cli_errors():
        if not pattern:
            raise ValidationError("pattern is required")
        store = store_from_path(db_path)
        try:
            notes = store.search_text(pattern, limit)
        finally:
            store.close()

    if as_json:
        echo_json([note.to_dict() for note in notes])
        return
    if not notes:
        print("No matches.")
        return
    for note in notes:
        print(f"#{note.id:<4} {escape(note.title)}")
        print(f"      {escape(preview(note.content.replace(chr(10), ' ')))}")


def tags_cmd(
    *,
    store_from_path,
    db_path: str | None,
    show_count: bool,
    delete_unused: bool,
    as_json: bool,
) -> None:
    """List tags."""

    with cli_errors():
        store = store_from_path(db_path)
        try:
            removed = store.delete_unused_tags() if delete_unused else 0
            tags = store.list_tags_with_counts()
        finally:
            store.close()

    if as_json:
        echo_json({"tags": tags, "deleted_unused": removed})
        return
    if delete_unused:
        print(f"Deleted {removed} unused tags")
    for tag in tags:
        if show_count:
            print(f"{escape(tag['name'])} ({tag['note_count']})")
        else:
            print(escape(tag["name"]))


def folder_list_cmd(*, store_from_path, db_path: str | None, as_json: bool) -> None:
    with cli_errors():
        store = store_from_path(db_path)
        try:
            folders = store.list_folders()
        finally:
            store.close()
    if as_json:
        echo_json(
            [
                {"id": folder.id, "name": folder.name, "parent_id": folder.parent_id}
                for folder in folders
            ]
        )
        return
    if not folders:
        print("No folders.")
        return
    for folder in folders:
        parent = f" (in #{folder.parent_id})" if folder.parent_id is not None else ""
        print(f"#{folder.id:<4} {escape(folder.name)}{parent}")


def folder_create_cmd(
    *, store_from_path, db_path: str | None, name: str, parent_id: int | None, as_json: bool
) -> None:
    with cli_errors():
        if not name.strip():
            raise ValidationError("folder name is required")
        store = store_from_path(db_path)
        try:
            folder = store.create_folder(name.strip(), parent_id)
        finally:
            store.close()
    if as_json:
        echo_json({"id": folder.id, "name": folder.name, "parent_id": folder.parent_id})
        return
    print(f"Created folder #{folder.id}: {escape(folder.name)}")


def folder_delete_cmd(
    *, store_from_path, db_path: str | None, folder_id: int, force: bool, as_json: bool
) -> None:
    if not force and not as_json:
        if not typer.confirm(f"Delete folder #{folder_id}?", default=False):
            print("Aborted.")
            return
    with cli_errors():
        store = store_from_path(db_path)
        try:
            store.delete_folder(folder_id)
        finally:
            store.close()
    if as_json:
        echo_json({"id": folder_id, "status": "deleted"})
        return
    print(f"Deleted folder #{folder_id}")
