from __future__ import annotations

import contextlib
import datetime as dt
import json
from collections.abc import Iterator
from typing import Any

import typer
from rich import print
from rich.markup import escape

from ..config import load_config
from ..durations import parse_duration
from ..errors import NotFoundError, StoreError, ValidationError
from ..store import NoteStore, SqliteVecIndex, open_vector_index


def store_from_path(db_path: str | None) -> NoteStore:
    return NoteStore(db_path or load_config().db_path)


def index_for_store(store: NoteStore) -> SqliteVecIndex | None:
    return open_vector_index(store, load_config())


@contextlib.contextmanager
def cli_errors() -> Iterator[None]:
    try:
        yield
    except (ValidationError, NotFoundError) as exc:
        print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from None
    except StoreError as exc:
        print(f"[red]Storage error:[/red] {escape(str(exc))}")
        if exc.__cause__ is not None:
            print(f"  caused by {type(exc.__cause__).__name__}: {escape(str(exc.__cause__))}")
        raise typer.Exit(code=1) from None


def parse_duration_or_exit(value: str, *, option: str) -> dt.timedelta:
    try:
        return parse_duration(value)
    except ValueError as exc:
        print(f"[red]Invalid {option}: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def rfc3339(value: dt.datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(dt.UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def local_stamp(value: dt.datetime | None) -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def preview(text: str, limit: int = 100) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text
