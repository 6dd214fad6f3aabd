from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from noted.store import NoteStore
from noted.store.vectors import SemanticResult


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NOTED_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.setenv("NOTED_EMBEDDING_DISABLED", "1")
    for name in ("NOTED_DB", "NOTED_RECALL_LIMIT", "NOTED_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store(tmp_path: Path) -> Iterator[NoteStore]:
    note_store = NoteStore(tmp_path / "notes.sqlite")
    try:
        yield note_store
    finally:
        note_store.close()


class FakeIndex:
    """In-memory stand-in for the vector index."""

    def __init__(self, hits: list[tuple[int, float]] | None = None) -> None:
        self.hits = list(hits or [])
        self.synced: list[int] = []
        self.deleted: list[int] = []
        self.searches: list[tuple[str, int]] = []
        self.fail_search = False
        self.fail_sync = False
        self.fail_delete = False
        self.fail_prune = False
        self.prune_calls = 0

    def search(self, query: str, limit: int) -> list[SemanticResult]:
        self.searches.append((query, limit))
        if self.fail_search:
            raise RuntimeError("index offline")
        return [SemanticResult(note_id=note_id, score=score) for note_id, score in self.hits][
            :limit
        ]

    def sync_note(self, note_id: int, title: str, content: str) -> None:
        if self.fail_sync:
            raise RuntimeError("embedding failed")
        self.synced.append(note_id)

    def delete(self, note_id: int) -> None:
        if self.fail_delete:
            raise RuntimeError("vector delete failed")
        self.deleted.append(note_id)

    def prune_orphans(self) -> int:
        self.prune_calls += 1
        if self.fail_prune:
            raise RuntimeError("vector prune failed")
        return 0


@pytest.fixture
def fake_index() -> FakeIndex:
    return FakeIndex()
