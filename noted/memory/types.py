from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from ..store.types import Note, Tag
from ..store.vectors import SemanticResult
from . import codec

RecallMethod = Literal["semantic", "keyword"]


class NoteBackend(Protocol):
    def create_note(
        self,
        title: str,
        content: str,
        *,
        expires_at: dt.datetime | None = None,
        source: str | None = None,
        source_ref: str | None = None,
        folder_id: int | None = None,
    ) -> Note: ...

    def get_note(self, note_id: int) -> Note: ...

    def delete_note(self, note_id: int) -> None: ...

    def create_tag(self, name: str) -> Tag: ...

    def attach_tag(self, note_id: int, tag_id: int) -> None: ...

    def tags_for_note(self, note_id: int) -> list[Tag]: ...

    def notes_tagged_with(self, name: str) -> list[Note]: ...

    def search_text(self, pattern: str, limit: int) -> list[Note]: ...

    def delete_expired_notes(self) -> int: ...

    def mark_embedding_synced(self, note_id: int) -> None: ...


class VectorIndex(Protocol):
    def search(self, query: str, limit: int) -> list[SemanticResult]: ...

    def sync_note(self, note_id: int, title: str, content: str) -> None: ...

    def delete(self, note_id: int) -> None: ...

    def prune_orphans(self) -> int: ...


def _iso(value: dt.datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


@dataclass
class Memory:
    id: int
    title: str
    content: str
    category: str
    importance: int
    tags: list[str] = field(default_factory=list)
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    expires_at: dt.datetime | None = None
    source: str | None = None
    source_ref: str | None = None
    score: float | None = None

    @classmethod
    def from_note(cls, note: Note, tag_names: list[str]) -> Memory | None:
        meta = codec.decode(tag_names)
        if not meta.is_memory:
            return None
        return cls(
            id=note.id,
            title=note.title,
            content=note.content,
            category=meta.category,
            importance=meta.importance,
            tags=list(tag_names),
            created_at=note.created_at,
            updated_at=note.updated_at,
            expires_at=note.expires_at,
            source=note.source,
            source_ref=note.source_ref,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "importance": self.importance,
            "tags": list(self.tags),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if self.expires_at is not None:
            data["expires_at"] = _iso(self.expires_at)
        if self.source:
            data["source"] = self.source
        if self.source_ref:
            data["source_ref"] = self.source_ref
        if self.score is not None:
            data["score"] = self.score
        return data


def note_to_memory(store: NoteBackend, note: Note) -> Memory | None:
    tag_names = [tag.name for tag in store.tags_for_note(note.id)]
    return Memory.from_note(note, tag_names)


@dataclass
class RecallResult:
    query: str
    method: RecallMethod
    memories: list[Memory]

    @property
    def count(self) -> int:
        return len(self.memories)

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "method": self.method,
            "count": self.count,
            "memories": [memory.to_dict() for memory in self.memories],
        }


@dataclass
class ForgetResult:
    dry_run: bool
    memories: list[Memory]
    deleted: int = 0
    criteria: dict[str, Any] = field(default_factory=dict)

    @property
    def would_delete(self) -> int:
        return len(self.memories) if self.dry_run else 0

    def to_dict(self) -> dict[str, Any]:
        memories = [memory.to_dict() for memory in self.memories]
        if self.dry_run:
            return {
                "dry_run": True,
                "would_delete": self.would_delete,
                "memories": memories,
                "criteria": dict(self.criteria),
            }
        return {"dry_run": False, "deleted": self.deleted, "memories": memories}
