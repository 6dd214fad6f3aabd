from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any


@dataclass
class Note:
    id: int
    title: str
    content: str
    created_at: dt.datetime | None
    updated_at: dt.datetime | None
    expires_at: dt.datetime | None = None
    source: str | None = None
    source_ref: str | None = None
    folder_id: int | None = None
    embedding_synced: bool = False
    pinned: bool = False
    pinned_at: dt.datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if self.expires_at:
            data["expires_at"] = self.expires_at.isoformat()
        if self.source:
            data["source"] = self.source
        if self.source_ref:
            data["source_ref"] = self.source_ref
        if self.folder_id is not None:
            data["folder_id"] = self.folder_id
        data["pinned"] = self.pinned
        if self.pinned_at:
            data["pinned_at"] = self.pinned_at.isoformat()
        return data


@dataclass
class Tag:
    id: int
    name: str


@dataclass
class Folder:
    id: int
    name: str
    parent_id: int | None
    created_at: dt.datetime | None
