"""Structured memory metadata carried in tag names.

A note is a memory iff it carries the ``memory`` tag. Its category and
importance live only in the names of two more tags, ``memory:<category>`` and
``importance:<n>``. Nothing in the store stops a note from ending up with
none or several of those, so :func:`decode` never raises and always takes the
first match in iteration order.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Final, NamedTuple

MEMORY_TAG: Final[str] = "memory"
CATEGORY_PREFIX: Final[str] = "memory:"
IMPORTANCE_PREFIX: Final[str] = "importance:"

VALID_CATEGORIES: Final[tuple[str, ...]] = (
    "user-pref",
    "project",
    "decision",
    "fact",
    "todo",
)


class MemoryMetadata(NamedTuple):
    is_memory: bool
    category: str
    importance: int


def is_valid_category(category: str) -> bool:
    return category in VALID_CATEGORIES


def encode(category: str, importance: int) -> list[str]:
    return [MEMORY_TAG, f"{CATEGORY_PREFIX}{category}", f"{IMPORTANCE_PREFIX}{importance}"]


def decode(tag_names: Iterable[str]) -> MemoryMetadata:
    is_memory = False
    category: str | None = None
    importance: int | None = None
    for name in tag_names:
        if name == MEMORY_TAG:
            is_memory = True
        elif category is None and name.startswith(CATEGORY_PREFIX):
            category = name[len(CATEGORY_PREFIX) :]
        elif importance is None and name.startswith(IMPORTANCE_PREFIX):
            try:
                importance = int(name[len(IMPORTANCE_PREFIX) :])
            except ValueError:
                importance = 0
    return MemoryMetadata(is_memory, category or "", importance or 0)
