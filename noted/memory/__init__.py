from __future__ import annotations

from .codec import VALID_CATEGORIES, MemoryMetadata, decode, encode, is_valid_category
from .forget import forget
from .recall import recall
from .remember import remember
from .types import ForgetResult, Memory, RecallResult, note_to_memory

__all__ = [
    "VALID_CATEGORIES",
    "ForgetResult",
    "Memory",
    "MemoryMetadata",
    "RecallResult",
    "decode",
    "encode",
    "forget",
    "is_valid_category",
    "note_to_memory",
    "recall",
    "remember",
]
