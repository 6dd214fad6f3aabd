from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable

import sqlite_vec

from .config import DEFAULT_EMBEDDING_MODEL

logger = logging.getLogger(__name__)


class _FastEmbedClient:
    def __init__(self, model: str) -> None:
        try:
            from fastembed import TextEmbedding
        except Exception as exc:  # pragma: no cover
            raise RuntimeError("fastembed is required for semantic search") from exc
        self.model = model
        self._embedder = TextEmbedding(model_name=model)

    def embed(self, texts: Iterable[str]) -> list[list[float]]:
        embeddings = self._embedder.embed(list(texts))
        return [list(vec) for vec in embeddings]


_CLIENTS: dict[str, _FastEmbedClient | None] = {}


def get_embedding_client(model: str = DEFAULT_EMBEDDING_MODEL) -> _FastEmbedClient | None:
    if model in _CLIENTS:
        return _CLIENTS[model]
    try:
        client: _FastEmbedClient | None = _FastEmbedClient(model=model)
    except Exception as exc:
        logger.warning("embedding model %s unavailable", model, exc_info=exc)
        client = None
    _CLIENTS[model] = client
    return client


def embed_texts(texts: Iterable[str], model: str = DEFAULT_EMBEDDING_MODEL) -> list[bytes]:
    client = get_embedding_client(model)
    if not client:
        return []
    embeddings = client.embed(texts)
    return [sqlite_vec.serialize_float32(list(vector)) for vector in embeddings]


def hash_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
