"""
Embedding providers for the local safety index.

Every provider returns a float matrix with one L2-normalised row per
input text, so cosine similarity is a plain dot product.
"""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np
from openai import OpenAI

from ..core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _unit_rows(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms


class EmbeddingClient(ABC):
    dimension: int

    @abstractmethod
    def embed(self, texts: Sequence[str]) -> np.ndarray:
        """Embed `texts` into a (len(texts), dimension) matrix of unit rows."""
        raise NotImplementedError


class MockEmbeddingClient(EmbeddingClient):
    """
    Offline embeddings seeded from a hash of the text.

    Equal strings get equal vectors; distinct strings land near-orthogonal
    in high dimension. Good enough for tests, useless for real matching.
    """

    def __init__(self, dimension: int = 128):
        self.dimension = dimension

    def _vector(self, text: str) -> np.ndarray:
        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
        return np.random.default_rng(seed).uniform(-1.0, 1.0, self.dimension)

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        if not texts:
            return np.zeros((0, self.dimension))
        return _unit_rows(np.vstack([self._vector(t or "") for t in texts]))


class OpenAIEmbeddingClient(EmbeddingClient):
    """OpenAI-compatible /embeddings endpoint, called in chunks."""

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        chunk_size: int = 256,
    ):
        if not api_key:
            raise ValueError("API key missing for embedding client")
        self.client = OpenAI(api_key=api_key, base_url=base_url or None)
        self.model = model
        self.chunk_size = chunk_size
        self.dimension = 0

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        texts = list(texts)
        if not texts:
            return np.zeros((0, self.dimension))

        rows: list[list[float]] = []
        for start in range(0, len(texts), self.chunk_size):
            chunk = texts[start:start + self.chunk_size]
            response = self.client.embeddings.create(model=self.model, input=chunk)
            rows.extend(item.embedding for item in sorted(response.data, key=lambda d: d.index))

        matrix = np.asarray(rows, dtype=float)
        self.dimension = matrix.shape[1]
        logger.debug("Embedded %d texts with %s (dim=%d)", len(texts), self.model, self.dimension)
        return _unit_rows(matrix)


def get_embedding_client(settings: Optional[Settings] = None) -> EmbeddingClient:
    """Configured embedding provider; mock when no credentials are available."""
    settings = settings or get_settings()

    if settings.embedding_provider != "openai":
        return MockEmbeddingClient()

    try:
        return OpenAIEmbeddingClient(
            model=settings.embedding_model,
            api_key=settings.generation_api_key,
            base_url=settings.generation_api_url if settings.generation_provider == "openai" else None,
        )
    except ValueError as exc:
        logger.warning("Falling back to mock embeddings: %s", exc)
        return MockEmbeddingClient()
