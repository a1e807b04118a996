"""
Safety Retrieval
================

Similarity search over a curated safety / banned-substance corpus.

Contract:
  search(query, top_k, min_similarity) -> ranked [SafetySearchResult]
  (descending similarity, only hits with similarity >= min_similarity)

Two implementations:
  - HttpSafetySearchClient: remote vector-search service (black box)
  - LocalSafetyIndex: in-process index over a JSON corpus, using
    character n-gram TF-IDF (default) or embeddings

Character n-grams are lexical: names sharing long suffixes ("... Acid")
can land near the retrieval floor. The alert threshold downstream is
stricter than the floor for that reason.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity
from unidecode import unidecode

from ..core.config import Settings, get_settings
from ..schemas.safety import SafetySearchResult
from ..services.embedding_client import EmbeddingClient, get_embedding_client

logger = logging.getLogger(__name__)


def _clamp_similarity(value: float) -> float:
    return float(min(1.0, max(0.0, value)))


def normalize_substance_text(text: str) -> str:
    return " ".join(unidecode(text or "").lower().split())


class SafetySearchClient(ABC):
    """Abstract similarity-search service over the safety corpus."""

    @abstractmethod
    async def search(
        self, query: str, top_k: int = 1, min_similarity: float = 0.8
    ) -> List[SafetySearchResult]:
        raise NotImplementedError


class HttpSafetySearchClient(SafetySearchClient):
    """
    Remote vector-search service.

    POST {url} {"query", "top_k", "min_similarity"}
    -> {"results": [{"data": {...}, "similarity": 0.93}, ...]}  (or a bare list)
    """

    def __init__(
        self,
        url: str,
        *,
        api_key: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not url:
            raise ValueError("Safety search URL missing")
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def search(
        self, query: str, top_k: int = 1, min_similarity: float = 0.8
    ) -> List[SafetySearchResult]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(
                self.url,
                json={"query": query, "top_k": top_k, "min_similarity": min_similarity},
                headers=headers,
            )
            resp.raise_for_status()
            payload = resp.json()

        raw = payload.get("results", []) if isinstance(payload, dict) else payload
        results: List[SafetySearchResult] = []
        for hit in raw or []:
            if not isinstance(hit, dict) or "similarity" not in hit:
                continue
            similarity = _clamp_similarity(float(hit["similarity"]))
            if similarity < min_similarity:
                continue
            results.append(SafetySearchResult(data=hit.get("data") or {}, similarity=similarity))

        results.sort(key=lambda r: -r.similarity)
        return results[:top_k]


class LocalSafetyIndex(SafetySearchClient):
    """
    In-process safety index.

    Corpus entries: {"ingredient_name": str, "details": str, "risk": str, ...}
    """

    def __init__(
        self,
        entries: List[Dict[str, Any]],
        *,
        embedding_client: Optional[EmbeddingClient] = None,
    ):
        self.entries = [e for e in entries if (e.get("ingredient_name") or "").strip()]
        self.embedding_client = embedding_client

        self._texts = [normalize_substance_text(e["ingredient_name"]) for e in self.entries]
        self._tfidf: Optional[TfidfVectorizer] = None
        self._matrix = None

        if not self.entries:
            logger.warning("Safety index is empty; every search will return no match")
            return

        if self.embedding_client is not None:
            self._matrix = self.embedding_client.embed(self._texts)
        else:
            self._tfidf = TfidfVectorizer(analyzer="char_wb", ngram_range=(2, 4))
            self._matrix = self._tfidf.fit_transform(self._texts)

        logger.info(
            "Safety index ready: %d substances (%s)",
            len(self.entries),
            "embeddings" if self.embedding_client is not None else "tfidf",
        )

    @classmethod
    def from_file(
        cls, path: Path, *, embedding_client: Optional[EmbeddingClient] = None
    ) -> "LocalSafetyIndex":
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.warning("Safety corpus not found: %s", path)
            raw = []
        except json.JSONDecodeError as e:
            logger.error("Safety corpus is not valid JSON (%s): %s", path, e)
            raw = []
        if isinstance(raw, dict):
            raw = raw.get("substances", [])
        return cls([e for e in raw if isinstance(e, dict)], embedding_client=embedding_client)

    def __len__(self) -> int:
        return len(self.entries)

    def _scores(self, query: str) -> np.ndarray:
        text = normalize_substance_text(query)
        if self.embedding_client is not None:
            # Rows are unit vectors.
            return self._matrix @ self.embedding_client.embed([text])[0]
        q = self._tfidf.transform([text])
        return cosine_similarity(q, self._matrix)[0]

    def search_sync(
        self, query: str, top_k: int = 1, min_similarity: float = 0.8
    ) -> List[SafetySearchResult]:
        if not self.entries or not (query or "").strip():
            return []

        scores = self._scores(query)
        order = np.argsort(-scores)

        results: List[SafetySearchResult] = []
        for idx in order[:top_k]:
            similarity = _clamp_similarity(scores[idx])
            if similarity < min_similarity:
                break
            results.append(SafetySearchResult(data=dict(self.entries[idx]), similarity=similarity))
        return results

    async def search(
        self, query: str, top_k: int = 1, min_similarity: float = 0.8
    ) -> List[SafetySearchResult]:
        if self.embedding_client is not None:
            # Remote embedding providers block.
            return await asyncio.to_thread(self.search_sync, query, top_k, min_similarity)
        return self.search_sync(query, top_k, min_similarity)


def get_safety_client(settings: Optional[Settings] = None) -> SafetySearchClient:
    """Factory returning the configured safety search client."""
    settings = settings or get_settings()

    if settings.safety_search_provider == "http":
        if settings.safety_search_url:
            return HttpSafetySearchClient(
                settings.safety_search_url,
                api_key=settings.safety_search_api_key,
                timeout=settings.safety_search_timeout_seconds,
            )
        logger.warning("safety_search_provider=http but SAFETY_SEARCH_URL missing, using local index")

    embedding_client = None
    if settings.safety_index_mode == "embeddings":
        embedding_client = get_embedding_client(settings)
    return LocalSafetyIndex.from_file(settings.safety_corpus_path, embedding_client=embedding_client)
