"""
Ingredient Cache Store
======================

Durable key-value store of previously enriched ingredient records,
keyed by normalized ingredient name.

Contract (enforced here for every backend):
- lookup() never raises: a backing-store error means "everything missed"
- upsert() never raises: a write failure is logged and reported as False

Backends:
- InMemoryCacheStore: process-local dict (tests, offline runs)
- UpstashCacheStore: Upstash Redis over REST, one JSON string per ingredient
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError
from upstash_redis.asyncio import Redis

from ..core.config import Settings, get_settings
from ..schemas.ingredient import IngredientRecord

logger = logging.getLogger(__name__)


class CacheStore(ABC):
    """Base class: backends implement the raw reads/writes, the contract lives here."""

    backend_name = "abstract"

    async def lookup(self, names: Iterable[str]) -> Dict[str, IngredientRecord]:
        """Return the cached subset of `names`; {} on any backing-store error."""
        keys = list(dict.fromkeys(n for n in names if n))
        if not keys:
            return {}
        try:
            found = await self._find_by_names(keys)
        except Exception as e:
            logger.error("Ingredient cache lookup failed (%d names treated as misses): %s", len(keys), e)
            return {}
        logger.debug("Ingredient cache: %d/%d hits", len(found), len(keys))
        return found

    async def upsert(self, record: IngredientRecord) -> bool:
        try:
            await self._upsert_by_name(record)
            return True
        except Exception as e:
            logger.error("Failed to cache ingredient %r: %s", record.name, e)
            return False

    @abstractmethod
    async def _find_by_names(self, names: List[str]) -> Dict[str, IngredientRecord]:
        raise NotImplementedError

    @abstractmethod
    async def _upsert_by_name(self, record: IngredientRecord) -> None:
        raise NotImplementedError


class InMemoryCacheStore(CacheStore):
    backend_name = "memory"

    def __init__(self, records: Optional[Iterable[IngredientRecord]] = None):
        self._records: Dict[str, IngredientRecord] = {}
        for record in records or []:
            self._records[record.name] = record

    def __len__(self) -> int:
        return len(self._records)

    async def _find_by_names(self, names: List[str]) -> Dict[str, IngredientRecord]:
        return {n: self._records[n] for n in names if n in self._records}

    async def _upsert_by_name(self, record: IngredientRecord) -> None:
        # Last writer wins.
        self._records[record.name] = record.model_copy(deep=True)


class UpstashCacheStore(CacheStore):
    """Upstash Redis backend (REST API, safe for serverless deployments)."""

    backend_name = "upstash"

    def __init__(self, client: Redis, *, key_prefix: str = "ingredient_ai:"):
        self.client = client
        self.key_prefix = key_prefix

    @classmethod
    def from_settings(cls, settings: Settings) -> "UpstashCacheStore":
        client = Redis(
            url=settings.upstash_redis_rest_url,
            token=settings.upstash_redis_rest_token,
        )
        return cls(client, key_prefix=settings.cache_key_prefix)

    def _key(self, name: str) -> str:
        return f"{self.key_prefix}{name}"

    async def _find_by_names(self, names: List[str]) -> Dict[str, IngredientRecord]:
        raw_values = await self.client.mget(*[self._key(n) for n in names])
        found: Dict[str, IngredientRecord] = {}
        for name, raw in zip(names, raw_values):
            if raw is None:
                continue
            try:
                data = json.loads(raw) if isinstance(raw, str) else raw
                found[name] = IngredientRecord(**data)
            except (json.JSONDecodeError, TypeError, ValidationError) as e:
                logger.warning("Skipping corrupt cache entry for %r: %s", name, e)
        return found

    async def _upsert_by_name(self, record: IngredientRecord) -> None:
        await self.client.set(
            self._key(record.name),
            json.dumps(record.model_dump(), ensure_ascii=False),
        )


def get_cache_store(settings: Optional[Settings] = None) -> CacheStore:
    """Factory returning the configured cache backend."""
    settings = settings or get_settings()

    if settings.cache_backend == "upstash":
        if settings.upstash_redis_rest_url and settings.upstash_redis_rest_token:
            logger.info("Ingredient cache: Upstash Redis")
            return UpstashCacheStore.from_settings(settings)
        logger.warning(
            "cache_backend=upstash but UPSTASH_REDIS_REST_URL/TOKEN missing, using in-memory cache"
        )

    return InMemoryCacheStore()
