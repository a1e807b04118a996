"""
Ingredient Enricher
===================

Top-level coordinator of the enrichment pipeline:

  1) Cache lookup (ingredient cache, keyed by normalized name)
  2) For misses: safety retrieval (parallel, per-name isolation)
  3) Context building (threshold-filtered safety alerts)
  4) Batched generation (parallel batches, per-batch fallback)
  5) Merge in input order, persist fresh records (best-effort)

Guarantees:
  - Output is aligned 1:1 with the input (None only for empty/invalid names)
  - Duplicate names are resolved once and share the same record
  - No exception crosses enrich(); every failure becomes a Fallback record
  - Fallback records are never written to the cache
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Dict, List, Optional, Sequence

from ..cache.store import CacheStore, get_cache_store
from ..core.config import Settings, get_settings
from ..llm.batch_generator import BatchGenerator
from ..rag.context_builder import retrieve_safety_contexts
from ..rag.safety_search import SafetySearchClient, get_safety_client
from ..schemas.ingredient import (
    Fallback,
    IngredientRecord,
    Resolution,
    Resolved,
    fallback_record,
)
from .trace_logger import TraceLogger, get_trace_logger

logger = logging.getLogger(__name__)

NOT_CONFIGURED_REASON = "LLM fetch failed: generation service credentials not set"


def normalize_ingredient_name(name: object) -> Optional[str]:
    """Trim and collapse whitespace; None for anything that is not a usable name."""
    if not isinstance(name, str):
        return None
    cleaned = " ".join(name.split())
    return cleaned or None


class IngredientEnricher:
    """
    Cache-first RAG enrichment of ingredient names.

    Usage:
        enricher = IngredientEnricher()
        records = await enricher.enrich(["Niacinamide", "Phenylbutazone"])
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        cache: Optional[CacheStore] = None,
        safety_client: Optional[SafetySearchClient] = None,
        generator: Optional[BatchGenerator] = None,
        trace_logger: Optional[TraceLogger] = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else get_cache_store(self.settings)
        self.safety_client = safety_client if safety_client is not None else get_safety_client(self.settings)
        self.generator = generator or BatchGenerator(settings=self.settings)
        self.trace_logger = trace_logger

    async def enrich(self, names: Sequence[str]) -> List[Optional[IngredientRecord]]:
        resolutions = await self.enrich_detailed(names)
        return [r.record if r is not None else None for r in resolutions]

    async def enrich_detailed(self, names: Sequence[str]) -> List[Optional[Resolution]]:
        """Same as enrich(), but keeps the Resolved/Fallback tag for each entry."""
        if not names:
            return []

        started = time.perf_counter()
        normalized = [normalize_ingredient_name(n) for n in names]
        distinct = list(dict.fromkeys(n for n in normalized if n))

        resolutions: Dict[str, Resolution] = {}
        cached = await self.cache.lookup(distinct)
        for name in distinct:
            if name in cached:
                resolutions[name] = Resolved(record=cached[name], from_cache=True)

        missing = [n for n in distinct if n not in resolutions]
        if missing:
            resolutions.update(await self._resolve_missing(missing))

        output = [resolutions.get(n) if n else None for n in normalized]

        self._trace(
            input_count=len(names),
            cache_hits=len(distinct) - len(missing),
            resolutions=[resolutions[n] for n in missing],
            elapsed_ms=(time.perf_counter() - started) * 1000,
        )
        return output

    async def _resolve_missing(self, missing: List[str]) -> Dict[str, Resolution]:
        if not self.generator.is_configured:
            logger.error(
                "Generation service not configured; returning fallbacks for %d ingredients",
                len(missing),
            )
            return {n: fallback_record(n, NOT_CONFIGURED_REASON) for n in missing}

        try:
            contexts = await retrieve_safety_contexts(
                self.safety_client,
                missing,
                top_k=self.settings.safety_top_k,
                min_similarity=self.settings.safety_min_similarity,
                alert_threshold=self.settings.safety_alert_threshold,
                timeout=self.settings.safety_search_timeout_seconds,
            )
            generated = await self.generator.generate(missing, contexts)
        except Exception as e:
            logger.error("Failed to fetch ingredients from LLM with RAG: %s", e, exc_info=True)
            return {n: fallback_record(n, f"LLM fetch failed: {e}") for n in missing}

        results: Dict[str, Resolution] = dict(zip(missing, generated))
        for name in missing:
            if name not in results:
                results[name] = fallback_record(name, "LLM response incomplete")

        await self._persist([r.record for r in results.values() if isinstance(r, Resolved)])
        return results

    async def _persist(self, records: List[IngredientRecord]) -> None:
        if not records:
            return
        outcomes = await asyncio.gather(
            *[self.cache.upsert(record) for record in records],
            return_exceptions=True,
        )
        failed = [r.name for r, ok in zip(records, outcomes) if ok is not True]
        if failed:
            logger.warning("Cached %d/%d new ingredients; failed: %s", len(records) - len(failed), len(records), failed)
        else:
            logger.info("Cached %d new ingredients", len(records))

    def _trace(
        self,
        *,
        input_count: int,
        cache_hits: int,
        resolutions: List[Resolution],
        elapsed_ms: float,
    ) -> None:
        fallbacks = [r for r in resolutions if isinstance(r, Fallback)]
        logger.info(
            "Enriched %d ingredients: %d cached, %d generated, %d fallbacks (%.0f ms)",
            input_count,
            cache_hits,
            len(resolutions) - len(fallbacks),
            len(fallbacks),
            elapsed_ms,
        )

        trace_logger = self.trace_logger
        if trace_logger is None and self.settings.enable_trace_logging:
            trace_logger = get_trace_logger()
        if trace_logger is None:
            return
        trace_logger.log_enrichment(
            request_id=uuid.uuid4().hex[:8],
            input_count=input_count,
            cache_hits=cache_hits,
            generated=len(resolutions) - len(fallbacks),
            fallbacks=len(fallbacks),
            elapsed_ms=elapsed_ms,
            fallback_reasons=[f.reason for f in fallbacks],
        )


_ENRICHER: IngredientEnricher | None = None


def get_enricher() -> IngredientEnricher:
    """Singleton enricher built from application settings."""
    global _ENRICHER
    if _ENRICHER is None:
        _ENRICHER = IngredientEnricher()
        logger.info(
            "IngredientEnricher initialized (cache=%s, generation=%s)",
            _ENRICHER.cache.backend_name,
            _ENRICHER.settings.generation_provider,
        )
    return _ENRICHER


def set_enricher(enricher: IngredientEnricher | None) -> None:
    """Override the global enricher (primarily for tests)."""
    global _ENRICHER
    _ENRICHER = enricher


async def enrich_ingredients(names: Sequence[str]) -> List[Optional[IngredientRecord]]:
    """Convenience function using the shared enricher."""
    return await get_enricher().enrich(names)
