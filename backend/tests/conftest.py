"""
Shared fakes for the enrichment pipeline tests.

Nothing here touches the network: the generation service, the safety
search service and the cache are all in-process stand-ins.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Callable, Dict, List, Optional

import pytest

from skinscan.cache.store import CacheStore, InMemoryCacheStore
from skinscan.core.config import Settings
from skinscan.enrichment.enricher import IngredientEnricher
from skinscan.llm.batch_generator import BatchGenerator
from skinscan.llm.generation_client import GenerationClient, GenerationRequest
from skinscan.rag.safety_search import SafetySearchClient
from skinscan.schemas.ingredient import IngredientRecord
from skinscan.schemas.safety import SafetySearchResult

_INGREDIENT_LINE = re.compile(r"^\d+\. (.+)$")


def ingredients_in(request: GenerationRequest) -> List[str]:
    """Ingredient names listed in a generation prompt, in order."""
    block = request.user.split("**INGREDIENTS:**\n", 1)[1].split("\n\n", 1)[0]
    return [m.group(1) for line in block.splitlines() if (m := _INGREDIENT_LINE.match(line))]


def alerts_in(request: GenerationRequest) -> str:
    if "**SAFETY ALERTS:**" not in request.user:
        return ""
    return request.user.split("**SAFETY ALERTS:**\n", 1)[1].split("\n\n", 1)[0]


def generated_item(name: str, risk_level: str = "low-risk") -> dict:
    return {
        "name": name,
        "description": f"{name} is a common cosmetic ingredient.",
        "benefits": ["Hydrates skin", "Soothes irritation", "Supports the skin barrier"],
        "good_for": ["dry", "sensitive"],
        "risk_level": risk_level,
        "reason": f"{name} is well tolerated at typical cosmetic concentrations.",
    }


def follow_alerts(request: GenerationRequest) -> str:
    """Well-behaved service: banned alerts become high-risk, everything else low-risk."""
    alerts = alerts_in(request)
    items = []
    for name in ingredients_in(request):
        banned = any(line.startswith(f'"{name}"') and "banned" in line.lower() for line in alerts.splitlines())
        items.append(generated_item(name, "high-risk" if banned else "low-risk"))
    return json.dumps({"ingredients": items})


class FakeGenerationClient(GenerationClient):
    def __init__(
        self,
        responder: Optional[Callable[[GenerationRequest], str]] = None,
        *,
        configured: bool = True,
        delay: float = 0.0,
    ):
        self.responder = responder or follow_alerts
        self.configured = configured
        self.delay = delay
        self.requests: List[GenerationRequest] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    @property
    def batches(self) -> List[List[str]]:
        return [ingredients_in(r) for r in self.requests]

    async def complete(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.responder(request)


class FakeSafetyClient(SafetySearchClient):
    """Canned hits per query; an Exception value makes that query fail."""

    def __init__(self, hits: Optional[Dict[str, object]] = None):
        self.hits = hits or {}
        self.queries: List[str] = []

    async def search(self, query, top_k=1, min_similarity=0.8):
        self.queries.append(query)
        outcome = self.hits.get(query, [])
        if isinstance(outcome, Exception):
            raise outcome
        return [r for r in outcome if r.similarity >= min_similarity][:top_k]


class BrokenCacheStore(CacheStore):
    backend_name = "broken"

    async def _find_by_names(self, names):
        raise ConnectionError("cache unreachable")

    async def _upsert_by_name(self, record):
        raise ConnectionError("cache unreachable")


def hit(name: str, similarity: float, risk: str = "High (Banned)") -> SafetySearchResult:
    return SafetySearchResult(
        data={"ingredient_name": name, "details": f"{name} details", "risk": risk},
        similarity=similarity,
    )


def cached_record(name: str) -> IngredientRecord:
    return IngredientRecord(
        name=name,
        description=f"Cached entry for {name}.",
        benefits=["One", "Two", "Three"],
        good_for=["normal"],
        risk_level="no-risk",
        reason="Previously assessed.",
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        generation_api_key="test-key",
        enable_trace_logging=False,
    )


@pytest.fixture
def make_enricher(settings):
    def _make(
        *,
        generation_client: Optional[FakeGenerationClient] = None,
        safety_client: Optional[SafetySearchClient] = None,
        cache: Optional[CacheStore] = None,
        trace_logger=None,
    ):
        generation_client = generation_client or FakeGenerationClient()
        return IngredientEnricher(
            settings=settings,
            cache=cache if cache is not None else InMemoryCacheStore(),
            safety_client=safety_client or FakeSafetyClient(),
            generator=BatchGenerator(client=generation_client, settings=settings),
            trace_logger=trace_logger,
        )

    return _make
