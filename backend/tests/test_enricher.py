"""
End-to-end behaviour of the enrichment orchestrator.
"""

import json

import pytest

from skinscan.cache.store import InMemoryCacheStore
from skinscan.enrichment.trace_logger import TraceLogger
from skinscan.schemas.ingredient import Fallback, Resolved

from conftest import (
    BrokenCacheStore,
    FakeGenerationClient,
    FakeSafetyClient,
    alerts_in,
    cached_record,
    hit,
)


@pytest.mark.asyncio
async def test_empty_input_makes_no_calls(make_enricher):
    gen = FakeGenerationClient()
    safety = FakeSafetyClient()
    enricher = make_enricher(generation_client=gen, safety_client=safety)

    assert await enricher.enrich([]) == []
    assert gen.requests == []
    assert safety.queries == []


@pytest.mark.asyncio
async def test_output_is_aligned_with_input_order(make_enricher):
    names = [f"Ingredient {i}" for i in range(12)]
    records = await make_enricher().enrich(names)
    assert [r.name for r in records] == names


@pytest.mark.asyncio
async def test_names_are_whitespace_normalized_and_blank_names_are_none(make_enricher):
    records = await make_enricher().enrich(["  Glycerin ", "", "   ", "Aloe   Vera"])
    assert records[0].name == "Glycerin"
    assert records[1] is None
    assert records[2] is None
    assert records[3].name == "Aloe Vera"


@pytest.mark.asyncio
async def test_duplicates_are_resolved_once(make_enricher):
    gen = FakeGenerationClient()
    safety = FakeSafetyClient()
    enricher = make_enricher(generation_client=gen, safety_client=safety)

    records = await enricher.enrich(["Glycerin", "Water", "Glycerin"])

    assert [r.name for r in records] == ["Glycerin", "Water", "Glycerin"]
    assert records[0] == records[2]
    assert gen.batches == [["Glycerin", "Water"]]
    assert sorted(safety.queries) == ["Glycerin", "Water"]


@pytest.mark.asyncio
async def test_second_call_is_a_full_cache_hit(make_enricher):
    gen = FakeGenerationClient()
    cache = InMemoryCacheStore()
    enricher = make_enricher(generation_client=gen, cache=cache)

    first = await enricher.enrich(["Niacinamide"])
    second = await enricher.enrich(["Niacinamide"])

    assert len(gen.requests) == 1
    assert first[0] == second[0]
    detailed = await enricher.enrich_detailed(["Niacinamide"])
    assert isinstance(detailed[0], Resolved) and detailed[0].from_cache


@pytest.mark.asyncio
async def test_partial_cache_only_resolves_missing_names(make_enricher):
    gen = FakeGenerationClient()
    safety = FakeSafetyClient()
    cache = InMemoryCacheStore([cached_record("A")])
    enricher = make_enricher(generation_client=gen, safety_client=safety, cache=cache)

    records = await enricher.enrich(["A", "B"])

    assert [r.name for r in records] == ["A", "B"]
    assert records[0].reason == "Previously assessed."
    assert safety.queries == ["B"]
    assert gen.batches == [["B"]]


@pytest.mark.asyncio
async def test_banned_match_reaches_prompt_and_drives_risk(make_enricher):
    gen = FakeGenerationClient()
    safety = FakeSafetyClient({"Phenylbutazone": [hit("Phenylbutazone", 0.95, risk="High (Banned)")]})
    enricher = make_enricher(generation_client=gen, safety_client=safety)

    adenosine, phenylbutazone = await enricher.enrich(["Adenosine", "Phenylbutazone"])

    assert len(gen.requests) == 1
    alerts = alerts_in(gen.requests[0])
    assert "Phenylbutazone" in alerts
    assert "Adenosine" not in alerts
    assert phenylbutazone.risk_level == "high-risk"
    assert adenosine.risk_level == "low-risk"


@pytest.mark.asyncio
async def test_low_confidence_match_never_reaches_prompt(make_enricher):
    gen = FakeGenerationClient()
    safety = FakeSafetyClient({"Madecassic Acid": [hit("Picric Acid", 0.82)]})
    enricher = make_enricher(generation_client=gen, safety_client=safety)

    (record,) = await enricher.enrich(["Madecassic Acid"])

    assert alerts_in(gen.requests[0]) == ""
    assert record.risk_level == "low-risk"


@pytest.mark.asyncio
async def test_failing_batch_yields_fallbacks_and_nothing_is_dropped(make_enricher):
    def responder(request):
        raise RuntimeError("connection reset")

    cache = InMemoryCacheStore()
    enricher = make_enricher(generation_client=FakeGenerationClient(responder), cache=cache)

    names = ["A", "B", "C"]
    records = await enricher.enrich(names)

    assert [r.name for r in records] == names
    assert all(r.risk_level == "unknown" and r.reason for r in records)
    assert all(r.description == "Information not available" for r in records)
    # Fallbacks are never persisted.
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_missing_credentials_give_fallbacks_without_any_calls(make_enricher):
    gen = FakeGenerationClient(configured=False)
    safety = FakeSafetyClient()
    enricher = make_enricher(generation_client=gen, safety_client=safety)

    detailed = await enricher.enrich_detailed(["A", "B"])

    assert all(isinstance(r, Fallback) for r in detailed)
    assert all("credentials" in r.reason for r in detailed)
    assert gen.requests == []
    assert safety.queries == []


@pytest.mark.asyncio
async def test_configuration_failure_still_serves_cached_names(make_enricher):
    cache = InMemoryCacheStore([cached_record("A")])
    enricher = make_enricher(generation_client=FakeGenerationClient(configured=False), cache=cache)

    detailed = await enricher.enrich_detailed(["A", "B"])

    assert isinstance(detailed[0], Resolved)
    assert isinstance(detailed[1], Fallback)


@pytest.mark.asyncio
async def test_unexpected_pipeline_error_becomes_fallbacks(make_enricher):
    enricher = make_enricher()

    async def explode(names, contexts):
        raise KeyError("boom")

    enricher.generator.generate = explode
    records = await enricher.enrich(["A"])

    assert records[0].risk_level == "unknown"
    assert records[0].reason.startswith("LLM fetch failed")


@pytest.mark.asyncio
async def test_cache_outage_is_not_fatal(make_enricher):
    gen = FakeGenerationClient()
    enricher = make_enricher(generation_client=gen, cache=BrokenCacheStore())

    records = await enricher.enrich(["Glycerin", "Squalane"])

    assert [r.name for r in records] == ["Glycerin", "Squalane"]
    assert all(r.risk_level == "low-risk" for r in records)
    assert gen.batches == [["Glycerin", "Squalane"]]


@pytest.mark.asyncio
async def test_enrichment_run_is_traced(make_enricher, tmp_path):
    trace_logger = TraceLogger(log_path=tmp_path / "traces.jsonl")
    cache = InMemoryCacheStore([cached_record("A")])
    enricher = make_enricher(
        generation_client=FakeGenerationClient(lambda request: "not json"),
        cache=cache,
        trace_logger=trace_logger,
    )

    await enricher.enrich(["A", "B", "C"])

    lines = (tmp_path / "traces.jsonl").read_text(encoding="utf-8").strip().splitlines()
    entry = json.loads(lines[-1])
    assert entry["input_count"] == 3
    assert entry["cache_hits"] == 1
    assert entry["generated"] == 0
    assert entry["fallbacks"] == 2
    assert trace_logger.read_recent(1)[0]["request_id"] == entry["request_id"]


@pytest.mark.asyncio
async def test_partial_generated_record_is_not_cached(make_enricher):
    gen = FakeGenerationClient(
        lambda request: json.dumps({"ingredients": [{"name": "X", "description": "Some text"}]})
    )
    cache = InMemoryCacheStore()
    enricher = make_enricher(generation_client=gen, cache=cache)

    (first,) = await enricher.enrich_detailed(["X"])
    await enricher.enrich(["X"])

    assert isinstance(first, Fallback)
    assert first.record.risk_level == "unknown" and first.record.reason
    assert len(cache) == 0
    assert len(gen.requests) == 2
