"""
Risk-only assessment used for seeding curated ingredient databases.
"""

import json

import pytest

from skinscan.llm.generation_client import GenerationError, GenerationNotConfiguredError
from skinscan.llm.risk_assessor import RiskAssessor, build_risk_request

from conftest import FakeGenerationClient


def test_request_lists_names_in_order():
    request = build_risk_request(["Retinol", "Glycerin"])
    assert "1. Retinol\n2. Glycerin" in request.user


@pytest.mark.asyncio
async def test_assessments_are_aligned_and_normalized(settings):
    def responder(request):
        return json.dumps(
            [
                {"name": "retinol", "risk_level": "Moderate Risk", "reason": "Can irritate."},
                {"name": "Glycerin", "riskLevel": "no-risk", "reason": "Humectant."},
            ]
        )

    assessor = RiskAssessor(client=FakeGenerationClient(responder), settings=settings)
    assessments = await assessor.assess(["Retinol", "Glycerin", "Urea"])

    assert [a.name for a in assessments] == ["Retinol", "Glycerin", "Urea"]
    assert [a.risk_level for a in assessments] == ["moderate-risk", "no-risk", "unknown"]
    assert assessments[2].reason == "Not assessed"


@pytest.mark.asyncio
async def test_single_call_for_all_names(settings):
    client = FakeGenerationClient(lambda request: "[]")
    await RiskAssessor(client=client, settings=settings).assess([f"I{i}" for i in range(8)])
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_empty_input(settings):
    client = FakeGenerationClient()
    assert await RiskAssessor(client=client, settings=settings).assess([]) == []
    assert client.requests == []


@pytest.mark.asyncio
async def test_failures_propagate(settings):
    unconfigured = RiskAssessor(client=FakeGenerationClient(configured=False), settings=settings)
    with pytest.raises(GenerationNotConfiguredError):
        await unconfigured.assess(["Retinol"])

    garbled = RiskAssessor(client=FakeGenerationClient(lambda request: "no json here"), settings=settings)
    with pytest.raises(GenerationError):
        await garbled.assess(["Retinol"])
