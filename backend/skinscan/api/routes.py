"""
SkinScan API Routes
===================

Thin HTTP surface over the enrichment pipeline.

Endpoints:
  - POST /ingredients/enrich
  - POST /ingredients/risk
  - GET  /health
  - GET  /status
  - GET  /traces  (recent enrichment runs)
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from ..enrichment.enricher import get_enricher
from ..enrichment.trace_logger import get_trace_logger
from ..llm.generation_client import GenerationError, GenerationNotConfiguredError
from ..llm.risk_assessor import RiskAssessment, RiskAssessor
from ..schemas.ingredient import Fallback, IngredientRecord

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ingredients"])


class EnrichRequest(BaseModel):
    names: List[str] = Field(default_factory=list, max_length=500)
    debug: bool = False


class EnrichResponse(BaseModel):
    ingredients: List[Optional[IngredientRecord]]
    count: int
    fallback_count: int = 0
    debug_info: Optional[dict] = None


class RiskRequest(BaseModel):
    names: List[str] = Field(min_length=1, max_length=100)


class RiskResponse(BaseModel):
    assessments: List[RiskAssessment]


@router.post("/ingredients/enrich", response_model=EnrichResponse)
async def enrich_ingredients(request: EnrichRequest):
    request_id = str(uuid.uuid4())[:8]
    try:
        enricher = get_enricher()
        resolutions = await enricher.enrich_detailed(request.names)
    except Exception as e:
        # enrich() itself never raises; this only covers enricher construction.
        logger.error("[%s] enrichment error: %s", request_id, e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ingredient enrichment is unavailable.",
        )

    fallbacks = [r for r in resolutions if isinstance(r, Fallback)]
    debug_info = None
    if request.debug:
        debug_info = {
            "request_id": request_id,
            "cached": [r.record.name for r in resolutions if r is not None and getattr(r, "from_cache", False)],
            "fallbacks": {f.record.name: f.reason for f in fallbacks},
        }

    return EnrichResponse(
        ingredients=[r.record if r is not None else None for r in resolutions],
        count=len(resolutions),
        fallback_count=len(fallbacks),
        debug_info=debug_info,
    )


@router.post("/ingredients/risk", response_model=RiskResponse)
async def assess_risk(request: RiskRequest):
    try:
        assessments = await RiskAssessor().assess(request.names)
    except GenerationNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except GenerationError as e:
        logger.error("Risk assessment failed: %s", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except Exception as e:
        logger.error("Risk assessment call failed: %s", e, exc_info=True)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Generation service error")
    return RiskResponse(assessments=assessments)


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": "1.0.0",
        "pipeline": "cache-first-rag",
    }


@router.get("/status")
async def get_status():
    """Detailed status with component info."""
    try:
        enricher = get_enricher()
        return {
            "status": "operational",
            "version": enricher.settings.app_version,
            "components": {
                "cache": enricher.cache.backend_name,
                "safety_search": type(enricher.safety_client).__name__,
                "generation": enricher.settings.generation_provider,
                "generation_configured": enricher.generator.is_configured,
            },
            "settings": {
                "batch_size": enricher.settings.generation_batch_size,
                "safety_top_k": enricher.settings.safety_top_k,
                "safety_min_similarity": enricher.settings.safety_min_similarity,
                "safety_alert_threshold": enricher.settings.safety_alert_threshold,
            },
        }
    except Exception as e:
        return {"status": "initializing", "error": str(e)}


class TracesResponse(BaseModel):
    count: int
    traces: List[dict]


@router.get("/traces", response_model=TracesResponse)
async def get_traces(
    limit: int = Query(default=50, ge=1, le=200, description="Number of traces to retrieve")
):
    """Recent enrichment runs, newest first."""
    try:
        traces = get_trace_logger().read_recent(limit)
    except OSError as e:
        logger.error("Failed to read traces: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to retrieve traces: {str(e)}",
        )
    return TracesResponse(count=len(traces), traces=traces)
