"""
Safety Context Builder
======================

Two steps between raw ingredient names and the generation prompt:

  retrieve_safety_contexts(): one similarity search per name, all in parallel,
      each isolated (a failure or timeout means "no match" for that name only)
  build_safety_context(): pure, folds ranked hits into a SafetyContext,
      keeping only high-confidence matches

Two thresholds on purpose:
  - retrieval floor (0.8, inclusive): is the candidate worth looking at at all
  - alert threshold (0.85, strict): is it confident enough to flag
Lexically close but chemically unrelated names ("...Acid") land between them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Sequence

from ..schemas.safety import SafetyContext, SafetyMatch, SafetySearchResult
from .safety_search import SafetySearchClient

logger = logging.getLogger(__name__)

DEFAULT_ALERT_THRESHOLD = 0.85


def build_safety_context(
    results: Sequence[SafetySearchResult],
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
) -> SafetyContext:
    confident = [r for r in results if r.similarity > alert_threshold]
    if not confident:
        return SafetyContext()

    confident.sort(key=lambda r: -r.similarity)
    matches = [
        SafetyMatch(
            name=r.data.get("ingredient_name") or "Unknown substance",
            details=r.data.get("details") or "No details available",
            risk=r.data.get("risk") or "Unknown",
            similarity=r.similarity,
        )
        for r in confident
    ]
    return SafetyContext(
        has_safety_concerns=True,
        matched_substances=matches,
        highest_similarity=matches[0].similarity,
    )


async def _search_isolated(
    client: SafetySearchClient,
    name: str,
    *,
    top_k: int,
    min_similarity: float,
    timeout: float,
) -> List[SafetySearchResult]:
    try:
        return await asyncio.wait_for(
            client.search(name, top_k=top_k, min_similarity=min_similarity),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.error("Safety search timed out for %r after %.1fs", name, timeout)
    except Exception as e:
        logger.error("Safety search failed for %r: %s", name, e)
    return []


async def retrieve_safety_contexts(
    client: SafetySearchClient,
    names: Sequence[str],
    *,
    top_k: int = 1,
    min_similarity: float = 0.8,
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
    timeout: float = 10.0,
) -> Dict[str, SafetyContext]:
    """Map each distinct name to its SafetyContext."""
    distinct = list(dict.fromkeys(names))
    if not distinct:
        return {}

    all_results = await asyncio.gather(
        *[
            _search_isolated(
                client, name, top_k=top_k, min_similarity=min_similarity, timeout=timeout
            )
            for name in distinct
        ]
    )

    contexts = {
        name: build_safety_context(results, alert_threshold)
        for name, results in zip(distinct, all_results)
    }
    flagged = [n for n, ctx in contexts.items() if ctx.has_safety_concerns]
    logger.info("Safety retrieval: %d/%d ingredients flagged %s", len(flagged), len(distinct), flagged)
    return contexts
