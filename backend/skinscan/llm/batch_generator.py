"""
Batch Generator
===============

Turns cache-missing ingredient names into IngredientRecords:

  partition(batch_size) -> one generation call per batch (all concurrent)
                        -> parse -> reconcile positions -> flatten

Each batch call has its own timeout and a single attempt. A failing batch
yields fallbacks for its own names only; siblings are unaffected.

The prompt only ever sees safety evidence through SafetyAlert, a small
paraphrase-ready contract, never the raw corpus entries.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from pydantic import ValidationError

from ..core.config import Settings, get_settings
from ..schemas.ingredient import IngredientRecord, Resolution, Resolved, fallback_record
from ..schemas.safety import SafetyContext
from .generation_client import GenerationClient, GenerationRequest, get_generation_client
from .response_parser import parse_generation_response

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are an expert cosmetic chemist and dermatological researcher specializing in "
    "ingredient safety analysis. Provide accurate, evidence-based assessments in valid JSON format."
)

OUTPUT_CONTRACT = """**OUTPUT:** A JSON object of the form {"ingredients": [...]} with one object per ingredient, in the order listed. Each object must have:
- "name": exact ingredient name
- "description": 1-2 sentences about the ingredient
- "benefits": array of exactly 3 benefit strings
- "good_for": array from ["oily","dry","combination","sensitive","normal","acne","aging","pigmentation","sensitivity","dryness","oilness"]
- "risk_level": one of "no-risk","low-risk","moderate-risk","high-risk"
- "reason": 1-2 sentences explaining the assigned risk_level"""

RISK_RULES = """**CRITICAL RISK ASSESSMENT RULES:**
1. ALWAYS check SAFETY ALERTS first before assigning risk_level
2. ONLY use SAFETY ALERTS if similarity is >85% - lower similarity may indicate false matches (e.g., Madecassic Acid vs Picric Acid)
3. If an ingredient appears in SAFETY ALERTS with very high similarity (>90%), the risk_level MUST match the safety alert risk
4. If SAFETY ALERTS indicates "banned", the risk_level MUST be "high-risk"
5. The "reason" field MUST be 1-2 complete, professional sentences that explain WHY the risk level was assigned
6. If SAFETY ALERTS data is used, paraphrase it into natural sentences - DO NOT copy the raw format like "(99% match, High (Banned))"
7. Only assign "no-risk" or "low-risk" if NO safety concerns are found in SAFETY ALERTS

Return complete, valid JSON only. NO ellipsis (...), NO truncation, NO explanatory text."""

EXAMPLE = (
    'Example for 1 ingredient:\n'
    '{"ingredients":[{"name":"Adenosine","description":"A molecule that reduces wrinkles and soothes skin.",'
    '"benefits":["Reduces fine lines","Brightens skin tone","Controls sebum"],"good_for":["aging","dry","sensitive"],'
    '"risk_level":"low-risk","reason":"This is a safe, naturally occurring molecule with proven anti-aging '
    'benefits and minimal risk of irritation."}]}'
)


@dataclass(frozen=True)
class SafetyAlert:
    """What the prompt is allowed to know about a safety match."""

    ingredient: str
    substance: str
    similarity_percent: int
    risk_label: str

    def render(self) -> str:
        return f'"{self.ingredient}": {self.substance} ({self.similarity_percent}% match, {self.risk_label})'


def partition(names: Sequence[str], batch_size: int) -> List[List[str]]:
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [list(names[i : i + batch_size]) for i in range(0, len(names), batch_size)]


def build_safety_alerts(
    batch: Sequence[str],
    contexts: Mapping[str, SafetyContext],
    threshold: float = 0.85,
) -> List[SafetyAlert]:
    alerts: List[SafetyAlert] = []
    for name in batch:
        ctx = contexts.get(name)
        # Re-checked here so a context built with a looser threshold never reaches a prompt.
        if ctx is None or not ctx.has_safety_concerns or ctx.highest_similarity <= threshold:
            continue
        top = ctx.top_match
        if top is None:
            continue
        risk = (top.risk or "").strip()
        alerts.append(
            SafetyAlert(
                ingredient=name,
                substance=top.name,
                similarity_percent=int(round(top.similarity * 100)),
                risk_label=risk if risk and risk.lower() != "unknown" else "safety concern",
            )
        )
    return alerts


def build_generation_request(
    batch: Sequence[str],
    alerts: Sequence[SafetyAlert],
    *,
    max_tokens_per_ingredient: int = 200,
    max_tokens_cap: int = 2500,
) -> GenerationRequest:
    parts = ["Analyze these skincare ingredients and return valid JSON."]
    if alerts:
        parts.append("**SAFETY ALERTS:**\n" + "\n".join(a.render() for a in alerts))
    parts.append("**INGREDIENTS:**\n" + "\n".join(f"{i + 1}. {name}" for i, name in enumerate(batch)))
    parts.append(OUTPUT_CONTRACT)
    parts.append(RISK_RULES)
    parts.append(EXAMPLE)

    return GenerationRequest(
        system=SYSTEM_PROMPT,
        user="\n\n".join(parts),
        max_tokens=min(max_tokens_per_ingredient * len(batch), max_tokens_cap),
    )


def coerce_generated_record(name: str, item: Optional[dict]) -> Optional[IngredientRecord]:
    """
    Validate one generated object; the requested name always wins.

    Returns None for anything short of a complete record: a description,
    at least one benefit, a concrete risk level and a reason are all
    required, so partial answers are never cached.
    """
    if not isinstance(item, dict):
        return None
    try:
        record = IngredientRecord(**{**item, "name": name})
    except ValidationError as e:
        logger.warning("Discarding invalid generated record for %r: %s", name, e.errors()[:2])
        return None

    missing = [
        field
        for field, present in (
            ("description", bool(record.description.strip())),
            ("benefits", bool(record.benefits)),
            ("risk_level", record.risk_level != "unknown"),
            ("reason", bool(record.reason.strip())),
        )
        if not present
    ]
    if missing:
        logger.warning("Generated record for %r is missing %s", name, ", ".join(missing))
        return None
    return record


class BatchGenerator:
    def __init__(
        self,
        client: Optional[GenerationClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.client = client or get_generation_client(self.settings)

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    async def generate(
        self,
        names: Sequence[str],
        contexts: Mapping[str, SafetyContext],
    ) -> List[Resolution]:
        """One resolution per input name, in input order."""
        if not names:
            return []

        batches = partition(names, self.settings.generation_batch_size)
        logger.info("Generating %d ingredients in %d batches", len(names), len(batches))

        batch_results = await asyncio.gather(
            *[self._generate_batch(batch, contexts) for batch in batches]
        )
        return [resolution for batch in batch_results for resolution in batch]

    async def _generate_batch(
        self,
        batch: List[str],
        contexts: Mapping[str, SafetyContext],
    ) -> List[Resolution]:
        alerts = build_safety_alerts(batch, contexts, self.settings.safety_alert_threshold)
        request = build_generation_request(
            batch,
            alerts,
            max_tokens_per_ingredient=self.settings.generation_max_tokens_per_ingredient,
            max_tokens_cap=self.settings.generation_max_tokens_cap,
        )
        timeout = self.settings.generation_timeout_seconds

        try:
            content = await asyncio.wait_for(self.client.complete(request), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error("Batch generation timed out after %.0fs: %s", timeout, batch)
            return [fallback_record(n, f"LLM error: timed out after {timeout:.0f}s") for n in batch]
        except Exception as e:
            logger.error("Batch generation failed for %s: %s", batch, e)
            return [fallback_record(n, f"LLM error: {e}") for n in batch]

        parsed = parse_generation_response(content)
        if not parsed.ok:
            logger.error("Unparseable generation response for %s: %s", batch, parsed.error)
            return [fallback_record(n, f"LLM response unparseable: {parsed.error}") for n in batch]

        if len(parsed.items) < len(batch):
            logger.warning(
                "Generation returned %d/%d ingredients for batch %s", len(parsed.items), len(batch), batch
            )

        resolutions: List[Resolution] = []
        for idx, name in enumerate(batch):
            item = parsed.items[idx] if idx < len(parsed.items) else None
            record = coerce_generated_record(name, item)
            if record is None:
                resolutions.append(fallback_record(name, "LLM response incomplete"))
            else:
                resolutions.append(Resolved(record=record))
        return resolutions
