"""
Risk Assessor
=============

Risk-only assessment: name + risk_level + reason for a list of ingredients,
in a single generation call.

Used to seed curated ingredient databases where description/benefits
already exist. Unlike the enrichment pipeline this is a plain operation:
failures propagate to the caller instead of degrading to fallbacks.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel

from ..core.config import Settings, get_settings
from ..schemas.ingredient import RiskLevel, normalize_risk_level
from .generation_client import (
    GenerationClient,
    GenerationError,
    GenerationNotConfiguredError,
    GenerationRequest,
    get_generation_client,
)
from .response_parser import parse_generation_response

logger = logging.getLogger(__name__)


RISK_SYSTEM_PROMPT = (
    "You are a skincare ingredient safety expert. Provide accurate risk assessments in JSON format."
)


class RiskAssessment(BaseModel):
    name: str
    risk_level: RiskLevel = "unknown"
    reason: str = ""


def build_risk_request(names: Sequence[str], max_tokens: int = 1000) -> GenerationRequest:
    listing = "\n".join(f"{i + 1}. {name}" for i, name in enumerate(names))
    user = (
        "For each of the following skincare ingredients, return a JSON object of the form "
        '{"ingredients": [...]} where each object has ONLY these fields:\n'
        "  - name: The ingredient name (should match the input name)\n"
        "  - risk_level: One of ['no-risk', 'low-risk', 'moderate-risk', 'high-risk', 'unknown'] "
        "indicating the safety risk of the ingredient\n"
        "  - reason: A brief explanation (1-2 sentences) for the assigned risk level\n"
        f"Ingredients:\n{listing}\n"
        "Return one object per ingredient, in the same order as listed above. "
        "Do not include any extra fields."
    )
    return GenerationRequest(system=RISK_SYSTEM_PROMPT, user=user, max_tokens=max_tokens)


class RiskAssessor:
    def __init__(
        self,
        client: Optional[GenerationClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.client = client or get_generation_client(self.settings)

    async def assess(self, names: Sequence[str]) -> List[RiskAssessment]:
        """
        Assess risk for `names`, aligned by position.

        Raises:
            GenerationNotConfiguredError: credentials missing
            GenerationError: the service failed or answered with unusable JSON
        """
        names = [n for n in names if n and n.strip()]
        if not names:
            return []
        if not self.client.is_configured:
            raise GenerationNotConfiguredError("Generation service credentials not set")

        content = await self.client.complete(build_risk_request(names))
        parsed = parse_generation_response(content)
        if not parsed.ok:
            raise GenerationError(f"Risk assessment response unusable: {parsed.error}")

        assessments: List[RiskAssessment] = []
        for idx, name in enumerate(names):
            item = parsed.items[idx] if idx < len(parsed.items) else None
            if item is None:
                assessments.append(RiskAssessment(name=name, reason="Not assessed"))
                continue
            assessments.append(
                RiskAssessment(
                    name=name,
                    risk_level=normalize_risk_level(item.get("risk_level") or item.get("riskLevel")),
                    reason=str(item.get("reason") or "").strip(),
                )
            )

        logger.info("Risk assessment: %d ingredients", len(assessments))
        return assessments
