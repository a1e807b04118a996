"""
Safety Context Schema
=====================

Transient structures produced by the safety retrieval step.
Nothing here is ever persisted.
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class SafetySearchResult(BaseModel):
    """One ranked hit from the similarity search over the safety corpus."""

    data: Dict[str, Any] = Field(default_factory=dict)
    similarity: float = Field(ge=0.0, le=1.0)


class SafetyMatch(BaseModel):
    name: str = "Unknown substance"
    details: str = "No details available"
    risk: str = "Unknown"
    similarity: float = Field(ge=0.0, le=1.0)


class SafetyContext(BaseModel):
    """Threshold-filtered safety evidence for a single ingredient."""

    has_safety_concerns: bool = False
    matched_substances: List[SafetyMatch] = Field(default_factory=list)
    highest_similarity: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def top_match(self) -> SafetyMatch | None:
        return self.matched_substances[0] if self.matched_substances else None
