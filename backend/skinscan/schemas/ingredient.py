"""
Ingredient Record Schema
========================

The unit of knowledge about one cosmetic ingredient.

Records come from two places:
- The ingredient cache (previously generated, fully populated)
- The generation service (fresh, validated here before use)

Inside the pipeline every name resolves to a tagged result:
- Resolved: a confidently assessed record (generated or cached)
- Fallback: a minimal record built when generation could not complete
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


RiskLevel = Literal["no-risk", "low-risk", "moderate-risk", "high-risk", "unknown"]

RISK_LEVELS: tuple[str, ...] = ("no-risk", "low-risk", "moderate-risk", "high-risk", "unknown")

SKIN_CONCERNS: tuple[str, ...] = (
    "oily",
    "dry",
    "combination",
    "sensitive",
    "normal",
    "acne",
    "aging",
    "pigmentation",
    "sensitivity",
    "dryness",
    "oilness",
)

MAX_BENEFITS = 3

FALLBACK_DESCRIPTION = "Information not available"


def normalize_risk_level(value: object) -> str:
    """Map loose spellings ("Low Risk", "HIGH_RISK", "Unknown") to a canonical level."""
    if not isinstance(value, str):
        return "unknown"
    key = value.strip().lower().replace("_", "-").replace(" ", "-")
    if key in RISK_LEVELS:
        return key
    if key in ("no", "none", "safe"):
        return "no-risk"
    if key in ("low", "moderate", "high"):
        return f"{key}-risk"
    return "unknown"


class IngredientRecord(BaseModel):
    """Structured safety/benefit metadata for one ingredient."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    description: str = Field(
        default="",
        validation_alias=AliasChoices("description", "summary"),
    )
    benefits: List[str] = Field(default_factory=list)
    good_for: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("good_for", "goodFor"),
    )
    risk_level: RiskLevel = Field(
        default="unknown",
        validation_alias=AliasChoices("risk_level", "riskLevel"),
    )
    reason: str = ""

    @field_validator("description", "reason", mode="before")
    @classmethod
    def _coerce_text(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("benefits", mode="before")
    @classmethod
    def _coerce_benefits(cls, v):
        if not isinstance(v, list):
            return []
        out = [str(b).strip() for b in v if isinstance(b, str) and b.strip()]
        return out[:MAX_BENEFITS]

    @field_validator("good_for", mode="before")
    @classmethod
    def _coerce_good_for(cls, v):
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, list):
            return []
        out: list[str] = []
        for item in v:
            if not isinstance(item, str):
                continue
            concern = item.strip().lower()
            if concern in SKIN_CONCERNS and concern not in out:
                out.append(concern)
        return out

    @field_validator("risk_level", mode="before")
    @classmethod
    def _coerce_risk_level(cls, v):
        return normalize_risk_level(v)


@dataclass(frozen=True)
class Resolved:
    """A confidently assessed record, freshly generated or read from the cache."""

    record: IngredientRecord
    from_cache: bool = False


@dataclass(frozen=True)
class Fallback:
    """A minimal record standing in for an ingredient that could not be assessed."""

    record: IngredientRecord
    reason: str


Resolution = Union[Resolved, Fallback]


def fallback_record(name: str, reason: str) -> Fallback:
    """Build the deterministic fallback for one ingredient."""
    record = IngredientRecord(
        name=name,
        description=FALLBACK_DESCRIPTION,
        benefits=[],
        good_for=[],
        risk_level="unknown",
        reason=reason,
    )
    return Fallback(record=record, reason=reason)
