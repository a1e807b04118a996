"""
SkinScan Schemas
================

Pydantic schemas for structured data.

- ingredient: IngredientRecord plus the Resolved/Fallback tagged results
- safety: SafetySearchResult, SafetyMatch, SafetyContext
"""

from .ingredient import (
    FALLBACK_DESCRIPTION,
    Fallback,
    IngredientRecord,
    Resolution,
    Resolved,
    RiskLevel,
    fallback_record,
)
from .safety import SafetyContext, SafetyMatch, SafetySearchResult

__all__ = [
    "FALLBACK_DESCRIPTION",
    "Fallback",
    "IngredientRecord",
    "Resolution",
    "Resolved",
    "RiskLevel",
    "fallback_record",
    "SafetyContext",
    "SafetyMatch",
    "SafetySearchResult",
]
