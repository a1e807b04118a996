"""
SkinScan RAG Module
===================

Safety retrieval and context building for the enrichment pipeline.
"""

from .context_builder import build_safety_context, retrieve_safety_contexts
from .safety_search import (
    HttpSafetySearchClient,
    LocalSafetyIndex,
    SafetySearchClient,
    get_safety_client,
)

__all__ = [
    "build_safety_context",
    "retrieve_safety_contexts",
    "HttpSafetySearchClient",
    "LocalSafetyIndex",
    "SafetySearchClient",
    "get_safety_client",
]
