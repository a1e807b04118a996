"""
SkinScan LLM Components
=======================

Generation service clients, batched ingredient generation and
risk-only assessment.
"""

from .batch_generator import BatchGenerator, SafetyAlert, build_generation_request, build_safety_alerts, partition
from .generation_client import (
    GenerationClient,
    GenerationError,
    GenerationNotConfiguredError,
    GenerationRequest,
    get_generation_client,
)
from .response_parser import ParsedGeneration, parse_generation_response
from .risk_assessor import RiskAssessment, RiskAssessor

__all__ = [
    "BatchGenerator",
    "SafetyAlert",
    "build_generation_request",
    "build_safety_alerts",
    "partition",
    "GenerationClient",
    "GenerationError",
    "GenerationNotConfiguredError",
    "GenerationRequest",
    "get_generation_client",
    "ParsedGeneration",
    "parse_generation_response",
    "RiskAssessment",
    "RiskAssessor",
]
