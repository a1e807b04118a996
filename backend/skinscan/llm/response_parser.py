"""
Generation Response Parser
==========================

The generation service answers in JSON, but not always the same JSON:
- a bare array of ingredient objects
- an object wrapping the array ({"ingredients": [...]}, json_object mode)
- a single ingredient object
- any of the above inside markdown fences or surrounded by prose

parse_generation_response() normalizes all of these to a positional list of
objects (None where an entry is not an object) or reports a parse failure.
It never raises; deciding what to do with a failure is the caller's job.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

WRAPPER_KEYS = ("ingredients", "results", "items", "data")

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_JSON_SPAN_RE = re.compile(r"\[[\s\S]*\]|\{[\s\S]*\}")


@dataclass
class ParsedGeneration:
    items: List[Optional[Dict[str, Any]]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _loads_lenient(content: str) -> Any:
    s = (content or "").strip()
    if s.startswith("```"):
        s = _FENCE_RE.sub("", s).replace("```", "").strip()
    try:
        return json.loads(s)
    except json.JSONDecodeError:
        match = _JSON_SPAN_RE.search(s)
        if not match:
            raise
        return json.loads(match.group(0))


def _normalize_shape(data: Any) -> Optional[list]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in WRAPPER_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
        # A lone record rather than a wrapper
        if "name" in data or "description" in data or "risk_level" in data:
            return [data]
    return None


def parse_generation_response(content: Optional[str]) -> ParsedGeneration:
    if content is not None and not isinstance(content, str):
        return ParsedGeneration(error=f"unexpected response type: {type(content).__name__}")
    if not content or not content.strip():
        return ParsedGeneration(error="empty response")

    try:
        data = _loads_lenient(content)
    except json.JSONDecodeError as e:
        return ParsedGeneration(error=f"invalid JSON: {e.msg}")

    entries = _normalize_shape(data)
    if entries is None:
        return ParsedGeneration(error=f"unexpected response shape: {type(data).__name__}")

    return ParsedGeneration(items=[e if isinstance(e, dict) else None for e in entries])
