"""
Trace logging utilities for SkinScan.

Writes one JSON line per enrichment call so cache efficiency and
fallback rates can be reviewed after the fact.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any

from ..core.config import get_settings

logger = logging.getLogger(__name__)


class TraceLogger:
    """Append-only JSONL logger for enrichment runs."""

    def __init__(self, log_path: Path | None = None):
        self.log_path = log_path or get_settings().trace_log_path
        self._lock = Lock()

    def log_enrichment(
        self,
        request_id: str,
        input_count: int,
        cache_hits: int,
        generated: int,
        fallbacks: int,
        elapsed_ms: float,
        fallback_reasons: list[str] | None = None,
    ) -> None:
        """Persist a single enrichment trace as a JSON line."""

        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": request_id,
            "input_count": input_count,
            "cache_hits": cache_hits,
            "generated": generated,
            "fallbacks": fallbacks,
            "elapsed_ms": round(elapsed_ms, 1),
            "fallback_reasons": sorted(set(fallback_reasons or [])),
        }

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            serialized = json.dumps(entry, ensure_ascii=False)
            with self._lock:
                with self.log_path.open("a", encoding="utf-8") as log_file:
                    log_file.write(serialized + "\n")
        except Exception as exc:  # pragma: no cover - logging failure shouldn't break requests
            logger.warning("Failed to persist enrichment trace: %s", exc)

    def read_recent(self, limit: int = 50) -> list[dict]:
        """Most recent traces first."""
        if not self.log_path.exists():
            return []
        with self._lock:
            with self.log_path.open("r", encoding="utf-8") as log_file:
                lines = deque(log_file, maxlen=limit)

        traces = []
        for line in reversed(lines):
            try:
                traces.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return traces


_TRACE_LOGGER: TraceLogger | None = None


def get_trace_logger() -> TraceLogger:
    """Return a singleton TraceLogger instance."""
    global _TRACE_LOGGER
    if _TRACE_LOGGER is None:
        _TRACE_LOGGER = TraceLogger()
    return _TRACE_LOGGER


def set_trace_logger(logger_instance: TraceLogger | None) -> None:
    """Override the global trace logger (primarily for tests)."""
    global _TRACE_LOGGER
    _TRACE_LOGGER = logger_instance
