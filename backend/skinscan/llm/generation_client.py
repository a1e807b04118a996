"""
Generation Service Clients
==========================

Narrow contract over the text-generation service:
  complete(GenerationRequest) -> raw response content (str)

Providers:
  - openai: any OpenAI-compatible chat completions endpoint (AsyncOpenAI)
  - clova:  HyperCLOVA-style REST endpoint called directly with httpx

Clients never retry; callers own timeouts and fallbacks.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from openai import AsyncOpenAI

from ..core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """The generation service returned nothing usable."""


class GenerationNotConfiguredError(GenerationError):
    """Credentials or endpoint for the generation service are missing."""


@dataclass(frozen=True)
class GenerationRequest:
    system: str
    user: str
    max_tokens: int = 1000
    json_mode: bool = True


class GenerationClient(ABC):
    @property
    @abstractmethod
    def is_configured(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def complete(self, request: GenerationRequest) -> str:
        raise NotImplementedError


class OpenAIGenerationClient(GenerationClient):
    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        temperature: float = 0.2,
        top_p: float = 0.8,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        # No network call happens until complete(); an empty key simply marks us unconfigured.
        self.client = AsyncOpenAI(api_key=api_key or "unset", base_url=base_url or None, max_retries=0)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def complete(self, request: GenerationRequest) -> str:
        if not self.is_configured:
            raise GenerationNotConfiguredError("Generation API key not set")

        kwargs: dict[str, Any] = {}
        if request.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": request.system},
                {"role": "user", "content": request.user},
            ],
            temperature=self.temperature,
            top_p=self.top_p,
            max_tokens=request.max_tokens,
            **kwargs,
        )
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise GenerationError("Invalid LLM response format: empty content")
        return content


class ClovaGenerationClient(GenerationClient):
    """HyperCLOVA-style chat endpoint: bearer auth, camelCase sampling options."""

    def __init__(
        self,
        api_key: str,
        api_url: str,
        *,
        temperature: float = 0.2,
        top_p: float = 0.8,
        repeat_penalty: float = 1.2,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.transport = transport
        self.temperature = temperature
        self.top_p = top_p
        self.repeat_penalty = repeat_penalty
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_url)

    async def complete(self, request: GenerationRequest) -> str:
        if not self.is_configured:
            raise GenerationNotConfiguredError("HyperCLOVA API credentials not set")

        body: dict[str, Any] = {
            "messages": [
                {"role": "system", "content": request.system},
                {"role": "user", "content": request.user},
            ],
            "maxTokens": request.max_tokens,
            "temperature": self.temperature,
            "topP": self.top_p,
            "repeatPenalty": self.repeat_penalty,
        }
        if request.json_mode:
            body["response_format"] = {"type": "json_object"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(
                self.api_url,
                json=body,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
            resp.raise_for_status()
            data = resp.json()

        content = _extract_clova_content(data)
        if not content:
            raise GenerationError("Invalid LLM response format")
        return content


def _extract_clova_content(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    for container in (data.get("result"), data):
        if isinstance(container, dict):
            message = container.get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                return message["content"]
    return None


def get_generation_client(settings: Optional[Settings] = None) -> GenerationClient:
    """Factory returning the configured generation client."""
    settings = settings or get_settings()

    if settings.generation_provider == "clova":
        return ClovaGenerationClient(
            settings.generation_api_key,
            settings.generation_api_url,
            temperature=settings.generation_temperature,
            top_p=settings.generation_top_p,
            repeat_penalty=settings.generation_repeat_penalty,
            timeout=settings.generation_timeout_seconds,
        )

    return OpenAIGenerationClient(
        settings.generation_api_key,
        model=settings.generation_model,
        base_url=settings.generation_api_url or None,
        temperature=settings.generation_temperature,
        top_p=settings.generation_top_p,
    )
