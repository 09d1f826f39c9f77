"""Model provider contract and the Google GenAI implementation.

The orchestrator depends only on ``ModelProvider``; SDK types never leak past
``GoogleGenAIProvider``. Tests substitute any object with a matching
``generate`` coroutine.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from google import genai
from google.genai import types

from video_copilot.constants import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_TEMPERATURE,
    REQUEST_TIMEOUT_MS,
)
from video_copilot.exceptions import ConfigurationError

if TYPE_CHECKING:
    from pydantic import BaseModel

log = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class InlinePart:
    """Binary content sent inline, followed by an optional text caption."""

    data: bytes
    mime_type: str
    caption: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class GenerationRequest:
    prompt: str
    attachments: tuple[InlinePart, ...] = ()
    temperature: float = DEFAULT_TEMPERATURE
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    response_schema: type[BaseModel] | None = None


@runtime_checkable
class ModelProvider(Protocol):
    """Anything that can turn a request into raw response text."""

    async def generate(self, *, model_name: str, request: GenerationRequest) -> str: ...


class GoogleGenAIProvider:
    """``ModelProvider`` backed by the ``google-genai`` async client."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        client: Any | None = None,
        timeout_ms: int = REQUEST_TIMEOUT_MS,
    ):
        if client is None:
            if not api_key:
                raise ConfigurationError(
                    "Gemini API key is required. Set GEMINI_API_KEY or pass api_key."
                )
            client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(timeout=timeout_ms),
            )
        self._client = client

    def _build_contents(self, request: GenerationRequest) -> list[types.Part]:
        parts = [types.Part.from_text(text=request.prompt)]
        for attachment in request.attachments:
            parts.append(
                types.Part.from_bytes(
                    data=attachment.data, mime_type=attachment.mime_type
                )
            )
            if attachment.caption:
                parts.append(types.Part.from_text(text=attachment.caption))
        return parts

    def _build_config(self, request: GenerationRequest) -> types.GenerateContentConfig:
        config = types.GenerateContentConfig(
            temperature=request.temperature,
            max_output_tokens=request.max_output_tokens,
        )
        if request.response_schema is not None:
            config.response_mime_type = "application/json"
            config.response_schema = request.response_schema
        else:
            config.response_mime_type = "text/plain"
        return config

    async def generate(self, *, model_name: str, request: GenerationRequest) -> str:
        log.debug(
            "generate_content model=%s prompt_chars=%d attachments=%d",
            model_name,
            len(request.prompt),
            len(request.attachments),
        )
        response = await self._client.aio.models.generate_content(
            model=model_name,
            contents=self._build_contents(request),
            config=self._build_config(request),
        )
        return response.text or ""
