"""Claude models via the Anthropic Messages API."""

import time
from typing import Any

from anthropic import AsyncAnthropic

from convotree.providers.base import (
    GenerationRequest,
    GenerationResult,
    LLMProvider,
    split_system_messages,
)

DEFAULT_MAX_TOKENS = 1024


class AnthropicProvider(LLMProvider):
    """Serves every `claude*` model."""

    suggested_models = [
        "claude-opus-4-1-20250805",
        "claude-sonnet-4-5-20250929",
    ]

    def __init__(self, client: AsyncAnthropic) -> None:
        self._client = client

    @property
    def name(self) -> str:
        return "anthropic"

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        params = self._build_params(request)
        start = time.monotonic()
        response = await self._client.messages.create(**params)
        latency_ms = int((time.monotonic() - start) * 1000)

        content = self._extract_text(response)
        return GenerationResult(
            content=content,
            model=response.model,
            finish_reason=response.stop_reason,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
            latency_ms=latency_ms,
            raw_response=response.model_dump(),
        )

    @staticmethod
    def _build_params(request: GenerationRequest) -> dict[str, Any]:
        """Build kwargs dict for client.messages.create().

        System messages move to the top-level `system` parameter; the
        Messages API only accepts user/assistant turns in `messages`.
        """
        sp = request.sampling_params
        system, conversation = split_system_messages(request.messages)
        params: dict[str, Any] = {
            "model": request.model,
            "max_tokens": sp.max_tokens or DEFAULT_MAX_TOKENS,
            "messages": [{"role": m.role, "content": m.content} for m in conversation],
        }
        if system is not None:
            params["system"] = system
        if sp.temperature is not None:
            # Messages API rejects temperatures above 1.0
            params["temperature"] = min(sp.temperature, 1.0)
        return params

    @staticmethod
    def _extract_text(response: Any) -> str:
        """Concatenate the text blocks of a Message, skipping any other block types."""
        parts = []
        for block in response.content:
            if block.type == "text":
                parts.append(block.text)
        return "".join(parts).strip()
