"""Providers for vendors that expose the OpenAI chat completions protocol.

Handles parameter building and response parsing. OpenAIProvider, XAIProvider
and GeminiProvider are thin subclasses that differ only in client
configuration.
"""

import time
from typing import Any

from openai import AsyncOpenAI

from convotree.providers.base import (
    GenerationRequest,
    GenerationResult,
    LLMProvider,
    split_system_messages,
)


class OpenAICompatibleProvider(LLMProvider):
    """Chat completions client shared by OpenAI, xAI and Gemini."""

    def __init__(self, client: AsyncOpenAI) -> None:
        self._client = client

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        params = self._build_params(request)
        start = time.monotonic()
        response = await self._client.chat.completions.create(**params)
        latency_ms = int((time.monotonic() - start) * 1000)

        choice = response.choices[0]
        content = (choice.message.content or "").strip()

        usage = None
        if response.usage is not None:
            usage = {
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
            }

        return GenerationResult(
            content=content,
            model=response.model,
            finish_reason=choice.finish_reason,
            usage=usage,
            latency_ms=latency_ms,
            raw_response=response.model_dump(),
        )

    @staticmethod
    def _build_params(request: GenerationRequest) -> dict[str, Any]:
        """Keyword arguments for chat.completions.create; unset sampling fields are omitted."""
        sp = request.sampling_params
        system, conversation = split_system_messages(request.messages)

        messages: list[dict[str, str]] = []
        if system is not None:
            messages.append({"role": "system", "content": system})
        messages.extend({"role": m.role, "content": m.content} for m in conversation)

        params: dict[str, Any] = {
            "model": request.model,
            "messages": messages,
        }
        if sp.temperature is not None:
            params["temperature"] = sp.temperature
        if sp.max_tokens is not None:
            params["max_tokens"] = sp.max_tokens
        return params
