"""Provider interface and the request/result types passed across it."""

from abc import ABC, abstractmethod
from typing import Any, Literal

from pydantic import BaseModel, Field

from convotree.models import SamplingParams

MessageRole = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    role: MessageRole
    content: str


class GenerationRequest(BaseModel):
    """One completion call against a single model."""

    model: str
    messages: list[ChatMessage]
    sampling_params: SamplingParams = Field(default_factory=SamplingParams)


class GenerationResult(BaseModel):
    """A finished completion plus whatever metadata the vendor reported."""

    content: str
    model: str
    finish_reason: str | None = None
    usage: dict[str, int] | None = None
    latency_ms: int | None = None
    raw_response: dict[str, Any] | None = None


class LLMProvider(ABC):
    """One completion backend. Subclasses wrap a vendor SDK client."""

    suggested_models: list[str] = []

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key, matched against the routing table in registry.py."""
        ...

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Run one completion and return the whole reply."""
        ...


def split_system_messages(
    messages: list[ChatMessage],
) -> tuple[str | None, list[ChatMessage]]:
    """Pull system messages out into one prompt; keep user/assistant turns in order."""
    system_parts: list[str] = []
    conversation: list[ChatMessage] = []
    for message in messages:
        if message.role == "system":
            if message.content.strip():
                system_parts.append(message.content.strip())
            continue
        conversation.append(message)
    system = "\n\n".join(system_parts) if system_parts else None
    return system, conversation
