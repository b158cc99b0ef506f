"""xAI (Grok) LLM provider: a thin OpenAICompatibleProvider subclass.

xAI serves an OpenAI-compatible chat completions endpoint.
"""

from openai import AsyncOpenAI

from convotree.providers.openai_compat import OpenAICompatibleProvider

XAI_BASE_URL = "https://api.x.ai/v1"


class XAIProvider(OpenAICompatibleProvider):
    """LLM provider backed by xAI's API."""

    suggested_models = ["grok-4"]

    def __init__(
        self,
        *,
        client: AsyncOpenAI | None = None,
        api_key: str | None = None,
        base_url: str = XAI_BASE_URL,
    ) -> None:
        if client is not None:
            super().__init__(client)
        else:
            super().__init__(AsyncOpenAI(api_key=api_key, base_url=base_url))

    @property
    def name(self) -> str:
        return "xai"
