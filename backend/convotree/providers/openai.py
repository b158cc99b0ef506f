"""OpenAI LLM provider: a thin OpenAICompatibleProvider subclass."""

from openai import AsyncOpenAI

from convotree.providers.openai_compat import OpenAICompatibleProvider


class OpenAIProvider(OpenAICompatibleProvider):
    """LLM provider backed by OpenAI's Chat Completions API."""

    suggested_models = [
        "gpt-5",
        "gpt-5-mini",
        "gpt-5-chat-latest",
        "chatgpt-4o-latest",
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-3.5-turbo",
    ]

    def __init__(self, *, client: AsyncOpenAI | None = None, api_key: str | None = None) -> None:
        if client is not None:
            super().__init__(client)
        else:
            super().__init__(AsyncOpenAI(api_key=api_key))

    @property
    def name(self) -> str:
        return "openai"
