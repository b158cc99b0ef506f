"""Gemini LLM provider: a thin OpenAICompatibleProvider subclass.

Uses Google's OpenAI-compatible endpoint for the Gemini API.
"""

from openai import AsyncOpenAI

from convotree.providers.openai_compat import OpenAICompatibleProvider

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class GeminiProvider(OpenAICompatibleProvider):
    """LLM provider backed by the Gemini API."""

    suggested_models = ["gemini-2.5-pro"]

    def __init__(self, *, client: AsyncOpenAI | None = None, api_key: str | None = None) -> None:
        if client is not None:
            super().__init__(client)
        else:
            super().__init__(AsyncOpenAI(api_key=api_key, base_url=GEMINI_BASE_URL))

    @property
    def name(self) -> str:
        return "gemini"
