"""Provider registry: stores configured LLM provider instances.

Models are routed to providers by name prefix. A provider is only registered
when its API key is configured, so a missing registration for a routed model
means the key is missing.
"""

from convotree.providers.base import LLMProvider

_providers: dict[str, LLMProvider] = {}

# Checked in order; anything unmatched goes to openai.
_MODEL_PREFIXES: list[tuple[str, str]] = [
    ("claude", "anthropic"),
    ("grok", "xai"),
    ("gemini", "gemini"),
]
_DEFAULT_PROVIDER = "openai"


def register_provider(provider: LLMProvider) -> None:
    """Make `provider` available under its name, replacing any previous one."""
    _providers[provider.name] = provider


def resolve_provider_name(model: str) -> str:
    """Which provider serves `model`, judged by its name."""
    for prefix, provider_name in _MODEL_PREFIXES:
        if model.startswith(prefix):
            return provider_name
    return _DEFAULT_PROVIDER


def get_provider_for_model(model: str) -> LLMProvider:
    """Get the provider that serves `model`. Raises MissingApiKeyError if unconfigured."""
    provider_name = resolve_provider_name(model)
    provider = _providers.get(provider_name)
    if provider is None:
        raise MissingApiKeyError(provider_name, model)
    return provider


def list_providers() -> list[str]:
    """Names of the configured providers, in registration order."""
    return list(_providers.keys())


def get_all_providers() -> list[LLMProvider]:
    return list(_providers.values())


def clear_providers() -> None:
    """Forget every provider (app shutdown and tests)."""
    _providers.clear()


class MissingApiKeyError(Exception):
    def __init__(self, provider: str, model: str) -> None:
        self.provider = provider
        self.model = model
        super().__init__(
            f"Missing {provider} API key: configure it before using {model}"
        )
