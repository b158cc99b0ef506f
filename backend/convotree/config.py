"""Runtime settings, read from the environment.

A .env file in the backend/ directory is loaded first so API keys can stay
out of the shell profile.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"

DEFAULT_TEMPERATURE = 1.2
DEFAULT_EVALUATION_MODEL = "gpt-5-mini"


class Settings(BaseModel):
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    xai_api_key: str | None = None
    gemini_api_key: str | None = None

    system_prompt: str = ""
    temperature: float = DEFAULT_TEMPERATURE
    evaluation_model: str = DEFAULT_EVALUATION_MODEL

    # Unset means unbounded fan-out and no per-call timeout.
    max_concurrency: int | None = Field(default=None, ge=1)
    timeout_seconds: float | None = Field(default=None, gt=0)

    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])


# Env var -> Settings field; pydantic coerces the string values.
_OPTIONAL_FIELDS: dict[str, str] = {
    "CONVOTREE_TEMPERATURE": "temperature",
    "CONVOTREE_EVALUATION_MODEL": "evaluation_model",
    "CONVOTREE_MAX_CONCURRENCY": "max_concurrency",
    "CONVOTREE_TIMEOUT_SECONDS": "timeout_seconds",
}


def _env(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


def load_settings(env_path: Path | None = _ENV_PATH) -> Settings:
    """Build Settings from environment variables (after loading .env)."""
    if env_path is not None:
        load_dotenv(env_path)

    values: dict = {
        "openai_api_key": _env("OPENAI_API_KEY"),
        "anthropic_api_key": _env("ANTHROPIC_API_KEY"),
        "xai_api_key": _env("XAI_API_KEY"),
        "gemini_api_key": _env("GEMINI_API_KEY"),
    }
    if "CONVOTREE_SYSTEM_PROMPT" in os.environ:
        values["system_prompt"] = os.environ["CONVOTREE_SYSTEM_PROMPT"]
    for env_name, field_name in _OPTIONAL_FIELDS.items():
        raw = _env(env_name)
        if raw is not None:
            values[field_name] = raw

    origins = _env("CONVOTREE_CORS_ORIGINS")
    if origins is not None:
        values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

    return Settings.model_validate(values)
