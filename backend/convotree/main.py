"""convotree FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from anthropic import AsyncAnthropic
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from convotree.config import Settings, load_settings
from convotree.export.router import router as export_router
from convotree.generation.service import GenerationService
from convotree.providers.anthropic import AnthropicProvider
from convotree.providers.gemini import GeminiProvider
from convotree.providers.openai import OpenAIProvider
from convotree.providers.registry import (
    clear_providers,
    get_all_providers,
    list_providers,
    register_provider,
)
from convotree.providers.xai import XAIProvider
from convotree.scoring.service import ScoringService
from convotree.trees.router import (
    get_generation_service,
    get_scoring_service,
    get_tree_service,
)
from convotree.trees.router import router as session_router
from convotree.trees.service import TreeService

logger = logging.getLogger(__name__)

settings = load_settings()


def register_configured_providers(config: Settings) -> None:
    """Register a provider for every API key present in the settings."""
    if config.openai_api_key:
        register_provider(OpenAIProvider(api_key=config.openai_api_key))
    if config.anthropic_api_key:
        register_provider(AnthropicProvider(AsyncAnthropic(api_key=config.anthropic_api_key)))
    if config.xai_api_key:
        register_provider(XAIProvider(api_key=config.xai_api_key))
    if config.gemini_api_key:
        register_provider(GeminiProvider(api_key=config.gemini_api_key))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Wire one in-memory session and its services."""
    register_configured_providers(settings)
    logger.info("Providers configured: %s", list_providers())

    service = TreeService()
    app.dependency_overrides[get_tree_service] = lambda: service

    gen_service = GenerationService(
        service,
        system_prompt=settings.system_prompt,
        default_temperature=settings.temperature,
        max_concurrency=settings.max_concurrency,
        timeout_seconds=settings.timeout_seconds,
    )
    app.dependency_overrides[get_generation_service] = lambda: gen_service

    scoring = ScoringService(service, model=settings.evaluation_model)
    app.dependency_overrides[get_scoring_service] = lambda: scoring

    yield

    clear_providers()
    app.dependency_overrides.clear()


app = FastAPI(
    title="convotree",
    description="Merge linear LLM conversation runs into an explorable, editable tree",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session_router)
app.include_router(export_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": "0.1.0"}


@app.get("/api/providers")
async def providers() -> list[dict]:
    return [
        {"name": p.name, "available": True, "models": p.suggested_models}
        for p in get_all_providers()
    ]
