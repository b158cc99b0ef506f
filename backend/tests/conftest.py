"""Shared pytest fixtures for convotree tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from convotree.generation.service import GenerationService
from convotree.main import app
from convotree.scoring.service import ScoringService
from convotree.trees.router import (
    get_generation_service,
    get_scoring_service,
    get_tree_service,
)
from convotree.trees.service import TreeService
from tests.fixtures import FakeProvider, why_runs


@pytest.fixture
def tree_service():
    """Empty in-memory session."""
    return TreeService()


@pytest.fixture
def why_service(tree_service):
    """Session loaded with the two-run Why? scenario."""
    tree_service.set_runs(why_runs())
    return tree_service


@pytest.fixture
def fake_provider():
    return FakeProvider(["Reply one", "Reply two", "Reply three"])


@pytest.fixture
async def client(tree_service, fake_provider):
    """Async test client with an in-memory session wired into the app."""
    gen_service = GenerationService(tree_service, provider_lookup=lambda model: fake_provider)
    scoring = ScoringService(
        tree_service, provider_lookup=lambda model: fake_provider, temperature=0.9
    )
    app.dependency_overrides[get_tree_service] = lambda: tree_service
    app.dependency_overrides[get_generation_service] = lambda: gen_service
    app.dependency_overrides[get_scoring_service] = lambda: scoring
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
