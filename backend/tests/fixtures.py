"""Shared test helpers: run builders and fake providers."""

import asyncio
from collections.abc import Callable

from convotree.models import Role, Run, Turn
from convotree.providers.base import GenerationRequest, GenerationResult, LLMProvider


def make_turn(role: str, content: str, model: str | None = None) -> Turn:
    return Turn(role=Role(role), content=content, model=model)


def make_run(run_id: str, *turns: tuple) -> Run:
    """make_run("a", ("user", "Hi"), ("assistant", "Hello", "m1"))."""
    return Run(id=run_id, turns=[make_turn(*t) for t in turns])


def why_runs() -> list[Run]:
    """Two runs that share a user prompt and diverge on the assistant reply."""
    return [
        make_run("A", ("user", "Why?"), ("assistant", "Because X", "m1")),
        make_run("B", ("user", "Why?"), ("assistant", "Because Y", "m2")),
    ]


def four_turn_runs() -> list[Run]:
    """Shared opening, two replies, one follow-up each, one answer each."""
    return [
        make_run(
            "r1",
            ("user", "Q1"),
            ("assistant", "A1", "m1"),
            ("user", "Q2"),
            ("assistant", "A2", "m1"),
        ),
        make_run(
            "r2",
            ("user", "Q1"),
            ("assistant", "A1", "m2"),
            ("user", "Q2"),
            ("assistant", "A2-alt", "m2"),
        ),
        make_run(
            "r3",
            ("user", "Q1"),
            ("assistant", "B1", "m3"),
            ("user", "Q2b"),
            ("assistant", "B2", "m3"),
        ),
    ]


class FakeProvider(LLMProvider):
    """Test provider that returns canned responses in order, cycling."""

    def __init__(
        self,
        responses: list[str] | None = None,
        *,
        provider_name: str = "fake",
        fail_on: Callable[[int], bool] | None = None,
        delay: float = 0.0,
    ) -> None:
        self._responses = responses or ["Fake response"]
        self._name = provider_name
        self._fail_on = fail_on
        self._delay = delay
        self.calls: list[GenerationRequest] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def name(self) -> str:
        return self._name

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        index = len(self.calls)
        self.calls.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            if self._fail_on is not None and self._fail_on(index):
                raise RuntimeError(f"provider failure #{index}")
            content = self._responses[index % len(self._responses)]
            return GenerationResult(content=content, model=request.model)
        finally:
            self.in_flight -= 1


class BlockingProvider(LLMProvider):
    """Provider whose calls wait until release() is called."""

    def __init__(self, content: str = "Eventually") -> None:
        self._content = content
        self._gate = asyncio.Event()
        self.started = 0

    @property
    def name(self) -> str:
        return "blocking"

    def release(self) -> None:
        self._gate.set()

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        self.started += 1
        number = self.started
        await self._gate.wait()
        return GenerationResult(content=f"{self._content} {number}", model=request.model)
