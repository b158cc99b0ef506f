"""Generation service: fans out completion calls and folds replies into the tree."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, Field

from convotree.config import DEFAULT_TEMPERATURE
from convotree.generation.context import (
    InvalidContextError,
    build_generation_messages,
    normalized_temperature,
)
from convotree.generation.presets import GenerateRequestItem
from convotree.models import Node, Option, Role, SamplingParams, next_role
from convotree.providers.base import ChatMessage, GenerationRequest, GenerationResult, LLMProvider
from convotree.providers.registry import get_provider_for_model
from convotree.trees.builder import node_key, option_id
from convotree.trees.service import TreeService

logger = logging.getLogger(__name__)


class GenerationOutcome(BaseModel):
    """What one generate_next call did. Failed attempts simply add nothing."""

    requested: int = 0
    succeeded: int = 0
    failed: int = 0
    option_ids: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    skipped_reason: str | None = None


def pending_key(node_id: str, opt_id: str) -> str:
    return f"{node_id}:{opt_id}"


class GenerationService:
    """Orchestrates parallel assistant-turn generation for one branch.

    Each completion is an independent task: it is folded into the run store
    via add_next_turn as soon as it returns, and its failure is logged without
    touching its siblings.
    """

    def __init__(
        self,
        tree_service: TreeService,
        *,
        provider_lookup: Callable[[str], LLMProvider] = get_provider_for_model,
        system_prompt: str = "",
        default_temperature: float = DEFAULT_TEMPERATURE,
        max_concurrency: int | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._tree_service = tree_service
        self._provider_lookup = provider_lookup
        self._system_prompt = system_prompt
        self._default_temperature = default_temperature
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        self._timeout = timeout_seconds
        self._pending: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Pending tracking
    # ------------------------------------------------------------------

    def pending(self, node_id: str, opt_id: str) -> int:
        """Outstanding completions for the branch through (node, option)."""
        return self._pending.get(pending_key(node_id, opt_id), 0)

    @property
    def pending_map(self) -> dict[str, int]:
        return dict(self._pending)

    def _adjust_pending(self, key: str, delta: int) -> None:
        current = self._pending.get(key, 0) + delta
        if current <= 0:
            self._pending.pop(key, None)
        else:
            self._pending[key] = current

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_next(
        self,
        node: Node,
        selected_option: Option | None,
        requests: list[GenerateRequestItem],
        temperature: float | None = None,
    ) -> GenerationOutcome:
        """Generate assistant replies to the branch through `selected_option`."""
        if selected_option is None:
            return GenerationOutcome(skipped_reason="No option selected")
        if next_role(node.role) != Role.ASSISTANT:
            return GenerationOutcome(skipped_reason="Only assistant turns can be generated")

        context_turns = self._tree_service.collect_turns(
            node.depth + 1,
            {**self._tree_service.selected_map, node.id: selected_option.id},
        )
        if context_turns is None:
            return GenerationOutcome(skipped_reason="No valid context for this branch")

        safe_requests = [r for r in requests if r.count > 0]
        if not safe_requests:
            return GenerationOutcome(skipped_reason="No generation requests")

        try:
            messages = build_generation_messages(context_turns, self._system_prompt)
        except InvalidContextError as e:
            logger.error("Refusing to generate for node %s: %s", node.id, e)
            return GenerationOutcome(skipped_reason=str(e))

        requested_temperature = (
            temperature if temperature is not None else self._default_temperature
        )
        key = pending_key(node.id, selected_option.id)
        outcome = GenerationOutcome(requested=sum(r.count for r in safe_requests))

        tasks = []
        for request in safe_requests:
            model_temperature = normalized_temperature(request.model, requested_temperature)
            logger.debug(
                "Generating %d from %s at temperature %s", request.count, request.model,
                model_temperature,
            )
            self._adjust_pending(key, request.count)
            for index in range(request.count):
                tasks.append(self._generate_one(
                    key, node, selected_option, messages,
                    request.model, model_temperature, index, outcome,
                ))

        await asyncio.gather(*tasks)
        return outcome

    async def _generate_one(
        self,
        key: str,
        node: Node,
        selected_option: Option,
        messages: list[ChatMessage],
        model: str,
        temperature: float,
        index: int,
        outcome: GenerationOutcome,
    ) -> None:
        try:
            provider = self._provider_lookup(model)
            request = GenerationRequest(
                model=model,
                messages=messages,
                sampling_params=SamplingParams(temperature=temperature),
            )
            result = await self._call(provider, request)
            content = result.content.strip()
            if not content:
                raise EmptyGenerationError(model)

            self._tree_service.add_next_turn(node, selected_option, content, model=model)
            child_id = node_key(node.depth + 1, selected_option.next_prefix)
            new_id = option_id(child_id, content)
            outcome.succeeded += 1
            if new_id not in outcome.option_ids:
                outcome.option_ids.append(new_id)
        except Exception as e:
            logger.warning("Failed to generate response from %s (#%d): %s", model, index, e)
            outcome.failed += 1
            outcome.errors.append(f"{model}: {e}")
        finally:
            self._adjust_pending(key, -1)

    async def _call(self, provider: LLMProvider, request: GenerationRequest) -> GenerationResult:
        if self._semaphore is None:
            return await self._with_timeout(provider.generate(request))
        async with self._semaphore:
            return await self._with_timeout(provider.generate(request))

    async def _with_timeout(self, call: Awaitable[GenerationResult]) -> GenerationResult:
        if self._timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self._timeout)


class EmptyGenerationError(Exception):
    def __init__(self, model: str) -> None:
        self.model = model
        super().__init__(f"Empty response from {model}")
