"""Scoring service: rubric generation and per-option 0-100 scores.

Scores are display annotations only. Nothing in the tree logic reads them,
so every failure here degrades to a default instead of raising.
"""

import logging
import math
import re
from collections.abc import Callable
from typing import Any

from convotree.config import DEFAULT_EVALUATION_MODEL
from convotree.generation.context import normalized_temperature
from convotree.models import Node, NodeEvaluation, Option, OptionScore, Role, SamplingParams, Turn
from convotree.providers.base import ChatMessage, GenerationRequest, LLMProvider
from convotree.providers.registry import get_provider_for_model
from convotree.scoring.prompts import (
    SCORE_REQUEST,
    eval_criteria_messages,
    eval_steps_messages,
    evaluation_prompt,
    format_rubric,
    system_analysis_prompt,
)
from convotree.trees.service import TreeService
from convotree.utils.json import parse_json_object

logger = logging.getLogger(__name__)

SKIP_MODEL = "skip"
FAILED_ANALYSIS = "Failed to generate analysis"

_LEADING_NUMBER_RE = re.compile(r"^\s*[-+]?(\d+\.?\d*|\.\d+)")
_INTEGER_RE = re.compile(r"\d+")


def validate_and_convert(value: Any) -> int:
    """Coerce a score to an int in 0..100, rounding half up. Anything else is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _LEADING_NUMBER_RE.match(str(value))
        if match is None:
            return 0
        number = float(match.group(0))
    if math.isnan(number):
        return 0
    rounded = math.floor(number + 0.5)
    if rounded < 0 or rounded > 100:
        return 0
    return rounded


def parse_score(text: str) -> int:
    """Read {"score": n} from model output, falling back to the first integer, then 0."""
    parsed = parse_json_object(text)
    if parsed is not None and "score" in parsed:
        return validate_and_convert(parsed["score"])
    logger.warning("Failed to parse score JSON from %r", text[:200])
    match = _INTEGER_RE.search(text)
    return validate_and_convert(match.group(0)) if match else 0


class ScoringService:
    """Generates rubrics and scores a node's options against them."""

    def __init__(
        self,
        tree_service: TreeService,
        *,
        provider_lookup: Callable[[str], LLMProvider] = get_provider_for_model,
        model: str = DEFAULT_EVALUATION_MODEL,
        temperature: float = 0.0,
    ) -> None:
        self._tree_service = tree_service
        self._provider_lookup = provider_lookup
        self._model = model
        self._temperature = temperature

    async def create_rubric(
        self,
        context_turns: list[Turn],
        role: Role,
        model: str,
        temperature: float | None = None,
    ) -> str:
        """Two calls: evaluation criteria, then evaluation steps for them."""
        if model == SKIP_MODEL:
            return ""
        prompt = evaluation_prompt(context_turns, role)
        criteria = await self._complete(model, eval_criteria_messages(prompt), temperature)
        steps = await self._complete(
            model, eval_steps_messages(prompt, criteria), temperature
        )
        return format_rubric(criteria, steps)

    async def evaluate_option(
        self, rubric: str, content: str, model: str, temperature: float | None = None
    ) -> OptionScore:
        analysis_messages = [
            ChatMessage(role="system", content=system_analysis_prompt(rubric)),
            ChatMessage(role="user", content=content),
        ]
        analysis = await self._complete(model, analysis_messages, temperature)

        score_messages = [
            *analysis_messages,
            ChatMessage(role="assistant", content=analysis),
            ChatMessage(role="user", content=SCORE_REQUEST),
        ]
        score_text = await self._complete(model, score_messages, temperature)
        return OptionScore(option_id="", score=parse_score(score_text), analysis=analysis)

    async def evaluate_node(
        self, node: Node, model: str | None = None, temperature: float | None = None
    ) -> NodeEvaluation:
        """Score every option at `node` and store the result on the tree service.

        Options are scored one after another. An option whose calls fail is
        recorded with score 0; a rubric failure leaves the evaluation without
        scores. `temperature` overrides the service default for this call only.
        """
        model = model or self._model
        evaluation = NodeEvaluation(node_id=node.id, model=model)
        if not node.options:
            return evaluation

        context_turns = self._tree_service.collect_turns(node.depth)
        if context_turns is None:
            return evaluation

        try:
            evaluation.rubric = await self.create_rubric(
                context_turns, node.role, model, temperature
            )
        except Exception as e:
            logger.error("Failed to generate rubric for node %s: %s", node.id, e)
            self._tree_service.set_evaluation(evaluation)
            return evaluation
        if model == SKIP_MODEL:
            self._tree_service.set_evaluation(evaluation)
            return evaluation

        for option in node.options:
            try:
                scored = await self.evaluate_option(
                    evaluation.rubric, option.content, model, temperature
                )
                scored.option_id = option.id
            except Exception as e:
                logger.error("Failed to evaluate option %s: %s", option.id, e)
                scored = OptionScore(option_id=option.id, score=0, analysis=FAILED_ANALYSIS)
            evaluation.scores[option.id] = scored

        self._tree_service.set_evaluation(evaluation)
        return evaluation

    async def _complete(
        self, model: str, messages: list[ChatMessage], temperature: float | None = None
    ) -> str:
        if temperature is None:
            temperature = self._temperature
        provider = self._provider_lookup(model)
        result = await provider.generate(GenerationRequest(
            model=model,
            messages=messages,
            sampling_params=SamplingParams(
                temperature=normalized_temperature(model, temperature)
            ),
        ))
        return result.content


def options_by_score(node: Node, evaluation: NodeEvaluation | None) -> list[Option]:
    """Options ordered best score first; unscored options keep their order at the end."""
    if evaluation is None:
        return list(node.options)

    def sort_key(indexed: tuple[int, Option]) -> tuple[int, int]:
        index, option = indexed
        scored = evaluation.scores.get(option.id)
        if scored is None or scored.score is None:
            return (1, index)
        return (0, -scored.score)

    return [opt for _, opt in sorted(enumerate(node.options), key=sort_key)]
