"""RunStore: the flat, ordered collection of runs that everything derives from.

Every write goes through sanitize_runs(), so the store only ever holds
well-formed runs. A write that leaves the runs structurally unchanged does not
bump the version, which is what the tree cache keys on.
"""

import logging
import random
import string
import time
from collections.abc import Iterable
from typing import Any

from convotree.models import Role, Run, Turn

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_run_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=6))
    return f"run_{int(time.time() * 1000)}_{suffix}"


def turns_equal(a: list[Turn], b: list[Turn]) -> bool:
    """Structural equality on role + content. Model tags are ignored."""
    if len(a) != len(b):
        return False
    return all(x.role == y.role and x.content == y.content for x, y in zip(a, b))


def runs_equal(a: list[Run], b: list[Run]) -> bool:
    if len(a) != len(b):
        return False
    return all(x.id == y.id and turns_equal(x.turns, y.turns) for x, y in zip(a, b))


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _sanitize_run(raw: Any) -> Run | None:
    run_id = _field(raw, "id")
    raw_turns = _field(raw, "turns")
    if raw is None or not run_id or not isinstance(raw_turns, list):
        logger.warning("Skipping malformed run: %r", raw)
        return None

    turns: list[Turn] = []
    for index, turn in enumerate(raw_turns):
        if not turn:
            logger.warning("Skipping run %s with missing turn at %d", run_id, index)
            return None

        try:
            role = Role(_field(turn, "role"))
        except ValueError:
            logger.warning("Skipping run %s with invalid role at %d", run_id, index)
            return None

        content = _field(turn, "content")
        trimmed = content.strip() if isinstance(content, str) else ""
        if not trimmed:
            logger.warning("Skipping run %s with empty content at %d", run_id, index)
            return None

        model = _field(turn, "model")
        if model is not None and not isinstance(model, str):
            logger.warning("Skipping run %s with non-string model at %d", run_id, index)
            return None
        turns.append(Turn(role=role, content=trimmed, model=model or None))

    if not turns:
        logger.warning("Skipping empty run %s", run_id)
        return None

    return Run(id=str(run_id), turns=turns)


def sanitize_runs(runs: Iterable[Any] | None) -> list[Run]:
    """Drop every run that is not fully well-formed; trim turn content.

    Accepts Run objects or plain dicts (as decoded from JSON). A run with a
    missing turn, an unknown role, blank content or a non-string model is
    dropped wholesale. A run whose id repeats an earlier one gets a fresh id.
    """
    if runs is None:
        return []
    sanitized: list[Run] = []
    seen_ids: set[str] = set()
    for raw in runs:
        run = _sanitize_run(raw)
        if run is None:
            continue
        if run.id in seen_ids:
            fresh_id = generate_run_id()
            logger.warning("Duplicate run id %s, renamed to %s", run.id, fresh_id)
            run = Run(id=fresh_id, turns=run.turns)
        seen_ids.add(run.id)
        sanitized.append(run)
    return sanitized


class RunStore:
    """Owns the run list. Only TreeService mutates it."""

    def __init__(self) -> None:
        self._runs: list[Run] = []
        self._version = 0

    @property
    def runs(self) -> list[Run]:
        return self._runs

    @property
    def version(self) -> int:
        return self._version

    def __len__(self) -> int:
        return len(self._runs)

    def get(self, run_id: str) -> Run | None:
        return next((r for r in self._runs if r.id == run_id), None)

    def contains_turns(self, turns: list[Turn], exclude: str | None = None) -> bool:
        return any(turns_equal(r.turns, turns) for r in self._runs if r.id != exclude)

    def set(self, proposed: Iterable[Any]) -> bool:
        """Replace all runs. Returns False if nothing structurally changed."""
        sanitized = sanitize_runs(proposed)
        if runs_equal(self._runs, sanitized):
            return False
        self._runs = sanitized
        self._version += 1
        return True

    def append(self, run: Run) -> bool:
        return self.set([*self._runs, run])

    def remove(self, run_ids: Iterable[str]) -> int:
        doomed = set(run_ids)
        kept = [r for r in self._runs if r.id not in doomed]
        removed = len(self._runs) - len(kept)
        if removed:
            self.set(kept)
        return removed

    def replace_turn(self, run_id: str, index: int, turn: Turn) -> bool:
        """Rewrite one turn of one run in place. Other runs are untouched."""
        updated: list[Run] = []
        found = False
        for run in self._runs:
            if run.id == run_id and 0 <= index < len(run.turns):
                turns = list(run.turns)
                turns[index] = turn
                updated.append(Run(id=run.id, turns=turns))
                found = True
            else:
                updated.append(run)
        if not found:
            return False
        return self.set(updated)

    def clear(self) -> None:
        self.set([])
