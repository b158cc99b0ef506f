"""Tree service: owns the run store and selection map, applies mutations.

Every mutation is read-modify-write against the RunStore followed by a
selection update. Because node and option ids are deterministic, the id the
new option will have after the rebuild is known up front and selected
directly.
"""

import logging
from collections.abc import Iterable
from typing import Any

from convotree.models import (
    ROOT_KEY,
    Node,
    NodeEvaluation,
    Option,
    PathStep,
    Role,
    Run,
    Tree,
    Turn,
    next_role,
)
from convotree.runs.samples import SAMPLE_RUNS
from convotree.runs.store import RunStore, generate_run_id
from convotree.trees.builder import build_tree, node_key, option_id
from convotree.trees.path import build_path, collect_turns_up_to_depth

logger = logging.getLogger(__name__)

MANUAL_MODEL = "manual"
EDITED_MODEL = "edited"


class TreeService:
    """Single-session state: runs, selection map and evaluation annotations."""

    def __init__(self, root_key: str = ROOT_KEY) -> None:
        self.root_key = root_key
        self._store = RunStore()
        self._selected: dict[str, str] = {}
        self._evaluations: dict[str, NodeEvaluation] = {}
        self._tree: Tree | None = None
        self._tree_version = -1

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def runs(self) -> list[Run]:
        return self._store.runs

    @property
    def selected_map(self) -> dict[str, str]:
        return dict(self._selected)

    @property
    def tree(self) -> Tree:
        """The tree for the current runs, rebuilt whenever the store changes."""
        if self._tree is None or self._tree_version != self._store.version:
            self._tree = build_tree(self._store.runs, self.root_key)
            self._tree_version = self._store.version
        return self._tree

    def path(self) -> list[PathStep]:
        return build_path(self.tree, self._selected)

    def collect_turns(
        self, depth: int, selected_map: dict[str, str] | None = None
    ) -> list[Turn] | None:
        selection = self._selected if selected_map is None else selected_map
        return collect_turns_up_to_depth(self.tree, selection, depth, self._store.runs)

    def get_node(self, node_id: str) -> Node:
        node = self.tree.nodes_by_id.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    @staticmethod
    def get_option(node: Node, opt_id: str) -> Option:
        for opt in node.options:
            if opt.id == opt_id:
                return opt
        raise OptionNotFoundError(opt_id)

    def get_run(self, run_id: str) -> Run:
        run = self._store.get(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        return run

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self._store.clear()
        self._selected.clear()
        self._evaluations.clear()

    def load_sample(self) -> None:
        self.set_runs(SAMPLE_RUNS)

    def set_runs(self, runs: Iterable[Any]) -> bool:
        return self._store.set(runs)

    def merge_runs(self, runs: list[Run]) -> int:
        """Append runs (e.g. from an import). Returns how many were added."""
        before = len(self._store)
        self._store.set([*self._store.runs, *runs])
        return len(self._store) - before

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_option(self, node: Node, content: str, *, model: str | None = None) -> str | None:
        """Add a sibling option at `node` under the current selection.

        Returns the new option's id, or None when nothing was added.
        """
        trimmed = content.strip()
        if not trimmed:
            return None

        base = self.collect_turns(node.depth)
        if base is None:
            return None

        new_turn = Turn(role=node.role, content=trimmed, model=model or self._default_model(node.role))
        if not self._append_run([*base, new_turn]):
            return None

        new_id = option_id(node.id, trimmed)
        self._selected[node.id] = new_id
        return new_id

    def add_next_turn(
        self,
        node: Node,
        selected_option: Option | None,
        content: str,
        *,
        role: Role | None = None,
        model: str | None = None,
    ) -> str | None:
        """Extend the branch through `selected_option` with one more turn.

        Returns the option id on the child node, or None when nothing was added.
        """
        trimmed = content.strip()
        if not trimmed or selected_option is None:
            return None

        base: list[Turn] | None = None
        if selected_option.run_ids:
            base_run = self._store.get(selected_option.run_ids[0])
            if base_run is not None:
                base = list(base_run.turns[: node.depth + 1])

        if base is None:
            base = self.collect_turns(
                node.depth + 1, {**self._selected, node.id: selected_option.id}
            )
        if base is None:
            return None

        turn_role = role or next_role(node.role)
        new_turn = Turn(role=turn_role, content=trimmed, model=model or self._default_model(turn_role))
        if not self._append_run([*base, new_turn]):
            return None

        child_id = node_key(node.depth + 1, selected_option.next_prefix)
        new_id = option_id(child_id, trimmed)
        self._selected[child_id] = new_id
        return new_id

    def edit_node(
        self,
        node: Node,
        selected_option: Option | None,
        run_id: str,
        new_content: str,
    ) -> str | None:
        """Rewrite the turn at `node.depth` in one run only.

        Other runs that shared the old content keep it, so the edited run
        forks onto its own option from here down. The run must pass through
        `selected_option`, and an edit that would make it a copy of another
        run is dropped.
        """
        trimmed = new_content.strip()
        if selected_option is None or not trimmed:
            return None
        if run_id not in selected_option.run_ids:
            logger.warning("Run %s does not pass through option %s", run_id, selected_option.id)
            return None

        run = self._store.get(run_id)
        if run is None or node.depth >= len(run.turns):
            logger.warning("Edit target %s has no turn at depth %d", run_id, node.depth)
            return None

        old = run.turns[node.depth]
        edited = Turn(
            role=old.role,
            content=trimmed,
            model=EDITED_MODEL if old.role == Role.ASSISTANT else old.model,
        )
        rewritten = [*run.turns[: node.depth], edited, *run.turns[node.depth + 1 :]]
        if self._store.contains_turns(rewritten, exclude=run_id):
            logger.debug("Skipping edit of %s that duplicates another run", run_id)
            return None
        self._store.replace_turn(run_id, node.depth, edited)

        new_id = option_id(node.id, trimmed)
        self._selected[node.id] = new_id
        return new_id

    def prune(self, run_ids: Iterable[str]) -> int:
        """Remove whole runs. Their descendants disappear on the next rebuild."""
        ids = list(run_ids)
        if not ids:
            return 0
        removed = self._store.remove(ids)
        self._selected.clear()
        return removed

    def select_option(self, node: Node, option: Option) -> None:
        """Select `option` and forget every selection below `node`."""
        self._selected[node.id] = option.id
        for layer in self.tree.layers:
            for layer_node in layer:
                if layer_node.depth > node.depth:
                    self._selected.pop(layer_node.id, None)

    # ------------------------------------------------------------------
    # Evaluation annotations
    # ------------------------------------------------------------------

    def get_evaluation(self, node_id: str) -> NodeEvaluation | None:
        return self._evaluations.get(node_id)

    def set_evaluation(self, evaluation: NodeEvaluation) -> None:
        self._evaluations[evaluation.node_id] = evaluation

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _append_run(self, turns: list[Turn]) -> bool:
        if self._store.contains_turns(turns):
            logger.debug("Skipping duplicate run of %d turns", len(turns))
            return False
        return self._store.append(Run(id=generate_run_id(), turns=turns))

    @staticmethod
    def _default_model(role: Role) -> str | None:
        return MANUAL_MODEL if role == Role.ASSISTANT else None


class NodeNotFoundError(Exception):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class OptionNotFoundError(Exception):
    def __init__(self, option_id: str) -> None:
        self.option_id = option_id
        super().__init__(f"Option not found: {option_id}")


class RunNotFoundError(Exception):
    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"Run not found: {run_id}")
