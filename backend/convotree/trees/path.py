"""Path resolution and context collection over a built tree.

Both walk the tree from the root the same way: at each depth find the node
for the current prefix, resolve the selected option (falling back to the
first option), and advance to that option's next_prefix.
"""

from convotree.models import Node, Option, PathStep, Run, Tree, Turn
from convotree.trees.builder import node_key


def resolve_option(node: Node, selected_map: dict[str, str]) -> Option | None:
    """The option selected for `node`, or its first option if the selection is stale."""
    selected_id = selected_map.get(node.id)
    if selected_id is not None:
        for opt in node.options:
            if opt.id == selected_id:
                return opt
    return node.options[0] if node.options else None


def _intersect(candidates: list[str] | None, run_ids: list[str]) -> list[str]:
    if candidates is None:
        return list(run_ids)
    return [run_id for run_id in run_ids if run_id in candidates]


def build_path(tree: Tree, selected_map: dict[str, str]) -> list[PathStep]:
    """Resolve the single linear walk currently displayed.

    Always returns at least the root step. Stops at a zero-option node (which
    is included with selected_option=None) or after max_depth steps.
    """
    steps: list[PathStep] = []
    prefix = tree.root_key
    candidates: list[str] | None = None

    for depth in range(tree.max_depth):
        node = tree.nodes_by_id.get(node_key(depth, prefix))
        if node is None:
            break

        option = resolve_option(node, selected_map)
        if option is None:
            steps.append(PathStep(node=node, selected_option=None, run_ids=list(candidates or [])))
            break

        candidates = _intersect(candidates, option.run_ids)
        steps.append(PathStep(node=node, selected_option=option, run_ids=list(candidates)))
        prefix = option.next_prefix

    return steps


def collect_turns_up_to_depth(
    tree: Tree,
    selected_map: dict[str, str],
    depth: int,
    runs: list[Run],
) -> list[Turn] | None:
    """Materialize the first `depth` turns of the path implied by `selected_map`.

    Turns are copied verbatim from a concrete run that passes through every
    selected option so far, which keeps their original model tags. When no
    such run exists the turn is synthesized from the option. Returns None if
    the walk hits a missing or empty node before `depth`.
    """
    runs_by_id = {run.id: run for run in runs}
    turns: list[Turn] = []
    prefix = tree.root_key
    candidates: list[str] | None = None

    for d in range(depth):
        node = tree.nodes_by_id.get(node_key(d, prefix))
        if node is None or not node.options:
            return None
        option = resolve_option(node, selected_map)
        if option is None:
            return None

        candidates = _intersect(candidates, option.run_ids)

        resolved: Turn | None = None
        if candidates:
            base = runs_by_id.get(candidates[0])
            if base is not None and d < len(base.turns):
                resolved = base.turns[d].model_copy()

        if resolved is None:
            resolved = Turn(
                role=node.role,
                content=option.content,
                model=option.models[0] if option.models else None,
            )
        turns.append(resolved)
        prefix = option.next_prefix

    return turns
