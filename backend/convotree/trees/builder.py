"""Tree builder: folds linear runs into a shared tree keyed by turn content.

Pure function of its input. Node ids depend only on (depth, prefix) and option
ids only on (node id, content), so rebuilding from the same runs always yields
the same ids, and mutations can predict the id a new option will get before
the rebuild happens.
"""

import hashlib

from convotree.models import ROOT_KEY, Node, Option, Role, Run, Tree


def node_key(depth: int, prefix: str) -> str:
    return f"{depth}-{prefix}"


def content_hash(content: str) -> str:
    return hashlib.sha1(content.encode("utf-8")).hexdigest()[:12]


def option_id(node_id: str, content: str) -> str:
    return f"{node_id}-opt-{content_hash(content)}"


def next_prefix(node_id: str, role: Role, content: str) -> str:
    """Continuation key after choosing `content` at `node_id`.

    Identical continuations from different runs hash to the same key and so
    land on the same child node; any difference upstream diverges.
    """
    raw = f"{node_id}|{role.value}:{content}"
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]


def build_tree(runs: list[Run], root_key: str = ROOT_KEY) -> Tree:
    root = Node(id=node_key(0, root_key), depth=0, role=Role.USER, prefix_key=root_key)
    nodes_by_id: dict[str, Node] = {root.id: root}
    layers: list[list[Node]] = [[root]]
    max_depth = 1

    for run in runs:
        prefix = root_key
        for index, turn in enumerate(run.turns):
            key = node_key(index, prefix)
            node = nodes_by_id.get(key)
            if node is None:
                node = Node(id=key, depth=index, role=turn.role, prefix_key=prefix)
                nodes_by_id[key] = node
                while len(layers) <= index:
                    layers.append([])
                layers[index].append(node)

            option = next((o for o in node.options if o.content == turn.content), None)
            if option is None:
                option = Option(
                    id=option_id(node.id, turn.content),
                    content=turn.content,
                    next_prefix=next_prefix(key, turn.role, turn.content),
                )
                node.options.append(option)

            if run.id not in option.run_ids:
                option.run_ids.append(run.id)
            if turn.model and turn.model not in option.models:
                option.models.append(turn.model)

            prefix = option.next_prefix
            max_depth = max(max_depth, index + 1)

    for layer in layers:
        layer.sort(key=lambda n: n.prefix_key)

    return Tree(nodes_by_id=nodes_by_id, layers=layers, root_key=root_key, max_depth=max_depth)


def follow_up_depths(tree: Tree) -> dict[str, int]:
    """Map every option's next_prefix to the number of turns still below it.

    0 means choosing the option ends the conversation on every known run.
    """
    by_prefix: dict[str, Node] = {}
    for node in tree.nodes_by_id.values():
        by_prefix.setdefault(node.prefix_key, node)

    cache: dict[str, int] = {}

    def depth_of(prefix: str) -> int:
        if prefix in cache:
            return cache[prefix]
        node = by_prefix.get(prefix)
        if node is None or not node.options:
            cache[prefix] = 0
            return 0
        result = 1 + max(depth_of(opt.next_prefix) for opt in node.options)
        cache[prefix] = result
        return result

    return {
        opt.next_prefix: depth_of(opt.next_prefix)
        for node in tree.nodes_by_id.values()
        for opt in node.options
    }


def unique_run_count(node: Node) -> int:
    return len({run_id for opt in node.options for run_id in opt.run_ids})
