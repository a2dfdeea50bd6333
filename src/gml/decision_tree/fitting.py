"""Tree construction, rule extraction, and text rendering."""

from __future__ import annotations

from loguru import logger

from gml.config import TreeSettings
from gml.decision_tree.models import (
    DecisionNode,
    DecisionTree,
    LeafRule,
    NodeStatistics,
    Predicate,
    Table,
)
from gml.decision_tree.splitting import find_best_split, partition
from gml.logging import SPLIT_LEVEL

# ---------------------------------------------------------------------------
# Public interface -- Tree fitting
# ---------------------------------------------------------------------------


def build_tree(table: Table, *, deduplicate: bool = False) -> DecisionNode:
    """Partition `table` into a decision tree.

    The best split of `table` is searched first. When its gain is zero the
    rows become a leaf; otherwise they are partitioned by the winning
    predicate and each side is built into a subtree. Every subtree works on
    strictly fewer rows, so construction always terminates.

    Nodes are searched top-down with an explicit work stack, true branches
    first, and assembled bottom-up once every split is known, so the depth of
    the tree is not limited by the interpreter's recursion limit.

    Args:
        table (Table): The training rows.
        deduplicate (bool): Passed through to `find_best_split`.

    Returns:
        DecisionNode: Root of the tree. Each node's `statistics.impurity`
            holds the gain of the split search performed for its rows.
    """
    # Pre-order: a parent always precedes its children.
    statistics: list[NodeStatistics] = []
    predicates: list[Predicate | None] = []
    children: list[list[int]] = []
    pending: list[tuple[Table, int | None]] = [(table, None)]

    while pending:
        rows, parent = pending.pop()
        index = len(statistics)
        if parent is not None:
            children[parent].append(index)
        gain, predicate = find_best_split(rows, deduplicate=deduplicate)
        node_statistics = NodeStatistics.from_table(rows, impurity=gain)
        statistics.append(node_statistics)
        children.append([])

        if gain == 0.0 or predicate is None:
            logger.debug("Leaf created", samples=len(rows), class_counts=dict(node_statistics.class_counts))
            predicates.append(None)
            continue

        true_rows, false_rows = partition(rows, predicate)
        logger.log(
            SPLIT_LEVEL,
            "Split chosen",
            column=predicate.column,
            value=predicate.value,
            gain=gain,
            samples=len(rows),
            true_samples=len(true_rows),
            false_samples=len(false_rows),
        )
        predicates.append(predicate)
        pending.append((Table(false_rows), index))
        pending.append((Table(true_rows), index))

    nodes: list[DecisionNode | None] = [None] * len(statistics)
    for index in reversed(range(len(statistics))):
        predicate = predicates[index]
        if predicate is None:
            nodes[index] = DecisionNode(statistics=statistics[index])
            continue
        true_index, false_index = children[index]
        nodes[index] = DecisionNode(
            statistics=statistics[index],
            predicate=predicate,
            true_branch=nodes[true_index],
            false_branch=nodes[false_index],
        )
    root = nodes[0]
    assert root is not None
    return root


def fit_tree(table: Table, *, settings: TreeSettings | None = None) -> DecisionTree:
    """Train a decision tree on `table`.

    Args:
        table (Table): Labeled training rows.
        settings (TreeSettings | None): Fitting options. When `None`, settings
            are loaded from the environment.

    Returns:
        DecisionTree: The trained tree, retaining `table` as its training table.

    Examples:
        >>> table = Table.from_records([
        ...     ("Apple", ["Green", "Big"]),
        ...     ("Grape", ["Red", "Small"]),
        ... ])
        >>> tree = fit_tree(table)
        >>> tree.leaf_count
        2
    """
    settings = settings if settings is not None else TreeSettings()
    root = build_tree(table, deduplicate=settings.deduplicate_candidates)
    tree = DecisionTree(root=root, training_table=table)
    logger.info(
        "Decision tree fitted",
        samples=len(table),
        columns=table.column_count,
        depth=tree.depth,
        leaf_count=tree.leaf_count,
    )
    return tree


# ---------------------------------------------------------------------------
# Public interface -- Rule extraction and rendering
# ---------------------------------------------------------------------------


def extract_rules(tree: DecisionTree) -> list[LeafRule]:
    """Describe every leaf of `tree` as the predicates on its root-to-leaf path.

    Args:
        tree (DecisionTree): A trained tree.

    Returns:
        list[LeafRule]: One rule per leaf, true branches first. Empty for the
            empty tree.
    """
    if tree.root is None:
        return []
    return _walk_tree(tree.root)


def render_tree(tree: DecisionTree, *, indent: str = "    ") -> str:
    """Render `tree` as indented text.

    Args:
        tree (DecisionTree): The tree to render.
        indent (str): Indentation added at each level.

    Returns:
        str: One line per node and branch marker, e.g.::

            x[0] == Red (gain=0.5000, samples=2)
            --> True:
                Predict {Grape: 1}
            --> False:
                Predict {Apple: 1}
    """
    if tree.root is None:
        return "<empty tree>"
    return "\n".join(_render_lines(tree.root, indent=indent))


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _walk_tree(root: DecisionNode) -> list[LeafRule]:
    """Collect one rule per leaf under `root`, true branches first.

    Args:
        root (DecisionNode): The node to start from.

    Returns:
        list[LeafRule]: Leaf rules in pre-order.
    """
    rules: list[LeafRule] = []
    stack: list[tuple[DecisionNode, tuple[Predicate, ...]]] = [(root, ())]
    while stack:
        node, path_predicates = stack.pop()
        if node.predicate is None or node.true_branch is None or node.false_branch is None:
            statistics = node.statistics
            rules.append(
                LeafRule(
                    predicates=path_predicates,
                    prediction=statistics.majority_label,
                    samples=statistics.samples,
                    class_counts=statistics.class_counts,
                )
            )
            continue
        stack.append((node.false_branch, (*path_predicates, node.predicate.negate())))
        stack.append((node.true_branch, (*path_predicates, node.predicate)))
    return rules


def _render_lines(root: DecisionNode, *, indent: str) -> list[str]:
    """Render `root` and its subtree as indented lines.

    Stack entries are either a node to expand or a finished branch marker line.

    Args:
        root (DecisionNode): The node to render.
        indent (str): Indentation added per level.

    Returns:
        list[str]: The rendered lines in pre-order.
    """
    lines: list[str] = []
    stack: list[tuple[DecisionNode | str, str]] = [(root, "")]
    while stack:
        item, prefix = stack.pop()
        if isinstance(item, str):
            lines.append(f"{prefix}{item}")
            continue
        statistics = item.statistics
        if item.predicate is None or item.true_branch is None or item.false_branch is None:
            counts = ", ".join(f"{label}: {count}" for label, count in statistics.class_counts.items())
            lines.append(f"{prefix}Predict {{{counts}}}")
            continue
        lines.append(f"{prefix}{item.predicate} (gain={statistics.impurity:.4f}, samples={statistics.samples})")
        stack.append((item.false_branch, prefix + indent))
        stack.append(("--> False:", prefix))
        stack.append((item.true_branch, prefix + indent))
        stack.append(("--> True:", prefix))
    return lines
