"""Decision tree sub-package: models, split search, and fitting."""

from __future__ import annotations

from gml.decision_tree.fitting import build_tree, extract_rules, fit_tree, render_tree
from gml.decision_tree.models import (
    Condition,
    DecisionNode,
    DecisionTree,
    FeatureValue,
    FeatureVector,
    LeafRule,
    NodeStatistics,
    Predicate,
    Row,
    Table,
)
from gml.decision_tree.splitting import SplitResult, find_best_split, gini, info_gain, partition

__all__ = [
    "Condition",
    "DecisionNode",
    "DecisionTree",
    "FeatureValue",
    "FeatureVector",
    "LeafRule",
    "NodeStatistics",
    "Predicate",
    "Row",
    "SplitResult",
    "Table",
    "build_tree",
    "extract_rules",
    "find_best_split",
    "fit_tree",
    "gini",
    "info_gain",
    "partition",
    "render_tree",
]
