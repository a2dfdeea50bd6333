"""gml: CART-style decision trees over categorical features."""

from loguru import logger

from gml.decision_tree import DecisionTree, Predicate, Row, Table, fit_tree
from gml.logging import PACKAGE_NAME, enable_logging

logger.disable(PACKAGE_NAME)  # noqa: RUF067 - Disable logging for the gml package by default

__all__ = [
    "DecisionTree",
    "Predicate",
    "Row",
    "Table",
    "enable_logging",
    "fit_tree",
]
