"""Gini impurity, information gain, partitioning, and exhaustive best-split search."""

from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

from gml.decision_tree.models import FeatureValue, Predicate, Row, Table, count_labels
from gml.exceptions import EmptyTableError


class SplitResult(NamedTuple):
    """Outcome of a best-split search.

    Attributes:
        gain (float): Information gain of the winning split; `0.0` when no
            split separates the rows.
        predicate (Predicate | None): The winning predicate; `None` when no
            candidate leaves both branches non-empty. A zero-gain candidate
            may still be reported, so callers decide on `gain` alone.
    """

    gain: float
    predicate: Predicate | None


# ---------------------------------------------------------------------------
# Public interface -- Impurity and gain
# ---------------------------------------------------------------------------


def gini(rows: Table | Sequence[Row]) -> float:
    """Compute the Gini impurity of a set of rows.

    The Gini impurity is the probability that two rows drawn at random (with
    replacement) carry different labels: `1 - sum(p_label ** 2)`. It is `0.0`
    for a set with a single label.

    Args:
        rows (Table | Sequence[Row]): The rows to score.

    Returns:
        float: Impurity in `[0, 1)`.

    Raises:
        EmptyTableError: If `rows` is empty.

    Examples:
        >>> table = Table.from_records([("Apple", ["Green"]), ("Grape", ["Red"])])
        >>> gini(table)
        0.5
    """
    total = len(rows)
    if total == 0:
        raise EmptyTableError("gini")
    impurity = 1.0
    for count in count_labels(rows).values():
        impurity -= (count / total) ** 2
    return impurity


def info_gain(
    left: Table | Sequence[Row],
    right: Table | Sequence[Row],
    base_impurity: float,
) -> float:
    """Compute the reduction in weighted Gini impurity achieved by a split.

    Args:
        left (Table | Sequence[Row]): Rows sent to one branch.
        right (Table | Sequence[Row]): Rows sent to the other branch.
        base_impurity (float): Gini impurity of the rows before splitting.

    Returns:
        float: `base_impurity - r * gini(left) - (1 - r) * gini(right)` where
            `r = len(left) / (len(left) + len(right))`.

    Raises:
        EmptyTableError: If either branch is empty.
    """
    if not left or not right:
        raise EmptyTableError("info_gain")
    left_ratio = len(left) / (len(left) + len(right))
    return base_impurity - left_ratio * gini(left) - (1 - left_ratio) * gini(right)


# ---------------------------------------------------------------------------
# Public interface -- Partitioning and split search
# ---------------------------------------------------------------------------


def partition(
    rows: Table | Sequence[Row],
    predicate: Predicate,
) -> tuple[tuple[Row, ...], tuple[Row, ...]]:
    """Split rows by whether `predicate` holds for their features.

    Relative row order is preserved on both sides, and every row lands on
    exactly one side. Either side may be empty.

    Args:
        rows (Table | Sequence[Row]): The rows to split.
        predicate (Predicate): The routing test.

    Returns:
        tuple[tuple[Row, ...], tuple[Row, ...]]: A 2-tuple of
            `(true_rows, false_rows)`.
    """
    true_rows: list[Row] = []
    false_rows: list[Row] = []
    for row in rows:
        if predicate.evaluate(row.features):
            true_rows.append(row)
        else:
            false_rows.append(row)
    return tuple(true_rows), tuple(false_rows)


def find_best_split(table: Table, *, deduplicate: bool = False) -> SplitResult:
    """Search every `(column, observed value)` equality test for the highest gain.

    For each column and each row, the candidate `x[column] == row[column]` is
    used to partition `table`. Candidates that leave a branch empty are
    skipped. A candidate replaces the current best whenever its gain is
    greater than *or equal to* the best so far, so among equal-gain
    candidates the one found last wins.

    Args:
        table (Table): The rows to split.
        deduplicate (bool): Evaluate each distinct value of a column once
            instead of once per row. Values are visited in order of their last
            occurrence, so the winner is the same as in the exhaustive scan.

    Returns:
        SplitResult: The best gain and predicate. A `gain` of `0.0` tells
            the builder to make a leaf; `predicate` is `None` when no
            candidate left both branches non-empty.

    Examples:
        >>> table = Table.from_records([("Apple", ["Big"]), ("Grape", ["Small"])])
        >>> result = find_best_split(table)
        >>> result.gain, str(result.predicate)
        (0.5, 'x[0] == Small')
    """
    base_impurity = gini(table)
    best = SplitResult(gain=0.0, predicate=None)

    for column in range(table.column_count):
        for value in _candidate_values(table, column, deduplicate=deduplicate):
            candidate = Predicate(column=column, value=value)
            true_rows, false_rows = partition(table, candidate)
            if not true_rows or not false_rows:
                continue
            gain = info_gain(true_rows, false_rows, base_impurity)
            if best.gain <= gain:
                best = SplitResult(gain=gain, predicate=candidate)

    return best


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _candidate_values(table: Table, column: int, *, deduplicate: bool) -> list[FeatureValue]:
    """List the reference values to try for one column.

    Args:
        table (Table): The rows being split.
        column (int): The column to read.
        deduplicate (bool): Collapse repeated values, keeping each at the
            position of its last occurrence.

    Returns:
        list[FeatureValue]: One value per row, or each distinct value once.
    """
    values = [row[column] for row in table]
    if not deduplicate:
        return values
    last_first = dict.fromkeys(reversed(values))
    return list(reversed(last_first))
