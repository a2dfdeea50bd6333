"""Conversions between Polars DataFrames and decision tree tables."""

from __future__ import annotations

from collections.abc import Sequence

import polars as pl

from gml.decision_tree.models import DecisionTree, NodeStatistics, Row, Table
from gml.exceptions import ColumnsNotFoundError, DuplicateColumnsError, EmptyTreeError


def table_from_dataframe(
    df: pl.DataFrame,
    label_column: str,
    feature_columns: Sequence[str] | None = None,
) -> Table:
    """Build a training table from a Polars DataFrame.

    Args:
        df (pl.DataFrame): Source data, one example per row.
        label_column (str): Column holding the class label. Values are cast to
            strings.
        feature_columns (Sequence[str] | None): Feature columns in the order
            they should appear in each feature vector. When `None`, every
            column except `label_column` is used, in DataFrame order.

    Returns:
        Table: One row per DataFrame row.

    Raises:
        ValueError: If `df` has no rows, no feature columns are selected, or
            any selected column contains nulls.
        DuplicateColumnsError: If the selected columns contain duplicates.
        ColumnsNotFoundError: If any selected column is missing from `df`.

    Examples:
        >>> df = pl.DataFrame({"color": ["Green", "Red"], "fruit": ["Apple", "Grape"]})
        >>> table = table_from_dataframe(df, "fruit")
        >>> table[1].label, tuple(table[1].features)
        ('Grape', ('Red',))
    """
    columns = list(feature_columns) if feature_columns is not None else [c for c in df.columns if c != label_column]
    _validate_columns([label_column, *columns], df.columns)
    if not columns:
        raise ValueError("At least one feature column is required")
    if df.height == 0:
        raise ValueError("Cannot build a table from an empty DataFrame")

    selected = df.select([label_column, *columns])
    null_counts = selected.null_count().row(0)
    null_columns = [name for name, count in zip(selected.columns, null_counts, strict=True) if count > 0]
    if null_columns:
        raise ValueError(f"Columns contain null values: {null_columns}")

    labels = selected[label_column].cast(pl.String).to_list()
    features = selected.select(columns).iter_rows()
    return Table(tuple(Row(label=label, features=values) for label, values in zip(labels, features, strict=True)))


def predict_dataframe(
    tree: DecisionTree,
    df: pl.DataFrame,
    feature_columns: Sequence[str] | None = None,
) -> pl.Series:
    """Classify every row of a DataFrame with the majority label of the leaf it reaches.

    Args:
        tree (DecisionTree): A trained tree.
        df (pl.DataFrame): Rows to classify.
        feature_columns (Sequence[str] | None): Columns to read, in training
            column order. When `None`, every column is used in DataFrame order.

    Returns:
        pl.Series: String series named `"prediction"` with one label per row.

    Raises:
        EmptyTreeError: If `tree` has no root.
        DuplicateColumnsError: If `feature_columns` contains duplicates.
        ColumnsNotFoundError: If any column in `feature_columns` is missing.
        ArityMismatchError: If the number of columns differs from the
            number of training columns.
    """
    if tree.is_empty:
        raise EmptyTreeError()
    columns = list(feature_columns) if feature_columns is not None else list(df.columns)
    _validate_columns(columns, df.columns)

    predictions = [tree.predict(values).statistics.majority_label for values in df.select(columns).iter_rows()]
    return pl.Series("prediction", predictions, dtype=pl.String)


def class_counts_frame(statistics: NodeStatistics) -> pl.DataFrame:
    """Tabulate a node's label distribution.

    Args:
        statistics (NodeStatistics): Statistics of any tree node.

    Returns:
        pl.DataFrame: Columns `label` and `count`, sorted by descending count;
            equal counts keep their first-appearance order.

    Examples:
        >>> table = Table.from_records([("Apple", ["Big"]), ("Lemon", ["Big"]), ("Lemon", ["Big"])])
        >>> frame = class_counts_frame(NodeStatistics.from_table(table, impurity=0.0))
        >>> frame["label"].to_list()
        ['Lemon', 'Apple']
    """
    frame = pl.DataFrame(
        {
            "label": list(statistics.class_counts),
            "count": list(statistics.class_counts.values()),
        },
        schema={"label": pl.String, "count": pl.Int64},
    )
    return frame.sort("count", descending=True, maintain_order=True)


def _validate_columns(columns: Sequence[str], df_columns: Sequence[str]) -> None:
    """Validate that columns exist in the DataFrame and contain no duplicates.

    Args:
        columns (Sequence[str]): Column names to validate.
        df_columns (Sequence[str]): Column names present in the DataFrame.

    Raises:
        ValueError: If columns list is empty.
        DuplicateColumnsError: If columns contain duplicates.
        ColumnsNotFoundError: If any columns do not exist in the DataFrame.
    """
    if len(columns) == 0:
        raise ValueError("columns list must not be empty")
    if len(columns) != len(set(columns)):
        raise DuplicateColumnsError(columns=list(columns))
    missing_columns = set(columns) - set(df_columns)
    if missing_columns:
        raise ColumnsNotFoundError(
            missing_columns=sorted(missing_columns),
            available_columns=list(df_columns),
        )
