"""Pydantic models for training data, predicates, and decision tree nodes."""

from __future__ import annotations

import copy
import operator
from collections import Counter
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from types import MappingProxyType
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, RootModel, field_serializer, field_validator, model_validator

from gml.exceptions import ArityMismatchError, EmptyTreeError, OutOfRangeColumnError

# ---------------------------------------------------------------------------
# Public type aliases
# ---------------------------------------------------------------------------

type FeatureValue = str | int | float | bool

type Condition = Literal["==", "!=", "<", "<=", ">", ">="]

type Query = FeatureVector | Sequence[FeatureValue]

# ---------------------------------------------------------------------------
# Public models -- Training data
# ---------------------------------------------------------------------------


class FeatureVector(RootModel[tuple[FeatureValue, ...]]):
    """An ordered, fixed-length, immutable sequence of feature values.

    Examples:
        >>> vector = FeatureVector(("Yellow", "Big"))
        >>> len(vector), vector[0]
        (2, 'Yellow')
    """

    model_config = ConfigDict(frozen=True)

    def __len__(self) -> int:
        """Return the number of features."""
        return len(self.root)

    def __getitem__(self, index: int) -> FeatureValue:
        """Return the feature at `index`."""
        return self.root[index]

    def __iter__(self) -> Iterator[FeatureValue]:  # type: ignore[override]
        """Iterate over the feature values in column order."""
        return iter(self.root)


class Row(BaseModel):
    """A feature vector paired with its class label.

    Attributes:
        label (str): Class label of this example, e.g. `"Apple"`.
        features (FeatureVector): Feature values of this example,
            e.g. `("Green", "Big")`.

    Examples:
        >>> row = Row(label="Apple", features=["Green", "Big"])
        >>> row[1]
        'Big'
    """

    model_config = ConfigDict(frozen=True)

    label: str = Field(
        description="Class label of this example, e.g. 'Apple'.",
    )
    features: FeatureVector = Field(
        description="Feature values of this example, one per column.",
    )

    def __len__(self) -> int:
        """Return the number of features in this row."""
        return len(self.features)

    def __getitem__(self, index: int) -> FeatureValue:
        """Return the feature at `index`."""
        return self.features[index]


class Table(RootModel[tuple[Row, ...]]):
    """A non-empty, ordered collection of rows sharing the same arity.

    Tables are the unit of input to the splitter and the tree builder. Empty
    tables and tables with rows of different lengths are rejected at
    construction time, so every downstream computation can rely on
    `column_count` and on a non-zero row count.

    Examples:
        >>> table = Table.from_records([
        ...     ("Apple", ["Green", "Big"]),
        ...     ("Grape", ["Red", "Small"]),
        ... ])
        >>> len(table), table.column_count
        (2, 2)
        >>> table.class_counts()
        {'Apple': 1, 'Grape': 1}
    """

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _validate_rows(self) -> Table:
        """Validate that the table is non-empty and that all rows share one arity.

        Returns:
            Table: The validated model instance.

        Raises:
            ValueError: If the table has no rows, or if any row's length
                differs from the first row's length.
        """
        if not self.root:
            raise ValueError("A table must contain at least one row")
        arity = len(self.root[0])
        other_arities = sorted({len(row) for row in self.root} - {arity})
        if other_arities:
            raise ValueError(f"All rows must have {arity} features; found rows with {other_arities} features")
        return self

    @classmethod
    def from_records(cls, records: Iterable[tuple[str, Sequence[FeatureValue]]]) -> Table:
        """Build a table from `(label, features)` pairs.

        Args:
            records (Iterable[tuple[str, Sequence[FeatureValue]]]): Label and
                feature values for each row, in order.

        Returns:
            Table: The validated table.
        """
        return cls(tuple(Row(label=label, features=tuple(features)) for label, features in records))

    def __len__(self) -> int:
        """Return the number of rows."""
        return len(self.root)

    def __getitem__(self, index: int) -> Row:
        """Return the row at `index`."""
        return self.root[index]

    def __iter__(self) -> Iterator[Row]:  # type: ignore[override]
        """Iterate over the rows in order."""
        return iter(self.root)

    @property
    def column_count(self) -> int:
        """Number of feature columns, read from the first row."""
        return len(self.root[0])

    @property
    def labels(self) -> tuple[str, ...]:
        """Distinct labels in order of first appearance."""
        return tuple(self.class_counts())

    def class_counts(self) -> dict[str, int]:
        """Count rows per label.

        Returns:
            dict[str, int]: Mapping of label to row count, keyed in order of
                first appearance.
        """
        return count_labels(self.root)


def count_labels(rows: Iterable[Row]) -> dict[str, int]:
    """Count rows per label.

    Args:
        rows (Iterable[Row]): Rows to count.

    Returns:
        dict[str, int]: Mapping of label to row count, keyed in order of first
            appearance. Empty when `rows` is empty.
    """
    return dict(Counter(row.label for row in rows))


# ---------------------------------------------------------------------------
# Public models -- Predicates
# ---------------------------------------------------------------------------


class Predicate(BaseModel):
    """A single-column comparison against a fixed reference value.

    The tree builder only produces equality predicates; the other conditions
    appear when a predicate is negated for rule extraction, and may be used
    directly by callers.

    Attributes:
        column (int): Zero-based index of the feature column to read.
        value (FeatureValue): Reference value the feature is compared with.
        condition (Condition): Comparison applied as
            `feature <condition> value`. Defaults to `"=="`.

    Examples:
        >>> p = Predicate(column=0, value="Red")
        >>> str(p)
        'x[0] == Red'
        >>> p.evaluate(["Red", "Small"])
        True
        >>> str(p.negate())
        'x[0] != Red'
    """

    model_config = ConfigDict(frozen=True)

    column: int = Field(
        ge=0,
        description="Zero-based index of the feature column the predicate reads.",
    )
    value: FeatureValue = Field(
        description="Reference value the feature is compared with.",
    )
    condition: Condition = Field(
        default="==",
        description="Comparison applied as 'feature <condition> value'.",
    )

    def __str__(self) -> str:
        """Return the predicate as `"x[<column>] <condition> <value>"`."""
        return f"x[{self.column}] {self.condition} {self.value}"

    def __call__(self, vector: Query) -> bool:
        """Evaluate this predicate; see `evaluate`."""
        return self.evaluate(vector)

    def evaluate(self, vector: Query) -> bool:
        """Evaluate this predicate against a feature vector.

        Args:
            vector (Query): The feature vector to test.

        Returns:
            bool: `True` if the predicate holds for `vector`, `False` otherwise.

        Raises:
            OutOfRangeColumnError: If `column` is not a valid index into `vector`.
        """
        if self.column >= len(vector):
            raise OutOfRangeColumnError(column=self.column, arity=len(vector))
        return _CONDITION_OPS[self.condition](vector[self.column], self.value)

    def negate(self) -> Predicate:
        """Return the predicate that holds exactly when this one does not.

        Returns:
            Predicate: Same column and value with the complementary condition.
        """
        return self.model_copy(update={"condition": _NEGATED_CONDITIONS[self.condition]})


# ---------------------------------------------------------------------------
# Public models -- Tree nodes
# ---------------------------------------------------------------------------


class NodeStatistics(BaseModel):
    """Summary of the training rows that reached one tree node.

    Attributes:
        impurity (float): Information gain of the best split found for this
            node's rows. Internal nodes carry the gain of the split they make;
            leaves carry `0.0` because no split improved purity. This is not
            the Gini impurity of the rows; use `gini(statistics.table)` for that.
        table (Table): The rows that reached this node. Shared with the
            builder, never copied.
        class_counts (Mapping[str, int]): Read-only mapping of label to row
            count over `table`.
        confidence (dict[str, str] | None): Reserved for a per-label confidence
            report. Never populated by the builder.

    Examples:
        >>> table = Table.from_records([("Apple", ["Green"]), ("Apple", ["Red"]), ("Grape", ["Red"])])
        >>> stats = NodeStatistics.from_table(table, impurity=0.0)
        >>> stats.samples, stats.majority_label
        (3, 'Apple')
    """

    model_config = ConfigDict(frozen=True)

    impurity: float = Field(
        ge=0.0,
        description="Information gain of the split chosen for this node; 0.0 at leaves.",
    )
    table: Table = Field(
        description="The training rows that reached this node.",
    )
    class_counts: Mapping[str, int] = Field(
        description="Read-only mapping of label to number of rows in 'table'.",
    )
    confidence: dict[str, str] | None = Field(
        default=None,
        description="Reserved per-label confidence report; always None.",
    )

    @field_validator("class_counts", mode="after")
    @classmethod
    def _freeze_class_counts(cls, value: Mapping[str, int]) -> Mapping[str, int]:
        """Store the counts behind a read-only view.

        Args:
            value (Mapping[str, int]): Validated label counts.

        Returns:
            Mapping[str, int]: A read-only copy of `value`, keys in the same order.
        """
        return MappingProxyType(dict(value))

    @field_serializer("class_counts")
    def _dump_class_counts(self, value: Mapping[str, int]) -> dict[str, int]:
        return dict(value)

    def __deepcopy__(self, memo: dict[int, Any] | None = None) -> NodeStatistics:
        """Copy the rows; the read-only counts are shared with the copy."""
        return self.model_copy(update={"table": copy.deepcopy(self.table, memo)})

    @model_validator(mode="after")
    def _validate_counts_cover_table(self) -> NodeStatistics:
        """Validate that `class_counts` accounts for every row in `table`.

        Returns:
            NodeStatistics: The validated model instance.

        Raises:
            ValueError: If the counts do not sum to the number of rows.
        """
        total = sum(self.class_counts.values())
        if total != len(self.table):
            raise ValueError(f"class_counts sum ({total}) must equal the number of rows ({len(self.table)})")
        return self

    @classmethod
    def from_table(cls, table: Table, *, impurity: float) -> NodeStatistics:
        """Summarize `table` for a node whose best split gain is `impurity`.

        Args:
            table (Table): The rows that reached the node.
            impurity (float): Best split gain found for `table`.

        Returns:
            NodeStatistics: Statistics with counts computed from `table`.
        """
        return cls(impurity=impurity, table=table, class_counts=table.class_counts())

    @property
    def samples(self) -> int:
        """Number of rows that reached the node."""
        return len(self.table)

    @property
    def majority_label(self) -> str:
        """Most frequent label; ties go to the label seen first."""
        return max(self.class_counts, key=self.class_counts.__getitem__)


class DecisionNode(BaseModel):
    """A node of a binary decision tree.

    A node is a leaf when it has no children. An internal node owns a
    predicate and exactly two children: `true_branch` receives the rows for
    which the predicate holds, `false_branch` the rest.

    Attributes:
        statistics (NodeStatistics): Summary of the rows that reached this node.
        predicate (Predicate | None): Split test; `None` at leaves.
        true_branch (DecisionNode | None): Subtree for rows passing the test.
        false_branch (DecisionNode | None): Subtree for rows failing the test.
    """

    model_config = ConfigDict(frozen=True)

    statistics: NodeStatistics = Field(
        description="Summary of the training rows that reached this node.",
    )
    predicate: Predicate | None = Field(
        default=None,
        description="Split test of an internal node; None at leaves.",
    )
    true_branch: DecisionNode | None = Field(
        default=None,
        description="Child receiving rows for which the predicate holds.",
    )
    false_branch: DecisionNode | None = Field(
        default=None,
        description="Child receiving rows for which the predicate does not hold.",
    )

    @model_validator(mode="after")
    def _validate_internal_node_is_complete(self) -> DecisionNode:
        """Validate that predicate and children are all present or all absent.

        Returns:
            DecisionNode: The validated model instance.

        Raises:
            ValueError: If only some of `predicate`, `true_branch` and
                `false_branch` are set.
        """
        parts = (self.predicate, self.true_branch, self.false_branch)
        present = sum(part is not None for part in parts)
        if present not in {0, len(parts)}:
            raise ValueError("An internal node needs a predicate and both branches; a leaf needs none of them")
        return self

    @property
    def is_leaf(self) -> bool:
        """Whether this node has no children."""
        return self.true_branch is None and self.false_branch is None

    @property
    def depth(self) -> int:
        """Number of edges on the longest path from this node to a leaf."""
        deepest = 0
        stack: list[tuple[DecisionNode, int]] = [(self, 0)]
        while stack:
            node, level = stack.pop()
            if node.true_branch is None or node.false_branch is None:
                deepest = max(deepest, level)
                continue
            stack.append((node.false_branch, level + 1))
            stack.append((node.true_branch, level + 1))
        return deepest

    def follow(self, query: Query) -> DecisionNode:
        """Return the child that `query` is routed to.

        Args:
            query (Query): The feature vector being classified.

        Returns:
            DecisionNode: `true_branch` if the predicate holds, else `false_branch`.

        Raises:
            ValueError: If this node is a leaf.
        """
        if self.predicate is None or self.true_branch is None or self.false_branch is None:
            raise ValueError("A leaf node has no branch to follow")
        return self.true_branch if self.predicate.evaluate(query) else self.false_branch

    def iter_leaves(self) -> Iterator[DecisionNode]:
        """Yield the leaves below this node, true branches first."""
        stack: list[DecisionNode] = [self]
        while stack:
            node = stack.pop()
            if node.true_branch is None or node.false_branch is None:
                yield node
                continue
            stack.append(node.false_branch)
            stack.append(node.true_branch)


class DecisionTree(BaseModel):
    """A trained decision tree, or the empty tree.

    Build one with `gml.decision_tree.fit_tree`. A tree with no root is the
    explicit empty state: it can be copied and compared, but not queried.
    Copies made with `copy.deepcopy` or `model_copy(deep=True)` never share
    nodes with the original.

    Attributes:
        root (DecisionNode | None): Root node; `None` for the empty tree.
        training_table (Table | None): The table the tree was built from.

    Examples:
        >>> DecisionTree().is_empty
        True
    """

    model_config = ConfigDict(frozen=True)

    root: DecisionNode | None = Field(
        default=None,
        description="Root node of the tree; None for the empty tree.",
    )
    training_table: Table | None = Field(
        default=None,
        description="The table the tree was built from.",
    )

    @model_validator(mode="after")
    def _validate_root_matches_training_table(self) -> DecisionTree:
        """Validate that the training table is the table the root was built from.

        Returns:
            DecisionTree: The validated model instance.

        Raises:
            ValueError: If only one of `root` and `training_table` is set, or
                if `training_table` differs from the root's rows.
        """
        if self.root is None and self.training_table is None:
            return self
        if self.root is None or self.training_table is None:
            raise ValueError("root and training_table must both be set or both be None")
        if self.training_table != self.root.statistics.table:
            raise ValueError("training_table must be the table the root node was built from")
        return self

    @property
    def is_empty(self) -> bool:
        """Whether the tree has no root node."""
        return self.root is None

    @property
    def column_count(self) -> int | None:
        """Number of feature columns the tree was trained on; `None` when empty."""
        if self.root is None:
            return None
        return self.root.statistics.table.column_count

    @property
    def depth(self) -> int:
        """Depth of the tree; 0 for a single leaf or the empty tree."""
        return 0 if self.root is None else self.root.depth

    @property
    def leaf_count(self) -> int:
        """Number of leaves; 0 for the empty tree."""
        return len(self.leaves())

    def leaves(self) -> list[DecisionNode]:
        """Return every leaf, true branches first.

        Returns:
            list[DecisionNode]: The leaves in depth-first order.
        """
        if self.root is None:
            return []
        return list(self.root.iter_leaves())

    def predict(self, query: Query) -> DecisionNode:
        """Route a feature vector from the root to a leaf.

        At each internal node the node's predicate is evaluated against
        `query`; the walk continues into the true branch when it holds and
        into the false branch otherwise.

        Args:
            query (Query): Feature values in training column order.

        Returns:
            DecisionNode: The leaf that `query` reaches. Read its
                `statistics.class_counts` for the label distribution.

        Raises:
            EmptyTreeError: If the tree has no root.
            ArityMismatchError: If `len(query)` differs from the number of
                training columns.

        Examples:
            >>> from gml.decision_tree import fit_tree
            >>> tree = fit_tree(Table.from_records([("Apple", ["Big"]), ("Grape", ["Small"])]))
            >>> dict(tree.predict(["Small"]).statistics.class_counts)
            {'Grape': 1}
        """
        if self.root is None:
            raise EmptyTreeError()
        expected = self.root.statistics.table.column_count
        if len(query) != expected:
            raise ArityMismatchError(expected=expected, actual=len(query))

        node = self.root
        steps = 0
        while not node.is_leaf:
            node = node.follow(query)
            steps += 1
        logger.debug("Prediction reached leaf", depth=steps, class_counts=dict(node.statistics.class_counts))
        return node


# ---------------------------------------------------------------------------
# Public models -- Rules
# ---------------------------------------------------------------------------


class LeafRule(BaseModel):
    """The path from the root to one leaf, expressed as a conjunction of predicates.

    Attributes:
        predicates (tuple[Predicate, ...]): Tests along the path. The node's own
            predicate is used on true branches and its negation on false
            branches. Empty for a single-leaf tree.
        prediction (str): Majority label at the leaf.
        samples (int): Number of training rows that reached the leaf.
        class_counts (Mapping[str, int]): Read-only label distribution at the leaf.

    Examples:
        >>> rule = LeafRule(
        ...     predicates=[Predicate(column=1, value="Small", condition="!=")],
        ...     prediction="Apple",
        ...     samples=3,
        ...     class_counts={"Apple": 2, "Lemon": 1},
        ... )
        >>> str(rule)
        'IF x[1] != Small THEN Apple (3 samples)'
    """

    model_config = ConfigDict(frozen=True)

    predicates: tuple[Predicate, ...] = Field(
        description="Predicates along the path from the root to this leaf.",
    )
    prediction: str = Field(
        description="Majority label among the rows at this leaf.",
    )
    samples: int = Field(
        ge=1,
        description="Number of training rows that reached this leaf.",
    )
    class_counts: Mapping[str, int] = Field(
        description="Read-only mapping of label to number of training rows at this leaf.",
    )

    @field_validator("class_counts", mode="after")
    @classmethod
    def _freeze_class_counts(cls, value: Mapping[str, int]) -> Mapping[str, int]:
        return MappingProxyType(dict(value))

    @field_serializer("class_counts")
    def _dump_class_counts(self, value: Mapping[str, int]) -> dict[str, int]:
        return dict(value)

    def __deepcopy__(self, memo: dict[int, Any] | None = None) -> LeafRule:
        """Return a shallow copy; every field is immutable."""
        return self.model_copy()

    def __str__(self) -> str:
        """Return the rule as `"IF <p1> AND <p2> THEN <label> (<n> samples)"`."""
        condition = " AND ".join(str(predicate) for predicate in self.predicates) or "TRUE"
        return f"IF {condition} THEN {self.prediction} ({self.samples} samples)"


# ---------------------------------------------------------------------------
# Private helpers -- Condition evaluation
# ---------------------------------------------------------------------------

_CONDITION_OPS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_NEGATED_CONDITIONS: dict[str, Condition] = {
    "==": "!=",
    "!=": "==",
    "<": ">=",
    ">=": "<",
    ">": "<=",
    "<=": ">",
}
