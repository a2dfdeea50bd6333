"""Custom exceptions for the decision tree package.

Tree errors (subclass DecisionTreeError and a builtin):
- EmptyTableError: Raised when impurity or gain is computed over zero rows.
  Also available as EmptyInputError.
- OutOfRangeColumnError: Raised when a predicate reads past the end of a feature vector.
- ArityMismatchError: Raised when a query vector's length differs from the training arity.
- EmptyTreeError: Raised when predicting with a tree that holds no root node.

Column validation exceptions (subclass ValueError):
- ColumnsNotFoundError: Raised when requested columns do not exist in a DataFrame.
- DuplicateColumnsError: Raised when duplicate column names are provided.
"""

from __future__ import annotations


class DecisionTreeError(Exception):
    """Base exception for all decision tree errors.

    Catching this exception will catch every error raised while training or
    querying a tree. Each concrete subclass also derives from the closest
    builtin exception, so callers may catch `ValueError` or `IndexError` instead.
    """


class EmptyTableError(DecisionTreeError, ValueError):
    """Raised when impurity or information gain is computed over zero rows.

    Attributes:
        operation (str): Name of the computation that received no rows,
            e.g. `"gini"` or `"info_gain"`.

    Examples:
        >>> err = EmptyTableError("gini")
        >>> str(err)
        'gini requires at least one row'
    """

    operation: str

    def __init__(self, operation: str) -> None:
        """Initialize EmptyTableError.

        Args:
            operation (str): Name of the computation that received no rows.
        """
        super().__init__(f"{operation} requires at least one row")
        self.operation = operation


# Alias; both names refer to the same class.
EmptyInputError = EmptyTableError


class OutOfRangeColumnError(DecisionTreeError, IndexError):
    """Raised when a predicate references a column past the end of a feature vector.

    Attributes:
        column (int): The column index the predicate tried to read.
        arity (int): Number of features in the vector that was evaluated.

    Examples:
        >>> err = OutOfRangeColumnError(column=3, arity=2)
        >>> err.column, err.arity
        (3, 2)
    """

    column: int
    arity: int

    def __init__(self, column: int, arity: int) -> None:
        """Initialize OutOfRangeColumnError.

        Args:
            column (int): The column index the predicate tried to read.
            arity (int): Number of features in the evaluated vector.
        """
        super().__init__(f"Column {column} is out of range for a feature vector of length {arity}")
        self.column = column
        self.arity = arity


class ArityMismatchError(DecisionTreeError, ValueError):
    """Raised when a query vector's length differs from the tree's training arity.

    Attributes:
        expected (int): Number of features the tree was trained on.
        actual (int): Number of features in the query vector.

    Examples:
        >>> err = ArityMismatchError(expected=2, actual=3)
        >>> str(err)
        'Query has 3 features but the tree was trained on 2'
    """

    expected: int
    actual: int

    def __init__(self, expected: int, actual: int) -> None:
        """Initialize ArityMismatchError.

        Args:
            expected (int): Number of features the tree was trained on.
            actual (int): Number of features in the query vector.
        """
        super().__init__(f"Query has {actual} features but the tree was trained on {expected}")
        self.expected = expected
        self.actual = actual


class EmptyTreeError(DecisionTreeError, ValueError):
    """Raised when a tree without a root node is queried."""

    def __init__(self) -> None:
        """Initialize EmptyTreeError."""
        super().__init__("Cannot predict with an empty tree; fit it on a table first")


class ColumnsNotFoundError(ValueError):
    """Raised when requested columns do not exist in a DataFrame.

    Attributes:
        missing_columns (list[str]): Column names that were not found.
        available_columns (list[str]): Column names present in the DataFrame.

    Examples:
        >>> err = ColumnsNotFoundError(
        ...     missing_columns=["colour"],
        ...     available_columns=["color", "size", "fruit"],
        ... )
        >>> err.missing_columns
        ['colour']
    """

    missing_columns: list[str]
    available_columns: list[str]

    def __init__(
        self,
        missing_columns: list[str],
        available_columns: list[str],
    ) -> None:
        """Initialize ColumnsNotFoundError.

        Args:
            missing_columns (list[str]): Column names not found in the DataFrame.
            available_columns (list[str]): Column names present in the DataFrame.
        """
        super().__init__(f"Columns not found in DataFrame: {sorted(missing_columns)}")
        self.missing_columns = missing_columns
        self.available_columns = available_columns


class DuplicateColumnsError(ValueError):
    """Raised when duplicate column names are provided.

    Attributes:
        columns (list[str]): The column list that contains duplicates.
        duplicate_columns (list[str]): The specific column names that are
            duplicated (each listed once).

    Examples:
        >>> err = DuplicateColumnsError(columns=["color", "color", "size"])
        >>> err.duplicate_columns
        ['color']
    """

    columns: list[str]
    duplicate_columns: list[str]

    def __init__(self, columns: list[str]) -> None:
        """Initialize DuplicateColumnsError.

        Args:
            columns (list[str]): The column list containing duplicates.
        """
        super().__init__("Duplicate column names are not allowed")
        self.columns = columns
        seen: set[str] = set()
        self.duplicate_columns = []
        for col in columns:
            if col in seen and col not in self.duplicate_columns:
                self.duplicate_columns.append(col)
            seen.add(col)
