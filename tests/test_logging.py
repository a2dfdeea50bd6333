"""Tests for loguru logging in gml.

Fitting emits one SPLIT record per internal node, one DEBUG record per leaf
and an INFO summary; prediction emits one DEBUG record. These tests check the
records themselves and how `enable_logging` scopes them to stderr.
"""

from __future__ import annotations

import contextlib
import io
import re
import sys
import warnings
from collections.abc import Generator
from unittest import mock

import loguru
import pytest
from loguru import logger
from pytest_check import check

from gml.config import TreeSettings
from gml.decision_tree import DecisionTree, Table, fit_tree
from gml.exceptions import EmptyTreeError
from gml.logging import (
    PACKAGE_NAME,
    SPLIT_LEVEL,
    SPLIT_LEVEL_NUMBER,
    LoggingHandle,
    _register_split_level,
    enable_logging,
)


@pytest.fixture(autouse=True)
def restore_active_ids() -> Generator[None]:
    """Remove handlers a test left behind and restore LoggingHandle._active_ids.

    Yields:
        None: Nothing; used only for setup/teardown side effects.
    """
    saved_ids: set[int] = set(LoggingHandle._active_ids)

    yield

    for handler_id in LoggingHandle._active_ids - saved_ids:
        with contextlib.suppress(ValueError):
            logger.remove(handler_id)
    # Mutate in place; the ClassVar set is shared.
    LoggingHandle._active_ids.clear()
    LoggingHandle._active_ids.update(saved_ids)
    logger.disable(PACKAGE_NAME)


@pytest.fixture
def records() -> Generator[list[loguru.Record]]:
    """Capture every record emitted while the test runs, without enabling gml.

    Yields:
        list[loguru.Record]: Records in emission order.
    """
    captured: list[loguru.Record] = []
    handler_id = logger.add(lambda message: captured.append(message.record))

    yield captured

    logger.remove(handler_id)


@pytest.fixture
def gml_records(records: list[loguru.Record]) -> Generator[list[loguru.Record]]:
    """Capture records with the gml logger enabled.

    Args:
        records (list[loguru.Record]): Underlying capture fixture.

    Yields:
        list[loguru.Record]: Records in emission order.
    """
    logger.enable(PACKAGE_NAME)

    yield records

    logger.disable(PACKAGE_NAME)


@pytest.fixture
def stderr(monkeypatch: pytest.MonkeyPatch) -> io.StringIO:
    """Replace sys.stderr so handlers added by enable_logging write to a buffer.

    Args:
        monkeypatch (pytest.MonkeyPatch): Pytest fixture for patching sys.stderr safely.

    Returns:
        io.StringIO: The buffer standing in for stderr.
    """
    buffer = io.StringIO()
    monkeypatch.setattr(sys, "stderr", buffer)
    return buffer


def _make_fruit_table() -> Table:
    """Build the five-row fruit table.

    Returns:
        Table: Apple/Lemon/Grape rows with `(color, size)` features.
    """
    return Table.from_records([
        ("Apple", ["Green", "Big"]),
        ("Apple", ["Yellow", "Big"]),
        ("Lemon", ["Yellow", "Big"]),
        ("Grape", ["Red", "Small"]),
        ("Grape", ["Red", "Small"]),
    ])


def _from_gml(records: list[loguru.Record]) -> list[loguru.Record]:
    return [r for r in records if (r["name"] or "").startswith(PACKAGE_NAME)]


def test_fit_and_predict_are_silent_by_default(records: list[loguru.Record]) -> None:
    """Given gml logging disabled, When a tree is fitted and queried, Then no gml records are emitted.

    Args:
        records (list[loguru.Record]): Fixture capturing all records.
    """
    # Arrange
    logger.disable(PACKAGE_NAME)

    # Act
    tree = fit_tree(_make_fruit_table(), settings=TreeSettings())
    tree.predict(["Yellow", "Big"])

    # Assert
    assert _from_gml(records) == []


class TestFittingRecords:
    """Tests for records emitted while building and querying a tree."""

    def test_split_records_in_build_order(self, gml_records: list[loguru.Record]) -> None:
        """Each chosen split is logged at SPLIT level, root first, with its column, value, gain and row counts.

        Args:
            gml_records (list[loguru.Record]): Fixture capturing records with gml enabled.
        """
        # Act
        fit_tree(_make_fruit_table(), settings=TreeSettings())

        # Assert
        splits = [r for r in gml_records if r["level"].name == SPLIT_LEVEL]
        with check:
            assert [r["message"] for r in splits] == ["Split chosen", "Split chosen"]
        with check:
            assert [(r["extra"]["column"], r["extra"]["value"]) for r in splits] == [(1, "Small"), (0, "Yellow")]
        root_extra = splits[0]["extra"]
        with check:
            assert root_extra["samples"] == 5
        with check:
            assert (root_extra["true_samples"], root_extra["false_samples"]) == (2, 3)
        with check:
            assert root_extra["gain"] == pytest.approx(0.64 - 0.6 * (4 / 9))
        with check:
            assert splits[1]["extra"]["gain"] == pytest.approx(4 / 9 - 1 / 3)

    def test_leaf_records_carry_class_counts(self, gml_records: list[loguru.Record]) -> None:
        """Each leaf is logged at DEBUG with its row count and a plain dict of label counts.

        Args:
            gml_records (list[loguru.Record]): Fixture capturing records with gml enabled.
        """
        # Act
        fit_tree(_make_fruit_table(), settings=TreeSettings())

        # Assert
        leaves = [r for r in gml_records if r["message"] == "Leaf created"]
        with check:
            assert [r["level"].name for r in leaves] == ["DEBUG"] * 3
        with check:
            assert [r["extra"]["class_counts"] for r in leaves] == [
                {"Grape": 2},
                {"Apple": 1, "Lemon": 1},
                {"Apple": 1},
            ]
        with check:
            assert all(type(r["extra"]["class_counts"]) is dict for r in leaves)

    def test_fit_summary_is_last_record(self, gml_records: list[loguru.Record]) -> None:
        """Fitting ends with one INFO summary of the tree's shape.

        Args:
            gml_records (list[loguru.Record]): Fixture capturing records with gml enabled.
        """
        # Act
        fit_tree(_make_fruit_table(), settings=TreeSettings())

        # Assert
        summary = gml_records[-1]
        with check:
            assert [r["level"].name for r in gml_records].count("INFO") == 1
        with check:
            assert summary["message"] == "Decision tree fitted"
        with check:
            assert summary["extra"] == {"samples": 5, "columns": 2, "depth": 2, "leaf_count": 3}

    def test_prediction_logs_leaf_reached(self, gml_records: list[loguru.Record]) -> None:
        """A prediction logs one DEBUG record with the depth and counts of the leaf reached.

        Args:
            gml_records (list[loguru.Record]): Fixture capturing records with gml enabled.
        """
        # Arrange
        tree = fit_tree(_make_fruit_table(), settings=TreeSettings())
        gml_records.clear()

        # Act
        tree.predict(["Yellow", "Big"])

        # Assert
        with check:
            assert len(gml_records) == 1
        with check:
            assert gml_records[0]["level"].name == "DEBUG"
        with check:
            assert gml_records[0]["extra"] == {"depth": 2, "class_counts": {"Apple": 1, "Lemon": 1}}


class TestSplitLevel:
    """Tests for the SPLIT custom level."""

    def test_split_sits_between_debug_and_info(self) -> None:
        """SPLIT is registered with its own number, above DEBUG and below INFO."""
        # Act
        level = logger.level(SPLIT_LEVEL)

        # Assert
        with check:
            assert level.no == SPLIT_LEVEL_NUMBER
        with check:
            assert logger.level("DEBUG").no < level.no < logger.level("INFO").no

    def test_conflicting_registration_warns(self) -> None:
        """An existing SPLIT level with another number produces a UserWarning instead of an error."""
        # Arrange
        conflicting = mock.MagicMock(spec=["no"])
        conflicting.no = SPLIT_LEVEL_NUMBER + 1

        # Act / Assert
        with (
            mock.patch("gml.logging.logger.level", return_value=conflicting),
            pytest.warns(UserWarning, match="already registered with numeric value 16"),
        ):
            _register_split_level()

    def test_matching_registration_is_silent(self) -> None:
        """Registering SPLIT again with the same number emits no warning."""
        # Act / Assert
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            _register_split_level()


class TestEnableLogging:
    """Tests for the stderr output scoped by enable_logging."""

    def test_split_output_only_inside_block(self, stderr: io.StringIO) -> None:
        """Splits reach stderr while the block is open and nothing is written after it closes.

        Args:
            stderr (io.StringIO): Fixture standing in for sys.stderr.
        """
        # Act
        with enable_logging(level="SPLIT") as handle:
            fit_tree(_make_fruit_table(), settings=TreeSettings())
        inside = stderr.getvalue()
        fit_tree(_make_fruit_table(), settings=TreeSettings())

        # Assert
        with check:
            assert inside.count("Split chosen") == 2
        with check:
            assert "'column': 1, 'value': 'Small'" in inside
        with check:
            assert stderr.getvalue() == inside
        with check:
            assert handle.handler_id is None

    def test_failed_prediction_still_closes_block(self, stderr: io.StringIO, records: list[loguru.Record]) -> None:
        """An EmptyTreeError raised inside the block still removes the handler and silences gml.

        Args:
            stderr (io.StringIO): Fixture standing in for sys.stderr.
            records (list[loguru.Record]): Fixture capturing all records.
        """
        # Act
        with pytest.raises(EmptyTreeError), enable_logging(level="DEBUG") as handle:
            DecisionTree().predict(["Red", "Small"])
        fit_tree(_make_fruit_table(), settings=TreeSettings()).predict(["Red", "Small"])

        # Assert
        with check:
            assert handle.handler_id is None
        with check:
            assert _from_gml(records) == []
        with check:
            assert stderr.getvalue() == ""

    def test_predictions_visible_until_last_handle_disabled(self, records: list[loguru.Record]) -> None:
        """With two handles open, closing one keeps prediction records flowing; closing both stops them.

        Args:
            records (list[loguru.Record]): Fixture capturing all records.
        """
        # Arrange
        tree = fit_tree(_make_fruit_table(), settings=TreeSettings())
        first = enable_logging(level="DEBUG")
        second = enable_logging(level="DEBUG")

        # Act
        first.disable()
        tree.predict(["Red", "Small"])
        while_open = len(_from_gml(records))
        second.disable()
        tree.predict(["Red", "Small"])

        # Assert
        with check:
            assert while_open == 1
        with check:
            assert len(_from_gml(records)) == 1

    @pytest.mark.parametrize(
        ("level", "present", "absent"),
        [
            ("INFO", ["Decision tree fitted"], ["Split chosen", "Leaf created"]),
            ("SPLIT", ["Split chosen", "Decision tree fitted"], ["Leaf created"]),
            ("DEBUG", ["Leaf created", "Split chosen", "Decision tree fitted"], []),
        ],
        ids=["info-summary-only", "split-adds-splits", "debug-adds-leaves"],
    )
    def test_level_selects_records(
        self,
        stderr: io.StringIO,
        level: str,
        present: list[str],
        absent: list[str],
    ) -> None:
        """The level passed to enable_logging decides which fitting messages are written.

        Args:
            stderr (io.StringIO): Fixture standing in for sys.stderr.
            level (str): Level passed to enable_logging.
            present (list[str]): Messages expected in the output.
            absent (list[str]): Messages that must not appear.
        """
        # Act
        with enable_logging(level=level):  # type: ignore[arg-type]
            fit_tree(_make_fruit_table(), settings=TreeSettings())
        output = stderr.getvalue()

        # Assert
        for message in present:
            with check:
                assert message in output
        for message in absent:
            with check:
                assert message not in output

    @pytest.mark.parametrize(
        ("log_format", "location"),
        [
            ("short", r"\| fit_tree - Decision tree fitted"),
            ("full", r"\| gml\.decision_tree\.fitting:fit_tree:\d+ - Decision tree fitted"),
        ],
        ids=["short-format", "full-format"],
    )
    def test_format_controls_location(self, stderr: io.StringIO, log_format: str, location: str) -> None:
        """The short format names only the function; the full format adds module and line.

        Args:
            stderr (io.StringIO): Fixture standing in for sys.stderr.
            log_format (str): Format passed to enable_logging.
            location (str): Pattern expected before the summary message.
        """
        # Act
        with enable_logging(log_format=log_format):  # type: ignore[arg-type]
            fit_tree(_make_fruit_table(), settings=TreeSettings())

        # Assert
        assert re.search(location, stderr.getvalue())
