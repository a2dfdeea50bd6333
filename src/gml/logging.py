"""Logging utilities for gml.

This module registers a custom SPLIT log level for per-node split decisions
and provides a handle for enabling/disabling gml logging with loguru.

Note:
    Importing this module removes loguru's default stderr handler (ID 0) so
    that ``enable_logging()`` is the only source of gml output. If your
    application configures loguru handlers *before* importing gml, handler 0
    may already be gone; the removal is then a no-op.
"""

from __future__ import annotations

import contextlib
import sys
import threading
import warnings
from typing import TYPE_CHECKING, ClassVar, Final, Literal

from loguru import logger

if TYPE_CHECKING:
    from types import TracebackType

    from loguru import Record

PACKAGE_NAME: Final[str] = __name__.split(".")[0]

with contextlib.suppress(ValueError):
    logger.remove(0)

# Register custom SPLIT level (between DEBUG=10 and INFO=20)
SPLIT_LEVEL: Final[str] = "SPLIT"
SPLIT_LEVEL_NUMBER: Final[int] = 15


def _register_split_level() -> None:
    """Register the SPLIT custom log level with loguru.

    If the level already exists with a different numeric value a UserWarning
    is emitted, since loguru does not allow changing the number of an
    existing level.
    """
    try:
        existing_level = logger.level(SPLIT_LEVEL)
    except ValueError:
        logger.level(SPLIT_LEVEL, no=SPLIT_LEVEL_NUMBER, icon="🌳")
    else:
        if existing_level.no != SPLIT_LEVEL_NUMBER:
            msg = f"SPLIT level already registered with numeric value {existing_level.no}, expected {SPLIT_LEVEL_NUMBER}"
            warnings.warn(msg, stacklevel=2)


_register_split_level()

type LogLevel = Literal[
    "TRACE",
    "DEBUG",
    "SPLIT",
    "INFO",
    "WARNING",
    "ERROR",
    "CRITICAL",
]

type LogFormat = Literal["short", "full"]


# Source-location segment of each output format.
_LOCATION_FORMATS: Final[dict[str, str]] = {
    "short": "<cyan>{function}</cyan>",
    "full": "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>",
}


class LoggingHandle:
    """Owns one stderr handler that shows fitting and prediction records.

    gml stays enabled in loguru while at least one handle is active. Disabling
    the last handle, directly or by leaving its `with` block, silences the
    package again.

    Examples:
        >>> with enable_logging(level="SPLIT"):  # doctest: +SKIP
        ...     tree = fit_tree(table)
    """

    _active_ids: ClassVar[set[int]] = set()
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, handler_id: int) -> None:
        """Track `handler_id` as active.

        Args:
            handler_id (int): ID returned by `logger.add()`.
        """
        self.handler_id: int | None = handler_id
        with LoggingHandle._lock:
            LoggingHandle._active_ids.add(handler_id)

    def disable(self) -> None:
        """Remove this handle's handler; safe to call more than once."""
        with LoggingHandle._lock:
            if self.handler_id is None:
                return
            LoggingHandle._active_ids.discard(self.handler_id)
            with contextlib.suppress(ValueError):
                logger.remove(self.handler_id)
            self.handler_id = None
            if not LoggingHandle._active_ids:
                logger.disable(PACKAGE_NAME)

    def __enter__(self) -> LoggingHandle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.disable()

    @classmethod
    def get_active_handle_count(cls) -> int:
        """Number of handles that have not been disabled yet."""
        with cls._lock:
            return len(cls._active_ids)


def enable_logging(
    *,
    level: LogLevel = "INFO",
    log_format: LogFormat = "short",
) -> LoggingHandle:
    """Show gml records on stderr.

    What each level adds:

    - INFO: one "Decision tree fitted" summary per `fit_tree` call, with
      `samples`, `columns`, `depth` and `leaf_count`.
    - SPLIT: one "Split chosen" record per internal node, with the winning
      `column`, `value`, `gain` and the row counts on each side.
    - DEBUG: one "Leaf created" record per leaf and one "Prediction reached leaf"
      record per `predict` call.

    Structured fields are printed after the message. Each call adds its own
    handler and returns the handle that owns it.

    Args:
        level (LogLevel): Minimum level shown. Defaults to "INFO".
        log_format (LogFormat): "short" (default) names only the function;
            "full" names module, function and line.

    Returns:
        LoggingHandle: Handle owning the new handler.

    Examples:
        >>> with enable_logging(level="DEBUG", log_format="full"):  # doctest: +SKIP
        ...     tree.predict(["Yellow", "Big"])
    """
    logger.enable(PACKAGE_NAME)
    format_str = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "  # noqa: RUF027 - loguru format string
        f"{_LOCATION_FORMATS[log_format]} - "
        "<level>{message}</level> {extra}"
    )
    handler_id = logger.add(sys.stderr, level=level, filter=_is_gml_record, format=format_str)
    return LoggingHandle(handler_id)


def _is_gml_record(record: Record) -> bool:
    """Pass only records emitted from inside the gml package.

    Args:
        record (Record): The loguru record to filter.

    Returns:
        bool: True if the record's module is part of gml.
    """
    name = record["name"]
    return name is not None and name.startswith(PACKAGE_NAME)
