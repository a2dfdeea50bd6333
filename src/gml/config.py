"""Settings for tree fitting and logging, read from the environment or a .env file."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from gml.logging import LoggingHandle, LogFormat, LogLevel, enable_logging


class TreeSettings(BaseSettings):
    """Package settings.

    Every field can be overridden with a `GML_`-prefixed environment variable
    (e.g. `GML_DEDUPLICATE_CANDIDATES=true`) or an entry in a local `.env` file.

    Attributes:
        deduplicate_candidates (bool): Evaluate each distinct value of a column
            once during split search. Produces the same tree as the exhaustive
            scan; only the amount of work changes.
        log_level (LogLevel): Minimum level used by `enable_configured_logging`.
        log_format (LogFormat): Format used by `enable_configured_logging`.
    """

    model_config = SettingsConfigDict(
        env_prefix="GML_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    deduplicate_candidates: bool = Field(
        default=False,
        description="Evaluate each distinct column value once during split search.",
    )
    log_level: LogLevel = Field(
        default="INFO",
        description="Minimum log level used by enable_configured_logging.",
    )
    log_format: LogFormat = Field(
        default="short",
        description="Log line format used by enable_configured_logging.",
    )


def enable_configured_logging(settings: TreeSettings | None = None) -> LoggingHandle:
    """Enable gml logging with the level and format from `settings`.

    Args:
        settings (TreeSettings | None): Settings to use. When `None`, settings
            are loaded from the environment.

    Returns:
        LoggingHandle: Handle for disabling the handler again.
    """
    settings = settings if settings is not None else TreeSettings()
    return enable_logging(level=settings.log_level, log_format=settings.log_format)
