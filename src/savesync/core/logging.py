"""
savesync structured logging.

Every sync pass leaves an audit trail: the three digests it compared, the
disposition it chose and any directory it moved into a backup. Events are
key/value pairs rendered for a terminal or as JSON lines.
"""

from __future__ import annotations

import logging
import sys
import time
from datetime import datetime
from pathlib import PurePath
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, WrappedLogger

if TYPE_CHECKING:
    from savesync.core.config import LoggingConfig

ROOT_LOGGER = "savesync"


def render_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Render paths and digests passed as event values into plain strings."""
    # Digest is imported lazily; sync modules import this one.
    from savesync.sync.digest import Digest

    for key, value in event_dict.items():
        if isinstance(value, Digest):
            event_dict[key] = value.short()
        elif isinstance(value, PurePath):
            event_dict[key] = str(value)
    return event_dict


def _build_handlers(config: LoggingConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    if config.console_enabled:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(config.level)
        handlers.append(console)

    if config.file_enabled:
        config.log_directory.mkdir(parents=True, exist_ok=True)
        log_file = config.log_directory / f"savesync_{datetime.now():%Y%m%d}.log"
        # The file keeps debug events whatever the console level is.
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    if not handlers:
        handlers.append(logging.NullHandler())
    return handlers


def setup_logging(config: LoggingConfig) -> None:
    """Configure structured logging for savesync.

    Safe to call again; handlers from an earlier call are replaced.
    """
    stdlib_logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(stdlib_logger.handlers):
        stdlib_logger.removeHandler(handler)
        handler.close()
    for handler in _build_handlers(config):
        handler.setFormatter(logging.Formatter("%(message)s"))
        stdlib_logger.addHandler(handler)
    stdlib_logger.setLevel(logging.DEBUG)
    stdlib_logger.propagate = False

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        render_values,
        structlog.processors.StackInfoRenderer(),
    ]
    if config.json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a logger under the savesync namespace."""
    return structlog.get_logger(name or ROOT_LOGGER)


class OperationLogger:
    """Bracket an operation with start and finish events.

    Keyword context (target name, later the disposition via ``update``)
    is bound to every event the operation emits. A failure is logged with
    the exception type and re-raised.
    """

    def __init__(
        self,
        operation: str,
        logger: structlog.stdlib.BoundLogger | None = None,
        **context: Any,
    ):
        self.operation = operation
        self.log = (logger or get_logger()).bind(operation=operation, **context)
        self._started: float | None = None

    @property
    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        return round(time.monotonic() - self._started, 3)

    def __enter__(self) -> OperationLogger:
        self._started = time.monotonic()
        self.log.info(f"{self.operation} started")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if exc_type is None:
            self.log.info(f"{self.operation} finished", duration_seconds=self.elapsed)
        else:
            self.log.error(
                f"{self.operation} failed",
                duration_seconds=self.elapsed,
                error_type=exc_type.__name__,
                error=str(exc_val),
            )

    def update(self, **context: Any) -> None:
        """Bind more context to the events still to come."""
        self.log = self.log.bind(**context)
