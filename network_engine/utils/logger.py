"""
Structured Logging with Rich.

One Rich console handler shared by the engine, the API and the CLI.
Records emitted inside a LogContext carry a ``[key=value]`` prefix, so the
lines of one import stay attributable when requests interleave.
"""

import logging
from functools import lru_cache

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(name)s | %(context)s%(message)s"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class _ContextDefault(logging.Filter):
    """Gives records created outside any LogContext an empty ``context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "context"):
            record.context = ""
        return True


def setup_logging(level: str = "INFO", console: Console | None = None) -> None:
    """
    Configure root logger with Rich handler.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        console: Console to write to (defaults to stderr)
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        show_time=True,
        show_path=False,
        markup=False,
    )
    handler.addFilter(_ContextDefault())

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="[%X]",
        handlers=[handler],
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@lru_cache(maxsize=128)
def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given module name.

    Args:
        name: Module name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class LogContext:
    """
    Tag every record created while active with key/value context.

    The values become record attributes and a ``[key=value]`` message prefix.
    Contexts nest; the innermost prefix is shown.

    Usage:
        with LogContext(logger, import_mode="merge"):
            logger.info("Merging payload")
    """

    def __init__(self, logger: logging.Logger, **context: str | int | float) -> None:
        self.logger = logger
        self.context = context
        self.prefix = "[" + " ".join(f"{key}={value}" for key, value in context.items()) + "] "
        self._previous_factory: logging.LogRecordFactory | None = None

    def __enter__(self) -> "LogContext":
        previous = logging.getLogRecordFactory()
        self._previous_factory = previous
        context = self.context
        prefix = self.prefix

        def factory(*args, **kwargs) -> logging.LogRecord:  # type: ignore[no-untyped-def]
            record = previous(*args, **kwargs)
            for key, value in context.items():
                setattr(record, key, value)
            record.context = prefix
            return record

        logging.setLogRecordFactory(factory)
        return self

    def __exit__(self, *args: object) -> None:
        if self._previous_factory is not None:
            logging.setLogRecordFactory(self._previous_factory)
