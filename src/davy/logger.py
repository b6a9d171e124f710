"""Structured logging singleton.

Reads os.environ directly so the logger is usable before Settings load
(configuration errors themselves need to be logged).
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

EVENT_PREFIX = "davy: "


def _prefix_event(
    _logger: object, _method: str, event_dict: structlog.typing.EventDict
) -> structlog.typing.EventDict:
    """Tag messages the way the CLI tags fatal errors."""
    event = event_dict.get("event")
    if isinstance(event, str) and not event.startswith(EVENT_PREFIX):
        event_dict["event"] = EVENT_PREFIX + event
    return event_dict


def _setup_logging() -> structlog.stdlib.BoundLogger:
    level_name = os.environ.get("DAVY_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    # stderr only: stdout belongs to the sandbox session
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.processors.StackInfoRenderer(),
            _prefix_event,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger("davy")


logger = _setup_logging()


def _uncaught_exception_handler(
    exc_type: type[BaseException],
    exc_value: BaseException,
    exc_tb: object,
) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_tb)  # type: ignore[arg-type]
        return
    logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_tb))
    sys.exit(1)


sys.excepthook = _uncaught_exception_handler
