"""Structured logging for the quota monitor.

structlog is layered over the stdlib root logger so third-party libraries end
up in the same stream. Lines render either as JSON or as
``timestamp [level]: event {context}``. Every refresh attempt runs under a
correlation id, which the ``_add_process_context`` processor stamps on each
line so one locate, scan and probe run can be grouped.
"""

import json
import logging
import os
import socket
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

import structlog

# Set per refresh attempt; executor threads set their own copy
_correlation_id: ContextVar[Optional[str]] = ContextVar("quota_refresh_correlation_id", default=None)

_QUIET_LOGGERS = ("urllib3", "requests", "asyncio")

# Keys the console renderer prints in the line prefix rather than the context
_PREFIX_KEYS = ("timestamp", "level", "event", "logger")


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Mark the current context as belonging to one refresh attempt.

    Args:
        correlation_id: Id to reuse, e.g. one handed over to an executor thread.
            A fresh UUID is generated when omitted.

    Returns:
        The id now in effect.
    """
    correlation_id = correlation_id or str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def _add_process_context(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Stamp the monitor's pid, host and current refresh id."""
    event_dict.setdefault("pid", os.getpid())
    event_dict.setdefault("hostname", socket.gethostname())
    correlation_id = _correlation_id.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def _render_console_line(logger: Any, name: str, event_dict: Dict[str, Any]) -> str:
    """Render ``timestamp [level]: event`` followed by compact JSON context."""
    prefix = {key: event_dict.pop(key, "") for key in _PREFIX_KEYS}
    line = f"{prefix['timestamp']} [{prefix['level'] or 'info'}]: {prefix['event']}"
    if not event_dict:
        return line
    context = json.dumps(event_dict, sort_keys=True, separators=(",", ":"), default=str)
    return f"{line} {context}"


def _build_processors(json_output: bool, include_process_context: bool) -> List[Any]:
    processors: List[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if include_process_context:
        processors.append(_add_process_context)
    processors.append(structlog.processors.UnicodeDecoder())
    if json_output:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True, default=str))
    else:
        processors.append(_render_console_line)
    return processors


def configure_logging(log_level: str = "INFO", json_output: bool = False, include_process_context: bool = True) -> None:
    """Route structlog through stdout at ``log_level``.

    Safe to call more than once; the last call wins.
    """
    level = logging.getLevelName(log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=_build_processors(json_output, include_process_context),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Return a logger for ``name`` with ``context`` bound to every line."""
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger


def create_contextual_logger(name: str, service: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Return the logger a pipeline component keeps as ``self.logger``.

    The refresh correlation id is not bound here: components outlive a single
    attempt, so it is added per line by the process context processor.
    """
    return get_logger(name, service=service, **context)


def log_exception(
    logger: structlog.stdlib.BoundLogger,
    exception: BaseException,
    message: str,
    level: str = "error",
    **context: Any
) -> None:
    """Log ``exception`` with its type, message and traceback.

    Args:
        logger: Logger to write to.
        exception: The exception being handled.
        message: Event text.
        level: Logger method name; recovered failures use ``warning``.
        **context: Extra fields for the line.
    """
    getattr(logger, level)(
        message,
        exc_info=exception,
        exception_type=type(exception).__name__,
        exception_message=str(exception),
        **context
    )
