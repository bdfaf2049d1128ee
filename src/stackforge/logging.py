"""Structured logging configuration for Stackforge.

This module configures structlog with support for:
- JSON and console output formats
- File rotation based on size
- Run IDs correlating every event of a single CLI invocation
- Module context binding

Interactive output (prompts, panels, tables) is rendered with rich and
never goes through this pipeline; structlog carries diagnostics only.

Example usage:
    >>> from stackforge.config import LoggingConfig
    >>> from stackforge.logging import setup_logging, get_logger, bind_module_context
    >>>
    >>> setup_logging(LoggingConfig(level="DEBUG", format="console"))
    >>> logger = get_logger(__name__)
    >>> bind_module_context("backend-service")
    >>> logger.info("module_fetched", source="github.com/acme/backend")
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
from typing import Any

import structlog

from stackforge.config import LoggingConfig

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("run_id", default=None)


def add_run_id(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add run_id to log event if set in context.

    Args:
        logger: Logger instance (unused, required by structlog protocol)
        method_name: Log method name (unused, required by structlog protocol)
        event_dict: Current event dictionary to augment

    Returns:
        Event dictionary with run_id added if available
    """
    run_id = get_run_id()
    if run_id is not None:
        event_dict["run_id"] = run_id
    return event_dict


def set_run_id(run_id: str | None) -> None:
    """Set the run ID for the current context."""
    _run_id.set(run_id)


def get_run_id() -> str | None:
    """Get the current run ID, or None if not set."""
    return _run_id.get()


def bind_module_context(module_name: str) -> None:
    """Bind the module currently being processed to all subsequent logs.

    Args:
        module_name: Name of the module as declared in its descriptor
    """
    structlog.contextvars.bind_contextvars(module=module_name)


def clear_module_context() -> None:
    """Remove the module binding set by bind_module_context."""
    structlog.contextvars.unbind_contextvars("module")


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog with the given configuration.

    Args:
        config: Logging configuration from StackforgeConfig
    """
    log_level = getattr(logging, config.level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    if config.file is not None:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.handlers.RotatingFileHandler(
            filename=config.file,
            maxBytes=config.rotation_size_mb * 1024 * 1024,
            backupCount=config.retention_count,
            encoding="utf-8",
        )
    else:
        # stderr keeps diagnostics out of the way of interactive prompts
        handler = logging.StreamHandler(sys.stderr)

    handler.setLevel(log_level)
    root_logger.addHandler(handler)

    if config.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.contextvars.merge_contextvars,
            add_run_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured structlog BoundLogger instance
    """
    return structlog.get_logger(name)
