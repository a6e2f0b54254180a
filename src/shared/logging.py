"""Structured logging for the Toolbox client.

The library only obtains loggers through ``get_logger``; structlog's
defaults apply until an application calls ``setup_logging`` or configures
structlog itself. Events the client emits:

* ``error``: failed HTTP and JSON-RPC requests, failed MCP handshakes,
  malformed manifests and tools missing from a manifest, with the URL or
  tool name as context.
* ``warning``: failed tool invocations, and auth or client headers about
  to be sent over plain HTTP.
* ``debug``: MCP session establishment and loaded tools and toolsets.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import Processor


def _renderer(json_output: bool, stream: TextIO) -> list[Processor]:
    if json_output:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=stream.isatty())]


def setup_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None
) -> None:
    """
    Route the client's log events to a stream.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render one JSON object per event instead of console lines
        stream: Destination, standard error by default
    """
    stream = stream or sys.stderr

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *_renderer(json_output, stream),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Return a structlog logger, optionally bound to ``initial_context``."""
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
