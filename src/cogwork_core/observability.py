"""Structured logging and OpenTelemetry spans for cogwork.

This module provides:
- Structured logging setup via structlog
- OpenTelemetry span helpers for resolution and build operations
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer
    from structlog.stdlib import BoundLogger

_logger: BoundLogger | None = None
_tracer: Tracer | None = None

TRACER_NAME = "cogwork"


def get_logger() -> BoundLogger:
    """Get the module logger, creating it if necessary.

    Returns:
        Configured structlog BoundLogger instance.
    """
    global _logger
    if _logger is None:
        _logger = structlog.get_logger(TRACER_NAME)
    assert _logger is not None  # Type narrowing for mypy
    return _logger


def get_tracer() -> Tracer:
    """Get the OpenTelemetry tracer for cogwork.

    Returns:
        OpenTelemetry Tracer instance (a no-op tracer unless an SDK is set up).
    """
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


def configure_logging(
    *,
    log_level: str = "WARNING",
    json_format: bool = False,
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for cogwork.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, output JSON. If False, output human-readable.
        add_timestamp: If True, add ISO timestamp to log entries.

    Example:
        >>> configure_logging(log_level="DEBUG")
    """
    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if add_timestamp:
        processors.insert(1, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        force=True,
    )


@contextmanager
def span(
    name: str,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
    log_start: bool = True,
    log_end: bool = True,
) -> Iterator[Span]:
    """Create an OpenTelemetry span with structured logging.

    Args:
        name: Span name (e.g., "resolve", "build").
        kind: Span kind.
        attributes: Optional span attributes.
        log_start: If True, log span start.
        log_end: If True, log span end.

    Yields:
        OpenTelemetry Span instance.

    Example:
        >>> with span("resolve", attributes={"asset.name": "main.css"}):
        ...     pipeline.resolve("main.css")
    """
    tracer = get_tracer()
    logger = get_logger()
    attrs = attributes or {}
    # structlog keys cannot contain dots when rendered as kwargs
    log_attrs = {k.replace(".", "_"): v for k, v in attrs.items()}

    with tracer.start_as_current_span(name, kind=kind, attributes=attrs) as s:
        if log_start:
            logger.debug(f"{name}_started", **log_attrs)
        try:
            yield s
            s.set_status(Status(StatusCode.OK))
            if log_end:
                logger.debug(f"{name}_completed", **log_attrs)
        except Exception as exc:
            s.set_status(Status(StatusCode.ERROR, str(exc)))
            s.record_exception(exc)
            logger.warning(f"{name}_failed", error=str(exc), **log_attrs)
            raise


@contextmanager
def asset_operation(
    operation: str,
    *,
    pipeline: str,
    logical_name: str | None = None,
    path: str | None = None,
) -> Iterator[Span]:
    """Create a span for asset operations with standard attributes.

    Args:
        operation: Operation name (e.g., "resolve", "compile").
        pipeline: Name of the pipeline involved.
        logical_name: Logical asset name being processed.
        path: Physical file being processed.

    Yields:
        OpenTelemetry Span instance.
    """
    attrs: dict[str, Any] = {"asset.pipeline": pipeline}
    if logical_name:
        attrs["asset.name"] = logical_name
    if path:
        attrs["asset.path"] = path

    with span(f"asset.{operation}", attributes=attrs) as s:
        yield s
