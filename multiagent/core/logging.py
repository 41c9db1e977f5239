"""Structured logging configuration.

Provides:
- JSON-formatted logs for production
- Human-readable console logs for development
- Request ID tracking and per-request access logging
"""
from __future__ import annotations

import logging
import sys
import time
import uuid
from typing import Any

import structlog

from multiagent.config import Config


def add_service_info(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add service metadata to log entries."""
    event_dict.setdefault("service", "multi-agent-system")
    return event_dict


def configure_logging(config: Config) -> None:
    """Configure structlog and route stdlib logging through the same level."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_service_info,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str = __name__, **context: Any) -> structlog.BoundLogger:
    """Get a logger, optionally pre-bound with context."""
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger


class RequestLoggingMiddleware:
    """Log every HTTP request and tag it with an ``x-request-id``."""

    def __init__(self, app):
        self.app = app
        self._logger = get_logger("multiagent.http")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        request_id = headers.get(b"x-request-id", b"").decode() or str(uuid.uuid4())
        client = scope.get("client")
        status_code = 500
        started = time.perf_counter()

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                response_headers = list(message.get("headers", []))
                response_headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = response_headers
            await send(message)

        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            self._logger.info(
                "http_request",
                method=scope.get("method"),
                path=scope.get("path"),
                status_code=status_code,
                client=client[0] if client else None,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id")
