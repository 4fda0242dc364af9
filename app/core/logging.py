"""
Logging configuration for LinkUp Backend

structlog over stdlib logging. Every line carries the request id; clients
may supply one in X-Request-ID so a poll round can be traced end to end.
Routes that clients poll on a fixed interval are logged at DEBUG so they do
not drown out state changes.
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any

import structlog
from pythonjsonlogger import jsonlogger

from app.core.config import settings

REQUEST_ID_HEADER = b"x-request-id"
POLL_LOGGER_NAME = "linkup.poll"

# Hit by every client on each poll round
POLLED_PATHS = ("/health", "/counters", "/messages/conversations")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def add_request_id(logger: Any, method_name: str, event_dict: dict) -> dict:
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def _stdlib_formatter() -> logging.Formatter:
    if settings.is_production:
        return jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(request_id)s"
        )
    return logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def _configure_poll_logger(level: int) -> None:
    """Client pollers log plain lines to stdout, outside the structlog pipeline"""
    poll_logger = logging.getLogger(POLL_LOGGER_NAME)
    poll_logger.setLevel(level)
    if not poll_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s | %(message)s"))
        poll_logger.addHandler(handler)
    poll_logger.propagate = False


def setup_logging() -> None:
    """Configure structured logging for the application"""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_stdlib_formatter())
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_request_id,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
            if settings.is_production
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # SQL echo is controlled by DB_ECHO, not the log level
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configure_poll_logger(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def _header(scope, name: bytes) -> str:
    for key, value in scope.get("headers") or []:
        if key.lower() == name:
            return value.decode("latin-1")
    return ""


class RequestIDMiddleware:
    """Reuse the caller's X-Request-ID or mint one, and echo it back"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _header(scope, REQUEST_ID_HEADER)[:64] or uuid.uuid4().hex
        token = request_id_var.set(request_id)

        async def send_with_request_id(message):
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((REQUEST_ID_HEADER, request_id.encode()))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            request_id_var.reset(token)


class RequestLoggingMiddleware:
    """One line per request; polled GETs that succeed drop to DEBUG"""

    def __init__(self, app):
        self.app = app
        self.logger = get_logger("app.request")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        status_code = None
        method = scope.get("method")
        path = scope.get("path", "")
        client_host = (scope.get("client") or (None, None))[0]

        async def send_with_status(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status")
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        except Exception as exc:
            self.logger.exception("request.error", method=method, path=path, error=str(exc))
            raise
        finally:
            status_code = status_code or 500
            polled = method == "GET" and path.endswith(POLLED_PATHS) and status_code < 400
            log = self.logger.debug if polled else self.logger.info
            log(
                "request.end",
                method=method,
                path=path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                client_host=client_host,
            )


class LatencyLogger:
    """Logs `<operation>.done` with the elapsed time when the block exits"""

    def __init__(self, operation: str, logger: structlog.stdlib.BoundLogger, **context: Any):
        self.operation = operation
        self.logger = logger
        self.context = context
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.logger.info(
            f"{self.operation}.done",
            latency_ms=round((time.perf_counter() - self.start_time) * 1000, 2),
            success=exc_type is None,
            **self.context,
        )
