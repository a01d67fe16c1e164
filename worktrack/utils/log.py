"""Structured logging setup and request access logging."""
import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request, Response
from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware

from worktrack.utils.auth import verify_access_token

EXTRA_FIELDS = (
    "request_id",
    "user_id",
    "session_id",
    "path",
    "method",
    "status_code",
    "latency_ms",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; known ``extra`` fields are lifted to the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update({key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)})

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)


def bearer_user_id(request: Request) -> Optional[str]:
    """User the request's bearer token was issued for, if it verifies."""
    scheme, _, token = (request.headers.get("authorization") or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    try:
        return verify_access_token(token.strip())
    except JWTError:
        return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Access log for every request.

    Reuses an incoming ``X-Request-Id`` or mints one, and echoes it on the
    response. Refused (403) requests from a known user are also logged to
    ``worktrack.security``.
    """

    def __init__(self, app, logger_name: str = "worktrack.request") -> None:
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)
        self.security_logger = logging.getLogger("worktrack.security")

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        fields = {
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "user_id": bearer_user_id(request),
        }
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            fields["latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
            self.logger.exception("unhandled_exception", extra=fields)
            raise

        fields["latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        fields["status_code"] = response.status_code
        self.logger.info("request", extra=fields)

        if response.status_code == 403 and fields["user_id"]:
            self.security_logger.info("forbidden", extra=fields)

        response.headers["X-Request-Id"] = request_id
        return response
