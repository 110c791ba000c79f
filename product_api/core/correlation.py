"""
Correlation ID Middleware

Extracts or generates a correlation ID per request, binds it into the
structlog context for every log line of the request, and echoes it back
in the response headers.
"""

import re
import uuid
from typing import Awaitable, Callable, Optional

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response as StarletteResponse
from starlette.types import ASGIApp

logger = structlog.get_logger()

CORRELATION_HEADERS = (
    "x-correlation-id",
    "correlation-id",
    "x-request-id",
    "request-id",
)

_VALID_CORRELATION_ID = re.compile(r"^[a-zA-Z0-9\-_\.]{8,255}$")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware for managing correlation IDs in HTTP requests."""

    def __init__(self, app: ASGIApp, header_name: str = "x-correlation-id"):
        super().__init__(app)
        self.header_name = header_name.lower()

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[StarletteResponse]],
    ) -> StarletteResponse:
        correlation_id = self._extract_or_generate_correlation_id(request)
        request.state.correlation_id = correlation_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        logger.debug(
            "Request started",
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("correlation_id")

        response.headers[self.header_name] = correlation_id
        logger.debug(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            correlation_id=correlation_id,
        )
        return response

    def _extract_or_generate_correlation_id(self, request: Request) -> str:
        correlation_id = get_request_correlation_id(request)

        if correlation_id and _VALID_CORRELATION_ID.match(correlation_id):
            return correlation_id

        if correlation_id:
            logger.warning(
                "Invalid correlation ID format in request header, generating new one",
                received_correlation_id=correlation_id[:64],
            )
        return str(uuid.uuid4())


def get_correlation_id(request: Request) -> Optional[str]:
    """Correlation ID resolved by the middleware for this request."""
    return getattr(request.state, "correlation_id", None)


def get_request_correlation_id(request: Request) -> Optional[str]:
    """Correlation ID sent by the client, if any."""
    for header_name in CORRELATION_HEADERS:
        value = request.headers.get(header_name)
        if value and value.strip():
            return value.strip()
    return None


__all__ = [
    "CorrelationIdMiddleware",
    "get_correlation_id",
    "get_request_correlation_id",
]
