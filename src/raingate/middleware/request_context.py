"""Request context middleware — request ID binding and access logging.

Every request gets a UUID, either from the incoming X-Request-ID header
(for distributed tracing) or auto-generated. The ID and the client IP are
bound to structlog's contextvars so audit events and workflow logs for the
request carry them, and the ID is returned in the response header.

One ``http.request`` line is logged per request. Credential headers and
cookies are never logged.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request ID + client IP for logging, log the request on the way out."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        client_ip = request.client.host if request.client else None

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, client_ip=client_ip
        )

        started = time.perf_counter()
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "http.request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response
