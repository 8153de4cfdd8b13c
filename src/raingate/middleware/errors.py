"""Unexpected error middleware.

Registered innermost, so a crash in a handler becomes a generic 500 before
it reaches the outer middleware. The response then still gets security
headers, an X-Request-ID and its ``http.request`` log line.
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger()


class UnexpectedErrorMiddleware(BaseHTTPMiddleware):
    """Log unhandled exceptions with their traceback and answer 500."""

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception(
                "raingate.unhandled_error",
                path=request.url.path,
                error_type=type(exc).__name__,
            )
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error", "code": "unexpected"},
            )
