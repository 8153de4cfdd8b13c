"""FastAPI application factory.

App factory pattern — create_app() returns a configured FastAPI instance.
Lifespan manages startup/shutdown. Middleware, CORS, error handlers and
routers are all registered here.

Error mapping: services raise RaingateError subclasses and this module
turns them into responses. Body validation failures are answered with
400. Anything else is caught by UnexpectedErrorMiddleware, logged with its
traceback and answered with a generic 500.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from raingate import __version__
from raingate.api import api_router
from raingate.config import settings
from raingate.errors import RaingateError

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "raingate.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    yield

    logger.info("raingate.shutdown")

    # Close database engine
    from raingate.db.engine import engine
    await engine.dispose()


# ─── Error handlers ──────────────────────────────────────


async def handle_raingate_error(request: Request, exc: RaingateError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "detail": jsonable_encoder(exc.errors()),
            "code": "validation_failure",
        },
    )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Raingate",
        description="Credential issuance and access control for the rainfall records API",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestContext → Security → CORS → UnexpectedError → handler

    from raingate.middleware.errors import UnexpectedErrorMiddleware
    from raingate.middleware.request_context import RequestContextMiddleware
    from raingate.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(UnexpectedErrorMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(RaingateError, handle_raingate_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: raingate.main:app)
app = create_app()
