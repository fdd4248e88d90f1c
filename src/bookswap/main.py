"""FastAPI application factory for BookSwap.

The lifespan owns the database engine, the read cache and the optional
summary client; routes live under /api/v1 next to the health checks.
"""

import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bookswap.config import Settings, get_settings
from bookswap.core.exceptions import BookSwapError
from bookswap.core.logging import (
    clear_correlation_id,
    configure_logging,
    get_logger,
    set_correlation_id,
)
from bookswap.schemas.common import HealthCheckResponse
from bookswap.services.cache import (
    InMemoryCacheBackend,
    VersionedCache,
    build_cache_backend,
)
from bookswap.services.summary import SummaryService

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database, cache and summary client for the app's lifetime."""
    from bookswap.core.database import close_db, init_db

    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(settings)
    await init_db(settings)

    backend = build_cache_backend(settings)
    if isinstance(backend, InMemoryCacheBackend):
        backend.start()
    app.state.cache = VersionedCache(backend, timeout=settings.cache_timeout)

    app.state.summarizer = SummaryService(settings) if settings.summary_enabled else None
    app.state.settings = settings

    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.app_env.value,
        cache_backend=settings.cache_backend.value,
        summaries_enabled=settings.summary_enabled,
    )

    yield

    if app.state.summarizer is not None:
        await app.state.summarizer.close()
    await app.state.cache.close()
    await close_db()

    logger.info("application_shutting_down", app_name=settings.app_name)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; tests pass their own settings."""
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Book exchange marketplace. List your books, find books nearby "
            "and swap them with other readers."
        ),
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings

    configure_middleware(app, settings)
    configure_exception_handlers(app)
    configure_routes(app)

    return app


def configure_middleware(app: FastAPI, settings: Settings) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next: Any) -> Any:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id
        set_correlation_id(request_id)

        request_logger = get_logger("bookswap.request")
        start_time = time.perf_counter()

        try:
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000
            request_logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            request_logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round(duration_ms, 2),
                error=str(exc),
            )
            raise

        finally:
            clear_correlation_id()


def configure_exception_handlers(app: FastAPI) -> None:
    """Render BookSwapError and unexpected failures as error envelopes."""
    exception_logger = get_logger("bookswap.exceptions")

    @app.exception_handler(BookSwapError)
    async def bookswap_exception_handler(
        request: Request, exc: BookSwapError
    ) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)

        log = exception_logger.error if exc.status_code >= 500 else exception_logger.warning
        log(
            "request_error",
            error_code=exc.code,
            error_message=exc.message,
            status_code=exc.status_code,
            path=request.url.path,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(request_id=request_id),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)

        exception_logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": "An unexpected error occurred",
                    "request_id": request_id,
                }
            },
        )


def configure_routes(app: FastAPI) -> None:
    """Mount the health checks, the root endpoint and the v1 API."""

    @app.get(
        "/health/live",
        tags=["Health"],
        summary="Liveness check",
        description="Returns OK if the service is running",
    )
    async def liveness() -> dict[str, str]:
        return {"status": "ok"}

    @app.get(
        "/health/ready",
        response_model=HealthCheckResponse,
        tags=["Health"],
        summary="Readiness check",
        description="Returns OK if the database and cache answer",
    )
    async def readiness(request: Request) -> HealthCheckResponse:
        """Readiness check covering dependent services.

        An unreachable cache degrades the service (reads fall back to the
        database) but does not make it unready.
        """
        from bookswap.core.database import check_db_connection

        db_ok = await check_db_connection()

        cache: VersionedCache | None = getattr(request.app.state, "cache", None)
        cache_ok = cache is not None and await cache.ping()

        if not db_ok:
            overall_status = "error"
        elif not cache_ok:
            overall_status = "degraded"
        else:
            overall_status = "ok"

        return HealthCheckResponse(
            status=overall_status,
            checks={
                "database": "ok" if db_ok else "error",
                "cache": "ok" if cache_ok else "error",
            },
        )

    @app.get(
        "/",
        tags=["Root"],
        summary="API root",
        description="Returns API information",
    )
    async def root(request: Request) -> dict[str, str]:
        settings: Settings = request.app.state.settings
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "health": "/health/live",
        }

    from bookswap.api.v1.router import router as v1_router

    app.include_router(v1_router, prefix="/api/v1")


app = create_app()


def cli() -> None:
    """Run the API under uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "bookswap.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    cli()
