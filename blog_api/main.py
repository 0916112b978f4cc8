from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from blog_api.core.db import create_tables, dispose_db, init_db
from blog_api.core.logging import get_logger, setup_logging
from blog_api.core.settings import Settings, get_settings
from blog_api.middleware import TokenBucketLimiter, log_requests, rate_limit_middleware
from blog_api.pagination.errors import BackendError, QueryValidationError, RowDecodeError
from blog_api.routers import health, posts

logger = get_logger(__name__)


def error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    field: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    payload: dict[str, Any] = {"code": code, "message": message}
    if field:
        payload["field"] = field
    if details:
        payload["details"] = details
    return JSONResponse(status_code=status_code, content={"error": payload})


def _serialize_validation_errors(errors: list) -> list:
    """Convert validation errors to JSON-serializable format."""
    serialized = []
    for error in errors:
        serialized.append(
            {
                "loc": [str(part) for part in error.get("loc", ())],
                "msg": str(error.get("msg", "")),
                "type": error.get("type"),
            }
        )
    return serialized


async def query_validation_error_handler(_request: Request, exc: QueryValidationError):
    return error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        code="invalid_argument",
        field=exc.field,
        message=exc.message,
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = _serialize_validation_errors(exc.errors())
    field = errors[0]["loc"][-1] if errors and errors[0]["loc"] else None
    logger.info(
        f"Request validation failed: {request.method} {request.url.path}",
        extra={"operation": "validate_request", "context_data": {"errors": errors}},
    )
    return error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        code="invalid_argument",
        field=field,
        message="Request validation failed.",
        details={"errors": errors},
    )


async def backend_error_handler(_request: Request, exc: BackendError):
    # The cause (with SQL) was logged where it was raised
    return error_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        code="backend_unavailable",
        message="Database unavailable.",
    )


async def row_decode_error_handler(_request: Request, exc: RowDecodeError):
    logger.error(f"Row decode failure: {exc}", exc_info=exc)
    return error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="internal",
        message="Failed to read posts.",
    )


async def unhandled_error_handler(_request: Request, exc: Exception):
    logger.error(f"Unhandled error: {exc}", exc_info=exc)
    return error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="internal",
        message="Internal server error.",
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # noqa: ANN202
        logger.info("Starting up...")
        init_db()
        if settings.create_tables_on_startup:
            create_tables()
        try:
            yield
        finally:
            logger.info("Shutting down...")
            dispose_db()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        description="Blog post API with keyset cursor pagination",
        lifespan=lifespan,
    )

    app.add_exception_handler(QueryValidationError, query_validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(BackendError, backend_error_handler)
    app.add_exception_handler(RowDecodeError, row_decode_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Registered innermost first: CORS wraps rate limiting, which wraps logging
    app.middleware("http")(log_requests)
    if settings.rate_limit_per_minute:
        limiter = TokenBucketLimiter(
            rate_per_second=settings.rate_limit_per_minute / 60.0,
            capacity=settings.rate_limit_burst or settings.rate_limit_per_minute,
        )
        app.middleware("http")(rate_limit_middleware(limiter))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(posts.router, prefix="/api/v1")
    app.include_router(health.router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, timeout_graceful_shutdown=30)
