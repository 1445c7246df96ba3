"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1.endpoints import health
from app.api.v1.middleware.auth import JWTAuthenticationMiddleware
from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import close_database, init_database
from app.core.exceptions import AppError, DatabaseError
from app.utils.logging import get_logger
from app.utils.responses import create_error_detail

LOGGER = get_logger(__name__, level=settings.log_level)


class RootResponse(BaseModel):
    """Root endpoint response payload."""

    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events for the FastAPI application.

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    LOGGER.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )

    try:
        LOGGER.info("Initializing database...")
        await init_database(auto_migrate=settings.db.auto_migrate)
        LOGGER.info("Database initialized successfully")
    except (SQLAlchemyError, OSError) as e:
        # The app still serves /health so the outage is visible
        LOGGER.error("Failed to initialize database", exc_info=True, extra={"error": str(e)})

    yield

    LOGGER.info("Shutting down application")
    await close_database()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Back office for retail device insurance: claims, fulfillment, communications and service requests",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


def _error_response(request: Request, exc: AppError) -> JSONResponse:
    detail = create_error_detail(
        title=type(exc).__name__,
        status=exc.status_code,
        detail=exc.message,
        request=request,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "detail": detail.model_dump(mode="json")},
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        LOGGER.error(
            f"Request failed: {exc.message}",
            exc_info=exc.original_error is not None,
            extra={"path": request.url.path, "status_code": exc.status_code},
        )
    else:
        LOGGER.warning(
            f"Request rejected: {exc.message}",
            extra={"path": request.url.path, "status_code": exc.status_code},
        )
    return _error_response(request, exc)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Driver messages can carry SQL and parameters, so they stay in the log
    LOGGER.error(
        f"Database error: {type(exc).__name__}",
        exc_info=exc,
        extra={"path": request.url.path},
    )
    return _error_response(request, DatabaseError("Database operation failed", original_error=exc))


# Correlation ID middleware - before JWT auth
@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid4()))
    request.state.correlation_id = correlation_id
    request.state.request_id = correlation_id
    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


# JWT authentication middleware
app.add_middleware(JWTAuthenticationMiddleware)

# CORS middleware - added last to ensure it wraps all other middleware/responses
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID"],
)

# Include routers
app.include_router(api_router, prefix=settings.api_v1_prefix)
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get(
    "/",
    response_model=RootResponse,
    tags=["Root"],
    summary="Root endpoint",
    description="Get basic information about the API",
    operation_id="get_public_root_metadata",
)
async def root() -> RootResponse:
    """Root endpoint.

    Returns:
        RootResponse: Basic API information
    """
    return RootResponse(
        message="Server is running",
        version=settings.app_version,
        docs="/docs",
        health="/health",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
