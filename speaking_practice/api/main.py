"""
FastAPI application setup and configuration
"""

from datetime import datetime, timezone
from typing import Callable, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from speaking_practice.api.routes import conversation, grading, meta, passages, realtime, sessions
from speaking_practice.api.schemas import ErrorResponse, HealthResponse
from speaking_practice.config import get_settings
from speaking_practice.domain.errors import (
    CatalogUnavailable, ChannelConnectionFailure, CredentialUnavailable, GradingFailure,
    PassageNotFound, PersistenceFailure, SessionNotFound, SpeakingPracticeError,
)

logger = structlog.get_logger(__name__)

# Most specific first; MalformedGradingResponse is a GradingFailure
ERROR_STATUS_CODES = (
    (PassageNotFound, status.HTTP_404_NOT_FOUND),
    (SessionNotFound, status.HTTP_404_NOT_FOUND),
    (GradingFailure, status.HTTP_502_BAD_GATEWAY),
    (ChannelConnectionFailure, status.HTTP_502_BAD_GATEWAY),
    (CredentialUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (CatalogUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (PersistenceFailure, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_code_for(exc: SpeakingPracticeError) -> int:
    for error_class, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(lifespan: Optional[Callable] = None) -> FastAPI:
    """
    Create and configure the FastAPI application

    Args:
        lifespan: Optional lifespan context manager

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.API_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(passages.router, prefix=settings.API_PREFIX, tags=["passages"])
    app.include_router(grading.router, prefix=settings.API_PREFIX, tags=["grading"])
    app.include_router(sessions.router, prefix=settings.API_PREFIX, tags=["sessions"])
    app.include_router(realtime.router, prefix=settings.API_PREFIX, tags=["realtime"])
    app.include_router(meta.router, prefix=settings.API_PREFIX, tags=["meta"])
    app.include_router(conversation.router)

    @app.exception_handler(SpeakingPracticeError)
    async def speaking_practice_exception_handler(request: Request, exc: SpeakingPracticeError):
        """Map domain errors onto HTTP status codes"""
        status_code = status_code_for(exc)
        logger.warning("Domain error occurred",
                      status_code=status_code,
                      error_type=exc.error_type,
                      detail=exc.message,
                      path=request.url.path)

        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=exc.message,
                error_code=exc.error_type,
                request_id=request.headers.get("X-Request-ID")
            ).model_dump()
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with structured error responses"""
        logger.warning("HTTP exception occurred",
                      status_code=exc.status_code,
                      detail=str(exc.detail),
                      path=request.url.path)

        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=str(exc.detail),
                request_id=request.headers.get("X-Request-ID")
            ).model_dump()
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors"""
        logger.warning("Validation error occurred",
                      errors=exc.errors(),
                      path=request.url.path)

        error_details = []
        for error in exc.errors():
            error_details.append({
                "type": error["type"],
                "message": error["msg"],
                "field": ".".join(str(loc) for loc in error["loc"])
            })

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ErrorResponse(
                error="Validation error",
                details=error_details,
                request_id=request.headers.get("X-Request-ID")
            ).model_dump()
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.error("Unexpected exception occurred",
                    exception=str(exc),
                    exception_type=type(exc).__name__,
                    path=request.url.path)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="Internal server error",
                request_id=request.headers.get("X-Request-ID")
            ).model_dump()
        )

    # Add middleware for request logging
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests for monitoring and debugging"""
        logger.info("Request started",
                   method=request.method,
                   path=request.url.path,
                   query_params=dict(request.query_params),
                   client_ip=request.client.host if request.client else None)

        response = await call_next(request)

        logger.info("Request completed",
                   method=request.method,
                   path=request.url.path,
                   status_code=response.status_code)

        return response

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check():
        return HealthResponse(
            status="ok",
            timestamp=datetime.now(timezone.utc),
            version=settings.API_VERSION,
        )

    @app.get("/", tags=["root"])
    async def root():
        """
        Root endpoint with API information
        """
        return {
            "service": settings.PROJECT_NAME,
            "version": settings.API_VERSION,
            "docs_url": "/docs",
            "health_url": "/health",
            "api_base_url": settings.API_PREFIX,
            "conversation_url": "/ws/conversation/{passage_id}",
        }

    logger.info("FastAPI application configured",
               title=settings.PROJECT_NAME,
               version=settings.API_VERSION,
               cors_origins=settings.CORS_ORIGINS,
               debug=settings.DEBUG)

    return app
