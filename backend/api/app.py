"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.config import get_settings
from shared.exceptions import StickerError
from modules.errors.models import ClassifiedError, ErrorType

from .dependencies import get_error_classifier
from .routes import credits, health, payments, stickers, users

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs startup and shutdown logic.
    """
    # Startup
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(
        f"Starting {settings.app_name} on {settings.host}:{settings.port} "
        f"(storage={settings.storage_backend})"
    )
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")


async def sticker_error_handler(request: Request, exc: StickerError) -> JSONResponse:
    """Render domain errors through the classifier into the error envelope."""
    classifier = get_error_classifier()
    classified = classifier.categorize(exc)
    if classified.status_code >= 500:
        classifier.log_error(classified, context=f"{request.method} {request.url.path}")
    else:
        logger.info(
            f"{request.method} {request.url.path} -> {classified.status_code} {classified.code}"
        )

    headers = {"WWW-Authenticate": "Bearer"} if classified.status_code == 401 else None
    return JSONResponse(
        status_code=classified.status_code,
        content=classified.to_envelope(),
        headers=headers,
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render request body/query validation failures in the error envelope."""
    fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
    classified = ClassifiedError(
        type=ErrorType.VALIDATION,
        code="INVALID_REQUEST",
        message=f"Request validation failed: {fields}",
        user_message="Some of the information provided is invalid. Please check and try again.",
        retryable=False,
        status_code=422,
        details={"fields": fields},
    )
    return JSONResponse(status_code=422, content=classified.to_envelope())


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Credit ledger, in-app purchases and AI sticker generation",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.add_exception_handler(StickerError, sticker_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Register routes
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(credits.router, prefix="/api/credits", tags=["credits"])
    app.include_router(payments.router, prefix="/api/payments", tags=["payments"])
    app.include_router(stickers.router, prefix="/api/stickers", tags=["stickers"])

    return app


# Application instance for uvicorn
app = create_app()
