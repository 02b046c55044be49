"""
FastAPI application entry point.
Main application setup and configuration.
"""

from pathlib import Path
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from listing_api.config import Settings, get_settings
from listing_api.database import Database
from listing_api.routers import (
    auth_router,
    info_cards_router,
    users_router,
    flats_router,
    products_router,
    questions_router,
)
from listing_api.services.error_handler import ErrorHandlerService
from listing_api.services.storage import ImageStorageRegistry, build_image_storage
from listing_api.middleware.validation import ValidationMiddleware
from listing_api.utils.auth import TokenService
from listing_api.utils.exceptions import APIException, ServiceUnavailableError
from listing_api.utils.file_utils import FileValidator

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    if not await app.state.database.test_connection():
        logger.error("Failed to connect to database on startup")

    yield

    logger.info("Shutting down application")
    await app.state.database.dispose()


def create_app(
    settings: Optional[Settings] = None,
    image_storage: Optional[ImageStorageRegistry] = None
) -> FastAPI:
    """
    Build an application instance.

    Args:
        settings: Settings to use; the cached process settings when omitted
        image_storage: Storage registry override; built from settings when omitted
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
    REST backend for flat listings, users, products, FAQ questions and InfoCards.

    ## Authentication

    Register with `/api/auth/register`, then obtain tokens from `/api/auth/login`
    and send the access token as `Authorization: Bearer <token>`. Reads of flats,
    products, questions and InfoCards are public; everything else needs a token.
    """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Authentication", "description": "Registration, login and token rotation"},
            {"name": "Users", "description": "User profiles and flat assignment"},
            {"name": "InfoCards", "description": "Multilingual info cards"},
            {"name": "Flats", "description": "Flat listings and their image galleries"},
            {"name": "Products", "description": "Product catalog"},
            {"name": "Questions", "description": "Multilingual FAQ"},
            {"name": "Health", "description": "Service banner and health checks"},
        ],
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = Database(settings)
    app.state.token_service = TokenService(settings)
    app.state.image_storage = image_storage or build_image_storage(settings)
    app.state.file_validator = FileValidator(settings.max_upload_size)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # A full batch of images plus form overhead
    app.add_middleware(
        ValidationMiddleware,
        max_request_size=settings.max_upload_size * settings.max_images_per_request + 1024 * 1024,
        enable_request_logging=settings.debug,
    )

    # InfoCard routes live under /users and must match before /users/{user_id}
    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(info_cards_router, prefix=settings.api_prefix)
    app.include_router(users_router, prefix=settings.api_prefix)
    app.include_router(flats_router, prefix=settings.api_prefix)
    app.include_router(products_router, prefix=settings.api_prefix)
    app.include_router(questions_router, prefix=settings.api_prefix)

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount(settings.uploads_url_prefix, StaticFiles(directory=str(upload_dir)), name="uploads")

    _register_exception_handlers(app)
    _register_health_routes(app)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        """Handle custom API exceptions with structured error responses."""
        return ErrorHandlerService.handle_api_exception(exc, request)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle FastAPI request validation errors as 400 with field details."""
        return ErrorHandlerService.handle_validation_error(exc, request)

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        return ErrorHandlerService.handle_database_error(exc, request)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return ErrorHandlerService.handle_http_exception(exc, request)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        return ErrorHandlerService.handle_unexpected_error(exc, request)


def _register_health_routes(app: FastAPI) -> None:
    @app.get("/", tags=["Health"])
    async def root():
        """
        Root endpoint providing basic API information.
        """
        settings: Settings = app.state.settings
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "environment": settings.environment,
            "status": "healthy",
            "documentation": {
                "swagger_ui": "/docs",
                "redoc": "/redoc",
                "openapi_json": "/openapi.json"
            },
            "api_prefix": settings.api_prefix
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check endpoint with database connectivity test.
        Used by Docker health checks and load balancers.
        """
        settings: Settings = app.state.settings
        if not await app.state.database.test_connection():
            raise ServiceUnavailableError("Database connection failed")

        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "database": "connected"
        }


if __name__ == "__main__":
    import uvicorn

    process_settings = get_settings()
    uvicorn.run(
        "listing_api.main:create_app",
        factory=True,
        host=process_settings.host,
        port=process_settings.port,
        reload=process_settings.debug
    )
