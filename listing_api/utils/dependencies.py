"""
FastAPI dependency injection utilities for authentication, services and request bodies.
Components built at startup are read from app.state so each app instance stays isolated.
"""

import json
from typing import Any, Dict, List, Optional, Tuple
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile
from listing_api.config import Settings
from listing_api.database import get_db
from listing_api.models.user import User
from listing_api.services.auth import AuthService
from listing_api.services.flat import FlatService
from listing_api.services.image import ImageService
from listing_api.services.info_card import InfoCardService
from listing_api.services.product import ProductService
from listing_api.services.question import QuestionService
from listing_api.services.storage import ImageStorageRegistry
from listing_api.services.user import UserService
from listing_api.utils.auth import TokenPayload, TokenService
from listing_api.utils.exceptions import UnauthorizedError, ValidationError
from listing_api.utils.file_utils import FileValidator
from listing_api.utils.validators import parse_pagination


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_image_storage(request: Request) -> ImageStorageRegistry:
    return request.app.state.image_storage


def get_file_validator(request: Request) -> FileValidator:
    return request.app.state.file_validator


async def get_auth_service(
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service)
) -> AuthService:
    return AuthService(db, token_service)


async def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


async def get_flat_service(
    db: AsyncSession = Depends(get_db),
    storage: ImageStorageRegistry = Depends(get_image_storage),
    validator: FileValidator = Depends(get_file_validator),
    settings: Settings = Depends(get_app_settings)
) -> FlatService:
    return FlatService(db, storage, validator, settings.max_images_per_request)


async def get_image_service(
    db: AsyncSession = Depends(get_db),
    storage: ImageStorageRegistry = Depends(get_image_storage),
    validator: FileValidator = Depends(get_file_validator),
    settings: Settings = Depends(get_app_settings)
) -> ImageService:
    return ImageService(db, storage, validator, settings.max_images_per_request)


async def get_product_service(db: AsyncSession = Depends(get_db)) -> ProductService:
    return ProductService(db)


async def get_question_service(db: AsyncSession = Depends(get_db)) -> QuestionService:
    return QuestionService(db)


async def get_info_card_service(db: AsyncSession = Depends(get_db)) -> InfoCardService:
    return InfoCardService(db)


async def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token_service: TokenService = Depends(get_token_service)
) -> TokenPayload:
    """
    Decode the bearer access token without loading the user.

    Raises:
        UnauthorizedError: If no token provided
        InvalidTokenError, TokenExpiredError: If the token is rejected
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")
    return token_service.verify_token(credentials.credentials)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer credentials
        auth_service: Authentication service

    Returns:
        Current User object

    Raises:
        UnauthorizedError: If no token provided or the user is gone
        InvalidTokenError, TokenExpiredError: If the token is rejected
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")
    return await auth_service.get_current_user(credentials.credentials)


def get_pagination(
    request: Request,
    settings: Settings = Depends(get_app_settings)
) -> Tuple[int, int]:
    """(limit, skip) from the query string, clamped to the configured page size."""
    return parse_pagination(
        request.query_params.get("limit"),
        request.query_params.get("skip"),
        settings.default_page_size,
        settings.max_page_size,
    )


async def read_body(request: Request) -> Tuple[Dict[str, Any], Dict[str, List[UploadFile]]]:
    """
    Read a JSON or form body into plain fields and uploaded files.

    Form fields that repeat keep their last value; files are grouped by field name.

    Raises:
        ValidationError: Malformed JSON or a JSON body that is not an object
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        fields: Dict[str, Any] = {}
        files: Dict[str, List[UploadFile]] = {}
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if value.filename:
                    files.setdefault(key, []).append(value)
            else:
                fields[key] = value
        return fields, files

    raw = await request.body()
    if not raw.strip():
        return {}, {}
    try:
        payload = json.loads(raw)
    except ValueError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload, {}


async def read_payload(request: Request) -> Dict[str, Any]:
    """Body fields only, for routes that take no files."""
    fields, _ = await read_body(request)
    return fields
