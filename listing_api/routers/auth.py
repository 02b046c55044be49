"""
Authentication API endpoints for registration, login, token rotation and the current user.
"""

from fastapi import APIRouter, Depends, status
from listing_api.models.user import User
from listing_api.services.auth import AuthService
from listing_api.schemas.auth import LoginRequest, RefreshTokenRequest, TokenResponse
from listing_api.schemas.user import UserPayload, UserResponse
from listing_api.schemas.error import error_responses
from listing_api.utils.dependencies import get_auth_service, get_current_user


router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_response(auth_service: AuthService, access_token: str, refresh_token: str) -> TokenResponse:
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=auth_service.tokens.access_token_lifetime_seconds,
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user",
    description="Create an account. Every invalid field is reported in one 400 response.",
    responses=error_responses(400, 409)
)
async def register(
    payload: UserPayload,
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    user = await auth_service.register(payload.to_payload())
    return UserResponse.model_validate(user.to_dict())


@router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate with email and password, returns an access and refresh token pair",
    responses=error_responses(400, 401)
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> TokenResponse:
    """
    Authenticate user and return JWT tokens.

    Raises:
        ValidationError: If email or password is missing
        InvalidCredentialsError: If credentials are invalid
    """
    _, access_token, refresh_token = await auth_service.login(
        email=login_data.email,
        password=login_data.password
    )
    return _token_response(auth_service, access_token, refresh_token)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh tokens",
    description="Exchange a valid refresh token for a fresh token pair",
    responses=error_responses(400, 401)
)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> TokenResponse:
    access_token, new_refresh_token = await auth_service.refresh_tokens(refresh_data.refresh_token)
    return _token_response(auth_service, access_token, new_refresh_token)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
    description="Return the user behind the access token",
    responses=error_responses(401)
)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user.to_dict())
