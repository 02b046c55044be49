"""
Authentication service for registration, login and token rotation.
"""

from typing import Any, Dict, Mapping, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from listing_api.repositories.user import UserRepository
from listing_api.models.user import User
from listing_api.utils.auth import TokenService, TokenPayload, REFRESH_TOKEN, hash_password, verify_password
from listing_api.utils.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    UnauthorizedError,
    ValidationError,
    DuplicateResourceError,
)
from listing_api.utils.validators import validate_registration
import uuid
import logging

logger = logging.getLogger(__name__)


class AuthService:
    """
    Authentication service managing accounts and JWT token pairs.
    """

    def __init__(self, db_session: AsyncSession, token_service: TokenService):
        self.db = db_session
        self.user_repo = UserRepository(db_session)
        self.tokens = token_service

    async def register(self, payload: Mapping[str, Any]) -> User:
        """
        Register a new user.

        Args:
            payload: Raw registration fields

        Returns:
            Created User

        Raises:
            ValidationError: With every problem in the payload
            DuplicateResourceError: If the email is already registered
        """
        data = validate_registration(payload)

        if not await self.user_repo.check_email_availability(data["email"]):
            raise DuplicateResourceError("Email already registered")

        password = data.pop("password")
        user = await self.user_repo.create({
            **data,
            "hashed_password": hash_password(password),
            "flat_ids": [],
        })
        logger.info(f"User registered: {user.email} (ID: {user.id})")
        return user

    async def authenticate_user(self, email: Optional[str], password: Optional[str]) -> User:
        """
        Check credentials.

        Raises:
            ValidationError: If email or password is missing
            InvalidCredentialsError: On unknown email or wrong password
        """
        if not email or not password:
            raise ValidationError("email and password are required")

        user = await self.user_repo.get_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.warning(f"Failed authentication attempt for email: {email}")
            raise InvalidCredentialsError()

        return user

    def create_tokens(self, user: User) -> Tuple[str, str]:
        """
        Create access and refresh tokens for user.

        Returns:
            Tuple of (access_token, refresh_token)
        """
        claims = self._identity_claims(user)
        return self.tokens.create_access_token(claims), self.tokens.create_refresh_token(claims)

    async def login(self, email: Optional[str], password: Optional[str]) -> Tuple[User, str, str]:
        """
        Authenticate user and create tokens.

        Returns:
            Tuple of (user, access_token, refresh_token)
        """
        user = await self.authenticate_user(email, password)
        access_token, refresh_token = self.create_tokens(user)
        logger.info(f"User logged in: {user.email}")
        return user, access_token, refresh_token

    async def refresh_tokens(self, refresh_token: Optional[str]) -> Tuple[str, str]:
        """
        Issue a fresh token pair from a valid refresh token.

        Raises:
            ValidationError: If no refresh token was sent
            InvalidTokenError: If the token is invalid, expired or its user is gone
        """
        if not refresh_token:
            raise ValidationError("refresh_token is required")

        try:
            payload = self.tokens.verify_token(refresh_token, token_type=REFRESH_TOKEN)
        except (InvalidTokenError, TokenExpiredError):
            raise InvalidTokenError("Invalid or expired refresh token")

        user = await self._get_token_user(payload)
        if user is None:
            raise InvalidTokenError("Invalid or expired refresh token")

        return self.create_tokens(user)

    async def get_current_user(self, token: str) -> User:
        """
        Resolve the user behind an access token.

        Raises:
            InvalidTokenError, TokenExpiredError: On a bad token
            UnauthorizedError: If the user no longer exists
        """
        payload = self.tokens.verify_token(token)
        user = await self._get_token_user(payload)
        if user is None:
            raise UnauthorizedError("User not found")
        return user

    async def _get_token_user(self, payload: TokenPayload) -> Optional[User]:
        try:
            user_id = uuid.UUID(payload.user_id)
        except ValueError:
            raise InvalidTokenError("Invalid token subject")
        return await self.user_repo.get_by_id(user_id)

    @staticmethod
    def _identity_claims(user: User) -> Dict[str, Any]:
        return {
            "sub": str(user.id),
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "age": user.age,
            "address": user.address,
        }
