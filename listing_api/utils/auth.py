"""
Authentication utilities for JWT token management and password hashing.
Access and refresh tokens are signed with separate secrets taken from Settings.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, ExpiredSignatureError, jwt
from passlib.context import CryptContext
from listing_api.config import Settings
from listing_api.utils.exceptions import InvalidTokenError, TokenExpiredError


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


class TokenPayload:
    """JWT token payload structure."""
    
    def __init__(
        self,
        user_id: str,
        email: str,
        token_type: str,
        exp: datetime,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        age: Optional[int] = None,
        address: Optional[str] = None
    ):
        self.user_id = user_id
        self.email = email
        self.token_type = token_type
        self.exp = exp
        self.first_name = first_name
        self.last_name = last_name
        self.age = age
        self.address = address
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPayload":
        """Create TokenPayload from a decoded claim set."""
        return cls(
            user_id=data["sub"],
            email=data["email"],
            token_type=data["type"],
            exp=datetime.fromtimestamp(data["exp"], tz=timezone.utc),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            age=data.get("age"),
            address=data.get("address")
        )
    
    def identity(self) -> Dict[str, Any]:
        """Identity fields exposed back to API callers."""
        return {
            "id": self.user_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "age": self.age,
            "address": self.address,
        }


class TokenService:
    """
    Signs and verifies access and refresh tokens.
    
    Built once from Settings so secrets are never read from the
    environment inside request handling.
    """
    
    def __init__(self, settings: Settings):
        self.algorithm = settings.jwt_algorithm
        self._secrets = {
            ACCESS_TOKEN: settings.jwt_access_secret,
            REFRESH_TOKEN: settings.jwt_refresh_secret,
        }
        self._lifetimes = {
            ACCESS_TOKEN: timedelta(minutes=settings.access_token_expire_minutes),
            REFRESH_TOKEN: timedelta(days=settings.refresh_token_expire_days),
        }
    
    @property
    def access_token_lifetime_seconds(self) -> int:
        return int(self._lifetimes[ACCESS_TOKEN].total_seconds())
    
    def _encode(self, claims: Dict[str, Any], token_type: str, expires_delta: Optional[timedelta]) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else self._lifetimes[token_type])
        to_encode = dict(claims)
        to_encode.update({
            "type": token_type,
            "iat": now,
            "exp": expire,
        })
        return jwt.encode(to_encode, self._secrets[token_type], algorithm=self.algorithm)
    
    def create_access_token(self, claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """
        Create JWT access token.
        
        Args:
            claims: Identity claims; must include "sub" and "email"
            expires_delta: Optional custom expiration time
        """
        return self._encode(claims, ACCESS_TOKEN, expires_delta)
    
    def create_refresh_token(self, claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT refresh token signed with the refresh secret."""
        return self._encode(claims, REFRESH_TOKEN, expires_delta)
    
    def verify_token(self, token: str, token_type: str = ACCESS_TOKEN) -> TokenPayload:
        """
        Verify and decode JWT token.
        
        Args:
            token: JWT token string
            token_type: Expected token type ("access" or "refresh")
            
        Returns:
            Decoded TokenPayload
            
        Raises:
            TokenExpiredError: If the token has expired
            InvalidTokenError: If the signature, type or claims are invalid
        """
        try:
            payload = jwt.decode(
                token,
                self._secrets[token_type],
                algorithms=[self.algorithm]
            )
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            raise InvalidTokenError(f"Invalid token: {e}")
        
        if payload.get("type") != token_type:
            raise InvalidTokenError(f"Invalid token type. Expected {token_type}")
        
        if not payload.get("sub") or not payload.get("email"):
            raise InvalidTokenError("Invalid token payload")
        
        return TokenPayload.from_dict(payload)


def hash_password(password: str) -> str:
    """Hash password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify password against hash.
    
    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)
