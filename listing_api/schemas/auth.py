"""
Pydantic schemas for authentication requests and responses.
"""

from pydantic import BaseModel, Field
from typing import Optional


class LoginRequest(BaseModel):
    """Login request schema."""
    
    email: Optional[str] = Field(None, description="User's email address", examples=["user@example.com"])
    password: Optional[str] = Field(None, description="User's password", examples=["secret123"])


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema."""
    
    refresh_token: Optional[str] = Field(None, description="JWT refresh token")


class TokenResponse(BaseModel):
    """Token pair returned by login and refresh."""
    
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds", examples=[900])
