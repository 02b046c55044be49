"""
Error response schemas for API documentation.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class ErrorDetail(BaseModel):
    """Schema for individual error detail."""
    
    field: Optional[str] = Field(None, description="Field name that caused the error", examples=["email"])
    message: str = Field(..., description="Human-readable error message", examples=["email is invalid"])


class ErrorResponse(BaseModel):
    """Schema for standardized error responses."""
    
    code: str = Field(..., description="Error code identifier", examples=["VALIDATION_ERROR"])
    message: str = Field(..., description="Human-readable error message")
    timestamp: str = Field(..., description="Error timestamp in ISO format")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking", examples=["abc12345"])
    details: Optional[List[ErrorDetail]] = Field(None, description="Individual validation messages")


class APIErrorResponse(BaseModel):
    """Schema for API error response wrapper."""
    
    error: ErrorResponse


def error_responses(*status_codes: int) -> dict:
    """OpenAPI response declarations for the given error status codes."""
    descriptions = {
        400: "Validation error",
        401: "Missing, malformed or expired token",
        404: "Resource not found",
        409: "Duplicate unique value",
        500: "Unexpected failure",
    }
    return {
        code: {"description": descriptions.get(code, "Error"), "model": APIErrorResponse}
        for code in status_codes
    }
