"""
Pydantic schemas for user responses and flat assignment.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import date, datetime


class UserResponse(BaseModel):
    """User as returned by the API. Flats are ids or populated flat objects."""
    
    id: str
    email: str
    first_name: str
    last_name: str
    age: int
    birth_date: Optional[date] = None
    address: str
    flats: List[Any] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class Requester(BaseModel):
    """Identity decoded from the caller's access token."""
    
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    age: Optional[int] = None
    address: Optional[str] = None


class UserListResponse(BaseModel):
    items: List[UserResponse]
    count: int = Field(..., description="Total users matching the filters")
    requester: Requester


class UsersWithFlatsResponse(BaseModel):
    users: List[UserResponse]
    count: int


class AssignFlatRequest(BaseModel):
    """Link a user to a flat."""
    
    user_id: Optional[str] = Field(None, description="User ID")
    flat_id: Optional[str] = Field(None, description="Flat ID")


class AssignFlatResponse(BaseModel):
    message: str
    total_flats: int


class MessageResponse(BaseModel):
    message: str


class UserPayload(BaseModel):
    """
    Open attribute bag for registration and profile patches.
    Fields are validated by the service so every problem is reported together.
    """
    
    model_config = {"extra": "allow"}
    
    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)
