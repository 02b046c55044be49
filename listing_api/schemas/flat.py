"""
Pydantic schemas for flats and their images.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class AddressResponse(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class FlatImageResponse(BaseModel):
    """Stored image record. storage names the backend holding the bytes."""
    
    id: str
    url: str
    filename: str
    size: int
    content_type: str
    storage: str = Field(..., examples=["local", "s3"])
    path: str
    bucket: Optional[str] = None
    created_at: datetime


class FlatResponse(BaseModel):
    id: str
    square: float
    price: float
    currency: Optional[str] = None
    address: Optional[AddressResponse] = None
    images: List[FlatImageResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class FlatListResponse(BaseModel):
    flats: List[FlatResponse]
    flats_count: int = Field(..., description="Number of flats in this page")
    total: int = Field(..., description="Total flats matching the filters")


class ImageListResponse(BaseModel):
    images: List[FlatImageResponse]
    images_count: int


class ImageDeleteResponse(ImageListResponse):
    message: str
