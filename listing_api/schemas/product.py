"""
Pydantic schemas for the product catalog.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal
from datetime import datetime


class ProductCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=255, examples=["Desk lamp"])
    price: Decimal = Field(..., ge=0, examples=[49.99])


class ProductResponse(BaseModel):
    id: str
    name: Optional[str] = None
    price: float
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    items: List[ProductResponse]
    count: int
