"""
Pydantic schemas for InfoCards.
"""

from pydantic import BaseModel, Field
from typing import Any, List, Optional
from datetime import datetime


class InfoCardDetailResponse(BaseModel):
    info_card_detail_id: Optional[int] = None
    info_card_id: Optional[int] = None
    language_id: Optional[int] = None
    title: Optional[str] = None
    sub_title: Optional[str] = None
    status: bool = True


class InfoCardResponse(BaseModel):
    id: str
    info_card_id: int
    status: bool
    image_data: Optional[Any] = None
    category_id_list: List[int] = Field(default_factory=list)
    details: List[InfoCardDetailResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
