"""
Pydantic schemas for FAQ questions.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class TranslationResponse(BaseModel):
    language_id: int = Field(..., examples=[2])
    language_code: Optional[str] = Field(None, examples=["en"])
    question: str
    answer: str


class QuestionResponse(BaseModel):
    id: str
    question_id: Optional[int] = None
    active: bool
    category_id: Optional[int] = None
    translations: List[TranslationResponse]
    created_at: datetime
    updated_at: datetime


class QuestionListResponse(BaseModel):
    items: List[QuestionResponse]
    total: int
    page: int
    pages: int
