"""
FAQ question model with per-language translations.
"""

from sqlalchemy import Text, Integer, Boolean, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from listing_api.database import Base
import enum
import uuid
from typing import List, Optional


class LanguageId(int, enum.Enum):
    """Supported content languages."""
    GEORGIAN = 1
    ENGLISH = 2
    RUSSIAN = 3


LANGUAGE_CODES = {
    LanguageId.GEORGIAN: "ka",
    LanguageId.ENGLISH: "en",
    LanguageId.RUSSIAN: "ru",
}

SUPPORTED_LANGUAGE_IDS = [language.value for language in LanguageId]

LANGUAGE_TIPS = "correct list for georgian is :1, english is :2, russian is :3"


class Question(Base):
    """
    FAQ entry. Each language appears at most once in its translations.
    """
    
    __tablename__ = "questions"
    
    question_number: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="Optional numeric business id"
    )
    
    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True
    )
    
    category_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    
    translations: Mapped[List["QuestionTranslation"]] = relationship(
        "QuestionTranslation",
        back_populates="question_rel",
        cascade="all, delete-orphan",
        order_by="QuestionTranslation.language_id",
        lazy="selectin"
    )
    
    def __repr__(self) -> str:
        return f"<Question(id={self.id}, active={self.active})>"
    
    def translation_for(self, language_id: int) -> Optional["QuestionTranslation"]:
        for translation in self.translations:
            if translation.language_id == language_id:
                return translation
        return None
    
    def to_dict(self, language_id: Optional[int] = None) -> dict:
        """
        Convert question to dictionary.
        
        Args:
            language_id: When given, only that language's translation is included
        """
        translations = self.translations
        if language_id is not None:
            translations = [t for t in translations if t.language_id == language_id]
        
        return {
            "id": str(self.id),
            "question_id": self.question_number,
            "active": self.active,
            "category_id": self.category_id,
            "translations": [t.to_dict() for t in translations],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class QuestionTranslation(Base):
    """Question and answer text in one language."""
    
    __tablename__ = "question_translations"
    __table_args__ = (
        UniqueConstraint("question_id", "language_id", name="uq_question_translations_language"),
    )
    
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    
    language_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    
    question_rel: Mapped["Question"] = relationship("Question", back_populates="translations")
    
    def to_dict(self) -> dict:
        return {
            "language_id": self.language_id,
            "language_code": LANGUAGE_CODES.get(LanguageId(self.language_id)),
            "question": self.question,
            "answer": self.answer,
        }
