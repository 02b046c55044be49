"""
Repositories for catalog and content records: products, questions and InfoCards.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from listing_api.repositories.base import BaseRepository
from listing_api.models.product import Product
from listing_api.models.question import Question, QuestionTranslation
from listing_api.models.info_card import InfoCard
from decimal import Decimal
from typing import Optional, List, Dict, Any, Tuple
import logging

logger = logging.getLogger(__name__)


class ProductRepository(BaseRepository[Product]):
    def __init__(self, db: AsyncSession):
        super().__init__(Product, db)

    async def search_products(
        self,
        name: Optional[str] = None,
        price: Optional[Decimal] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[Product], int]:
        """
        Filter products by name substring and exact price.

        Returns:
            Tuple of (products list, total count)
        """
        conditions = []
        if name:
            conditions.append(Product.name.ilike(f"%{name.strip()}%"))
        if price is not None:
            conditions.append(Product.price == price)

        query = select(Product)
        if conditions:
            query = query.where(and_(*conditions))

        products = await self.list(query, skip=skip, limit=limit)
        return products, await self.count(query)


class QuestionRepository(BaseRepository[Question]):
    """
    Repository for FAQ questions and their translations.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Question, db)

    async def create_question(self, question_data: Dict[str, Any], translations: List[Dict[str, Any]]) -> Question:
        """Create a question with its translations in one transaction."""
        try:
            question = Question(**question_data)
            question.translations = [QuestionTranslation(**t) for t in translations]
            self.db.add(question)
            await self.db.commit()
            await self.db.refresh(question)
            logger.debug(f"Created question {question.id} with {len(translations)} translations")
            return question
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create question: {e}")
            raise

    async def search_questions(
        self,
        active: Optional[bool] = True,
        category_id: Optional[int] = None,
        language_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[Question], int]:
        """
        Filter questions newest first.

        Args:
            active: Active flag to match, or None for all questions
            category_id: Category to match
            language_id: Only questions having a translation in this language

        Returns:
            Tuple of (questions list, total count)
        """
        conditions = []
        if active is not None:
            conditions.append(Question.active == active)
        if category_id is not None:
            conditions.append(Question.category_id == category_id)
        if language_id is not None:
            conditions.append(Question.translations.any(QuestionTranslation.language_id == language_id))

        query = select(Question)
        if conditions:
            query = query.where(and_(*conditions))

        questions = await self.list(query, skip=skip, limit=limit)
        return questions, await self.count(query)

    async def merge_translations(
        self,
        question: Question,
        translations: List[Dict[str, Any]],
        values: Optional[Dict[str, Any]] = None
    ) -> Question:
        """
        Replace translations by language and append new languages.

        Args:
            question: Loaded question
            translations: Validated translations
            values: Other column values to set in the same commit
        """
        question_id = question.id
        try:
            for field, value in (values or {}).items():
                setattr(question, field, value)

            for incoming in translations:
                existing = question.translation_for(incoming["language_id"])
                if existing is not None:
                    existing.question = incoming["question"]
                    existing.answer = incoming["answer"]
                else:
                    question.translations.append(QuestionTranslation(**incoming))

            await self.db.commit()
            await self.db.refresh(question)
            return question
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to update translations of question {question_id}: {e}")
            raise


class InfoCardRepository(BaseRepository[InfoCard]):
    def __init__(self, db: AsyncSession):
        super().__init__(InfoCard, db)

    async def get_by_card_id(self, info_card_id: int) -> Optional[InfoCard]:
        return await self.get_by_field("info_card_id", info_card_id)
