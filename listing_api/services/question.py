"""
FAQ question service with multilingual translations.
"""

import logging
import math
import uuid
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from listing_api.models.question import Question
from listing_api.repositories.content import QuestionRepository
from listing_api.utils.exceptions import NotFoundError, ValidationError
from listing_api.utils.validators import coerce_int, validate_language_id, validate_translations

logger = logging.getLogger(__name__)


def parse_status_filter(value: Optional[str]) -> Optional[bool]:
    """
    Map the status query value to an active flag.

    Missing means active only; "all" means no filter.
    """
    if value is None or value == "":
        return True
    normalized = value.strip().lower()
    if normalized == "all":
        return None
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    raise ValidationError("status must be one of: true, false, all")


def _optional_int(payload: Mapping[str, Any], field: str) -> Optional[int]:
    value = payload.get(field)
    if value is None:
        return None
    number = coerce_int(value)
    if number is None:
        raise ValidationError(f"{field} must be a number")
    return number


class QuestionService:
    """
    Service for FAQ questions.
    """

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session
        self.repository = QuestionRepository(db_session)

    async def create_question(self, payload: Mapping[str, Any]) -> Question:
        """
        Create a question from its translations and optional metadata.

        Raises:
            ValidationError: Invalid translations or metadata
        """
        translations = validate_translations(payload.get("translations"))

        active = payload.get("active", True)
        if not isinstance(active, bool):
            raise ValidationError("active must be a boolean")

        question = await self.repository.create_question(
            {
                "question_number": _optional_int(payload, "question_id"),
                "category_id": _optional_int(payload, "category_id"),
                "active": active,
            },
            translations,
        )
        logger.info(f"Question created: {question.id} ({len(translations)} translations)")
        return question

    async def list_questions(
        self,
        status: Optional[str] = None,
        category_id: Optional[int] = None,
        language_id: Optional[Any] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Dict[str, Any]:
        """
        Filter questions.

        Returns:
            Page with items, total, page and pages
        """
        active = parse_status_filter(status)
        language = validate_language_id(language_id) if language_id not in (None, "") else None

        questions, total = await self.repository.search_questions(
            active=active,
            category_id=category_id,
            language_id=language,
            skip=skip,
            limit=limit,
        )
        return {
            "items": [question.to_dict() for question in questions],
            "total": total,
            "page": skip // limit + 1,
            "pages": math.ceil(total / limit) if total else 0,
        }

    async def get_question(self, question_id: uuid.UUID) -> Question:
        question = await self.repository.get_by_id(question_id)
        if question is None:
            raise NotFoundError("Question", str(question_id))
        return question

    async def update_question(self, question_id: uuid.UUID, payload: Mapping[str, Any]) -> Question:
        """
        Merge translations by language and optionally set the active flag.

        Raises:
            NotFoundError: Unknown question
            ValidationError: Missing or invalid translations
        """
        question = await self.get_question(question_id)
        translations = validate_translations(payload.get("translations"))

        values: Dict[str, Any] = {}
        if "active" in payload:
            if not isinstance(payload["active"], bool):
                raise ValidationError("active must be a boolean")
            values["active"] = payload["active"]
        if "category_id" in payload:
            values["category_id"] = _optional_int(payload, "category_id")

        question = await self.repository.merge_translations(question, translations, values)
        logger.info(f"Question updated: {question_id}")
        return question

    async def delete_question(self, question_id: uuid.UUID) -> None:
        if not await self.repository.delete(question_id):
            raise NotFoundError("Question", str(question_id))
        logger.info(f"Question deleted: {question_id}")

    async def change_status(self, question_id: uuid.UUID, payload: Mapping[str, Any]) -> Question:
        """
        Toggle the active flag, or set it when a boolean status is sent.

        Raises:
            ValidationError: status present but not a boolean
        """
        question = await self.get_question(question_id)

        if "status" in payload:
            status = payload["status"]
            if not isinstance(status, bool):
                raise ValidationError("status must be a boolean")
        else:
            status = not question.active

        question = await self.repository.update(question, {"active": status})
        logger.info(f"Question {question_id} status changed to {status}")
        return question
