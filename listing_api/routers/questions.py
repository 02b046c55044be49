"""
FAQ question API endpoints with per-language translations.
"""

from typing import Any, Dict, Optional, Tuple
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from listing_api.models.user import User
from listing_api.services.question import QuestionService
from listing_api.schemas.question import QuestionListResponse, QuestionResponse
from listing_api.schemas.user import MessageResponse
from listing_api.schemas.error import error_responses
from listing_api.utils.dependencies import (
    get_current_user,
    get_pagination,
    get_question_service,
    read_payload,
)
from listing_api.utils.validators import validate_language_id


router = APIRouter(prefix="/questions", tags=["Questions"])


@router.post(
    "",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create question",
    description="translations is a non-empty list of {language_id, question, answer}; one entry per language",
    responses=error_responses(400, 401)
)
async def create_question(
    payload: Dict[str, Any] = Depends(read_payload),
    current_user: User = Depends(get_current_user),
    question_service: QuestionService = Depends(get_question_service)
) -> QuestionResponse:
    question = await question_service.create_question(payload)
    return QuestionResponse.model_validate(question.to_dict())


@router.get(
    "",
    response_model=QuestionListResponse,
    summary="List questions",
    description="status is true, false or all (default: active only)",
    responses=error_responses(400)
)
async def list_questions(
    status_filter: Optional[str] = Query(None, alias="status", description="true, false or all"),
    category_id: Optional[int] = Query(None),
    language_id: Optional[str] = Query(None, description="1 Georgian, 2 English, 3 Russian"),
    pagination: Tuple[int, int] = Depends(get_pagination),
    question_service: QuestionService = Depends(get_question_service)
) -> QuestionListResponse:
    limit, skip = pagination
    page = await question_service.list_questions(
        status=status_filter,
        category_id=category_id,
        language_id=language_id,
        skip=skip,
        limit=limit,
    )
    return QuestionListResponse.model_validate(page)


@router.get(
    "/{question_id}",
    response_model=QuestionResponse,
    summary="Get question",
    description="Optionally narrow translations to one language",
    responses=error_responses(400, 404)
)
async def get_question(
    question_id: UUID,
    language_id: Optional[str] = Query(None),
    question_service: QuestionService = Depends(get_question_service)
) -> QuestionResponse:
    language = validate_language_id(language_id) if language_id not in (None, "") else None
    question = await question_service.get_question(question_id)
    return QuestionResponse.model_validate(question.to_dict(language_id=language))


@router.patch(
    "/{question_id}",
    response_model=QuestionResponse,
    summary="Update question",
    description="Each translation replaces the stored one for its language or is appended",
    responses=error_responses(400, 401, 404)
)
async def update_question(
    question_id: UUID,
    payload: Dict[str, Any] = Depends(read_payload),
    current_user: User = Depends(get_current_user),
    question_service: QuestionService = Depends(get_question_service)
) -> QuestionResponse:
    question = await question_service.update_question(question_id, payload)
    return QuestionResponse.model_validate(question.to_dict())


@router.delete(
    "/{question_id}",
    response_model=MessageResponse,
    summary="Delete question",
    responses=error_responses(400, 401, 404)
)
async def delete_question(
    question_id: UUID,
    current_user: User = Depends(get_current_user),
    question_service: QuestionService = Depends(get_question_service)
) -> MessageResponse:
    await question_service.delete_question(question_id)
    return MessageResponse(message="Deleted")


@router.post(
    "/change-status/{question_id}",
    response_model=QuestionResponse,
    summary="Change question status",
    description="Without a status key the active flag toggles; otherwise status must be a boolean",
    responses=error_responses(400, 401, 404)
)
async def change_status(
    question_id: UUID,
    payload: Dict[str, Any] = Depends(read_payload),
    current_user: User = Depends(get_current_user),
    question_service: QuestionService = Depends(get_question_service)
) -> QuestionResponse:
    question = await question_service.change_status(question_id, payload)
    return QuestionResponse.model_validate(question.to_dict())
