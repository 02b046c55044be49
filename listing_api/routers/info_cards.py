"""
InfoCard API endpoints, addressed by the numeric InfoCard id.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, status
from listing_api.models.user import User
from listing_api.services.info_card import InfoCardService
from listing_api.schemas.info_card import InfoCardResponse
from listing_api.schemas.error import error_responses
from listing_api.utils.dependencies import get_current_user, get_info_card_service, read_payload


router = APIRouter(prefix="/users/info-card", tags=["InfoCards"])


@router.post(
    "",
    response_model=InfoCardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create InfoCard",
    description="Create an InfoCard from an id (or info_card_id), status, image data, categories and details",
    responses=error_responses(400, 401)
)
async def create_info_card(
    payload: Dict[str, Any] = Depends(read_payload),
    current_user: User = Depends(get_current_user),
    info_card_service: InfoCardService = Depends(get_info_card_service)
) -> InfoCardResponse:
    card = await info_card_service.create_info_card(payload)
    return InfoCardResponse.model_validate(card.to_dict())


@router.get(
    "/{info_card_id}",
    response_model=InfoCardResponse,
    summary="Get InfoCard",
    responses=error_responses(400, 404)
)
async def get_info_card(
    info_card_id: str,
    info_card_service: InfoCardService = Depends(get_info_card_service)
) -> InfoCardResponse:
    card = await info_card_service.get_info_card(info_card_id)
    return InfoCardResponse.model_validate(card.to_dict())


@router.patch(
    "/{info_card_id}",
    response_model=InfoCardResponse,
    summary="Update InfoCard",
    description="Apply status, image_data, category_id_list and details when sent with non-null values",
    responses=error_responses(400, 401, 404)
)
async def update_info_card(
    info_card_id: str,
    payload: Dict[str, Any] = Depends(read_payload),
    current_user: User = Depends(get_current_user),
    info_card_service: InfoCardService = Depends(get_info_card_service)
) -> InfoCardResponse:
    card = await info_card_service.update_info_card(info_card_id, payload)
    return InfoCardResponse.model_validate(card.to_dict())
