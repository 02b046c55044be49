"""
InfoCard service.
"""

import logging
from typing import Any, Dict, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from listing_api.models.info_card import InfoCard
from listing_api.repositories.content import InfoCardRepository
from listing_api.utils.exceptions import BadRequestError, NotFoundError, ValidationError
from listing_api.utils.validators import (
    INFO_CARD_PATCH_FIELDS,
    filter_allowed_fields,
    normalize_category_ids,
    normalize_info_card_details,
    parse_info_card_id,
)

logger = logging.getLogger(__name__)


class InfoCardService:
    """
    Service for InfoCards keyed by their numeric business id.
    """

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session
        self.repository = InfoCardRepository(db_session)

    async def create_info_card(self, payload: Mapping[str, Any]) -> InfoCard:
        """
        Create an InfoCard.

        The id may be sent as "id" or "info_card_id". Status defaults to True,
        category ids are coerced to numbers and details are normalized.

        Raises:
            ValidationError: Missing or non-numeric id, or bad details
            BadRequestError: An InfoCard with this id already exists
        """
        raw_id = payload.get("id", payload.get("info_card_id"))
        info_card_id = parse_info_card_id(raw_id)

        status = payload.get("status", True)
        if not isinstance(status, bool):
            raise ValidationError("status must be a boolean")

        category_ids = normalize_category_ids(payload.get("category_id_list"))
        details = normalize_info_card_details(payload.get("details"), info_card_id)

        if await self.repository.get_by_card_id(info_card_id) is not None:
            raise BadRequestError("InfoCard with this id already exists")

        card = await self.repository.create({
            "info_card_id": info_card_id,
            "status": status,
            "image_data": payload.get("image_data"),
            "category_ids": category_ids,
            "details": details,
        })
        logger.info(f"InfoCard created: {info_card_id}")
        return card

    async def get_info_card(self, raw_id: Any) -> InfoCard:
        info_card_id = parse_info_card_id(raw_id)
        card = await self.repository.get_by_card_id(info_card_id)
        if card is None:
            raise NotFoundError("InfoCard", str(info_card_id))
        return card

    async def update_info_card(self, raw_id: Any, payload: Mapping[str, Any]) -> InfoCard:
        """
        Apply an allow-listed patch. Fields sent as null are left unchanged.

        Raises:
            ValidationError: Non-numeric id or bad values
            NotFoundError: Unknown InfoCard
        """
        card = await self.get_info_card(raw_id)
        patch = {
            key: value
            for key, value in filter_allowed_fields(payload, INFO_CARD_PATCH_FIELDS).items()
            if value is not None
        }

        changes: Dict[str, Any] = {}
        if "status" in patch:
            if not isinstance(patch["status"], bool):
                raise ValidationError("status must be a boolean")
            changes["status"] = patch["status"]
        if "image_data" in patch:
            changes["image_data"] = patch["image_data"]
        if "category_id_list" in patch:
            changes["category_ids"] = normalize_category_ids(patch["category_id_list"])
        if "details" in patch:
            changes["details"] = normalize_info_card_details(patch["details"], card.info_card_id)

        if not changes:
            return card

        card = await self.repository.update(card, changes)
        logger.info(f"InfoCard updated: {card.info_card_id} ({', '.join(sorted(changes))})")
        return card
