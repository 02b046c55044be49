"""
Flat service for listing creation, updates, search and legacy address backfill.
"""

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from listing_api.models.flat import Flat, DEFAULT_CURRENCY
from listing_api.repositories.flat import FlatRepository
from listing_api.services.image import ImageService
from listing_api.services.storage import ImageStorageRegistry
from listing_api.utils.exceptions import NotFoundError, ValidationError
from listing_api.utils.file_utils import FileValidator
from listing_api.utils.validators import (
    coerce_number,
    is_address_clear_request,
    normalize_address,
    normalize_currency,
    parse_price,
)

logger = logging.getLogger(__name__)


def _parse_square(value: Any) -> float:
    square = coerce_number(value)
    if square is None or square <= 0:
        raise ValidationError("square must be a positive number")
    return square


def _address_columns(values: Dict[str, Any]) -> Dict[str, Any]:
    """Address columns are text; numbers such as zip codes are stored as strings."""
    return {key: str(value) if value is not None and not isinstance(value, str) else value for key, value in values.items()}


class FlatService:
    """
    Service for flat listings.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        storage: ImageStorageRegistry,
        validator: FileValidator,
        max_images_per_request: int = 10
    ):
        self.db_session = db_session
        self.repository = FlatRepository(db_session)
        self.images = ImageService(db_session, storage, validator, max_images_per_request)
        self.validator = validator

    async def get_flat(self, flat_id: uuid.UUID) -> Flat:
        flat = await self.repository.get_by_id(flat_id)
        if flat is None:
            raise NotFoundError("Flat", str(flat_id))
        return flat

    async def create_flat(self, payload: Mapping[str, Any], image: Optional[UploadFile]) -> Flat:
        """
        Create a flat with exactly one initial image.

        Every field check runs before the image is stored, and the image
        bytes are discarded again if the insert fails.

        Args:
            payload: Form or JSON fields; the address may take any supported shape
            image: The uploaded "image" file

        Raises:
            ValidationError: Missing or invalid fields, or no image
        """
        square = payload.get("square")
        price = payload.get("price")
        address = normalize_address(payload)

        if square in (None, "") or price in (None, "") or address is None:
            raise ValidationError("square, address.street, and price are required")
        if not address.street:
            raise ValidationError("address.street is required")
        if image is None:
            raise ValidationError('image file is required (multipart/form-data, field name "image")')

        flat_data = {
            "square": _parse_square(square),
            "price": parse_price(price),
            "currency": normalize_currency(payload.get("currency")) or DEFAULT_CURRENCY.value,
            **_address_columns(address.as_dict()),
        }

        uploaded = await self.validator.read_upload(image)
        flat_id = uuid.uuid4()
        stored = await self.images.store_images([uploaded], folder=str(flat_id))

        try:
            flat = await self.repository.create_with_image({"id": flat_id, **flat_data}, stored[0])
        except Exception:
            await self.images.discard(stored)
            raise

        logger.info(f"Flat created: {flat.id} at {flat.street}")
        return flat

    async def list_flats(self, currency: Optional[str] = None, skip: int = 0, limit: int = 50) -> Tuple[List[Flat], int]:
        """
        List flats, optionally filtered by a normalized currency code.
        """
        return await self.repository.search_flats(
            currency=normalize_currency(currency),
            skip=skip,
            limit=limit,
        )

    async def update_flat(self, flat_id: uuid.UUID, payload: Mapping[str, Any]) -> Flat:
        """
        Patch a flat.

        square and price are set when present, currency goes through the
        currency normalizer, and each supplied address component overwrites
        the stored one. A null address clears every component.

        Raises:
            NotFoundError: Unknown flat
            ValidationError: Invalid values
        """
        flat = await self.get_flat(flat_id)
        changes: Dict[str, Any] = {}

        if payload.get("square") not in (None, ""):
            changes["square"] = _parse_square(payload["square"])
        if payload.get("price") not in (None, ""):
            changes["price"] = parse_price(payload["price"])

        currency = normalize_currency(payload.get("currency"))
        if currency:
            changes["currency"] = currency

        if is_address_clear_request(payload):
            changes.update(street=None, city=None, state=None, zip=None)
        else:
            address = normalize_address(payload)
            if address is not None:
                changes.update(_address_columns(address.present_fields()))

        if not changes:
            return flat

        flat = await self.repository.update(flat, changes)
        logger.info(f"Flat updated: {flat_id} ({', '.join(sorted(changes))})")
        return flat

    async def backfill_legacy_addresses(self, dry_run: bool = False, sample_size: int = 5) -> Dict[str, Any]:
        """
        Move legacy location strings into the structured address.

        The location is copied into street only when street is missing or
        blank; location is cleared either way.

        Args:
            dry_run: Report the planned changes without writing
            sample_size: Number of planned changes to include in the report

        Returns:
            Report with matched, street_backfilled, location_cleared and sample
        """
        flats = await self.repository.get_flats_with_legacy_location()
        report: Dict[str, Any] = {
            "matched": len(flats),
            "street_backfilled": 0,
            "location_cleared": 0,
            "dry_run": dry_run,
            "sample": [],
        }

        for flat in flats:
            location = flat.location.strip()
            fill_street = not (flat.street and flat.street.strip())

            if len(report["sample"]) < sample_size:
                report["sample"].append({
                    "id": str(flat.id),
                    "location": location,
                    "street": location if fill_street else flat.street,
                })

            if fill_street:
                report["street_backfilled"] += 1
            report["location_cleared"] += 1

            if not dry_run:
                if fill_street:
                    flat.street = location
                flat.location = None

        if not dry_run and flats:
            await self.repository.commit()

        logger.info(
            f"Legacy address backfill: matched={report['matched']} "
            f"street_backfilled={report['street_backfilled']} "
            f"location_cleared={report['location_cleared']} dry_run={dry_run}"
        )
        return report
