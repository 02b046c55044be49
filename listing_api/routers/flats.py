"""
Flat listing API endpoints: creation with an initial image, search, patching
and gallery management.
"""

from typing import Optional, Tuple
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Request, status
from listing_api.models.flat import Flat
from listing_api.models.user import User
from listing_api.services.flat import FlatService
from listing_api.services.image import ImageService
from listing_api.schemas.flat import (
    FlatListResponse,
    FlatResponse,
    ImageDeleteResponse,
    ImageListResponse,
)
from listing_api.schemas.error import error_responses
from listing_api.utils.dependencies import (
    get_current_user,
    get_flat_service,
    get_image_service,
    get_pagination,
    read_body,
)
from listing_api.utils.exceptions import ValidationError


router = APIRouter(prefix="/flats", tags=["Flats"])


def _image_list(flat: Flat) -> dict:
    images = [image.to_dict() for image in flat.images]
    return {"images": images, "images_count": len(images)}


@router.post(
    "",
    response_model=FlatResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create flat",
    description=(
        "Multipart form with square, price, optional currency, an address in nested, "
        "flattened or legacy form, and exactly one file under the field name \"image\"."
    ),
    responses=error_responses(400, 401)
)
async def create_flat(
    request: Request,
    current_user: User = Depends(get_current_user),
    flat_service: FlatService = Depends(get_flat_service)
) -> FlatResponse:
    fields, files = await read_body(request)
    images = files.get("image") or []
    if len(images) > 1:
        raise ValidationError('Exactly one image file is allowed (field name "image")')
    flat = await flat_service.create_flat(fields, images[0] if images else None)
    return FlatResponse.model_validate(flat.to_dict())


@router.get(
    "",
    response_model=FlatListResponse,
    summary="List flats",
    description="Optional currency filter; GEL also matches flats stored without a currency",
    responses=error_responses(400)
)
async def list_flats(
    currency: Optional[str] = Query(None, description="GEL, USD or EUR, case-insensitive"),
    pagination: Tuple[int, int] = Depends(get_pagination),
    flat_service: FlatService = Depends(get_flat_service)
) -> FlatListResponse:
    limit, skip = pagination
    flats, total = await flat_service.list_flats(currency=currency, skip=skip, limit=limit)
    return FlatListResponse(
        flats=[FlatResponse.model_validate(flat.to_dict()) for flat in flats],
        flats_count=len(flats),
        total=total,
    )


@router.get(
    "/{flat_id}",
    response_model=FlatResponse,
    summary="Get flat",
    responses=error_responses(400, 404)
)
async def get_flat(
    flat_id: UUID,
    flat_service: FlatService = Depends(get_flat_service)
) -> FlatResponse:
    flat = await flat_service.get_flat(flat_id)
    return FlatResponse.model_validate(flat.to_dict())


@router.patch(
    "/{flat_id}",
    response_model=FlatResponse,
    summary="Update flat",
    description="JSON or form. A null address clears every address component.",
    responses=error_responses(400, 401, 404)
)
async def update_flat(
    flat_id: UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    flat_service: FlatService = Depends(get_flat_service)
) -> FlatResponse:
    fields, _ = await read_body(request)
    flat = await flat_service.update_flat(flat_id, fields)
    return FlatResponse.model_validate(flat.to_dict())


@router.post(
    "/{flat_id}/images",
    response_model=ImageListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Append images",
    description="Upload one or more files under the field name \"images\". Any failure stores nothing.",
    responses=error_responses(400, 401, 404)
)
async def append_images(
    flat_id: UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service)
) -> ImageListResponse:
    _, files = await read_body(request)
    flat = await image_service.append_images(flat_id, files.get("images") or [])
    return ImageListResponse.model_validate(_image_list(flat))


@router.delete(
    "/{flat_id}/images/{image_id}",
    response_model=ImageDeleteResponse,
    summary="Remove image",
    responses=error_responses(400, 401, 404)
)
async def remove_image(
    flat_id: UUID,
    image_id: UUID,
    current_user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service)
) -> ImageDeleteResponse:
    flat = await image_service.remove_image(flat_id, image_id)
    return ImageDeleteResponse.model_validate({"message": "Image deleted", **_image_list(flat)})
