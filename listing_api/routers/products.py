"""
Product catalog API endpoints.
"""

from typing import Any, Dict, Optional, Tuple
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from listing_api.models.user import User
from listing_api.services.product import ProductService
from listing_api.schemas.product import ProductCreate, ProductListResponse, ProductResponse
from listing_api.schemas.user import MessageResponse
from listing_api.schemas.error import error_responses
from listing_api.utils.dependencies import (
    get_current_user,
    get_pagination,
    get_product_service,
    read_payload,
)


router = APIRouter(prefix="/products", tags=["Products"])


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create product",
    responses=error_responses(400, 401)
)
async def create_product(
    product_data: ProductCreate,
    current_user: User = Depends(get_current_user),
    product_service: ProductService = Depends(get_product_service)
) -> ProductResponse:
    product = await product_service.create_product(product_data.name, product_data.price)
    return ProductResponse.model_validate(product.to_dict())


@router.get(
    "",
    response_model=ProductListResponse,
    summary="List products",
    description="Filter by name (case-insensitive substring) and exact price",
    responses=error_responses(400)
)
async def list_products(
    name: Optional[str] = Query(None, description="Name substring"),
    price: Optional[str] = Query(None, description="Exact price"),
    pagination: Tuple[int, int] = Depends(get_pagination),
    product_service: ProductService = Depends(get_product_service)
) -> ProductListResponse:
    limit, skip = pagination
    products, total = await product_service.list_products(name=name, price=price, skip=skip, limit=limit)
    return ProductListResponse(
        items=[ProductResponse.model_validate(product.to_dict()) for product in products],
        count=total,
    )


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get product",
    responses=error_responses(400, 404)
)
async def get_product(
    product_id: UUID,
    product_service: ProductService = Depends(get_product_service)
) -> ProductResponse:
    product = await product_service.get_product(product_id)
    return ProductResponse.model_validate(product.to_dict())


@router.patch(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update product",
    description="Only name and price are applied",
    responses=error_responses(400, 401, 404)
)
async def update_product(
    product_id: UUID,
    payload: Dict[str, Any] = Depends(read_payload),
    current_user: User = Depends(get_current_user),
    product_service: ProductService = Depends(get_product_service)
) -> ProductResponse:
    product = await product_service.update_product(product_id, payload)
    return ProductResponse.model_validate(product.to_dict())


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    summary="Delete product",
    responses=error_responses(400, 401, 404)
)
async def delete_product(
    product_id: UUID,
    current_user: User = Depends(get_current_user),
    product_service: ProductService = Depends(get_product_service)
) -> MessageResponse:
    await product_service.delete_product(product_id)
    return MessageResponse(message="Deleted")
