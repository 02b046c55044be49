"""
Product catalog service.
"""

import logging
import uuid
from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from listing_api.models.product import Product
from listing_api.repositories.content import ProductRepository
from listing_api.utils.exceptions import NotFoundError, ValidationError
from listing_api.utils.validators import PRODUCT_PATCH_FIELDS, filter_allowed_fields, parse_decimal, parse_price

logger = logging.getLogger(__name__)


class ProductService:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session
        self.repository = ProductRepository(db_session)

    async def create_product(self, name: Optional[str], price: Any) -> Product:
        if price is None:
            raise ValidationError("price is required")
        product = await self.repository.create({
            "name": name.strip() if isinstance(name, str) else name,
            "price": parse_price(price),
        })
        logger.info(f"Product created: {product.id}")
        return product

    async def list_products(
        self,
        name: Optional[str] = None,
        price: Any = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[Product], int]:
        price_value = parse_decimal(price, "price") if price not in (None, "") else None
        return await self.repository.search_products(name=name, price=price_value, skip=skip, limit=limit)

    async def get_product(self, product_id: uuid.UUID) -> Product:
        product = await self.repository.get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product", str(product_id))
        return product

    async def update_product(self, product_id: uuid.UUID, payload: Mapping[str, Any]) -> Product:
        """Apply an allow-listed patch over name and price."""
        product = await self.get_product(product_id)
        changes = filter_allowed_fields(payload, PRODUCT_PATCH_FIELDS)

        if "price" in changes:
            if changes["price"] is None:
                raise ValidationError("price is required")
            changes["price"] = parse_price(changes["price"])
        if isinstance(changes.get("name"), str):
            changes["name"] = changes["name"].strip()

        if not changes:
            return product
        return await self.repository.update(product, changes)

    async def delete_product(self, product_id: uuid.UUID) -> None:
        if not await self.repository.delete(product_id):
            raise NotFoundError("Product", str(product_id))
        logger.info(f"Product deleted: {product_id}")
