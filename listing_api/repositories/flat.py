"""
Flat repository for listings, their images and legacy address cleanup.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, func
from listing_api.repositories.base import BaseRepository
from listing_api.models.flat import Flat, FlatImage, DEFAULT_CURRENCY
from listing_api.services.storage import StoredObject
from typing import Optional, List, Tuple
import logging

logger = logging.getLogger(__name__)


class FlatRepository(BaseRepository[Flat]):
    """
    Repository for flats and their ordered image records.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Flat, db)

    async def search_flats(
        self,
        currency: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[Flat], int]:
        """
        List flats newest first, optionally by currency.

        The default currency also matches rows stored without one.

        Returns:
            Tuple of (flats list, total count)
        """
        query = select(Flat)
        if currency == DEFAULT_CURRENCY.value:
            query = query.where(or_(Flat.currency == currency, Flat.currency.is_(None)))
        elif currency:
            query = query.where(Flat.currency == currency)

        flats = await self.list(query, skip=skip, limit=limit)
        total = await self.count(query)
        return flats, total

    async def create_with_image(self, flat_data: dict, stored: StoredObject) -> Flat:
        """
        Create a flat and its first image in one transaction.
        """
        try:
            flat = Flat(**flat_data)
            flat.images = [self._image_record(stored, position=0)]
            self.db.add(flat)
            await self.db.commit()
            await self.db.refresh(flat)
            logger.debug(f"Created flat {flat.id} with initial image")
            return flat
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create flat: {e}")
            raise

    async def append_images(self, flat: Flat, stored_objects: List[StoredObject]) -> List[FlatImage]:
        """
        Append image records after the flat's existing ones.

        Returns:
            The newly created image records
        """
        flat_id = flat.id
        try:
            position = flat.next_image_position()
            new_images = []
            for offset, stored in enumerate(stored_objects):
                image = self._image_record(stored, position=position + offset)
                flat.images.append(image)
                new_images.append(image)
            await self.db.commit()
            await self.db.refresh(flat)
            logger.debug(f"Appended {len(new_images)} images to flat {flat_id}")
            return new_images
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to append images to flat {flat_id}: {e}")
            raise

    async def remove_image(self, flat: Flat, image: FlatImage) -> None:
        """Detach an image record from its flat and commit."""
        flat_id = flat.id
        try:
            flat.images.remove(image)
            await self.db.commit()
            await self.db.refresh(flat)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to remove image from flat {flat_id}: {e}")
            raise

    async def get_flats_with_legacy_location(self) -> List[Flat]:
        """Flats whose legacy location column still holds text."""
        query = select(Flat).where(
            Flat.location.is_not(None),
            func.length(func.trim(Flat.location)) > 0,
        )
        result = await self.db.execute(query.order_by(Flat.created_at))
        return list(result.scalars().all())

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to commit flat changes: {e}")
            raise

    @staticmethod
    def _image_record(stored: StoredObject, position: int) -> FlatImage:
        return FlatImage(
            position=position,
            url=stored.url,
            filename=stored.filename,
            size=stored.size,
            content_type=stored.content_type,
            storage=stored.storage,
            path=stored.path,
            bucket=stored.bucket,
        )
