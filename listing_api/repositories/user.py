"""
User repository for account management and flat assignment.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, delete
from listing_api.repositories.base import BaseRepository
from listing_api.models.user import User, UserFlat
from listing_api.models.flat import Flat
from typing import Optional, List, Dict, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """
    Repository for users, their denormalized flat list and UserFlat join rows.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email address.

        Args:
            email: Email address to search for

        Returns:
            User instance if found, None otherwise
        """
        try:
            normalized_email = email.lower().strip()
            result = await self.db.execute(select(User).where(User.email == normalized_email))
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get user by email {email}: {e}")
            raise

    async def check_email_availability(self, email: str, exclude_user_id: Optional[uuid.UUID] = None) -> bool:
        """
        Check if email address is available for registration or update.

        Args:
            email: Normalized email address
            exclude_user_id: Optional user ID to exclude from check (for updates)

        Returns:
            True if email is available, False if taken
        """
        query = select(User.id).where(User.email == email)
        if exclude_user_id:
            query = query.where(User.id != exclude_user_id)

        result = await self.db.execute(query)
        return result.first() is None

    async def search_users(
        self,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[User], int]:
        """
        Filter users newest first.

        Args:
            email: Exact match after lower-casing
            first_name: Case-insensitive substring
            last_name: Case-insensitive substring
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (users list, total count)
        """
        conditions = []
        if email:
            conditions.append(User.email == email.strip().lower())
        if first_name:
            conditions.append(User.first_name.ilike(f"%{first_name.strip()}%"))
        if last_name:
            conditions.append(User.last_name.ilike(f"%{last_name.strip()}%"))

        query = select(User)
        if conditions:
            query = query.where(and_(*conditions))

        users = await self.list(query, skip=skip, limit=limit)
        total_count = await self.count(query)
        logger.debug(f"User search returned {len(users)} of {total_count}")
        return users, total_count

    async def get_users_younger_than(self, age: Optional[int]) -> List[User]:
        """Users strictly younger than age, or all users when age is None."""
        query = select(User)
        if age is not None:
            query = query.where(User.age < age)
        result = await self.db.execute(query.order_by(User.created_at.desc()))
        return list(result.scalars().all())

    async def get_flats_for_users(self, users: List[User]) -> Dict[str, Flat]:
        """
        Load every flat referenced by the given users in one query.

        Returns:
            Mapping of flat id string to Flat
        """
        flat_ids = {flat_id for user in users for flat_id in (user.flat_ids or [])}
        if not flat_ids:
            return {}

        ids = []
        for flat_id in flat_ids:
            try:
                ids.append(uuid.UUID(flat_id))
            except ValueError:
                logger.warning(f"Skipping malformed flat reference {flat_id}")

        result = await self.db.execute(select(Flat).where(Flat.id.in_(ids)))
        return {str(flat.id): flat for flat in result.scalars().all()}

    async def has_assignment(self, user_id: uuid.UUID, flat_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(UserFlat.id).where(and_(UserFlat.user_id == user_id, UserFlat.flat_id == flat_id))
        )
        return result.first() is not None

    async def assign_flat(self, user: User, flat: Flat) -> User:
        """
        Append the flat to the user's flat list and create the join record.

        Both writes are committed together or not at all.
        """
        user_id = user.id
        try:
            user.flat_ids = [*(user.flat_ids or []), str(flat.id)]
            self.db.add(UserFlat(user_id=user_id, flat_id=flat.id))
            await self.db.commit()
            await self.db.refresh(user)
            logger.debug(f"Assigned flat {flat.id} to user {user_id}")
            return user
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to assign flat to user {user_id}: {e}")
            raise

    async def delete_user(self, user_id: uuid.UUID) -> bool:
        """Delete the user together with its join records."""
        user = await self.get_by_id(user_id)
        if user is None:
            return False

        try:
            await self.db.execute(delete(UserFlat).where(UserFlat.user_id == user_id))
            await self.db.delete(user)
            await self.db.commit()
            logger.debug(f"Deleted user {user_id} and its flat assignments")
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete user {user_id}: {e}")
            raise
