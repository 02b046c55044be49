"""
User service for profile management and flat assignment.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from listing_api.repositories.user import UserRepository
from listing_api.repositories.flat import FlatRepository
from listing_api.models.user import User
from listing_api.utils.auth import hash_password
from listing_api.utils.exceptions import (
    NotFoundError,
    BadRequestError,
    ValidationError,
    DuplicateResourceError,
)
from listing_api.utils.validators import (
    USER_PATCH_FIELDS,
    filter_allowed_fields,
    validate_user_update,
)
import uuid
import logging

logger = logging.getLogger(__name__)


def parse_id(value: Any, field: str) -> uuid.UUID:
    """Parse a UUID from a request body value."""
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be a valid id")


class UserService:
    """
    User management: listing with populated flats, allow-listed patching,
    deletion and flat assignment.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)
        self.flat_repo = FlatRepository(db_session)

    async def populate(self, users: List[User]) -> List[Dict[str, Any]]:
        """Serialize users with their flats loaded in one query."""
        flats_by_id = await self.user_repo.get_flats_for_users(users)
        return [
            user.to_dict(flats=[
                flats_by_id[flat_id].to_dict()
                for flat_id in (user.flat_ids or [])
                if flat_id in flats_by_id
            ])
            for user in users
        ]

    async def list_users(
        self,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[Dict[str, Any]], int]:
        users, total = await self.user_repo.search_users(
            email=email,
            first_name=first_name,
            last_name=last_name,
            skip=skip,
            limit=limit,
        )
        return await self.populate(users), total

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", str(user_id))
        return user

    async def get_user_with_flats(self, user_id: uuid.UUID) -> Dict[str, Any]:
        user = await self.get_user(user_id)
        return (await self.populate([user]))[0]

    async def update_user(self, user_id: uuid.UUID, payload: Mapping[str, Any]) -> User:
        """
        Apply an allow-listed patch.

        Fields outside the allow-list are dropped silently. The password is
        re-hashed only when present.

        Raises:
            NotFoundError: Unknown user
            ValidationError: Bad field values
            DuplicateResourceError: Email taken by another user
        """
        user = await self.get_user(user_id)
        changes = validate_user_update(filter_allowed_fields(payload, USER_PATCH_FIELDS))

        if "email" in changes and changes["email"] != user.email:
            if not await self.user_repo.check_email_availability(changes["email"], exclude_user_id=user.id):
                raise DuplicateResourceError("Email already registered")

        if "password" in changes:
            changes["hashed_password"] = hash_password(changes.pop("password"))

        if not changes:
            return user

        updated = await self.user_repo.update(user, changes)
        logger.info(f"Updated user {user_id}: {sorted(changes)}")
        return updated

    async def delete_user(self, user_id: uuid.UUID) -> None:
        if not await self.user_repo.delete_user(user_id):
            raise NotFoundError("User", str(user_id))
        logger.info(f"Deleted user {user_id}")

    async def users_younger_than(self, age: Optional[int]) -> List[Dict[str, Any]]:
        users = await self.user_repo.get_users_younger_than(age)
        if not users:
            raise NotFoundError("Users", detail="No users found")
        return await self.populate(users)

    async def assign_flat(self, user_id: Any, flat_id: Any) -> User:
        """
        Assign a flat to a user.

        The user's flat list and the UserFlat join record are written in a
        single transaction.

        Raises:
            ValidationError: Missing or malformed ids
            NotFoundError: Unknown user or flat
            BadRequestError: Flat already assigned to this user
        """
        if not user_id or not flat_id:
            raise ValidationError("user_id and flat_id are required")

        user_uuid = parse_id(user_id, "user_id")
        flat_uuid = parse_id(flat_id, "flat_id")

        user = await self.user_repo.get_by_id(user_uuid)
        if user is None:
            raise NotFoundError("User", str(user_uuid))

        flat = await self.flat_repo.get_by_id(flat_uuid)
        if flat is None:
            raise NotFoundError("Flat", str(flat_uuid))

        if user.has_flat(flat.id) or await self.user_repo.has_assignment(user.id, flat.id):
            raise BadRequestError("Flat is already assigned to this user.")

        user = await self.user_repo.assign_flat(user, flat)
        logger.info(f"Assigned flat {flat.id} to user {user.id}")
        return user
