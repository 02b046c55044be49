"""
User management API endpoints: listing, profile reads and patches, deletion,
age filtering and flat assignment.
"""

from typing import Optional, Tuple
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from listing_api.models.user import User
from listing_api.services.user import UserService
from listing_api.schemas.user import (
    AssignFlatRequest,
    AssignFlatResponse,
    MessageResponse,
    Requester,
    UserListResponse,
    UserPayload,
    UserResponse,
    UsersWithFlatsResponse,
)
from listing_api.schemas.error import error_responses
from listing_api.utils.auth import TokenPayload
from listing_api.utils.dependencies import (
    get_current_user,
    get_pagination,
    get_token_payload,
    get_user_service,
)


router = APIRouter(tags=["Users"])


@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List users",
    description="Filter users by email (exact) and names (case-insensitive substring), newest first",
    responses=error_responses(401)
)
async def list_users(
    email: Optional[str] = Query(None, description="Exact email, compared lower-cased"),
    first_name: Optional[str] = Query(None, description="First name substring"),
    last_name: Optional[str] = Query(None, description="Last name substring"),
    pagination: Tuple[int, int] = Depends(get_pagination),
    token: TokenPayload = Depends(get_token_payload),
    user_service: UserService = Depends(get_user_service)
) -> UserListResponse:
    limit, skip = pagination
    users, total = await user_service.list_users(
        email=email,
        first_name=first_name,
        last_name=last_name,
        skip=skip,
        limit=limit,
    )
    return UserListResponse(
        items=[UserResponse.model_validate(user) for user in users],
        count=total,
        requester=Requester.model_validate(token.identity()),
    )


@router.get(
    "/users-with-flats",
    response_model=UsersWithFlatsResponse,
    summary="Users younger than an age",
    description="Users with age below the given value, flats populated",
    responses=error_responses(401, 404)
)
async def users_with_flats(
    age: Optional[int] = Query(None, description="Exclusive upper age bound"),
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
) -> UsersWithFlatsResponse:
    users = await user_service.users_younger_than(age)
    return UsersWithFlatsResponse(
        users=[UserResponse.model_validate(user) for user in users],
        count=len(users),
    )


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Get user",
    responses=error_responses(400, 401, 404)
)
async def get_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    return UserResponse.model_validate(await user_service.get_user_with_flats(user_id))


@router.patch(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Update user",
    description="Only age, email, first_name, last_name, birth_date, address and password are applied",
    responses=error_responses(400, 401, 404, 409)
)
async def update_user(
    user_id: UUID,
    payload: UserPayload,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    user = await user_service.update_user(user_id, payload.to_payload())
    return UserResponse.model_validate(user.to_dict())


@router.delete(
    "/users/{user_id}",
    response_model=MessageResponse,
    summary="Delete user",
    responses=error_responses(400, 401, 404)
)
async def delete_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
) -> MessageResponse:
    await user_service.delete_user(user_id)
    return MessageResponse(message="Deleted")


@router.post(
    "/assign-flat",
    response_model=AssignFlatResponse,
    summary="Assign a flat to a user",
    responses=error_responses(400, 401, 404)
)
async def assign_flat(
    assignment: AssignFlatRequest,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
) -> AssignFlatResponse:
    user = await user_service.assign_flat(assignment.user_id, assignment.flat_id)
    return AssignFlatResponse(
        message="Flat assigned successfully",
        total_flats=len(user.flat_ids or []),
    )
