"""Role selection endpoints."""

from fastapi import APIRouter, status

from carebook.dependencies import CacheManagerDep, CurrentIdentity, DatabaseSession
from carebook.schemas.users import (
    RoleAssignmentRequest,
    RoleAssignmentResponse,
    RoleResponse,
    SaveUserRequest,
    SaveUserResponse,
)
from carebook.services.user_service import UserService

router = APIRouter()


@router.post(
    "/user/role",
    response_model=RoleAssignmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Select dashboard role",
)
async def assign_role(
    data: RoleAssignmentRequest,
    identity: CurrentIdentity,
    cache_manager: CacheManagerDep,
    db: DatabaseSession,
) -> RoleAssignmentResponse:
    """
    Create the minimal doctor or patient profile for the caller.

    Calling again returns the existing profile with ``created`` false.
    """
    service = UserService(db, cache_manager)
    return await service.assign_role(identity, data)


@router.get(
    "/user/role",
    response_model=RoleResponse,
    status_code=status.HTTP_200_OK,
    summary="Resolve dashboard role",
)
async def get_role(
    identity: CurrentIdentity,
    cache_manager: CacheManagerDep,
    db: DatabaseSession,
) -> RoleResponse:
    """Resolve the caller's role from the profile store, or null if none."""
    service = UserService(db, cache_manager)
    return await service.resolve_role(identity)


@router.post(
    "/save-user",
    response_model=SaveUserResponse,
    status_code=status.HTTP_200_OK,
    summary="Save identity names onto the role profile",
)
async def save_user(
    data: SaveUserRequest,
    identity: CurrentIdentity,
    cache_manager: CacheManagerDep,
    db: DatabaseSession,
) -> SaveUserResponse:
    """Upsert names and contact details onto the caller's role profile."""
    service = UserService(db, cache_manager)
    await service.save_user(identity, data)
    return SaveUserResponse()
