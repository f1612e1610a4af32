"""
Role and permission administration endpoints. All require an admin token.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import Optional, List
from uuid import UUID

from marketplace.models.user import User, PermissionCategory
from marketplace.services.access import AccessService
from marketplace.schemas.access import (
    RoleCreate,
    RoleResponse,
    PermissionCreate,
    PermissionResponse,
    GrantResponse
)
from marketplace.schemas.error import get_crud_error_responses
from marketplace.utils.dependencies import get_current_admin_user, get_access_service


router = APIRouter(prefix="/access", tags=["Access Control"])


@router.post(
    "/roles",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create role",
    responses=get_crud_error_responses()
)
async def create_role(
    role_data: RoleCreate,
    admin_user: User = Depends(get_current_admin_user),
    access_service: AccessService = Depends(get_access_service)
) -> RoleResponse:
    role = await access_service.create_role(
        role_data.name, hierarchy_level=role_data.hierarchy_level, description=role_data.description
    )
    return RoleResponse.model_validate(await access_service.get_role(role.id))


@router.get("/roles", response_model=List[RoleResponse], summary="List roles")
async def list_roles(
    admin_user: User = Depends(get_current_admin_user),
    access_service: AccessService = Depends(get_access_service)
) -> List[RoleResponse]:
    return [RoleResponse.model_validate(role) for role in await access_service.list_roles()]


@router.get(
    "/roles/{role_id}",
    response_model=RoleResponse,
    summary="Get role with its permissions",
    responses=get_crud_error_responses()
)
async def get_role(
    role_id: UUID = Path(..., description="Role ID"),
    admin_user: User = Depends(get_current_admin_user),
    access_service: AccessService = Depends(get_access_service)
) -> RoleResponse:
    return RoleResponse.model_validate(await access_service.get_role(role_id))


@router.post(
    "/permissions",
    response_model=PermissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create permission",
    responses=get_crud_error_responses()
)
async def create_permission(
    permission_data: PermissionCreate,
    admin_user: User = Depends(get_current_admin_user),
    access_service: AccessService = Depends(get_access_service)
) -> PermissionResponse:
    permission = await access_service.create_permission(
        permission_data.name, category=permission_data.category, description=permission_data.description
    )
    return PermissionResponse.model_validate(permission)


@router.get("/permissions", response_model=List[PermissionResponse], summary="List permissions")
async def list_permissions(
    category: Optional[PermissionCategory] = Query(None),
    admin_user: User = Depends(get_current_admin_user),
    access_service: AccessService = Depends(get_access_service)
) -> List[PermissionResponse]:
    permissions = await access_service.list_permissions(category)
    return [PermissionResponse.model_validate(p) for p in permissions]


@router.delete(
    "/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete permission",
    description="Permissions whose name starts with `system_` are protected.",
    responses=get_crud_error_responses()
)
async def delete_permission(
    permission_id: UUID = Path(..., description="Permission ID"),
    admin_user: User = Depends(get_current_admin_user),
    access_service: AccessService = Depends(get_access_service)
) -> None:
    await access_service.delete_permission(permission_id)


@router.put(
    "/roles/{role_id}/permissions/{permission_id}",
    response_model=GrantResponse,
    summary="Grant a permission to a role",
    responses=get_crud_error_responses()
)
async def grant_permission(
    role_id: UUID = Path(..., description="Role ID"),
    permission_id: UUID = Path(..., description="Permission ID"),
    admin_user: User = Depends(get_current_admin_user),
    access_service: AccessService = Depends(get_access_service)
) -> GrantResponse:
    return GrantResponse.model_validate(await access_service.grant(role_id, permission_id))


@router.delete(
    "/roles/{role_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke a permission from a role",
    responses=get_crud_error_responses()
)
async def revoke_permission(
    role_id: UUID = Path(..., description="Role ID"),
    permission_id: UUID = Path(..., description="Permission ID"),
    admin_user: User = Depends(get_current_admin_user),
    access_service: AccessService = Depends(get_access_service)
) -> None:
    await access_service.revoke(role_id, permission_id)
