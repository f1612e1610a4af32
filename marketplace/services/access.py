"""
Role and permission administration.
"""

from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.repositories.user import RoleRepository, PermissionRepository
from marketplace.models.user import Role, Permission, RolePermission, PermissionCategory
from marketplace.services.base import BaseService
from marketplace.utils.exceptions import NotFoundError, ConflictError, BusinessRuleViolationError
import uuid
import logging

logger = logging.getLogger(__name__)


class AccessService(BaseService):
    """Manages roles, permissions and the grants between them."""

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.role_repo = RoleRepository(db_session)
        self.permission_repo = PermissionRepository(db_session)

    async def create_role(self, name: str, hierarchy_level: int = 0,
                          description: Optional[str] = None) -> Role:
        if await self.role_repo.get_by_name(name):
            raise ConflictError(f"Role {name.upper()} already exists")
        try:
            role = await self.role_repo.create(
                {"name": name, "hierarchy_level": hierarchy_level,
                 "description": description or f"{name.upper()} role"}
            )
        except ValueError as e:
            raise await self._reject(e)
        logger.info(f"Created role {role.name}")
        return role

    async def list_roles(self) -> List[Role]:
        return await self.role_repo.get_multi(order_by="hierarchy_level")

    async def get_role(self, role_id: uuid.UUID) -> Role:
        role = await self.role_repo.get_with_permissions(role_id)
        if role is None:
            raise NotFoundError("Role", str(role_id))
        return role

    async def create_permission(self, name: str, category: PermissionCategory = PermissionCategory.GENERAL,
                                description: Optional[str] = None) -> Permission:
        if await self.permission_repo.get_by_name(name):
            raise ConflictError(f"Permission {name} already exists")
        try:
            permission = await self.permission_repo.create(
                {"name": name, "category": category, "description": description}
            )
        except ValueError as e:
            raise await self._reject(e)
        logger.info(f"Created permission {permission.name} ({permission.category.value})")
        return permission

    async def list_permissions(self, category: Optional[PermissionCategory] = None) -> List[Permission]:
        filters = {"category": category} if category else None
        return await self.permission_repo.get_multi(filters=filters, order_by="name")

    async def grant(self, role_id: uuid.UUID, permission_id: uuid.UUID) -> RolePermission:
        await self.get_role(role_id)
        await self._get_permission(permission_id)
        return await self.role_repo.grant(role_id, permission_id)

    async def revoke(self, role_id: uuid.UUID, permission_id: uuid.UUID) -> None:
        if not await self.role_repo.revoke(role_id, permission_id):
            raise NotFoundError("Permission grant", f"{role_id}/{permission_id}")

    async def delete_permission(self, permission_id: uuid.UUID) -> None:
        """
        Raises:
            BusinessRuleViolationError: If the permission is a protected system permission
        """
        permission = await self._get_permission(permission_id)
        if permission.is_protected:
            raise BusinessRuleViolationError("system permissions cannot be deleted", permission.name)
        try:
            await self.permission_repo.delete(permission_id)
        except ValueError as e:
            raise await self._reject(e)
        logger.info(f"Deleted permission {permission.name}")

    async def _get_permission(self, permission_id: uuid.UUID) -> Permission:
        permission = await self.permission_repo.get_by_id(permission_id)
        if permission is None:
            raise NotFoundError("Permission", str(permission_id))
        return permission
