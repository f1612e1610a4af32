"""
User, role and permission repositories.
Provides account lookups with password handling and role-permission management.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from marketplace.repositories.base import BaseRepository
from marketplace.models.user import User, UserRole, Role, Permission, RolePermission
from typing import Optional, List, Dict, Any
import uuid
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """
    Repository for marketplace accounts.
    Handles email normalisation and password hashing on creation.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def create_user(self, user_data: Dict[str, Any]) -> User:
        """
        Create a new user with email validation and password hashing.

        Args:
            user_data: Dictionary containing user information
                      Must include: email, password, full_name
                      Optional: role (defaults to BUYER)

        Returns:
            Created user instance

        Raises:
            ValueError: If validation fails or the email is taken
        """
        data = dict(user_data)
        email = User.validate_email_format(data.pop("email"))

        if await self.get_by_email(email):
            raise ValueError(f"User with email {email} already exists")

        password = data.pop("password")
        create_data = {
            **data,
            "email": email,
            "hashed_password": User.hash_password(password),
            "role": data.get("role") or UserRole.BUYER,
        }

        created_user = await self.create(create_data)
        logger.info(f"Created user: {created_user.email} (ID: {created_user.id})")
        return created_user

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

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate user with email and password.

        Returns:
            User instance if authentication successful, None otherwise
        """
        user = await self.get_by_email(email)

        if not user:
            logger.debug(f"Authentication failed: user {email} not found")
            return None

        if not user.is_active:
            logger.debug(f"Authentication failed: user {email} is inactive")
            return None

        if not user.verify_password(password):
            logger.debug(f"Authentication failed: invalid password for {email}")
            return None

        logger.info(f"User authenticated successfully: {email}")
        return user

    async def get_users_by_role(self, role: UserRole, skip: int = 0, limit: int = 100) -> List[User]:
        return await self.get_multi(skip=skip, limit=limit, filters={"role": role, "is_active": True})


class RoleRepository(BaseRepository[Role]):
    """Repository for roles and their permission grants."""

    def __init__(self, db: AsyncSession):
        super().__init__(Role, db)

    async def get_by_name(self, name: str) -> Optional[Role]:
        return await self.get_by_field("name", name.upper())

    async def grant(self, role_id: uuid.UUID, permission_id: uuid.UUID) -> RolePermission:
        """
        Grant a permission to a role, reviving a previously revoked grant.

        Returns:
            The live RolePermission row
        """
        result = await self.db.execute(
            select(RolePermission).where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
        )
        grant = result.scalar_one_or_none()

        if grant is None:
            grant = RolePermission(role_id=role_id, permission_id=permission_id)
        elif grant.deleted_at is not None:
            grant.restore()
        else:
            return grant

        saved = await self.save(grant)
        logger.info(f"Granted permission {permission_id} to role {role_id}")
        return saved

    async def revoke(self, role_id: uuid.UUID, permission_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(RolePermission).where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
                RolePermission.deleted_at.is_(None),
            )
        )
        grant = result.scalar_one_or_none()
        if grant is None:
            return False

        try:
            grant.soft_delete()
            await self.db.commit()
            logger.info(f"Revoked permission {permission_id} from role {role_id}")
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to revoke permission {permission_id} from role {role_id}: {e}")
            raise

    async def get_with_permissions(self, role_id: uuid.UUID) -> Optional[Role]:
        """Load a role with a fresh view of its live permissions."""
        role = await self.get_by_id(role_id)
        if role is not None:
            await self.db.refresh(role, attribute_names=["permissions"])
        return role


class PermissionRepository(BaseRepository[Permission]):
    """Repository for grantable permissions; protected ones refuse deletion."""

    def __init__(self, db: AsyncSession):
        super().__init__(Permission, db)

    async def get_by_name(self, name: str) -> Optional[Permission]:
        return await self.get_by_field("name", name)
