"""
User model with authentication and role management, plus the role/permission
catalogue joined through RolePermission.
"""

from sqlalchemy import (
    String, Text, Integer, Boolean, ForeignKey, UniqueConstraint, Enum as SQLEnum, Uuid, event
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from marketplace.database import Base, SoftDeleteMixin
from marketplace.models.lifecycle import attribute_change
from marketplace.utils.validators import ValidationUtils
from passlib.context import CryptContext
from email_validator import validate_email, EmailNotValidError
import enum
import re
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.models.profile import Buyer, Developer, HomeOwner, Realtor
    from marketplace.models.property import Property

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class UserRole(str, enum.Enum):
    """Marketplace roles; each non-admin seller role has a matching profile table."""
    BUYER = "BUYER"
    HOMEOWNER = "HOMEOWNER"
    REALTOR = "REALTOR"
    DEVELOPER = "DEVELOPER"
    ADMIN = "ADMIN"


class PermissionCategory(str, enum.Enum):
    GENERAL = "GENERAL"
    USER_MANAGEMENT = "USER_MANAGEMENT"
    ROLE_MANAGEMENT = "ROLE_MANAGEMENT"
    PROPERTY_MANAGEMENT = "PROPERTY_MANAGEMENT"
    LISTING_APPROVAL = "LISTING_APPROVAL"
    TRANSACTION_MANAGEMENT = "TRANSACTION_MANAGEMENT"
    REPORTING = "REPORTING"
    NOTIFICATION = "NOTIFICATION"
    SETTINGS = "SETTINGS"
    BILLING = "BILLING"
    CONTENT_MANAGEMENT = "CONTENT_MANAGEMENT"
    SYSTEM = "SYSTEM"
    CUSTOM = "CUSTOM"
    PERMISSION_MANAGEMENT = "PERMISSION_MANAGEMENT"


class User(Base):
    """
    Base marketplace account.
    Role-specific data lives in the Developer, HomeOwner and Realtor profiles.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="User email address - must be unique and valid"
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password"
    )

    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="User's full name"
    )

    phone_number: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        index=True
    )

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole),
        nullable=False,
        default=UserRole.BUYER,
        index=True,
        comment="User role for access control"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="Whether the user account is active"
    )

    # Relationships
    developer_profile: Mapped[Optional["Developer"]] = relationship(
        "Developer",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan"
    )

    homeowner_profile: Mapped[Optional["HomeOwner"]] = relationship(
        "HomeOwner",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan"
    )

    realtor_profile: Mapped[Optional["Realtor"]] = relationship(
        "Realtor",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan"
    )

    buyer_profile: Mapped[Optional["Buyer"]] = relationship(
        "Buyer",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan"
    )

    properties: Mapped[List["Property"]] = relationship(
        "Property",
        back_populates="owner",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        """String representation of the user."""
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    @validates("email")
    def _validate_email(self, key, value):
        return self.validate_email_format(value)

    @validates("phone_number")
    def _validate_phone(self, key, value):
        return ValidationUtils.phone_number(value)

    @validates("role")
    def _validate_role(self, key, value):
        return ValidationUtils.to_enum(value, UserRole, "role")

    @classmethod
    def validate_email_format(cls, email: str) -> str:
        """
        Validate email format using email-validator.

        Args:
            email: Email address to validate

        Returns:
            Normalized email address

        Raises:
            ValueError: If email format is invalid
        """
        try:
            valid_email = validate_email(email or "", check_deliverability=False)
            return valid_email.normalized.lower()
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email format: {str(e)}")

    @classmethod
    def hash_password(cls, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        if not password or len(password) < 8:
            raise ValueError("Password must be at least 8 characters long")

        return pwd_context.hash(password)

    def verify_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""
        if not password:
            return False
        return pwd_context.verify(password, self.hashed_password)

    def set_password(self, password: str) -> None:
        self.hashed_password = self.hash_password(password)

    @property
    def is_admin(self) -> bool:
        """Check if user has admin role."""
        return self.role == UserRole.ADMIN

    def to_dict(self) -> dict:
        """
        Convert user to dictionary (excluding sensitive data).

        Returns:
            Dictionary representation of user
        """
        return {
            "id": str(self.id),
            "email": self.email,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "role": self.role.value,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class Role(Base):
    """Named role with a hierarchy level and a set of permissions."""

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    hierarchy_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    in_use: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    permissions: Mapped[List["Permission"]] = relationship(
        "Permission",
        secondary="role_permissions",
        primaryjoin="Role.id == RolePermission.role_id",
        secondaryjoin="and_(Permission.id == RolePermission.permission_id, "
                      "RolePermission.deleted_at.is_(None), Permission.deleted_at.is_(None))",
        viewonly=True,
        lazy="selectin"
    )

    @validates("name")
    def _validate_name(self, key, value):
        return ValidationUtils.non_empty(value, "Role name is required").upper()

    @validates("hierarchy_level")
    def _validate_hierarchy_level(self, key, value):
        return ValidationUtils.number_range(value, "Hierarchy level", min_value=0)

    def has_permission(self, name: str) -> bool:
        return any(permission.name == name and permission.is_active for permission in self.permissions)


class Permission(SoftDeleteMixin, Base):
    """Grantable permission; names prefixed with ``system_`` are protected from deletion."""

    __tablename__ = "permissions"

    NAME_PATTERN = re.compile(r'^[a-z_]+$')
    PROTECTED_PREFIX = "system_"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[PermissionCategory] = mapped_column(
        SQLEnum(PermissionCategory),
        nullable=False,
        default=PermissionCategory.GENERAL,
        index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    @validates("name")
    def _validate_name(self, key, value):
        value = ValidationUtils.non_empty(value, "Permission name is required")
        if not self.NAME_PATTERN.match(value):
            raise ValueError("Permission name must be lowercase with underscores")
        return value

    @validates("category")
    def _validate_category(self, key, value):
        return ValidationUtils.to_enum(value, PermissionCategory, "category")

    @property
    def is_protected(self) -> bool:
        return self.name.startswith(self.PROTECTED_PREFIX)


class RolePermission(SoftDeleteMixin, Base):
    """Join row granting a permission to a role."""

    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_role_permission"),
    )

    role_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    permission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("permissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    role: Mapped["Role"] = relationship("Role")
    permission: Mapped["Permission"] = relationship("Permission")


def _protect_system_permission(permission: Permission) -> None:
    if permission.is_protected:
        raise ValueError("System permissions cannot be deleted")


@event.listens_for(Permission, "before_delete")
def permission_before_delete(mapper, connection, target: Permission) -> None:
    _protect_system_permission(target)


@event.listens_for(Permission, "before_update")
def permission_before_update(mapper, connection, target: Permission) -> None:
    change = attribute_change(target, "deleted_at")
    if change and change[0] is None and change[1] is not None:
        _protect_system_permission(target)
