"""
Authentication service for registration, login and token resolution.
Also attaches the role-specific profile (developer, homeowner, realtor) to a user.
"""

from typing import Tuple, Dict, Any, Type, Union
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.config import settings
from marketplace.repositories.user import UserRepository
from marketplace.repositories.base import BaseRepository
from marketplace.models.user import User, UserRole
from marketplace.models.profile import Buyer, Developer, HomeOwner, Realtor
from marketplace.schemas.user import UserCreate
from marketplace.services.base import BaseService
from marketplace.utils.auth import create_access_token, verify_token
from marketplace.utils.exceptions import (
    UnauthorizedError,
    InvalidTokenError,
    NotFoundError,
    ConflictError,
    ForbiddenError,
)
from jose import JWTError
import uuid
import logging

logger = logging.getLogger(__name__)

Profile = Union[Buyer, Developer, HomeOwner, Realtor]

# Profile kind -> (model, user relationship attribute, roles allowed to hold it)
PROFILE_KINDS: Dict[str, Tuple[Type, str, Tuple[UserRole, ...]]] = {
    "buyer": (Buyer, "buyer_profile", (UserRole.BUYER, UserRole.ADMIN)),
    "developer": (Developer, "developer_profile", (UserRole.DEVELOPER, UserRole.ADMIN)),
    "homeowner": (HomeOwner, "homeowner_profile", (UserRole.HOMEOWNER, UserRole.ADMIN)),
    "realtor": (Realtor, "realtor_profile", (UserRole.REALTOR, UserRole.ADMIN)),
}


class AuthService(BaseService):
    """
    Authentication service for managing user accounts and bearer tokens.
    """

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.user_repo = UserRepository(db_session)

    async def register(self, user_data: UserCreate) -> User:
        """
        Create a new account.

        Raises:
            ConflictError: If the email is already registered
            ValidationError: If a field is rejected by the model
        """
        if await self.user_repo.get_by_email(user_data.email):
            raise ConflictError(f"User with email {user_data.email} already exists")

        try:
            user = await self.user_repo.create_user(user_data.model_dump())
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Registered user {user.email} as {user.role.value}")
        return user

    def create_token(self, user: User) -> Tuple[str, int]:
        """Return an access token and its lifetime in seconds."""
        lifetime = timedelta(minutes=settings.access_token_expire_minutes)
        token = create_access_token(user.id, user.email, user.role, expires_delta=lifetime)
        return token, int(lifetime.total_seconds())

    async def login(self, email: str, password: str) -> Tuple[User, str, int]:
        """
        Authenticate a user and issue an access token.

        Returns:
            Tuple of (user, access_token, expires_in)

        Raises:
            UnauthorizedError: If credentials are invalid or the account is inactive
        """
        user = await self.user_repo.authenticate_user(email, password)
        if user is None:
            raise UnauthorizedError("Invalid email or password")

        token, expires_in = self.create_token(user)
        logger.info(f"User logged in: {user.email}")
        return user, token, expires_in

    async def get_current_user(self, token: str) -> User:
        """
        Resolve the user behind a bearer token.

        Raises:
            InvalidTokenError: If the token cannot be decoded
            UnauthorizedError: If the user no longer exists or is inactive
        """
        try:
            payload = verify_token(token)
        except JWTError as e:
            logger.debug(f"Rejected token: {e}")
            raise InvalidTokenError()

        user = await self.user_repo.get_by_id(payload.user_uuid)
        if user is None or not user.is_active:
            raise UnauthorizedError("User not found or inactive")
        return user

    async def get_user_by_id(self, user_id: uuid.UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", str(user_id))
        return user

    async def create_profile(self, user: User, kind: str, profile_data: Dict[str, Any]) -> Profile:
        """
        Attach a role-specific profile to a user.

        Args:
            user: Account receiving the profile
            kind: One of buyer, developer, homeowner or realtor
            profile_data: Profile fields

        Raises:
            NotFoundError: If the profile kind is unknown
            ForbiddenError: If the user's role cannot hold this profile
            ConflictError: If the user already has this profile
        """
        if kind not in PROFILE_KINDS:
            raise NotFoundError("Profile kind", kind)
        model, attribute, roles = PROFILE_KINDS[kind]

        if user.role not in roles:
            raise ForbiddenError(f"{user.role.value} users cannot hold a {kind} profile")

        repo = BaseRepository(model, self.db)
        if await repo.get_by_field("user_id", user.id):
            raise ConflictError(f"User already has a {kind} profile")

        try:
            profile = await repo.create({**profile_data, "user_id": user.id})
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Created {kind} profile for user {user.id}")
        return profile

    async def get_profile(self, user_id: uuid.UUID, kind: str) -> Profile:
        if kind not in PROFILE_KINDS:
            raise NotFoundError("Profile kind", kind)
        model = PROFILE_KINDS[kind][0]
        profile = await BaseRepository(model, self.db).get_by_field("user_id", user_id)
        if profile is None:
            raise NotFoundError(f"{kind.capitalize()} profile", str(user_id))
        return profile

    @staticmethod
    def profile_summary(kind: str, profile: Profile) -> Dict[str, Any]:
        verified = getattr(profile, "is_verified", None)
        if verified is None:
            verified = getattr(profile, "ownership_verified", None)
        if verified is None:
            verified = getattr(profile, "pre_approved", False)
        return {
            "id": profile.id,
            "user_id": profile.user_id,
            "kind": kind,
            "is_verified": bool(verified),
            "created_at": profile.created_at,
        }
