"""
FastAPI dependency injection utilities for authentication and services.
The bearer token's subject is the acting user's id.
"""

from typing import Optional
import uuid
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.database import get_db
from marketplace.models.user import User, UserRole
from marketplace.services import (
    AuthService,
    AccessService,
    PropertyService,
    ListingService,
    MediaService,
    TransactionService,
    PaymentService,
    SubscriptionService,
    NotificationService,
    InquiryService,
    RecommendationService,
)
from marketplace.utils.auth import verify_token
from marketplace.utils.exceptions import UnauthorizedError, InvalidTokenError, ForbiddenError
from jose import JWTError


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


async def get_access_service(db: AsyncSession = Depends(get_db)) -> AccessService:
    return AccessService(db)


async def get_property_service(db: AsyncSession = Depends(get_db)) -> PropertyService:
    return PropertyService(db)


async def get_listing_service(db: AsyncSession = Depends(get_db)) -> ListingService:
    return ListingService(db)


async def get_media_service(db: AsyncSession = Depends(get_db)) -> MediaService:
    return MediaService(db)


async def get_transaction_service(db: AsyncSession = Depends(get_db)) -> TransactionService:
    return TransactionService(db)


async def get_payment_service(db: AsyncSession = Depends(get_db)) -> PaymentService:
    return PaymentService(db)


async def get_subscription_service(db: AsyncSession = Depends(get_db)) -> SubscriptionService:
    return SubscriptionService(db)


async def get_notification_service(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


async def get_inquiry_service(db: AsyncSession = Depends(get_db)) -> InquiryService:
    return InquiryService(db)


async def get_recommendation_service(db: AsyncSession = Depends(get_db)) -> RecommendationService:
    return RecommendationService(db)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> uuid.UUID:
    """
    Resolve the acting user id from the bearer token without a database lookup.

    Raises:
        UnauthorizedError: If no token is provided
        InvalidTokenError: If the token is invalid or expired
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")

    try:
        return verify_token(credentials.credentials).user_uuid
    except JWTError:
        raise InvalidTokenError()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from JWT token.

    Raises:
        UnauthorizedError: If no token provided, or the user is missing or inactive
        InvalidTokenError: If the token is invalid
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")

    return await auth_service.get_current_user(credentials.credentials)


async def get_current_admin_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Raises:
        ForbiddenError: If user is not an admin
    """
    if current_user.role != UserRole.ADMIN:
        raise ForbiddenError("Admin access required")

    return current_user
