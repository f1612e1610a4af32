"""
Repository layer for data access operations.
Provides soft-delete aware database operations with proper error handling.
"""

from marketplace.repositories.base import BaseRepository
from marketplace.repositories.user import UserRepository, RoleRepository, PermissionRepository
from marketplace.repositories.property import PropertyRepository
from marketplace.repositories.listing import ListingRepository
from marketplace.repositories.media import PropertyMediaRepository
from marketplace.repositories.transaction import TransactionRepository
from marketplace.repositories.payment import PaymentRepository
from marketplace.repositories.subscription import SubscriptionPlanRepository, UserSubscriptionRepository
from marketplace.repositories.notification import NotificationRepository
from marketplace.repositories.inquiry import InquiryRepository
from marketplace.repositories.recommendation import RecommendationRepository, UserBehaviorRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "RoleRepository",
    "PermissionRepository",
    "PropertyRepository",
    "ListingRepository",
    "PropertyMediaRepository",
    "TransactionRepository",
    "PaymentRepository",
    "SubscriptionPlanRepository",
    "UserSubscriptionRepository",
    "NotificationRepository",
    "InquiryRepository",
    "RecommendationRepository",
    "UserBehaviorRepository",
]
