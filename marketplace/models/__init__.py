"""
Database models for the real estate marketplace.
Importing this package registers every table and lifecycle hook.
"""

from marketplace.models.lifecycle import StatusTransitionError
from marketplace.models.user import User, UserRole, Role, Permission, PermissionCategory, RolePermission
from marketplace.models.profile import Buyer, Developer, HomeOwner, Realtor, ContactMethod
from marketplace.models.property import Property, PropertyType
from marketplace.models.listing import Listing, ListingStatus
from marketplace.models.inquiry import Inquiry, InquiryType, InquiryStatus, ContactPreference
from marketplace.models.media import PropertyMedia, MediaType
from marketplace.models.subscription import (
    SubscriptionPlan, UserSubscription, PlanType, BillingCycle, SubscriptionStatus
)
from marketplace.models.transaction import Transaction, TransactionType, TransactionStatus
from marketplace.models.payment import Payment, PaymentStatus, PaymentMethod, GatewayProvider
from marketplace.models.notification import Notification, NotificationType, NotificationStatus
from marketplace.models.behavior import UserBehavior, BehaviorType
from marketplace.models.recommendation import Recommendation, RecommendationType, RecommendationStatus

__all__ = [
    "StatusTransitionError",
    "User", "UserRole", "Role", "Permission", "PermissionCategory", "RolePermission",
    "Buyer", "Developer", "HomeOwner", "Realtor", "ContactMethod",
    "Property", "PropertyType",
    "Listing", "ListingStatus",
    "Inquiry", "InquiryType", "InquiryStatus", "ContactPreference",
    "PropertyMedia", "MediaType",
    "SubscriptionPlan", "UserSubscription", "PlanType", "BillingCycle", "SubscriptionStatus",
    "Transaction", "TransactionType", "TransactionStatus",
    "Payment", "PaymentStatus", "PaymentMethod", "GatewayProvider",
    "Notification", "NotificationType", "NotificationStatus",
    "UserBehavior", "BehaviorType",
    "Recommendation", "RecommendationType", "RecommendationStatus",
]
