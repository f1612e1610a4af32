"""
Pydantic schemas for request/response validation.
"""

# Authentication schemas
from .auth import (
    LoginRequest,
    TokenResponse,
    LoginResponse
)

# User schemas
from .user import (
    UserCreate,
    UserResponse,
    BuyerProfileCreate,
    DeveloperProfileCreate,
    HomeOwnerProfileCreate,
    RealtorProfileCreate,
    ProfileResponse
)

# Access control schemas
from .access import (
    RoleCreate,
    PermissionCreate,
    PermissionResponse,
    RoleResponse,
    GrantResponse
)

# Property schemas
from .property import (
    PropertyBase,
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    NearbyPropertyResponse
)

# Listing schemas
from .listing import (
    ListingCreate,
    ListingUpdate,
    ListingStatusUpdate,
    ListingResponse
)

# Media schemas
from .media import (
    MediaCreate,
    MediaUpdate,
    MediaReorderItem,
    MediaResponse,
    MediaTypeStats,
    MediaStatsResponse
)

# Transaction and payment schemas
from .transaction import (
    TransactionCreate,
    TransactionStatusUpdate,
    TransactionResponse,
    PaymentCreate,
    PaymentStatusUpdate,
    WebhookEvent,
    RefundRequest,
    PaymentResponse,
    RefundResponse
)

# Subscription schemas
from .subscription import (
    PlanResponse,
    SubscribeRequest,
    SubscriptionStatusUpdate,
    ListingUsageUpdate,
    SubscriptionPaymentRequest,
    SubscriptionResponse
)

# Notification schemas
from .notification import (
    NotificationCreate,
    NotificationReply,
    NotificationResponse
)

# Inquiry schemas
from .inquiry import (
    InquiryCreate,
    InquiryContact,
    InquiryStatusUpdate,
    InquiryResponse
)

# Recommendation schemas
from .recommendation import (
    RecommendationCreate,
    RecommendationResponse,
    BehaviorCreate,
    BehaviorResponse,
    ExpireResult
)

__all__ = [
    "LoginRequest",
    "TokenResponse",
    "LoginResponse",
    "UserCreate",
    "UserResponse",
    "BuyerProfileCreate",
    "DeveloperProfileCreate",
    "HomeOwnerProfileCreate",
    "RealtorProfileCreate",
    "ProfileResponse",
    "RoleCreate",
    "PermissionCreate",
    "PermissionResponse",
    "RoleResponse",
    "GrantResponse",
    "PropertyBase",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyResponse",
    "NearbyPropertyResponse",
    "ListingCreate",
    "ListingUpdate",
    "ListingStatusUpdate",
    "ListingResponse",
    "MediaCreate",
    "MediaUpdate",
    "MediaReorderItem",
    "MediaResponse",
    "MediaTypeStats",
    "MediaStatsResponse",
    "TransactionCreate",
    "TransactionStatusUpdate",
    "TransactionResponse",
    "PaymentCreate",
    "PaymentStatusUpdate",
    "WebhookEvent",
    "RefundRequest",
    "PaymentResponse",
    "RefundResponse",
    "PlanResponse",
    "SubscribeRequest",
    "SubscriptionStatusUpdate",
    "ListingUsageUpdate",
    "SubscriptionPaymentRequest",
    "SubscriptionResponse",
    "NotificationCreate",
    "NotificationReply",
    "NotificationResponse",
    "InquiryCreate",
    "InquiryContact",
    "InquiryStatusUpdate",
    "InquiryResponse",
    "RecommendationCreate",
    "RecommendationResponse",
    "BehaviorCreate",
    "BehaviorResponse",
    "ExpireResult"
]
