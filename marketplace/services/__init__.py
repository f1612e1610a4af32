"""
Service layer for business logic implementation.
Services translate model-layer rule failures into API errors.
"""

from .auth import AuthService
from .access import AccessService
from .property import PropertyService
from .listing import ListingService
from .media import MediaService
from .transaction import TransactionService
from .payment import PaymentService
from .subscription import SubscriptionService
from .notification import NotificationService
from .inquiry import InquiryService
from .recommendation import RecommendationService
from .error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "AccessService",
    "PropertyService",
    "ListingService",
    "MediaService",
    "TransactionService",
    "PaymentService",
    "SubscriptionService",
    "NotificationService",
    "InquiryService",
    "RecommendationService",
    "ErrorHandlerService"
]
