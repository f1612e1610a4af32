"""
Utility modules for the marketplace API.
"""

from .auth import (
    create_access_token,
    verify_token,
    TokenPayload
)

from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    UnauthorizedError,
    ForbiddenError,
    ConflictError,
    BadRequestError,
    InvalidTokenError,
    InvalidStatusTransitionError,
    BusinessRuleViolationError,
    ResourceLimitExceededError
)

from .validators import ValidationUtils

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    # Auth utilities
    "create_access_token",
    "verify_token",
    "TokenPayload",

    # Exceptions
    "APIException",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "ConflictError",
    "BadRequestError",
    "InvalidTokenError",
    "InvalidStatusTransitionError",
    "BusinessRuleViolationError",
    "ResourceLimitExceededError",

    "ValidationUtils",
]
