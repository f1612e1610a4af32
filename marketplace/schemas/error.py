"""
Error response schemas for API documentation.
Mirrors the body produced by ErrorHandlerService.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Any, Dict


class ErrorDetail(BaseModel):
    """Schema for individual error detail."""

    field: Optional[str] = Field(None, description="Field name that caused the error", example="listing_price")
    message: str = Field(..., description="Human-readable error message", example="Listing price cannot be negative")
    type: Optional[str] = Field(None, description="Error type identifier", example="value_error")
    input: Optional[Any] = Field(None, description="Input value that caused the error", example=-1)


class ErrorResponse(BaseModel):
    """Schema for standardized error responses."""

    code: str = Field(..., description="Error code identifier", example="VALIDATION_ERROR")
    message: str = Field(..., description="Human-readable error message", example="Request validation failed")
    timestamp: str = Field(..., description="Error timestamp in ISO format", example="2026-01-01T00:00:00Z")
    request_id: Optional[str] = Field(None, description="Unique request identifier for tracking", example="abc12345")
    details: Optional[List[ErrorDetail]] = Field(None, description="Detailed error information")


class APIErrorResponse(BaseModel):
    """Schema for API error response wrapper."""

    error: ErrorResponse = Field(..., description="Error information")


def _example(code: str, message: str) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "timestamp": "2026-01-01T00:00:00Z",
            "request_id": "abc12345"
        }
    }


def _response(description: str, examples: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "description": description,
        "model": APIErrorResponse,
        "content": {
            "application/json": {
                "examples": {
                    name: {"summary": name.replace("_", " ").capitalize(), "value": value}
                    for name, value in examples.items()
                }
            }
        }
    }


# Common error response examples for documentation
COMMON_ERROR_RESPONSES = {
    400: _response("Bad Request - A business rule was violated", {
        "business_rule_violation": _example(
            "BAD_REQUEST", "Business rule violation: only captured or settled payments can be refunded"
        ),
        "resource_limit": _example("BAD_REQUEST", "Listings limit exceeded (maximum: 5)"),
    }),
    401: _response("Unauthorized - Authentication required", {
        "missing_token": _example("UNAUTHORIZED", "Authentication token required"),
        "invalid_token": _example("UNAUTHORIZED", "Invalid token"),
    }),
    403: _response("Forbidden - Not allowed for this user", {
        "forbidden": _example("FORBIDDEN", "You don't have permission to manage this listing"),
    }),
    404: _response("Not Found - Resource does not exist", {
        "not_found": _example("NOT_FOUND", "Listing with ID 00000000-0000-0000-0000-000000000000 not found"),
    }),
    409: _response("Conflict - State or uniqueness conflict", {
        "invalid_transition": _example("INVALID_STATUS_TRANSITION", "Cannot move listing from SOLD to ACTIVE"),
        "duplicate": _example("CONFLICT", "Resource already exists"),
    }),
    422: _response("Unprocessable Entity - Validation failed", {
        "validation_error": _example("VALIDATION_ERROR", "Only one main image is allowed per property"),
    }),
    500: _response("Internal Server Error", {
        "internal_error": _example("INTERNAL_SERVER_ERROR", "An unexpected error occurred. Please try again later."),
    }),
}


def get_error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """
    Get error response schemas for specific status codes.

    Args:
        status_codes: HTTP status codes to include

    Returns:
        Dictionary of error response schemas
    """
    return {
        code: COMMON_ERROR_RESPONSES[code]
        for code in status_codes
        if code in COMMON_ERROR_RESPONSES
    }


def get_auth_error_responses() -> Dict[int, Dict[str, Any]]:
    return get_error_responses(401, 403)


def get_crud_error_responses() -> Dict[int, Dict[str, Any]]:
    """Get error response schemas for CRUD operations."""
    return get_error_responses(400, 401, 403, 404, 409, 422)
