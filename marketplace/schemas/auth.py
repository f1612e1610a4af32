"""
Pydantic schemas for authentication requests and responses.
"""

from pydantic import BaseModel, Field
from marketplace.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Schema for login request."""

    email: str = Field(..., description="User email address", example="ada@example.com")
    password: str = Field(..., min_length=1, description="User password")


class TokenResponse(BaseModel):
    """Schema for issued bearer tokens."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds", example=1800)


class LoginResponse(BaseModel):
    user: UserResponse
    tokens: TokenResponse
