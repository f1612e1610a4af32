"""
Authentication API endpoints for registration, login and the current user's profiles.
"""

from fastapi import APIRouter, Depends, status, Path
from marketplace.models.user import User
from marketplace.services.auth import AuthService, PROFILE_KINDS
from marketplace.schemas.auth import LoginRequest, LoginResponse, TokenResponse
from marketplace.schemas.user import (
    UserCreate,
    UserResponse,
    BuyerProfileCreate,
    DeveloperProfileCreate,
    HomeOwnerProfileCreate,
    RealtorProfileCreate,
    ProfileResponse
)
from marketplace.schemas.error import get_auth_error_responses, get_crud_error_responses
from marketplace.utils.dependencies import get_auth_service, get_current_user


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    responses=get_crud_error_responses()
)
async def register(
    user_data: UserCreate,
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    user = await auth_service.register(user_data)
    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate user with email and password, returns a JWT access token",
    responses=get_auth_error_responses()
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    """
    Authenticate user and return an access token.

    Raises:
        UnauthorizedError: If credentials are invalid or the account is inactive
    """
    user, access_token, expires_in = await auth_service.login(
        email=login_data.email,
        password=login_data.password
    )

    return LoginResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(access_token=access_token, token_type="bearer", expires_in=expires_in)
    )


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    responses=get_auth_error_responses()
)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)


async def _create_profile(kind: str, payload, current_user: User, auth_service: AuthService) -> ProfileResponse:
    profile = await auth_service.create_profile(current_user, kind, payload.model_dump())
    return ProfileResponse(**auth_service.profile_summary(kind, profile))


@router.post(
    "/me/profiles/buyer",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a buyer profile",
    responses=get_crud_error_responses()
)
async def create_buyer_profile(
    profile_data: BuyerProfileCreate,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> ProfileResponse:
    return await _create_profile("buyer", profile_data, current_user, auth_service)


@router.post(
    "/me/profiles/developer",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a developer profile",
    responses=get_crud_error_responses()
)
async def create_developer_profile(
    profile_data: DeveloperProfileCreate,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> ProfileResponse:
    return await _create_profile("developer", profile_data, current_user, auth_service)


@router.post(
    "/me/profiles/homeowner",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a homeowner profile",
    responses=get_crud_error_responses()
)
async def create_homeowner_profile(
    profile_data: HomeOwnerProfileCreate,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> ProfileResponse:
    return await _create_profile("homeowner", profile_data, current_user, auth_service)


@router.post(
    "/me/profiles/realtor",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a realtor profile",
    responses=get_crud_error_responses()
)
async def create_realtor_profile(
    profile_data: RealtorProfileCreate,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> ProfileResponse:
    return await _create_profile("realtor", profile_data, current_user, auth_service)


@router.get(
    "/me/profiles/{kind}",
    response_model=ProfileResponse,
    summary="Get one of the current user's profiles",
    responses=get_crud_error_responses()
)
async def get_my_profile(
    kind: str = Path(..., description=f"One of: {', '.join(PROFILE_KINDS)}"),
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> ProfileResponse:
    profile = await auth_service.get_profile(current_user.id, kind)
    return ProfileResponse(**auth_service.profile_summary(kind, profile))
