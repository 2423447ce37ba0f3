"""
Authentication router for FastAPI.

Provides register, login and profile endpoints.
"""

from fastapi import APIRouter, Depends, status

from storefront.api.responses import ApiResponse, ErrorResponse
from storefront.auth.dependencies import get_current_user, get_user_service
from storefront.users.schemas import (
    LoginRequest,
    LoginResult,
    RegisterRequest,
    TokenClaims,
    UserResponse,
)
from storefront.users.service import UserService

auth_router = APIRouter(prefix="/auth", tags=["Authentication"])


@auth_router.post(
    "/register",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Validation failed"},
        409: {"model": ErrorResponse, "description": "Username or email already exists"},
    },
)
async def register(
    payload: RegisterRequest,
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserResponse]:
    """Register a new account."""
    user = await service.register(payload)
    return ApiResponse(
        message="User registered successfully",
        data=UserResponse.model_validate(user),
    )


@auth_router.post(
    "/login",
    response_model=ApiResponse[LoginResult],
    responses={401: {"model": ErrorResponse, "description": "Invalid username or password"}},
)
async def login(
    payload: LoginRequest,
    service: UserService = Depends(get_user_service),
) -> ApiResponse[LoginResult]:
    """Exchange username and password for an access token."""
    user, token = await service.login(payload.username, payload.password)
    return ApiResponse(
        message="Login successful",
        data=LoginResult(token=token, user=UserResponse.model_validate(user)),
    )


@auth_router.get(
    "/profile",
    response_model=ApiResponse[UserResponse],
    responses={
        401: {"model": ErrorResponse, "description": "Missing, invalid or expired token"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def profile(
    current_user: TokenClaims = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserResponse]:
    """Return the authenticated account."""
    user = await service.get_user(current_user.user_id)
    return ApiResponse(
        message="Profile retrieved successfully",
        data=UserResponse.model_validate(user),
    )
