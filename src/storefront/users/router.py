"""Account listing endpoint."""

from fastapi import APIRouter, Depends

from storefront.api.responses import ApiResponse, ErrorResponse
from storefront.auth.dependencies import get_current_user, get_user_service
from storefront.users.schemas import TokenClaims, UserResponse
from storefront.users.service import UserService

users_router = APIRouter(prefix="/users", tags=["Users"])


@users_router.get(
    "",
    response_model=ApiResponse[list[UserResponse]],
    responses={401: {"model": ErrorResponse, "description": "Authentication required"}},
)
async def list_users(
    _: TokenClaims = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[list[UserResponse]]:
    """List all accounts, newest first."""
    users = await service.list_users()
    return ApiResponse(
        message="Users retrieved successfully",
        data=[UserResponse.model_validate(user) for user in users],
    )
