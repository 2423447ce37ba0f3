"""
Product catalog router.

Every route requires a bearer token.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.responses import ApiResponse, ErrorResponse
from storefront.auth.dependencies import get_current_user
from storefront.db import get_session
from storefront.products.schemas import ProductCreate, ProductResponse, ProductUpdate
from storefront.products.service import ProductService

products_router = APIRouter(
    prefix="/products",
    tags=["Products"],
    dependencies=[Depends(get_current_user)],
    responses={401: {"model": ErrorResponse, "description": "Authentication required"}},
)

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Product not found"}}


def get_product_service(session: AsyncSession = Depends(get_session)) -> ProductService:
    return ProductService(session)


@products_router.get("", response_model=ApiResponse[list[ProductResponse]])
async def list_products(
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[list[ProductResponse]]:
    products = await service.list_products()
    return ApiResponse(
        message="Products retrieved successfully",
        data=[ProductResponse.model_validate(p) for p in products],
    )


@products_router.get("/{product_id}", response_model=ApiResponse[ProductResponse], responses=_NOT_FOUND)
async def get_product(
    product_id: int = Path(..., ge=1),
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[ProductResponse]:
    product = await service.get(product_id)
    return ApiResponse(
        message="Product retrieved successfully",
        data=ProductResponse.model_validate(product),
    )


@products_router.post(
    "",
    response_model=ApiResponse[ProductResponse],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Validation failed"}},
)
async def create_product(
    payload: ProductCreate,
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[ProductResponse]:
    product = await service.create(payload)
    return ApiResponse(
        message="Product created successfully",
        data=ProductResponse.model_validate(product),
    )


@products_router.put("/{product_id}", response_model=ApiResponse[ProductResponse], responses=_NOT_FOUND)
async def update_product(
    payload: ProductUpdate,
    product_id: int = Path(..., ge=1),
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[ProductResponse]:
    """Update name and/or price; omitted fields are left unchanged."""
    product = await service.update(product_id, payload)
    return ApiResponse(
        message="Product updated successfully",
        data=ProductResponse.model_validate(product),
    )


@products_router.delete("/{product_id}", response_model=ApiResponse[ProductResponse], responses=_NOT_FOUND)
async def delete_product(
    product_id: int = Path(..., ge=1),
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[ProductResponse]:
    """Delete a product and return it as it was."""
    product = await service.delete(product_id)
    return ApiResponse(
        message="Product deleted successfully",
        data=ProductResponse.model_validate(product),
    )
