"""Product catalog CRUD over the async session."""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.exceptions import NotFoundError, StoreError
from storefront.logging import get_logger
from storefront.products.models import Product
from storefront.products.schemas import ProductCreate, ProductUpdate

logger = get_logger(__name__)


class ProductService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, data: ProductCreate) -> Product:
        product = Product(name=data.name, price=data.price)
        self.session.add(product)
        await self._commit("create")
        await self.session.refresh(product)
        logger.info("product.created", product_id=product.id)
        return product

    async def list_products(self) -> list[Product]:
        try:
            result = await self.session.execute(
                select(Product).order_by(Product.created_at.desc(), Product.id.desc())
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list products: {e}") from e
        return list(result.scalars().all())

    async def get(self, product_id: int) -> Product:
        try:
            product = await self.session.get(Product, product_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load product: {e}") from e
        if product is None:
            raise NotFoundError("Product not found")
        return product

    async def update(self, product_id: int, data: ProductUpdate) -> Product:
        product = await self.get(product_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in changes.items():
            setattr(product, field, value)
        await self._commit("update")
        await self.session.refresh(product)
        logger.info("product.updated", product_id=product_id, fields=sorted(changes))
        return product

    async def delete(self, product_id: int) -> Product:
        """Delete a product and return the row as it was."""
        product = await self.get(product_id)
        await self.session.delete(product)
        await self._commit("delete")
        logger.info("product.deleted", product_id=product_id)
        return product

    async def _commit(self, operation: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError(f"Failed to {operation} product: {e}") from e
