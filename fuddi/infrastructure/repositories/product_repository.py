"""
Product repository implementation using SQLAlchemy
"""
import uuid
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ...domain.entities import Product
from ...domain.repositories import IProductRepository
from ..database.models import ProductModel


class SQLAlchemyProductRepository(IProductRepository):
    """SQLAlchemy implementation of product repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, product: Product) -> Product:
        """Create a new product"""
        product_model = ProductModel(
            id=product.id or str(uuid.uuid4()),
            business_id=product.business_id,
            name=product.name,
            description=product.description,
            category=product.category,
            price=product.price,
            image=product.image,
            is_available=product.is_available,
            variants=[v.model_dump() for v in product.variants],
            ingredients=[i.model_dump() for i in product.ingredients],
        )
        self.session.add(product_model)
        await self.session.commit()
        return self._model_to_entity(product_model)

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        """Get product by ID"""
        product_model = await self.session.get(ProductModel, product_id)
        if product_model:
            return self._model_to_entity(product_model)
        return None

    async def list_by_business(self, business_id: str, only_available: bool = False) -> List[Product]:
        """Products of a business ordered by category and name"""
        stmt = select(ProductModel).where(ProductModel.business_id == business_id)
        if only_available:
            stmt = stmt.where(ProductModel.is_available == True)  # noqa: E712
        stmt = stmt.order_by(ProductModel.category, ProductModel.name)

        result = await self.session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    @staticmethod
    def _model_to_entity(model: ProductModel) -> Product:
        """Convert SQLAlchemy model to domain entity"""
        return Product(
            id=model.id,
            business_id=model.business_id,
            name=model.name,
            description=model.description or "",
            category=model.category or "",
            price=model.price,
            image=model.image,
            is_available=bool(model.is_available),
            variants=model.variants or [],
            ingredients=model.ingredients or [],
        )
