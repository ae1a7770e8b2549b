"""
Business repository implementation using SQLAlchemy
"""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from ...domain.entities import Business
from ...domain.repositories import IBusinessRepository
from ..database.models import BusinessModel


class SQLAlchemyBusinessRepository(IBusinessRepository):
    """SQLAlchemy implementation of business repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, business_id: str) -> Optional[Business]:
        business_model = await self.session.get(BusinessModel, business_id)
        if business_model:
            return self._model_to_entity(business_model)
        return None

    async def create(self, business: Business) -> Business:
        business_model = BusinessModel(
            id=business.id,
            name=business.name,
            username=business.username,
            phone=business.phone,
            address=business.address,
            map_location=business.map_location.model_dump() if business.map_location else None,
            schedule=business.schedule,
            pickup_enabled=business.pickup_enabled,
            is_active=business.is_active,
        )
        self.session.add(business_model)
        await self.session.commit()
        return self._model_to_entity(business_model)

    @staticmethod
    def _model_to_entity(model: BusinessModel) -> Business:
        return Business(
            id=model.id,
            name=model.name,
            username=model.username,
            phone=model.phone or "",
            address=model.address or "",
            map_location=model.map_location,
            schedule=model.schedule or {},
            pickup_enabled=bool(model.pickup_enabled),
            is_active=bool(model.is_active),
        )
