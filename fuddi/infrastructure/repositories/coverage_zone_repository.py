"""
Coverage zone repository implementation using SQLAlchemy
"""
import uuid
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ...domain.entities import CoverageZone
from ...domain.exceptions import NotFound
from ...domain.repositories import ICoverageZoneRepository
from ..database.models import CoverageZoneModel

UPDATABLE_FIELDS = ("name", "polygon", "delivery_fee", "is_active")


class SQLAlchemyCoverageZoneRepository(ICoverageZoneRepository):
    """SQLAlchemy implementation of coverage zone repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_zones(self, business_id: Optional[str] = None) -> List[CoverageZone]:
        """Zones of one business, or the global zones when business_id is None"""
        if business_id:
            stmt = select(CoverageZoneModel).where(CoverageZoneModel.business_id == business_id)
        else:
            stmt = select(CoverageZoneModel).where(CoverageZoneModel.business_id.is_(None))
        stmt = stmt.order_by(CoverageZoneModel.name)

        result = await self.session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def create(self, zone: CoverageZone) -> CoverageZone:
        zone_model = CoverageZoneModel(
            id=zone.id or str(uuid.uuid4()),
            business_id=zone.business_id,
            name=zone.name,
            polygon=[point.model_dump() for point in zone.polygon],
            delivery_fee=zone.delivery_fee,
            is_active=zone.is_active,
        )
        self.session.add(zone_model)
        await self.session.commit()
        return self._model_to_entity(zone_model)

    async def update(self, zone_id: str, patch: Dict[str, Any]) -> CoverageZone:
        zone_model = await self.session.get(CoverageZoneModel, zone_id)
        if not zone_model:
            raise NotFound("CoverageZone", zone_id)

        for field, value in patch.items():
            if field in UPDATABLE_FIELDS:
                setattr(zone_model, field, value)

        await self.session.commit()
        return self._model_to_entity(zone_model)

    async def delete(self, zone_id: str) -> bool:
        zone_model = await self.session.get(CoverageZoneModel, zone_id)
        if not zone_model:
            return False
        await self.session.delete(zone_model)
        await self.session.commit()
        return True

    @staticmethod
    def _model_to_entity(model: CoverageZoneModel) -> CoverageZone:
        return CoverageZone(
            id=model.id,
            business_id=model.business_id,
            name=model.name,
            polygon=model.polygon or [],
            delivery_fee=model.delivery_fee,
            is_active=bool(model.is_active),
        )
