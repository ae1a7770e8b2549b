"""
Client location repository implementation using SQLAlchemy

Favorite handling runs inside one transaction: clearing the previous
favorite and setting the new one either both happen or neither does.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from ...domain.entities import ClientLocation
from ...domain.exceptions import NotFound
from ...domain.repositories import ILocationRepository
from ..database.models import ClientLocationModel

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "coordinates", "reference", "delivery_fee", "sector", "photo_url", "out_of_zone",
)


class SQLAlchemyLocationRepository(ILocationRepository):
    """SQLAlchemy implementation of client location repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, location: ClientLocation) -> ClientLocation:
        """Create a location; a favorite clears the other favorites in the same commit"""
        location_model = ClientLocationModel(
            id=location.id or str(uuid.uuid4()),
            client_id=location.client_id,
            coordinates=location.coordinates,
            reference=location.reference,
            delivery_fee=location.delivery_fee,
            sector=location.sector,
            is_favorite=location.is_favorite,
            photo_url=location.photo_url,
            out_of_zone=location.out_of_zone,
        )
        try:
            if location.is_favorite:
                await self._clear_favorites(location.client_id)
            self.session.add(location_model)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return self._model_to_entity(location_model)

    async def get_by_id(self, location_id: str) -> Optional[ClientLocation]:
        """Get location by ID"""
        location_model = await self.session.get(ClientLocationModel, location_id)
        if location_model:
            return self._model_to_entity(location_model)
        return None

    async def list_by_client(self, client_id: str) -> List[ClientLocation]:
        """All locations of a client, oldest first"""
        stmt = select(ClientLocationModel).where(
            ClientLocationModel.client_id == client_id
        ).order_by(ClientLocationModel.created_at)
        result = await self.session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def update(self, location_id: str, patch: Dict[str, Any]) -> ClientLocation:
        """Patch an existing location (favorite flag goes through set_favorite)"""
        location_model = await self.session.get(ClientLocationModel, location_id)
        if not location_model:
            raise NotFound("Location", location_id)

        for field, value in patch.items():
            if field in UPDATABLE_FIELDS:
                setattr(location_model, field, value)

        await self.session.commit()
        return self._model_to_entity(location_model)

    async def delete(self, location_id: str) -> bool:
        """Delete a location"""
        location_model = await self.session.get(ClientLocationModel, location_id)
        if not location_model:
            return False
        await self.session.delete(location_model)
        await self.session.commit()
        return True

    async def set_favorite(self, client_id: str, location_id: str, favorite: bool = True) -> List[ClientLocation]:
        """Swap the client's favorite atomically and return the client's locations"""
        location_model = await self.session.get(ClientLocationModel, location_id)
        if not location_model or location_model.client_id != client_id:
            raise NotFound("Location", location_id)

        try:
            if favorite:
                await self._clear_favorites(client_id, keep=location_id)
            location_model.is_favorite = favorite
            await self.session.commit()
        except Exception as e:
            logger.error(f"❌ Favorite swap rolled back for client {client_id}: {e}")
            await self.session.rollback()
            raise

        return await self.list_by_client(client_id)

    async def _clear_favorites(self, client_id: str, keep: Optional[str] = None) -> None:
        stmt = update(ClientLocationModel).where(
            ClientLocationModel.client_id == client_id,
            ClientLocationModel.is_favorite == True,  # noqa: E712
        )
        if keep:
            stmt = stmt.where(ClientLocationModel.id != keep)
        await self.session.execute(stmt.values(is_favorite=False).execution_options(synchronize_session="fetch"))

    @staticmethod
    def _model_to_entity(model: ClientLocationModel) -> ClientLocation:
        """Convert SQLAlchemy model to domain entity"""
        return ClientLocation(
            id=model.id,
            client_id=model.client_id,
            coordinates=model.coordinates or "",
            reference=model.reference,
            delivery_fee=model.delivery_fee or 0.0,
            sector=model.sector or "",
            is_favorite=bool(model.is_favorite),
            photo_url=model.photo_url,
            out_of_zone=bool(model.out_of_zone),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
