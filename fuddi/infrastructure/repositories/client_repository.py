"""
Client repository implementation using SQLAlchemy
"""
import uuid
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from ...domain.entities import Client
from ...domain.exceptions import NotFound
from ...domain.repositories import IClientRepository
from ..database.models import ClientModel

UPDATABLE_FIELDS = ("phone", "name", "email")


class SQLAlchemyClientRepository(IClientRepository):
    """SQLAlchemy implementation of client repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, client: Client) -> Client:
        """Create a new client"""
        client_model = ClientModel(
            id=client.id or str(uuid.uuid4()),
            phone=client.phone,
            name=client.name,
            email=client.email,
            registered_at=client.registered_at,
        )
        self.session.add(client_model)
        await self.session.commit()
        return self._model_to_entity(client_model)

    async def get_by_id(self, client_id: str) -> Optional[Client]:
        """Get client by ID"""
        client_model = await self.session.get(ClientModel, client_id)
        if client_model:
            return self._model_to_entity(client_model)
        return None

    async def find_by_phone(self, phone: str) -> Optional[Client]:
        """Find client by exact stored phone"""
        stmt = select(ClientModel).where(ClientModel.phone == phone).limit(1)
        result = await self.session.execute(stmt)
        client_model = result.scalar_one_or_none()

        if client_model:
            return self._model_to_entity(client_model)
        return None

    async def search_by_name(self, term: str, limit: int = 50) -> List[Client]:
        """Clients whose name contains the term"""
        stmt = select(ClientModel).where(
            func.lower(ClientModel.name).contains(term.lower(), autoescape=True)
        ).limit(limit)
        result = await self.session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def update(self, client_id: str, patch: Dict[str, Any]) -> Client:
        """Patch an existing client"""
        client_model = await self.session.get(ClientModel, client_id)
        if not client_model:
            raise NotFound("Client", client_id)

        for field, value in patch.items():
            if field in UPDATABLE_FIELDS:
                setattr(client_model, field, value)

        await self.session.commit()
        return self._model_to_entity(client_model)

    @staticmethod
    def _model_to_entity(model: ClientModel) -> Client:
        """Convert SQLAlchemy model to domain entity"""
        return Client(
            id=model.id,
            phone=model.phone,
            name=model.name,
            email=model.email,
            registered_at=model.registered_at,
        )
