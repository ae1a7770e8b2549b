"""
Client endpoints - lookup, creation and edits
"""
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional

from ...domain.phone import format_ecuadorian_phone
from ...infrastructure.database.sqlite_db import Database
from ...infrastructure.repositories.client_repository import SQLAlchemyClientRepository
from ...infrastructure.repositories.location_repository import SQLAlchemyLocationRepository
from ...infrastructure.services.client_resolver import ClientResolver
from ..errors import to_http_exception

router = APIRouter()


class CreateClientRequest(BaseModel):
    phone: str
    name: str
    email: Optional[str] = None


class UpdateClientRequest(BaseModel):
    phone: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


@router.get("/search")
async def search_clients(q: str = ""):
    """Resolve a client by phone or name"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        resolver = ClientResolver(SQLAlchemyClientRepository(session))
        result = await resolver.resolve(q)
        return {
            "matches": [
                {**client.model_dump(mode="json"), "phone_display": format_ecuadorian_phone(client.phone)}
                for client in result.matches
            ],
            "exact": result.exact,
            "count": len(result.matches),
        }
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.post("/", status_code=201)
async def create_client(request: CreateClientRequest):
    """Register a new client"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        resolver = ClientResolver(SQLAlchemyClientRepository(session))
        return await resolver.create_client(request.phone, request.name, request.email)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.get("/{client_id}")
async def get_client(client_id: str):
    """Get client by ID"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        client = await SQLAlchemyClientRepository(session).get_by_id(client_id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        return client
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.patch("/{client_id}")
async def update_client(client_id: str, request: UpdateClientRequest):
    """Update client name, phone or email"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        resolver = ClientResolver(SQLAlchemyClientRepository(session))
        return await resolver.update_client(client_id, request.model_dump(exclude_unset=True))
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.get("/{client_id}/locations")
async def list_client_locations(client_id: str):
    """Saved delivery locations of a client"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        locations = await SQLAlchemyLocationRepository(session).list_by_client(client_id)
        return {"locations": locations, "count": len(locations)}
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()
