"""
Client location endpoints
Location forms are multipart so a photo can travel with the fields
"""
from fastapi import APIRouter, HTTPException, UploadFile, File, Form
from pydantic import BaseModel
from typing import List, Optional

from ...domain.entities import ClientLocation
from ...domain.geo import maps_link, parse_location_input
from ...infrastructure.cache.memory_store import get_draft_store
from ...infrastructure.database.sqlite_db import Database
from ...infrastructure.repositories.coverage_zone_repository import SQLAlchemyCoverageZoneRepository
from ...infrastructure.repositories.location_repository import SQLAlchemyLocationRepository
from ...infrastructure.services.delivery_fee import DeliveryFeeService
from ...infrastructure.services.image_storage import LocalImageStorage
from ...infrastructure.services.location_manager import LocationManager
from ..errors import to_http_exception

router = APIRouter()


class FavoriteRequest(BaseModel):
    client_id: str
    favorite: bool = True


def build_manager(session) -> LocationManager:
    return LocationManager(
        SQLAlchemyLocationRepository(session),
        DeliveryFeeService(SQLAlchemyCoverageZoneRepository(session)),
        LocalImageStorage(),
    )


def refresh_drafts(client_id: str, locations: List[ClientLocation]) -> None:
    """Drafts working with this client see the new location list"""
    for draft in get_draft_store().all():
        if draft.client_id == client_id:
            draft.refresh_locations(locations)


async def read_photo(photo: Optional[UploadFile]) -> Optional[bytes]:
    if photo is None or not photo.filename:
        return None
    return await photo.read()


@router.get("/parse")
async def parse_location(raw: str):
    """Preview how raw input would be stored"""
    try:
        parsed = parse_location_input(raw)
        return {
            "kind": parsed.kind,
            "value": parsed.value,
            "plus_code": parsed.plus_code,
            "locality": parsed.locality,
            "maps_link": maps_link(parsed.value),
        }
    except Exception as e:
        raise to_http_exception(e)


@router.post("/", status_code=201)
async def create_location(
    client_id: str = Form(...),
    raw: str = Form(""),
    reference: str = Form(...),
    business_id: Optional[str] = Form(None),
    sector: Optional[str] = Form(None),
    delivery_fee: Optional[float] = Form(None),
    is_favorite: bool = Form(False),
    photo: Optional[UploadFile] = File(None),
):
    """Create a client location from coordinates, a Maps link or a Plus Code"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        manager = build_manager(session)
        location = await manager.create_location(
            client_id=client_id,
            raw=raw,
            reference=reference,
            business_id=business_id,
            sector=sector,
            delivery_fee=delivery_fee,
            is_favorite=is_favorite,
            photo=await read_photo(photo),
        )
        refresh_drafts(client_id, await manager.list_locations(client_id))
        return location
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.patch("/{location_id}")
async def update_location(
    location_id: str,
    raw: Optional[str] = Form(None),
    reference: Optional[str] = Form(None),
    business_id: Optional[str] = Form(None),
    sector: Optional[str] = Form(None),
    delivery_fee: Optional[float] = Form(None),
    photo: Optional[UploadFile] = File(None),
):
    """Edit a location; new raw input is re-parsed and re-priced"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        manager = build_manager(session)
        location = await manager.update_location(
            location_id,
            raw=raw,
            reference=reference,
            business_id=business_id,
            sector=sector,
            delivery_fee=delivery_fee,
            photo=await read_photo(photo),
        )
        refresh_drafts(location.client_id, await manager.list_locations(location.client_id))
        return location
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.delete("/{location_id}")
async def delete_location(location_id: str):
    """Delete a location; drafts that had it selected lose the selection"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        manager = build_manager(session)
        deleted = await manager.delete_location(location_id, drafts=get_draft_store().all())
        if not deleted:
            raise HTTPException(status_code=404, detail="Location not found")
        return {"message": "Location deleted successfully", "location_id": location_id}
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.post("/{location_id}/favorite")
async def set_favorite(location_id: str, request: FavoriteRequest):
    """Make a location the client's only favorite"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        manager = build_manager(session)
        locations = await manager.set_favorite(request.client_id, location_id, request.favorite)
        refresh_drafts(request.client_id, locations)
        return {"locations": locations, "count": len(locations)}
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()
