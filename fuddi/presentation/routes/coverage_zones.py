"""
Coverage zone endpoints - delivery geofences and their fees
"""
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import List, Optional

from ...domain.entities import CoverageZone, ZonePoint
from ...domain.geo import Coordinates
from ...infrastructure.database.sqlite_db import Database
from ...infrastructure.repositories.coverage_zone_repository import SQLAlchemyCoverageZoneRepository
from ...infrastructure.services.delivery_fee import DeliveryFeeService
from ..errors import to_http_exception

router = APIRouter()


class UpdateZoneRequest(BaseModel):
    name: Optional[str] = None
    polygon: Optional[List[ZonePoint]] = None
    delivery_fee: Optional[float] = None
    is_active: Optional[bool] = None


@router.get("/")
async def list_zones(business_id: Optional[str] = None):
    """Zones of a business, or the global zones"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        zones = await SQLAlchemyCoverageZoneRepository(session).list_zones(business_id)
        return {"zones": zones, "count": len(zones)}
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.get("/fee")
async def lookup_fee(lat: float, lng: float, business_id: Optional[str] = None):
    """Fee the geofence gives a point; 0 when outside every zone"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        service = DeliveryFeeService(SQLAlchemyCoverageZoneRepository(session))
        fee = await service.fee_for(Coordinates(lat, lng), business_id)
        return {"lat": lat, "lng": lng, "delivery_fee": fee, "in_zone": fee > 0}
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.post("/", status_code=201)
async def create_zone(zone: CoverageZone):
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        if len(zone.polygon) < 3:
            raise HTTPException(status_code=422, detail="A zone needs at least 3 points")
        return await SQLAlchemyCoverageZoneRepository(session).create(zone)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.patch("/{zone_id}")
async def update_zone(zone_id: str, request: UpdateZoneRequest):
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        patch = request.model_dump(exclude_none=True)
        if "polygon" in patch and len(patch["polygon"]) < 3:
            raise HTTPException(status_code=422, detail="A zone needs at least 3 points")
        return await SQLAlchemyCoverageZoneRepository(session).update(zone_id, patch)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.delete("/{zone_id}")
async def delete_zone(zone_id: str):
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        if not await SQLAlchemyCoverageZoneRepository(session).delete(zone_id):
            raise HTTPException(status_code=404, detail="Coverage zone not found")
        return {"message": "Coverage zone deleted successfully", "zone_id": zone_id}
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()
