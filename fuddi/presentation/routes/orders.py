"""
Order endpoints - listing, status lifecycle and saving edits
"""
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...domain.entities import Order, OrderStatus
from ...domain.geo import maps_link
from ...infrastructure.cache.memory_store import get_draft_store, get_lock_manager
from ...infrastructure.database.sqlite_db import Database
from ...infrastructure.repositories.business_repository import SQLAlchemyBusinessRepository
from ...infrastructure.repositories.order_repository import SQLAlchemyOrderRepository
from ...infrastructure.services.order_composer import OrderComposer
from ...infrastructure.services.order_status import OrderStatusService
from ..errors import to_http_exception

router = APIRouter()


class UpdateStatusRequest(BaseModel):
    status: OrderStatus


class SaveEditRequest(BaseModel):
    draft_id: str


def format_order(order: Order) -> dict:
    data = order.model_dump(mode="json")
    location = order.delivery.location
    data["maps_link"] = maps_link(location.coordinates) if location else None
    return data


@router.get("/")
async def list_orders(business_id: str, limit: int = 50):
    """Newest orders of a business first"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        orders = await SQLAlchemyOrderRepository(session).list_by_business(business_id, limit=limit)
        return {"orders": [format_order(o) for o in orders], "count": len(orders)}
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.get("/{order_id}")
async def get_order(order_id: str):
    """Get order by ID"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        order = await SQLAlchemyOrderRepository(session).get_by_id(order_id)
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        return format_order(order)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.patch("/{order_id}/status")
async def update_order_status(order_id: str, request: UpdateStatusRequest):
    """Move an order along its lifecycle"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        service = OrderStatusService(SQLAlchemyOrderRepository(session))
        order = await service.update_status(order_id, request.status)
        return format_order(order)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.put("/{order_id}")
async def save_order_edit(order_id: str, request: SaveEditRequest):
    """Overwrite an order with the contents of an edit draft"""
    draft = get_draft_store().get(request.draft_id)
    if draft is None:
        raise HTTPException(status_code=404, detail="Draft not found")

    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        composer = OrderComposer(
            SQLAlchemyOrderRepository(session),
            SQLAlchemyBusinessRepository(session),
            get_lock_manager(),
        )
        order = await composer.save_edit(order_id, draft)
        get_draft_store().save(draft)
        return format_order(order)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()
