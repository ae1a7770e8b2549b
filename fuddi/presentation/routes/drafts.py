"""
Order draft endpoints - the manual order workflow
"""
from fastapi import APIRouter, HTTPException, Body
from pydantic import BaseModel, TypeAdapter
from typing import Any, Dict

from ...config import settings
from ...domain.order_draft import AddItem, DraftEvent, DraftStage, OrderDraft
from ...infrastructure.cache.memory_store import get_draft_store, get_lock_manager
from ...infrastructure.database.sqlite_db import Database
from ...infrastructure.repositories.business_repository import SQLAlchemyBusinessRepository
from ...infrastructure.repositories.client_repository import SQLAlchemyClientRepository
from ...infrastructure.repositories.location_repository import SQLAlchemyLocationRepository
from ...infrastructure.repositories.order_repository import SQLAlchemyOrderRepository
from ...infrastructure.repositories.product_repository import SQLAlchemyProductRepository
from ...infrastructure.services.client_resolver import ClientResolver
from ...infrastructure.services.order_composer import OrderComposer, delivery_eta_minutes
from ..errors import to_http_exception

router = APIRouter()

draft_event_adapter = TypeAdapter(DraftEvent)


class CreateDraftRequest(BaseModel):
    business_id: str


class SearchRequest(BaseModel):
    query: str


class SelectClientRequest(BaseModel):
    client_id: str


def get_draft_or_404(draft_id: str) -> OrderDraft:
    draft = get_draft_store().get(draft_id)
    if draft is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return draft


def build_composer(session) -> OrderComposer:
    return OrderComposer(
        SQLAlchemyOrderRepository(session),
        SQLAlchemyBusinessRepository(session),
        get_lock_manager(),
    )


async def draft_response(draft: OrderDraft, session) -> Dict[str, Any]:
    """Draft state plus derived stage, issues and courier ETA"""
    summary = draft.summary()
    business = await SQLAlchemyBusinessRepository(session).get_by_id(draft.business_id)
    summary["eta_minutes"] = delivery_eta_minutes(draft, business)
    return summary


@router.post("/", status_code=201)
async def create_draft(request: CreateDraftRequest):
    """Open an empty draft for a business"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        await build_composer(session).load_business(request.business_id)
        draft = get_draft_store().create(request.business_id)
        return await draft_response(draft, session)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.get("/")
async def list_drafts(business_id: str):
    """Open drafts of a business"""
    drafts = get_draft_store().list_for_business(business_id)
    return {
        "drafts": [
            {"id": d.id, "customer_name": d.customer_name, "stage": d.stage.value, "total": d.total}
            for d in drafts
        ],
        "count": len(drafts),
    }


@router.get("/{draft_id}")
async def get_draft(draft_id: str):
    draft = get_draft_or_404(draft_id)
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        return await draft_response(draft, session)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.delete("/{draft_id}")
async def discard_draft(draft_id: str):
    if not get_draft_store().delete(draft_id):
        raise HTTPException(status_code=404, detail="Draft not found")
    return {"message": "Draft discarded", "draft_id": draft_id}


@router.post("/{draft_id}/events")
async def apply_event(draft_id: str, payload: Dict[str, Any] = Body(...)):
    """Apply one tagged event (set_customer, add_item, set_payment_method, ...)"""
    draft = get_draft_or_404(draft_id)
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        event = draft_event_adapter.validate_python(payload)

        catalog = {}
        if isinstance(event, AddItem):
            product = await SQLAlchemyProductRepository(session).get_by_id(event.product_id)
            if product and product.business_id == draft.business_id:
                catalog[product.id] = product

        draft.apply(event, catalog)
        get_draft_store().save(draft)
        return await draft_response(draft, session)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.post("/{draft_id}/search")
async def search_customer(draft_id: str, request: SearchRequest):
    """Debounced customer search; a superseded search answers with stale=true"""
    draft = get_draft_or_404(draft_id)
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        resolver = ClientResolver(SQLAlchemyClientRepository(session), SQLAlchemyLocationRepository(session))
        outcome = await resolver.search_for_draft(draft, request.query, settings.search_debounce_seconds)
        if outcome is None:
            return {"stale": True}

        get_draft_store().save(draft)
        return {
            "stale": False,
            "search": outcome,
            "draft": await draft_response(draft, session),
        }
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.post("/{draft_id}/client")
async def select_client(draft_id: str, request: SelectClientRequest):
    """Pick one client out of several matches"""
    draft = get_draft_or_404(draft_id)
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        client = await SQLAlchemyClientRepository(session).get_by_id(request.client_id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")

        resolver = ClientResolver(SQLAlchemyClientRepository(session), SQLAlchemyLocationRepository(session))
        await resolver.select_client(draft, client)
        get_draft_store().save(draft)
        return await draft_response(draft, session)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.post("/{draft_id}/submit")
async def submit_draft(draft_id: str):
    """Persist the draft as an order; on success the draft starts over empty"""
    draft = get_draft_or_404(draft_id)
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        order = await build_composer(session).submit(draft)
        get_draft_store().save(draft)
        return {
            "stage": DraftStage.SUBMITTED.value,
            "order": order,
            "draft": await draft_response(draft, session),
        }
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.post("/{draft_id}/reset")
async def reset_draft(draft_id: str):
    draft = get_draft_or_404(draft_id)
    draft.reset()
    get_draft_store().save(draft)
    return draft.summary()


@router.post("/from-order/{order_id}", status_code=201)
async def edit_order(order_id: str):
    """Open a draft pre-filled from an existing order"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        order = await SQLAlchemyOrderRepository(session).get_by_id(order_id)
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")

        draft = OrderComposer.draft_from_order(order)
        if draft.client_id:
            draft.refresh_locations(await SQLAlchemyLocationRepository(session).list_by_client(draft.client_id))
        get_draft_store().save(draft)
        return await draft_response(draft, session)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()
