"""
Business profile endpoints
"""
from fastapi import APIRouter, HTTPException

from ...domain.entities import Business
from ...infrastructure.database.sqlite_db import Database
from ...infrastructure.repositories.business_repository import SQLAlchemyBusinessRepository
from ..errors import to_http_exception

router = APIRouter()


@router.post("/", status_code=201)
async def create_business(business: Business):
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        business_repo = SQLAlchemyBusinessRepository(session)
        if await business_repo.get_by_id(business.id):
            raise HTTPException(status_code=409, detail="Business already exists")
        return await business_repo.create(business)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.get("/{business_id}")
async def get_business(business_id: str):
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        business = await SQLAlchemyBusinessRepository(session).get_by_id(business_id)
        if not business:
            raise HTTPException(status_code=404, detail="Business not found")
        return business
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()
