"""
Health check endpoints
"""
from fastapi import APIRouter
from sqlalchemy import text

from ...domain.entities import utcnow
from ...infrastructure.database.sqlite_db import Database

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "service": "Fuddi Dashboard API"
    }


@router.get("/ping")
async def ping():
    """Simple ping endpoint"""
    return {"message": "pong"}


@router.get("/test-db")
async def test_database():
    """Test database connection"""
    results = {"sqlite": "disconnected"}

    if Database.is_connected():
        session_gen = Database.get_session()
        session = await anext(session_gen)
        try:
            await session.execute(text("SELECT 1"))
            results["sqlite"] = "connected"
        except Exception as e:
            results["sqlite"] = f"error: {str(e)}"
        finally:
            await session.close()

    return results
