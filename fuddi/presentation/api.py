"""
FastAPI application setup and configuration
Fuddi dashboard backend - manual order workflow
"""
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from ..config import settings
from ..infrastructure.database.sqlite_db import Database
from .routes import (
    businesses, clients, coverage_zones, drafts, health, images, locations, orders, products,
)

logger = logging.getLogger(__name__)


class ProxyHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to handle proxy headers for correct URL generation"""
    async def dispatch(self, request: Request, call_next):
        forwarded_proto = request.headers.get("x-forwarded-proto")
        forwarded_host = request.headers.get("x-forwarded-host")

        if forwarded_proto:
            request.scope["scheme"] = forwarded_proto
        if forwarded_host:
            request.scope["server"] = (forwarded_host, 443 if forwarded_proto == "https" else 80)

        return await call_next(request)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("🚀 Starting Fuddi Dashboard API...")

    # The order workflow cannot run without its database
    await Database.connect()
    Path(settings.uploads_dir).mkdir(parents=True, exist_ok=True)

    logger.info("✅ API startup complete")

    yield

    logger.info("🛑 Shutting down Fuddi Dashboard API...")
    try:
        await Database.disconnect()
    except Exception as e:
        logger.warning(f"⚠️  Database disconnect error: {e}")
    logger.info("✅ All services stopped gracefully")


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title="Fuddi Dashboard API",
        description="Pedidos manuales para el panel de negocios",
        version="1.0.0",
        lifespan=lifespan,
    )

    allowed_origins = settings.cors_origins_list

    # In development, allow all origins
    if settings.app_env == "development":
        allowed_origins = ["*"]

    # Last added = first executed
    app.add_middleware(ProxyHeadersMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=3600,
    )

    # Include routers
    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(businesses.router, prefix="/api/businesses", tags=["Businesses"])
    app.include_router(clients.router, prefix="/api/clients", tags=["Clients"])
    app.include_router(locations.router, prefix="/api/locations", tags=["Locations"])
    app.include_router(products.router, prefix="/api/products", tags=["Products"])
    app.include_router(drafts.router, prefix="/api/drafts", tags=["Drafts"])
    app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])
    app.include_router(coverage_zones.router, prefix="/api/coverage-zones", tags=["Coverage Zones"])
    app.include_router(images.router, prefix="/api/images", tags=["Images"])

    app.mount(
        settings.uploads_base_url,
        StaticFiles(directory=settings.uploads_dir, check_dir=False),
        name="uploads",
    )

    @app.get("/")
    async def root():
        return {
            "message": "Fuddi Dashboard API",
            "version": "1.0.0",
            "status": "healthy"
        }

    return app
