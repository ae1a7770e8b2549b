#!/usr/bin/env python3
"""
Seed Local Database Script
Populates SQLite with a demo business for trying the manual order workflow
Includes: Business, Products (with variants and ingredients), Coverage Zones, Clients

Run with: python -m scripts.seed_local (from project root)
"""
import asyncio

from sqlalchemy import delete

from fuddi.config import settings
from fuddi.domain.entities import Business, Client, CoverageZone, Product
from fuddi.infrastructure.database.models import (
    BusinessModel, ClientLocationModel, ClientModel, CoverageZoneModel, OrderModel, ProductModel,
)
from fuddi.infrastructure.database.sqlite_db import Database
from fuddi.infrastructure.repositories.business_repository import SQLAlchemyBusinessRepository
from fuddi.infrastructure.repositories.client_repository import SQLAlchemyClientRepository
from fuddi.infrastructure.repositories.coverage_zone_repository import SQLAlchemyCoverageZoneRepository
from fuddi.infrastructure.repositories.product_repository import SQLAlchemyProductRepository


# =============================================================================
# SAMPLE DATA
# =============================================================================

SAMPLE_BUSINESS = {
    "id": "biz-001",
    "name": "La Esquina del Sabor",
    "username": "laesquina",
    "phone": "0990815097",
    "address": "Av. 9 de Octubre y Malecón, Guayaquil",
    "map_location": {"lat": -2.1894, "lng": -79.8891},
    "schedule": {"mon-sun": "11:00-22:00"},
}

SAMPLE_PRODUCTS = [
    {
        "id": "prod-001",
        "name": "Hamburguesa Clásica",
        "category": "Hamburguesas",
        "price": 5.00,
        "variants": [
            {"id": "var-001", "name": "Simple", "price": 5.00},
            {"id": "var-002", "name": "Doble", "price": 7.50},
        ],
        "ingredients": [
            {"name": "Pan", "unit_cost": 0.30},
            {"name": "Carne", "unit_cost": 1.20},
            {"name": "Queso", "unit_cost": 0.25},
        ],
    },
    {
        "id": "prod-002",
        "name": "Papas Fritas",
        "category": "Acompañantes",
        "price": 2.00,
        "ingredients": [{"name": "Papa", "unit_cost": 0.15, "quantity": 2}],
    },
    {
        "id": "prod-003",
        "name": "Batido de Mora",
        "category": "Bebidas",
        "price": 2.50,
        "ingredients": [{"name": "Mora", "unit_cost": 0.40}, {"name": "Leche", "unit_cost": 0.20}],
    },
    {
        "id": "prod-004",
        "name": "Encebollado",
        "category": "Platos",
        "price": 4.50,
        "is_available": False,
    },
]

SAMPLE_ZONES = [
    {
        "id": "zone-001",
        "business_id": "biz-001",
        "name": "Centro",
        "delivery_fee": 1.00,
        "polygon": [
            {"lat": -2.17, "lng": -79.90},
            {"lat": -2.17, "lng": -79.87},
            {"lat": -2.21, "lng": -79.87},
            {"lat": -2.21, "lng": -79.90},
        ],
    },
    {
        "id": "zone-002",
        "business_id": None,
        "name": "Guayaquil Norte",
        "delivery_fee": 2.50,
        "polygon": [
            {"lat": -2.08, "lng": -79.95},
            {"lat": -2.08, "lng": -79.85},
            {"lat": -2.17, "lng": -79.85},
            {"lat": -2.17, "lng": -79.95},
        ],
    },
]

SAMPLE_CLIENTS = [
    {"id": "cli-001", "phone": "0959036708", "name": "María Fernanda Ortiz"},
    {"id": "cli-002", "phone": "0987654321", "name": "Mario Andrade"},
]


# =============================================================================
# SEED FUNCTIONS
# =============================================================================

async def clear_tables():
    """Children before parents: foreign keys are enforced"""
    print("\n0. Clearing tables...")

    session_gen = Database.get_session()
    session = await anext(session_gen)

    try:
        for model in (OrderModel, ProductModel, ClientLocationModel, ClientModel, CoverageZoneModel, BusinessModel):
            await session.execute(delete(model))
        await session.commit()
    finally:
        await session.close()


async def seed_business():
    print("\n1. Seeding Business...")

    session_gen = Database.get_session()
    session = await anext(session_gen)

    try:
        business = await SQLAlchemyBusinessRepository(session).create(Business(**SAMPLE_BUSINESS))
        print(f"   Inserted business '{business.name}' ({business.id})")
    finally:
        await session.close()


async def seed_products():
    print("\n2. Seeding Products...")

    session_gen = Database.get_session()
    session = await anext(session_gen)

    try:
        product_repo = SQLAlchemyProductRepository(session)
        for p in SAMPLE_PRODUCTS:
            product = await product_repo.create(Product(business_id=SAMPLE_BUSINESS["id"], **p))
            print(f"      - {product.name}: ${product.price:.2f} (margen ${product.margin():.2f})")
        print(f"   Inserted {len(SAMPLE_PRODUCTS)} products")
    finally:
        await session.close()


async def seed_zones():
    print("\n3. Seeding Coverage Zones...")

    session_gen = Database.get_session()
    session = await anext(session_gen)

    try:
        zone_repo = SQLAlchemyCoverageZoneRepository(session)
        for z in SAMPLE_ZONES:
            await zone_repo.create(CoverageZone(**z))
        print(f"   Inserted {len(SAMPLE_ZONES)} zones")
    finally:
        await session.close()


async def seed_clients():
    print("\n4. Seeding Clients...")

    session_gen = Database.get_session()
    session = await anext(session_gen)

    try:
        client_repo = SQLAlchemyClientRepository(session)
        for c in SAMPLE_CLIENTS:
            await client_repo.create(Client(**c))
        print(f"   Inserted {len(SAMPLE_CLIENTS)} clients")
    finally:
        await session.close()


async def main():
    print("=" * 60)
    print("Fuddi - Local Database Seed")
    print(f"Database: {settings.database_url}")
    print("=" * 60)

    await Database.connect()
    try:
        await clear_tables()
        await seed_business()
        await seed_products()
        await seed_zones()
        await seed_clients()
    finally:
        await Database.disconnect()

    print("\n" + "=" * 60)
    print("Seed complete")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
