"""
Repositories against a real SQLite file
"""
import asyncio
from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fuddi.domain.entities import (
    Business, Client, ClientLocation, CoverageZone, CustomerInfo, DeliveryInfo, DeliveryType,
    Order, OrderStatus, PaymentInfo, PaymentMethod, Product, TimingInfo, TimingType,
)
from fuddi.infrastructure.database.sqlite_db import Database
from fuddi.infrastructure.repositories.business_repository import SQLAlchemyBusinessRepository
from fuddi.infrastructure.repositories.client_repository import SQLAlchemyClientRepository
from fuddi.infrastructure.repositories.coverage_zone_repository import SQLAlchemyCoverageZoneRepository
from fuddi.infrastructure.repositories.location_repository import SQLAlchemyLocationRepository
from fuddi.infrastructure.repositories.order_repository import SQLAlchemyOrderRepository
from fuddi.infrastructure.repositories.product_repository import SQLAlchemyProductRepository

SQUARE = [
    {"lat": -2.17, "lng": -79.90},
    {"lat": -2.17, "lng": -79.87},
    {"lat": -2.21, "lng": -79.87},
    {"lat": -2.21, "lng": -79.90},
]


@pytest.fixture
def run_db(tmp_path):
    """Run a coroutine function with a session on a fresh database"""
    url = f"sqlite+aiosqlite:///{tmp_path / 'repo.db'}"

    def run(fn):
        async def wrapper():
            await Database.connect(url)
            try:
                async with Database.async_session_maker() as session:
                    await SQLAlchemyBusinessRepository(session).create(
                        Business(id="biz-1", name="La Esquina", username="laesquina",
                                 map_location={"lat": -2.1894, "lng": -79.8891})
                    )
                    await SQLAlchemyClientRepository(session).create(
                        Client(id="c-1", phone="0991234567", name="Juan Pérez")
                    )
                    return await fn(session)
            finally:
                await Database.disconnect()

        return asyncio.run(wrapper())

    return run


def make_order(created_at: datetime, total: float = 5.0) -> Order:
    return Order(
        business_id="biz-1",
        customer=CustomerInfo(client_id="c-1", name="Juan Pérez", phone="0991234567"),
        items=[{"product_id": "p-1", "name": "Hamburguesa", "unit_price": total, "quantity": 1}],
        delivery=DeliveryInfo(type=DeliveryType.PICKUP),
        timing=TimingInfo(type=TimingType.IMMEDIATE),
        payment=PaymentInfo(method=PaymentMethod.CASH),
        subtotal=total,
        total=total,
        status=OrderStatus.CONFIRMED,
        created_by_admin=True,
        status_history={"pending_at": created_at, "confirmed_at": created_at},
        created_at=created_at,
        updated_at=created_at,
    )


def test_business_round_trip(run_db):
    async def scenario(session):
        return await SQLAlchemyBusinessRepository(session).get_by_id("biz-1")

    business = run_db(scenario)
    assert business.username == "laesquina"
    assert business.map_location.lat == -2.1894


def test_client_lookup_and_search(run_db):
    async def scenario(session):
        repo = SQLAlchemyClientRepository(session)
        await repo.create(Client(id="c-2", phone="0987654321", name="María Juana"))
        await repo.create(Client(id="c-3", phone="0976543210", name="100%_Ana"))
        return (
            await repo.find_by_phone("0987654321"),
            await repo.find_by_phone("+593987654321"),
            await repo.search_by_name("JUAN"),
            await repo.search_by_name("%_"),
        )

    by_phone, missing, by_name, literal = run_db(scenario)
    assert by_phone.id == "c-2"
    assert missing is None
    assert sorted(c.id for c in by_name) == ["c-1", "c-2"]
    assert [c.id for c in literal] == ["c-3"]


def test_duplicate_phone_is_rejected(run_db):
    async def scenario(session):
        await SQLAlchemyClientRepository(session).create(Client(id="c-dup", phone="0991234567", name="Otro"))

    with pytest.raises(IntegrityError):
        run_db(scenario)


def test_favorite_swap(run_db):
    async def scenario(session):
        repo = SQLAlchemyLocationRepository(session)
        home = await repo.create(ClientLocation(client_id="c-1", reference="Casa", is_favorite=True))
        work = await repo.create(ClientLocation(client_id="c-1", reference="Oficina", is_favorite=True))
        after_create = await repo.list_by_client("c-1")
        after_swap = await repo.set_favorite("c-1", home.id)
        return home, work, after_create, after_swap

    home, work, after_create, after_swap = run_db(scenario)
    assert [loc.id for loc in after_create if loc.is_favorite] == [work.id]
    assert [loc.id for loc in after_swap if loc.is_favorite] == [home.id]


def test_favorite_swap_rolls_back_when_commit_fails(run_db, monkeypatch):
    async def failing_commit(self):
        raise IntegrityError("UPDATE client_locations", {}, Exception("disk full"))

    async def scenario(session):
        repo = SQLAlchemyLocationRepository(session)
        home = await repo.create(ClientLocation(client_id="c-1", reference="Casa", is_favorite=True))
        work = await repo.create(ClientLocation(client_id="c-1", reference="Oficina"))

        monkeypatch.setattr(AsyncSession, "commit", failing_commit)
        with pytest.raises(IntegrityError):
            await repo.set_favorite("c-1", work.id)
        monkeypatch.undo()

        return home, await repo.list_by_client("c-1")

    home, locations = run_db(scenario)
    assert len(locations) == 2
    assert [loc.id for loc in locations if loc.is_favorite] == [home.id]


def test_location_update_and_delete(run_db):
    async def scenario(session):
        repo = SQLAlchemyLocationRepository(session)
        location = await repo.create(ClientLocation(client_id="c-1", coordinates="-2.19,-79.88", reference="Casa"))
        updated = await repo.update(location.id, {"reference": "Casa azul", "is_favorite": True, "delivery_fee": 2.0})
        deleted = await repo.delete(location.id)
        return updated, deleted, await repo.delete(location.id), await repo.get_by_id(location.id)

    updated, deleted, deleted_again, gone = run_db(scenario)
    assert updated.reference == "Casa azul"
    assert updated.delivery_fee == 2.0
    assert updated.is_favorite is False
    assert (deleted, deleted_again, gone) == (True, False, None)


def test_location_requires_existing_client(run_db):
    async def scenario(session):
        await SQLAlchemyLocationRepository(session).create(ClientLocation(client_id="nobody", reference="Casa"))

    with pytest.raises(IntegrityError):
        run_db(scenario)


def test_products_with_variants(run_db):
    async def scenario(session):
        repo = SQLAlchemyProductRepository(session)
        await repo.create(Product(
            id="p-1", business_id="biz-1", name="Hamburguesa", category="Platos", price=5.0,
            variants=[{"id": "v-1", "name": "Doble", "price": 7.5}],
            ingredients=[{"name": "Carne", "unit_cost": 1.2}],
        ))
        await repo.create(Product(id="p-2", business_id="biz-1", name="Agua", category="Bebidas", price=1.0, is_available=False))
        return await repo.get_by_id("p-1"), await repo.list_by_business("biz-1"), await repo.list_by_business("biz-1", True)

    product, everything, available = run_db(scenario)
    assert product.find_variant("Doble").price == 7.5
    assert product.unit_cost() == 1.2
    assert [p.id for p in everything] == ["p-2", "p-1"]
    assert [p.id for p in available] == ["p-1"]


def test_orders_newest_first_and_status_history(run_db):
    async def scenario(session):
        repo = SQLAlchemyOrderRepository(session)
        old = await repo.create(make_order(datetime(2026, 10, 18, 12, 0)))
        new = await repo.create(make_order(datetime(2026, 10, 18, 13, 0), total=7.5))
        listed = await repo.list_by_business("biz-1")
        moved = await repo.update_status(old.id, OrderStatus.PREPARING, {"preparing_at": datetime(2026, 10, 18, 12, 15)})
        edited = await repo.update(new.id, {"notes": "Sin cebolla", "total": 8.0, "status": "cancelled"})
        return old, new, listed, moved, edited

    old, new, listed, moved, edited = run_db(scenario)
    assert [o.id for o in listed] == [new.id, old.id]
    assert moved.status == OrderStatus.PREPARING
    assert set(moved.status_history) == {"pending_at", "confirmed_at", "preparing_at"}
    assert moved.status_history["preparing_at"] == datetime(2026, 10, 18, 12, 15)
    assert edited.notes == "Sin cebolla"
    assert edited.total == 8.0
    assert edited.status == OrderStatus.CONFIRMED
    assert edited.created_at == new.created_at


def test_zones_business_and_global(run_db):
    async def scenario(session):
        repo = SQLAlchemyCoverageZoneRepository(session)
        await repo.create(CoverageZone(id="z-1", business_id="biz-1", name="Centro", polygon=SQUARE, delivery_fee=1.0))
        await repo.create(CoverageZone(id="z-2", name="Norte", polygon=SQUARE, delivery_fee=2.5))
        await repo.create(CoverageZone(id="z-3", name="Este", polygon=SQUARE, delivery_fee=3.0))
        updated = await repo.update("z-3", {"delivery_fee": 3.5, "is_active": False})
        return (
            await repo.list_zones("biz-1"),
            await repo.list_zones(None),
            updated,
            await repo.delete("z-2"),
            await repo.list_zones(None),
        )

    business_zones, global_zones, updated, deleted, remaining = run_db(scenario)
    assert [z.id for z in business_zones] == ["z-1"]
    assert [z.id for z in global_zones] == ["z-3", "z-2"]
    assert (updated.delivery_fee, updated.is_active) == (3.5, False)
    assert deleted is True
    assert [z.id for z in remaining] == ["z-3"]
