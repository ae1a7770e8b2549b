"""
Shared fixtures: in-memory repositories and a FastAPI client on a temporary SQLite file
"""
import uuid
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from fuddi.config import settings
from fuddi.domain.entities import (
    Business, Client, ClientLocation, CoverageZone, Order, OrderStatus, Product,
)
from fuddi.domain.exceptions import NotFound
from fuddi.domain.repositories import (
    IBusinessRepository, IClientRepository, ICoverageZoneRepository, IImageStorage,
    ILocationRepository, IOrderRepository,
)


class FakeClientRepository(IClientRepository):
    def __init__(self, clients: Optional[List[Client]] = None):
        self.clients: Dict[str, Client] = {}
        self.phone_lookups: List[str] = []
        self.fail = False
        for client in clients or []:
            self.clients[client.id] = client

    async def create(self, client: Client) -> Client:
        client = client.model_copy(update={"id": client.id or str(uuid.uuid4())})
        self.clients[client.id] = client
        return client

    async def get_by_id(self, client_id: str) -> Optional[Client]:
        return self.clients.get(client_id)

    async def find_by_phone(self, phone: str) -> Optional[Client]:
        if self.fail:
            raise RuntimeError("backend down")
        self.phone_lookups.append(phone)
        return next((c for c in self.clients.values() if c.phone == phone), None)

    async def search_by_name(self, term: str, limit: int = 50) -> List[Client]:
        if self.fail:
            raise RuntimeError("backend down")
        return [c for c in self.clients.values() if term.lower() in c.name.lower()][:limit]

    async def update(self, client_id: str, patch: Dict[str, Any]) -> Client:
        if client_id not in self.clients:
            raise NotFound("Client", client_id)
        self.clients[client_id] = self.clients[client_id].model_copy(update=patch)
        return self.clients[client_id]


class FakeLocationRepository(ILocationRepository):
    def __init__(self):
        self.locations: Dict[str, ClientLocation] = {}
        self.fail_writes = False

    async def create(self, location: ClientLocation) -> ClientLocation:
        if self.fail_writes:
            raise RuntimeError("write failed")
        location = location.model_copy(update={"id": location.id or str(uuid.uuid4())})
        if location.is_favorite:
            self._clear(location.client_id)
        self.locations[location.id] = location
        return location

    async def get_by_id(self, location_id: str) -> Optional[ClientLocation]:
        return self.locations.get(location_id)

    async def list_by_client(self, client_id: str) -> List[ClientLocation]:
        return [loc for loc in self.locations.values() if loc.client_id == client_id]

    async def update(self, location_id: str, patch: Dict[str, Any]) -> ClientLocation:
        if self.fail_writes:
            raise RuntimeError("write failed")
        if location_id not in self.locations:
            raise NotFound("Location", location_id)
        self.locations[location_id] = self.locations[location_id].model_copy(update=patch)
        return self.locations[location_id]

    async def delete(self, location_id: str) -> bool:
        return self.locations.pop(location_id, None) is not None

    async def set_favorite(self, client_id: str, location_id: str, favorite: bool = True) -> List[ClientLocation]:
        location = self.locations.get(location_id)
        if not location or location.client_id != client_id:
            raise NotFound("Location", location_id)
        if favorite:
            self._clear(client_id)
        self.locations[location_id] = location.model_copy(update={"is_favorite": favorite})
        return await self.list_by_client(client_id)

    def _clear(self, client_id: str) -> None:
        for key, loc in self.locations.items():
            if loc.client_id == client_id and loc.is_favorite:
                self.locations[key] = loc.model_copy(update={"is_favorite": False})


class FakeZoneRepository(ICoverageZoneRepository):
    def __init__(self, zones: Optional[List[CoverageZone]] = None):
        self.zones = list(zones or [])

    async def list_zones(self, business_id: Optional[str] = None) -> List[CoverageZone]:
        return [z for z in self.zones if z.business_id == business_id]

    async def create(self, zone: CoverageZone) -> CoverageZone:
        self.zones.append(zone)
        return zone

    async def update(self, zone_id: str, patch: Dict[str, Any]) -> CoverageZone:
        raise NotImplementedError

    async def delete(self, zone_id: str) -> bool:
        raise NotImplementedError


class FakeOrderRepository(IOrderRepository):
    def __init__(self):
        self.orders: Dict[str, Order] = {}
        self.create_calls = 0
        self.fail_writes = False

    async def create(self, order: Order) -> Order:
        self.create_calls += 1
        if self.fail_writes:
            raise RuntimeError("write failed")
        order = order.model_copy(update={"id": order.id or str(uuid.uuid4())})
        self.orders[order.id] = order
        return order

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        return self.orders.get(order_id)

    async def list_by_business(self, business_id: str, limit: int = 50) -> List[Order]:
        return [o for o in self.orders.values() if o.business_id == business_id][:limit]

    async def update(self, order_id: str, patch: Dict[str, Any]) -> Order:
        if order_id not in self.orders:
            raise NotFound("Order", order_id)
        data = self.orders[order_id].model_dump()
        data.update(patch)
        self.orders[order_id] = Order.model_validate(data)
        return self.orders[order_id]

    async def update_status(self, order_id: str, status: OrderStatus, history: Dict[str, Any]) -> Order:
        order = self.orders[order_id]
        self.orders[order_id] = order.model_copy(
            update={"status": status, "status_history": {**order.status_history, **history}}
        )
        return self.orders[order_id]


class FakeBusinessRepository(IBusinessRepository):
    def __init__(self, businesses: Optional[List[Business]] = None):
        self.businesses = {b.id: b for b in businesses or []}

    async def get_by_id(self, business_id: str) -> Optional[Business]:
        return self.businesses.get(business_id)

    async def create(self, business: Business) -> Business:
        self.businesses[business.id] = business
        return business


class FakeImageStorage(IImageStorage):
    def __init__(self):
        self.files: Dict[str, bytes] = {}

    async def upload(self, data: bytes, path: str) -> str:
        url = f"/uploads/{path}"
        self.files[url] = data
        return url

    async def delete(self, url: str) -> bool:
        return self.files.pop(url, None) is not None


@pytest.fixture
def burger() -> Product:
    return Product(
        id="p-burger",
        business_id="biz-1",
        name="Hamburguesa",
        price=5.00,
        variants=[
            {"id": "v-simple", "name": "Simple", "price": 5.00},
            {"id": "v-doble", "name": "Doble", "price": 7.50},
            {"id": "v-xl", "name": "XL", "price": 9.00, "is_available": False},
        ],
        ingredients=[{"name": "Pan", "unit_cost": 0.30}, {"name": "Carne", "unit_cost": 1.20}],
    )


@pytest.fixture
def fries() -> Product:
    return Product(id="p-fries", business_id="biz-1", name="Papas", price=2.25)


@pytest.fixture
def business() -> Business:
    return Business(
        id="biz-1",
        name="La Esquina",
        username="laesquina",
        map_location={"lat": -2.1894, "lng": -79.8891},
    )


@pytest.fixture
def client_repo() -> FakeClientRepository:
    return FakeClientRepository([
        Client(id="c-1", phone="0991234567", name="Juan Pérez"),
        Client(id="c-2", phone="0987654321", name="María Juana"),
        Client(id="c-3", phone="0976543210", name="Ana Juanes"),
    ])


@pytest.fixture
def location_repo() -> FakeLocationRepository:
    return FakeLocationRepository()


@pytest.fixture
def zone_repo() -> FakeZoneRepository:
    square = [
        {"lat": -2.17, "lng": -79.90},
        {"lat": -2.17, "lng": -79.87},
        {"lat": -2.21, "lng": -79.87},
        {"lat": -2.21, "lng": -79.90},
    ]
    return FakeZoneRepository([
        CoverageZone(id="z-biz", business_id="biz-1", name="Centro", polygon=square, delivery_fee=1.00),
        CoverageZone(id="z-global", business_id=None, name="Global", polygon=square, delivery_fee=3.00),
        CoverageZone(
            id="z-north", business_id=None, name="Norte", delivery_fee=2.50,
            polygon=[
                {"lat": -2.08, "lng": -79.95},
                {"lat": -2.08, "lng": -79.85},
                {"lat": -2.16, "lng": -79.85},
                {"lat": -2.16, "lng": -79.95},
            ],
        ),
    ])


@pytest.fixture
def order_repo() -> FakeOrderRepository:
    return FakeOrderRepository()


@pytest.fixture
def business_repo(business) -> FakeBusinessRepository:
    return FakeBusinessRepository([business])


@pytest.fixture
def image_storage() -> FakeImageStorage:
    return FakeImageStorage()


@pytest.fixture
def api(tmp_path, monkeypatch):
    """TestClient over a fresh SQLite file; the lifespan connects and disconnects"""
    monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setattr(settings, "uploads_dir", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "search_debounce_ms", 0)

    from fuddi.infrastructure.cache.memory_store import get_store
    from fuddi.presentation.api import create_app

    get_store().clear()
    with TestClient(create_app()) as test_client:
        yield test_client
    get_store().clear()
