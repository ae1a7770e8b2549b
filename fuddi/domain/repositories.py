"""
Repository interfaces - Domain contracts for data access
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any
from .entities import Business, Client, ClientLocation, CoverageZone, Order, OrderStatus, Product


class IClientRepository(ABC):
    """Interface for client data access"""

    @abstractmethod
    async def create(self, client: Client) -> Client:
        """Create a new client"""
        pass

    @abstractmethod
    async def get_by_id(self, client_id: str) -> Optional[Client]:
        """Get client by ID"""
        pass

    @abstractmethod
    async def find_by_phone(self, phone: str) -> Optional[Client]:
        """Find client by exact stored phone"""
        pass

    @abstractmethod
    async def search_by_name(self, term: str, limit: int = 50) -> List[Client]:
        """Clients whose name contains the term (case-insensitive)"""
        pass

    @abstractmethod
    async def update(self, client_id: str, patch: Dict[str, Any]) -> Client:
        """Patch an existing client"""
        pass


class ILocationRepository(ABC):
    """Interface for client location data access"""

    @abstractmethod
    async def create(self, location: ClientLocation) -> ClientLocation:
        """Create a location; a favorite one clears the client's other favorites in the same transaction"""
        pass

    @abstractmethod
    async def get_by_id(self, location_id: str) -> Optional[ClientLocation]:
        """Get location by ID"""
        pass

    @abstractmethod
    async def list_by_client(self, client_id: str) -> List[ClientLocation]:
        """All locations of a client"""
        pass

    @abstractmethod
    async def update(self, location_id: str, patch: Dict[str, Any]) -> ClientLocation:
        """Patch an existing location"""
        pass

    @abstractmethod
    async def delete(self, location_id: str) -> bool:
        """Delete a location"""
        pass

    @abstractmethod
    async def set_favorite(self, client_id: str, location_id: str, favorite: bool = True) -> List[ClientLocation]:
        """Swap the client's favorite atomically and return the client's locations"""
        pass


class IProductRepository(ABC):
    """Interface for product data access"""

    @abstractmethod
    async def get_by_id(self, product_id: str) -> Optional[Product]:
        """Get product by ID"""
        pass

    @abstractmethod
    async def list_by_business(self, business_id: str, only_available: bool = False) -> List[Product]:
        """Products of a business"""
        pass

    @abstractmethod
    async def create(self, product: Product) -> Product:
        """Create a new product"""
        pass


class IOrderRepository(ABC):
    """Interface for order data access"""

    @abstractmethod
    async def create(self, order: Order) -> Order:
        """Persist a new order, assigning its id"""
        pass

    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        """Get order by ID"""
        pass

    @abstractmethod
    async def list_by_business(self, business_id: str, limit: int = 50) -> List[Order]:
        """Newest orders of a business first"""
        pass

    @abstractmethod
    async def update(self, order_id: str, patch: Dict[str, Any]) -> Order:
        """Patch an order"""
        pass

    @abstractmethod
    async def update_status(self, order_id: str, status: OrderStatus, history: Dict[str, Any]) -> Order:
        """Set status and merge timestamps into the status history"""
        pass


class ICoverageZoneRepository(ABC):
    """Interface for coverage zone data access"""

    @abstractmethod
    async def list_zones(self, business_id: Optional[str] = None) -> List[CoverageZone]:
        """Zones of a business, or global zones when business_id is None"""
        pass

    @abstractmethod
    async def create(self, zone: CoverageZone) -> CoverageZone:
        pass

    @abstractmethod
    async def update(self, zone_id: str, patch: Dict[str, Any]) -> CoverageZone:
        pass

    @abstractmethod
    async def delete(self, zone_id: str) -> bool:
        pass


class IBusinessRepository(ABC):
    """Interface for business profile access"""

    @abstractmethod
    async def get_by_id(self, business_id: str) -> Optional[Business]:
        pass

    @abstractmethod
    async def create(self, business: Business) -> Business:
        pass


class IImageStorage(ABC):
    """Object storage for uploaded images"""

    @abstractmethod
    async def upload(self, data: bytes, path: str) -> str:
        """Store image bytes under path and return its public URL"""
        pass

    @abstractmethod
    async def delete(self, url: str) -> bool:
        """Remove a stored image by URL"""
        pass
