"""
Domain entities - Core business objects
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Naive UTC timestamp, the form SQLite hands back"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DeliveryType(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class TimingType(str, Enum):
    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    TRANSFER = "transfer"
    MIXED = "mixed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    VALIDATING = "validating"
    PAID = "paid"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Client(BaseModel):
    """Customer entity"""
    id: Optional[str] = None
    phone: str
    name: str
    email: Optional[str] = None
    registered_at: datetime = Field(default_factory=utcnow)


class ClientLocation(BaseModel):
    """Saved delivery address owned by one client"""
    id: Optional[str] = None
    client_id: str
    coordinates: str = ""  # "lat,lng" | "pluscode:<CODE>" | ""
    reference: str
    delivery_fee: float = 0.0
    sector: str = "Sin especificar"
    is_favorite: bool = False
    photo_url: Optional[str] = None
    out_of_zone: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ProductVariant(BaseModel):
    """Priced variant of a product"""
    id: str
    name: str
    description: Optional[str] = None
    price: float
    is_available: bool = True


class Ingredient(BaseModel):
    """Ingredient used for margin display, not inventory"""
    name: str
    unit_cost: float
    quantity: float = 1.0


class Product(BaseModel):
    """Product entity"""
    id: str
    business_id: str
    name: str
    description: str = ""
    category: str = ""
    price: float
    image: Optional[str] = None
    is_available: bool = True
    variants: List[ProductVariant] = []
    ingredients: List[Ingredient] = []

    def find_variant(self, name_or_id: str) -> Optional[ProductVariant]:
        for variant in self.variants:
            if variant.id == name_or_id or variant.name == name_or_id:
                return variant
        return None

    def unit_cost(self) -> float:
        return round(sum(i.unit_cost * i.quantity for i in self.ingredients), 2)

    def margin(self) -> float:
        return round(self.price - self.unit_cost(), 2)


class OrderLineItem(BaseModel):
    """Line in a cart or order"""
    product_id: str
    name: str
    unit_price: float
    quantity: int = Field(1, ge=1)
    variant_name: Optional[str] = None

    @property
    def subtotal(self) -> float:
        return round(self.unit_price * self.quantity, 2)


class LocationSnapshot(BaseModel):
    """By-value copy of a client location, as orders and drafts hold it"""
    location_id: Optional[str] = None
    coordinates: str = ""
    reference: str = ""
    delivery_fee: float = 0.0
    sector: str = ""
    photo_url: Optional[str] = None
    out_of_zone: bool = False

    @classmethod
    def from_location(cls, location: ClientLocation) -> "LocationSnapshot":
        return cls(
            location_id=location.id,
            coordinates=location.coordinates,
            reference=location.reference,
            delivery_fee=location.delivery_fee,
            sector=location.sector,
            photo_url=location.photo_url,
            out_of_zone=location.out_of_zone,
        )


class CustomerInfo(BaseModel):
    client_id: Optional[str] = None
    name: str
    phone: str


class DeliveryInfo(BaseModel):
    type: DeliveryType
    location: Optional[LocationSnapshot] = None
    delivery_cost: float = 0.0
    assigned_delivery_id: Optional[str] = None


class TimingInfo(BaseModel):
    type: TimingType
    scheduled_date: Optional[str] = None  # YYYY-MM-DD
    scheduled_time: Optional[str] = None  # HH:MM
    scheduled_at: Optional[datetime] = None


class PaymentInfo(BaseModel):
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    selected_bank: str = ""
    cash_amount: float = 0.0
    transfer_amount: float = 0.0


class Order(BaseModel):
    """Persisted order: snapshot of a submitted draft"""
    id: Optional[str] = None
    business_id: str
    customer: CustomerInfo
    items: List[OrderLineItem]
    delivery: DeliveryInfo
    timing: TimingInfo
    payment: PaymentInfo
    notes: str = ""
    subtotal: float
    total: float
    status: OrderStatus = OrderStatus.PENDING
    created_by_admin: bool = False
    status_history: Dict[str, Optional[datetime]] = {}
    estimated_ready_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ZonePoint(BaseModel):
    lat: float
    lng: float


class CoverageZone(BaseModel):
    """Delivery geofence with its flat fee; business_id None means global"""
    id: Optional[str] = None
    business_id: Optional[str] = None
    name: str
    polygon: List[ZonePoint]
    delivery_fee: float
    is_active: bool = True


class Business(BaseModel):
    """Store profile: the context every manual order runs in"""
    id: str
    name: str
    username: str
    phone: str = ""
    address: str = ""
    map_location: Optional[ZonePoint] = None
    schedule: Dict[str, Any] = {}
    pickup_enabled: bool = True
    is_active: bool = True


class ValidationIssue(BaseModel):
    field: str
    message: str


class ResolveResult(BaseModel):
    """Outcome of a client lookup"""
    matches: List[Client] = []
    exact: bool = False


class Totals(BaseModel):
    subtotal: float = 0.0
    delivery_fee: float = 0.0
    total: float = 0.0
