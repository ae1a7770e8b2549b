"""
SQLAlchemy ORM Models for Local SQLite Database
Document-shaped collections: nested parts of a document live in JSON columns
"""

from sqlalchemy import (
    Column, String, Float, Boolean, DateTime, JSON,
    ForeignKey, Index, event
)
from sqlalchemy.orm import declarative_base

from ...domain.entities import utcnow

Base = declarative_base()


class BusinessModel(Base):
    """Store profile"""
    __tablename__ = "businesses"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    username = Column(String, nullable=False, unique=True, index=True)
    phone = Column(String, default="")
    address = Column(String, default="")
    map_location = Column(JSON, nullable=True)  # {"lat": .., "lng": ..}
    schedule = Column(JSON, default={})
    pickup_enabled = Column(Boolean, default=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)


class ClientModel(Base):
    """Customer record"""
    __tablename__ = "clients"

    id = Column(String, primary_key=True)
    phone = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False, index=True)
    email = Column(String, nullable=True)
    registered_at = Column(DateTime, default=utcnow)


class ClientLocationModel(Base):
    """Saved delivery address of a client"""
    __tablename__ = "client_locations"

    id = Column(String, primary_key=True)
    client_id = Column(String, ForeignKey("clients.id"), nullable=False, index=True)
    coordinates = Column(String, default="")  # "lat,lng" | "pluscode:CODE" | ""
    reference = Column(String, nullable=False)
    delivery_fee = Column(Float, default=0.0)
    sector = Column(String, default="Sin especificar")
    is_favorite = Column(Boolean, default=False)
    photo_url = Column(String, nullable=True)
    out_of_zone = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_client_locations_client_favorite", "client_id", "is_favorite"),
    )


class ProductModel(Base):
    """Product catalog model"""
    __tablename__ = "products"

    id = Column(String, primary_key=True)
    business_id = Column(String, ForeignKey("businesses.id"), nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String, default="")
    category = Column(String, default="", index=True)
    price = Column(Float, nullable=False)
    image = Column(String, nullable=True)
    is_available = Column(Boolean, default=True)
    variants = Column(JSON, default=[])  # [{id, name, price, is_available, description}]
    ingredients = Column(JSON, default=[])  # [{name, unit_cost, quantity}]
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_products_business_category", "business_id", "category"),
    )


class OrderModel(Base):
    """Order model - immutable snapshot of a submitted draft"""
    __tablename__ = "orders"

    id = Column(String, primary_key=True)
    business_id = Column(String, ForeignKey("businesses.id"), nullable=False, index=True)
    customer = Column(JSON, nullable=False)  # {client_id, name, phone}
    items = Column(JSON, nullable=False)  # [{product_id, name, unit_price, quantity, variant_name}]
    delivery = Column(JSON, nullable=False)  # {type, location snapshot, delivery_cost, assigned_delivery_id}
    timing = Column(JSON, nullable=False)
    payment = Column(JSON, nullable=False)
    notes = Column(String, default="")
    subtotal = Column(Float, nullable=False)
    total = Column(Float, nullable=False)
    status = Column(String, default="pending", index=True)  # pending, confirmed, preparing, ready, delivered, cancelled
    created_by_admin = Column(Boolean, default=False)
    status_history = Column(JSON, default={})
    estimated_ready_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_orders_business_created", "business_id", "created_at"),
    )


class CoverageZoneModel(Base):
    """Delivery geofence"""
    __tablename__ = "coverage_zones"

    id = Column(String, primary_key=True)
    business_id = Column(String, nullable=True, index=True)  # None = global zone
    name = Column(String, nullable=False, index=True)
    polygon = Column(JSON, nullable=False)  # [{"lat": .., "lng": ..}]
    delivery_fee = Column(Float, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# ============================================================================
# Enable SQLite WAL mode for better concurrency
# ============================================================================

def configure_sqlite(dbapi_conn, connection_record):
    """Enable WAL mode and foreign keys for SQLite"""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def register_sqlite_pragma(engine):
    """Register SQLite pragma configuration"""
    if "sqlite" in str(engine.url):
        event.listen(engine.sync_engine, "connect", configure_sqlite)
