"""
Products endpoints
"""
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import List, Optional
import uuid

from ...domain.entities import Ingredient, Product, ProductVariant
from ...infrastructure.repositories.product_repository import SQLAlchemyProductRepository
from ...infrastructure.database.sqlite_db import Database
from ..errors import to_http_exception

router = APIRouter()


class CreateProductRequest(BaseModel):
    business_id: str
    name: str
    description: str = ""
    category: str = ""
    price: float
    image: Optional[str] = None
    is_available: bool = True
    variants: List[ProductVariant] = []
    ingredients: List[Ingredient] = []


def format_product(product: Product) -> dict:
    return {
        **product.model_dump(mode="json"),
        "unit_cost": product.unit_cost(),
        "margin": product.margin(),
    }


@router.post("/", status_code=201)
async def create_product(request: CreateProductRequest):
    """Create a new product"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        product_repo = SQLAlchemyProductRepository(session)
        product = await product_repo.create(Product(id=str(uuid.uuid4()), **request.model_dump()))
        return format_product(product)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.get("/")
async def list_products(business_id: str, only_available: bool = False):
    """Catalog of a business with cost and margin per product"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        product_repo = SQLAlchemyProductRepository(session)
        products = await product_repo.list_by_business(business_id, only_available=only_available)
        return {
            "products": [format_product(p) for p in products],
            "count": len(products),
        }
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()


@router.get("/{product_id}")
async def get_product(product_id: str):
    """Get product by ID"""
    session_gen = Database.get_session()
    session = await anext(session_gen)
    try:
        product_repo = SQLAlchemyProductRepository(session)
        product = await product_repo.get_by_id(product_id)

        if not product:
            raise HTTPException(status_code=404, detail="Product not found")

        return format_product(product)
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
    finally:
        await session.close()
