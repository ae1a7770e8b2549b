"""
Order repository implementation using SQLAlchemy
"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ...domain.entities import Order, OrderStatus, utcnow
from ...domain.exceptions import NotFound
from ...domain.repositories import IOrderRepository
from ..database.models import OrderModel

JSON_FIELDS = ("customer", "items", "delivery", "timing", "payment")
SCALAR_FIELDS = ("notes", "subtotal", "total", "estimated_ready_at")


class SQLAlchemyOrderRepository(IOrderRepository):
    """SQLAlchemy implementation of order repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, order: Order) -> Order:
        """Create a new order"""
        data = order.model_dump(mode="json")
        order_model = OrderModel(
            id=order.id or str(uuid.uuid4()),
            business_id=order.business_id,
            customer=data["customer"],
            items=data["items"],
            delivery=data["delivery"],
            timing=data["timing"],
            payment=data["payment"],
            notes=order.notes,
            subtotal=order.subtotal,
            total=order.total,
            status=order.status.value,
            created_by_admin=order.created_by_admin,
            status_history=data["status_history"],
            estimated_ready_at=order.estimated_ready_at,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )
        self.session.add(order_model)
        await self.session.commit()
        return self._model_to_entity(order_model)

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        """Get order by ID"""
        order_model = await self.session.get(OrderModel, order_id)
        if order_model:
            return self._model_to_entity(order_model)
        return None

    async def list_by_business(self, business_id: str, limit: int = 50) -> List[Order]:
        """Get orders of a business, newest first"""
        stmt = select(OrderModel).where(
            OrderModel.business_id == business_id
        ).order_by(OrderModel.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def update(self, order_id: str, patch: Dict[str, Any]) -> Order:
        """Overwrite editable parts of an order"""
        order_model = await self.session.get(OrderModel, order_id)
        if not order_model:
            raise NotFound("Order", order_id)

        for field, value in patch.items():
            if field in JSON_FIELDS or field in SCALAR_FIELDS:
                setattr(order_model, field, value)
        order_model.updated_at = utcnow()

        await self.session.commit()
        return self._model_to_entity(order_model)

    async def update_status(self, order_id: str, status: OrderStatus, history: Dict[str, Any]) -> Order:
        """Update order status and merge the history timestamps"""
        order_model = await self.session.get(OrderModel, order_id)
        if not order_model:
            raise NotFound("Order", order_id)

        stamps = {
            key: value.isoformat() if isinstance(value, datetime) else value
            for key, value in history.items()
        }
        # JSON columns are not mutation-tracked: assign a new dict
        order_model.status_history = {**(order_model.status_history or {}), **stamps}
        order_model.status = OrderStatus(status).value
        order_model.updated_at = utcnow()

        await self.session.commit()
        return self._model_to_entity(order_model)

    @staticmethod
    def _model_to_entity(model: OrderModel) -> Order:
        """Convert SQLAlchemy model to domain entity"""
        return Order(
            id=model.id,
            business_id=model.business_id,
            customer=model.customer,
            items=model.items,
            delivery=model.delivery,
            timing=model.timing,
            payment=model.payment,
            notes=model.notes or "",
            subtotal=model.subtotal,
            total=model.total,
            status=model.status,
            created_by_admin=bool(model.created_by_admin),
            status_history=model.status_history or {},
            estimated_ready_at=model.estimated_ready_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
