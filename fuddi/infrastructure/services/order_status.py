"""
Order status transitions
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from ...domain.entities import Order, OrderStatus, utcnow
from ...domain.exceptions import Conflict, NotFound
from ...domain.repositories import IOrderRepository

logger = logging.getLogger(__name__)

STATUS_FLOW: List[OrderStatus] = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
]
TERMINAL = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Forward along the flow (skipping allowed) or cancel; terminal states never move"""
    current, target = OrderStatus(current), OrderStatus(target)
    if current in TERMINAL or current == target:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    return STATUS_FLOW.index(target) > STATUS_FLOW.index(current)


def history_stamps(target: OrderStatus, now: datetime) -> Dict[str, datetime]:
    return {f"{OrderStatus(target).value}_at": now}


class OrderStatusService:
    def __init__(self, order_repo: IOrderRepository):
        self.order_repo = order_repo

    async def update_status(self, order_id: str, status: OrderStatus, now: Optional[datetime] = None) -> Order:
        order = await self.order_repo.get_by_id(order_id)
        if not order:
            raise NotFound("Order", order_id)

        target = OrderStatus(status)
        if not can_transition(order.status, target):
            raise Conflict(f"No se puede pasar de '{order.status.value}' a '{target.value}'")

        updated = await self.order_repo.update_status(order_id, target, history_stamps(target, now or utcnow()))
        logger.info(f"🔄 Order {order_id}: {order.status.value} -> {target.value}")
        return updated
