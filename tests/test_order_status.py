import asyncio
from datetime import datetime

import pytest

from fuddi.domain.entities import (
    CustomerInfo, DeliveryInfo, DeliveryType, Order, OrderStatus, PaymentInfo, PaymentMethod,
    TimingInfo, TimingType,
)
from fuddi.domain.exceptions import Conflict, NotFound
from fuddi.infrastructure.services.order_status import OrderStatusService, can_transition, history_stamps

T0 = datetime(2026, 10, 18, 17, 0)
T1 = datetime(2026, 10, 18, 17, 20)


@pytest.fixture
def confirmed_order(order_repo) -> Order:
    order = Order(
        id="o-1",
        business_id="biz-1",
        customer=CustomerInfo(name="Juan Pérez", phone="0991234567"),
        items=[{"product_id": "p-burger", "name": "Hamburguesa", "unit_price": 5.0, "quantity": 1}],
        delivery=DeliveryInfo(type=DeliveryType.PICKUP),
        timing=TimingInfo(type=TimingType.IMMEDIATE),
        payment=PaymentInfo(method=PaymentMethod.CASH),
        subtotal=5.0,
        total=5.0,
        status=OrderStatus.CONFIRMED,
        status_history={"pending_at": T0, "confirmed_at": T0},
    )
    order_repo.orders[order.id] = order
    return order


@pytest.mark.parametrize("current,target,allowed", [
    ("pending", "confirmed", True),
    ("confirmed", "preparing", True),
    ("confirmed", "ready", True),
    ("ready", "delivered", True),
    ("preparing", "cancelled", True),
    ("preparing", "confirmed", False),
    ("ready", "ready", False),
    ("delivered", "cancelled", False),
    ("cancelled", "pending", False),
])
def test_can_transition(current, target, allowed):
    assert can_transition(OrderStatus(current), OrderStatus(target)) is allowed


def test_history_stamps():
    assert history_stamps(OrderStatus.PREPARING, T1) == {"preparing_at": T1}


def test_update_status_merges_history(order_repo, confirmed_order):
    updated = asyncio.run(OrderStatusService(order_repo).update_status("o-1", OrderStatus.PREPARING, now=T1))

    assert updated.status == OrderStatus.PREPARING
    assert updated.status_history == {"pending_at": T0, "confirmed_at": T0, "preparing_at": T1}


def test_backward_move_is_a_conflict(order_repo, confirmed_order):
    service = OrderStatusService(order_repo)
    with pytest.raises(Conflict):
        asyncio.run(service.update_status("o-1", OrderStatus.PENDING))
    assert order_repo.orders["o-1"].status == OrderStatus.CONFIRMED


def test_unknown_order(order_repo):
    with pytest.raises(NotFound):
        asyncio.run(OrderStatusService(order_repo).update_status("missing", OrderStatus.READY))
