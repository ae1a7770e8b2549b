import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from fuddi.domain.entities import (
    Business, Client, ClientLocation, DeliveryType, OrderStatus, PaymentMethod, TimingType,
)
from fuddi.domain.exceptions import (
    BusinessUnavailable, Conflict, NotFound, SubmissionInProgress, ValidationFailed,
)
from fuddi.domain.order_draft import DraftStage, OrderDraft
from fuddi.infrastructure.cache.memory_store import LockManager, MemoryStore
from fuddi.infrastructure.services.order_composer import OrderComposer, delivery_eta_minutes

NOW = datetime(2026, 10, 18, 17, 0, 0)


@pytest.fixture
def composer(order_repo, business_repo):
    return OrderComposer(
        order_repo, business_repo, LockManager(MemoryStore()),
        tz_name="America/Guayaquil", eta_minutes=30, tolerance=0.01,
    )


def delivery_draft(product) -> OrderDraft:
    draft = OrderDraft(business_id="biz-1")
    location = ClientLocation(
        id="l-1", client_id="c-1", coordinates="-2.1594,-79.8891",
        reference="Casa esquinera", delivery_fee=1.50,
    )
    draft.select_client(Client(id="c-1", phone="0991234567", name="Juan Pérez"), [location])
    draft.add_item(product)
    draft.add_item(product)
    draft.set_delivery_type(DeliveryType.DELIVERY)
    draft.select_location("l-1")
    return draft


def test_build_payload_immediate(composer, burger):
    order = composer.build_payload(delivery_draft(burger), now=NOW)

    assert order.status == OrderStatus.CONFIRMED
    assert order.created_by_admin is True
    assert order.status_history == {"pending_at": NOW, "confirmed_at": NOW}
    assert order.estimated_ready_at == NOW + timedelta(minutes=30)
    assert order.subtotal == 10.00
    assert order.total == 11.50
    assert order.delivery.delivery_cost == 1.50
    assert order.delivery.location.location_id == "l-1"
    assert order.customer.client_id == "c-1"
    assert order.items[0].quantity == 2


def test_build_payload_accepts_aware_now(composer, burger):
    aware = datetime(2026, 10, 18, 12, 0, tzinfo=timezone(timedelta(hours=-5)))
    order = composer.build_payload(delivery_draft(burger), now=aware)
    assert order.created_at == NOW


def test_build_payload_scheduled_uses_business_timezone(composer, burger):
    draft = delivery_draft(burger)
    draft.set_timing(TimingType.SCHEDULED, "2026-10-20", "18:30")

    order = composer.build_payload(draft, now=NOW)

    assert order.timing.scheduled_at.utcoffset() == timedelta(hours=-5)
    assert order.timing.scheduled_at.hour == 18
    assert order.estimated_ready_at == datetime(2026, 10, 20, 23, 30)


def test_pickup_order_has_no_location(composer, burger):
    draft = delivery_draft(burger)
    draft.set_delivery_type(DeliveryType.PICKUP)

    order = composer.build_payload(draft, now=NOW)
    assert order.delivery.location is None
    assert order.delivery.delivery_cost == 0
    assert order.total == 10.00


def test_build_payload_rejects_invalid_draft(composer):
    with pytest.raises(ValidationFailed):
        composer.build_payload(OrderDraft(business_id="biz-1"))


def test_submit_success_resets_draft(composer, order_repo, burger):
    draft = delivery_draft(burger)
    draft_id = draft.id

    order = asyncio.run(composer.submit(draft, now=NOW))

    assert order_repo.create_calls == 1
    assert order.id in order_repo.orders
    assert draft.id == draft_id
    assert draft.stage == DraftStage.EMPTY
    assert draft.items == []
    assert not composer.lock_manager.is_locked(f"submit:{draft_id}")


def test_submit_failure_keeps_draft(composer, order_repo, burger):
    order_repo.fail_writes = True
    draft = delivery_draft(burger)

    with pytest.raises(RuntimeError):
        asyncio.run(composer.submit(draft, now=NOW))

    assert order_repo.create_calls == 1
    assert draft.last_error == "write failed"
    assert draft.stage == DraftStage.READY_TO_SUBMIT
    assert draft.total == 11.50
    assert not composer.lock_manager.is_locked(f"submit:{draft.id}")

    order_repo.fail_writes = False
    asyncio.run(composer.submit(draft, now=NOW))
    assert order_repo.create_calls == 2
    assert len(order_repo.orders) == 1


def test_submit_refused_while_locked(composer, order_repo, burger):
    draft = delivery_draft(burger)
    composer.lock_manager.acquire(f"submit:{draft.id}")

    with pytest.raises(SubmissionInProgress):
        asyncio.run(composer.submit(draft, now=NOW))
    assert order_repo.create_calls == 0
    assert draft.items


def test_submit_invalid_draft_writes_nothing(composer, order_repo):
    with pytest.raises(ValidationFailed):
        asyncio.run(composer.submit(OrderDraft(business_id="biz-1")))
    assert order_repo.create_calls == 0


def test_concurrent_submits_write_once(composer, order_repo, burger):
    draft = delivery_draft(burger)
    original = order_repo.create

    async def slow_create(order):
        await asyncio.sleep(0.01)
        return await original(order)

    order_repo.create = slow_create

    async def run():
        return await asyncio.gather(
            composer.submit(draft, now=NOW), composer.submit(draft, now=NOW), return_exceptions=True,
        )

    results = asyncio.run(run())
    assert len(order_repo.orders) == 1
    assert sum(isinstance(r, SubmissionInProgress) for r in results) == 1


def test_edit_round_trip(composer, order_repo, burger, fries):
    created = asyncio.run(composer.submit(delivery_draft(burger), now=NOW))
    draft = OrderComposer.draft_from_order(created)

    assert draft.editing_order_id == created.id
    assert draft.total == created.total
    assert draft.selected_location.location_id == "l-1"
    assert draft.validate_draft() == []

    draft.add_item(fries)
    draft.set_payment_method(PaymentMethod.TRANSFER)
    later = NOW + timedelta(minutes=10)
    updated = asyncio.run(composer.save_edit(created.id, draft, now=later))

    assert updated.id == created.id
    assert updated.total == 13.75
    assert updated.payment.method == PaymentMethod.TRANSFER
    assert updated.status == OrderStatus.CONFIRMED
    assert updated.estimated_ready_at == created.estimated_ready_at
    assert order_repo.create_calls == 1


def test_edit_missing_order(composer, burger):
    draft = delivery_draft(burger)
    draft.editing_order_id = "missing"
    with pytest.raises(NotFound):
        asyncio.run(composer.save_edit("missing", draft, now=NOW))
    assert draft.last_error
    assert draft.items


def test_save_edit_requires_a_draft_opened_from_that_order(composer, order_repo, burger):
    created = asyncio.run(composer.submit(delivery_draft(burger), now=NOW))

    fresh = delivery_draft(burger)
    with pytest.raises(Conflict):
        asyncio.run(composer.save_edit(created.id, fresh, now=NOW))

    other = OrderComposer.draft_from_order(created)
    other.editing_order_id = "o-elsewhere"
    with pytest.raises(Conflict):
        asyncio.run(composer.save_edit(created.id, other, now=NOW))

    assert order_repo.orders[created.id].total == created.total
    assert fresh.items and other.items


def test_save_edit_refuses_another_business_order(composer, order_repo, burger):
    foreign = composer.build_payload(delivery_draft(burger), now=NOW).model_copy(
        update={"id": "o-foreign", "business_id": "other-biz", "notes": "original"}
    )
    order_repo.orders[foreign.id] = foreign

    draft = delivery_draft(burger)
    draft.set_notes("overwritten from biz-1")
    draft.editing_order_id = foreign.id

    with pytest.raises(Conflict):
        asyncio.run(composer.save_edit(foreign.id, draft, now=NOW))

    assert order_repo.orders[foreign.id].notes == "original"
    assert draft.stage == DraftStage.READY_TO_SUBMIT
    assert draft.last_error


def test_cancelled_write_returns_draft_to_ready(composer, order_repo, burger):
    draft = delivery_draft(burger)

    async def cancelled(order):
        raise asyncio.CancelledError()

    order_repo.create = cancelled
    with pytest.raises(asyncio.CancelledError):
        asyncio.run(composer.submit(draft, now=NOW))

    assert draft.submitting is False
    assert draft.stage == DraftStage.READY_TO_SUBMIT
    assert draft.last_error == "CancelledError"
    assert not composer.lock_manager.is_locked(f"submit:{draft.id}")

    del order_repo.create
    order = asyncio.run(composer.submit(draft, now=NOW))
    assert order.id in order_repo.orders
    assert draft.stage == DraftStage.EMPTY


def test_load_business(composer, business_repo):
    assert asyncio.run(composer.load_business("biz-1")).name == "La Esquina"

    with pytest.raises(BusinessUnavailable):
        asyncio.run(composer.load_business("biz-404"))

    business_repo.businesses["biz-off"] = Business(id="biz-off", name="Cerrado", username="cerrado", is_active=False)
    with pytest.raises(BusinessUnavailable):
        asyncio.run(composer.load_business("biz-off"))

    with pytest.raises(BusinessUnavailable):
        asyncio.run(OrderComposer(composer.order_repo).load_business("biz-1"))


def test_delivery_eta(business, burger):
    draft = delivery_draft(burger)
    assert delivery_eta_minutes(draft, business) == 19

    draft.set_delivery_type(DeliveryType.PICKUP)
    assert delivery_eta_minutes(draft, business) is None

    business.map_location = None
    draft.set_delivery_type(DeliveryType.DELIVERY)
    assert delivery_eta_minutes(draft, business) is None
