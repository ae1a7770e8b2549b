"""
Order Composer Service
Turns a validated draft into a persisted order, and an order back into a draft
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from ...config import settings
from ...domain.entities import (
    Business, CustomerInfo, DeliveryInfo, DeliveryType, Order, OrderStatus,
    PaymentInfo, TimingInfo, TimingType, ValidationIssue, utcnow,
)
from ...domain.exceptions import BusinessUnavailable, Conflict, NotFound, SubmissionInProgress, ValidationFailed
from ...domain.geo import Coordinates, coordinates_from_stored, estimate_delivery_minutes
from ...domain.order_draft import OrderDraft, parse_schedule
from ...domain.phone import validate_and_normalize_phone
from ...domain.repositories import IBusinessRepository, IOrderRepository
from ..cache.memory_store import LockManager

logger = logging.getLogger(__name__)


def delivery_eta_minutes(draft: OrderDraft, business: Optional[Business]) -> Optional[int]:
    """Courier ETA from the business to the selected location, when both have coordinates"""
    if business is None or business.map_location is None:
        return None
    if draft.delivery_type != DeliveryType.DELIVERY or draft.selected_location is None:
        return None
    destination = coordinates_from_stored(draft.selected_location.coordinates)
    if destination is None:
        return None
    origin = Coordinates(business.map_location.lat, business.map_location.lng)
    return estimate_delivery_minutes(origin, destination)


class OrderComposer:
    """
    Validation, payload building and submission of manual orders.

    A draft is written at most once per submit: a second submit while the
    first is in flight is refused, and a failed write leaves the draft intact.
    """

    def __init__(
        self,
        order_repo: IOrderRepository,
        business_repo: Optional[IBusinessRepository] = None,
        lock_manager: Optional[LockManager] = None,
        tz_name: Optional[str] = None,
        eta_minutes: Optional[int] = None,
        tolerance: Optional[float] = None,
    ):
        self.order_repo = order_repo
        self.business_repo = business_repo
        self.lock_manager = lock_manager
        self.tz = ZoneInfo(tz_name or settings.timezone)
        self.eta_minutes = settings.immediate_eta_minutes if eta_minutes is None else eta_minutes
        self.tolerance = settings.mixed_payment_tolerance if tolerance is None else tolerance

    def validate(self, draft: OrderDraft) -> List[ValidationIssue]:
        return draft.validate_draft(self.tolerance)

    async def load_business(self, business_id: str) -> Business:
        """Business context; the workflow cannot run without it"""
        if self.business_repo is None:
            raise BusinessUnavailable(business_id)
        try:
            business = await self.business_repo.get_by_id(business_id)
        except Exception as e:
            logger.error(f"❌ Could not load business {business_id}: {e}")
            raise BusinessUnavailable(business_id)
        if business is None or not business.is_active:
            raise BusinessUnavailable(business_id)
        return business

    def build_payload(self, draft: OrderDraft, business_id: Optional[str] = None, now: Optional[datetime] = None) -> Order:
        """Snapshot the draft into an order document (nothing is written)"""
        issues = self.validate(draft)
        if issues:
            raise ValidationFailed(issues)

        now = now or utcnow()
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc).replace(tzinfo=None)

        timing = TimingInfo(type=draft.timing_type)
        if draft.timing_type == TimingType.SCHEDULED:
            local = parse_schedule(draft.scheduled_date, draft.scheduled_time).replace(tzinfo=self.tz)
            timing.scheduled_date = draft.scheduled_date.strip()
            timing.scheduled_time = draft.scheduled_time.strip()
            timing.scheduled_at = local
            estimated_ready_at = local.astimezone(timezone.utc).replace(tzinfo=None)
        else:
            estimated_ready_at = now + timedelta(minutes=self.eta_minutes)

        is_delivery = draft.delivery_type == DeliveryType.DELIVERY
        phone = validate_and_normalize_phone(draft.customer_phone) or draft.customer_phone.strip()

        return Order(
            business_id=business_id or draft.business_id,
            customer=CustomerInfo(client_id=draft.client_id, name=draft.customer_name.strip(), phone=phone),
            items=[line.model_copy() for line in draft.items],
            delivery=DeliveryInfo(
                type=draft.delivery_type,
                location=draft.selected_location.model_copy() if is_delivery else None,
                delivery_cost=draft.delivery_fee,
                assigned_delivery_id=draft.assigned_delivery_id,
            ),
            timing=timing,
            payment=PaymentInfo(
                method=draft.payment_method,
                status=draft.payment_status,
                selected_bank=draft.selected_bank,
                cash_amount=draft.cash_amount,
                transfer_amount=draft.transfer_amount,
            ),
            notes=draft.notes.strip(),
            subtotal=draft.subtotal,
            total=draft.total,
            status=OrderStatus.CONFIRMED,
            created_by_admin=True,
            status_history={"pending_at": now, "confirmed_at": now},
            estimated_ready_at=estimated_ready_at,
            created_at=now,
            updated_at=now,
        )

    async def submit(self, draft: OrderDraft, now: Optional[datetime] = None) -> Order:
        """
        Write the draft once.

        Success resets the draft to empty defaults. Failure records the
        error on the draft, which stays ready for another attempt.
        """
        lock_name = f"submit:{draft.id}"
        if self.lock_manager and not self.lock_manager.acquire(lock_name):
            raise SubmissionInProgress(draft.id)

        try:
            draft.begin_submit(self.tolerance)
            try:
                if draft.editing_order_id:
                    order = await self._write_edit(draft.editing_order_id, draft, now)
                else:
                    order = await self.order_repo.create(self.build_payload(draft, now=now))
            except BaseException as e:
                # Cancellation included: the draft must never stay SUBMITTING
                logger.error(f"❌ Submit failed for draft {draft.id}: {e!r}")
                draft.submit_failed(str(e) or type(e).__name__)
                raise

            logger.info(f"✅ Order {order.id} saved from draft {draft.id} (total {order.total:.2f})")
            draft.reset()
            return order
        finally:
            if self.lock_manager:
                self.lock_manager.release(lock_name)

    async def save_edit(self, order_id: str, draft: OrderDraft, now: Optional[datetime] = None) -> Order:
        """
        Validate the draft and overwrite the order's editable fields; status,
        id and creation time stay. Only a draft opened from this very order
        can be saved into it.
        """
        if draft.editing_order_id != order_id:
            raise Conflict(f"El borrador {draft.id} no está editando el pedido {order_id}")
        return await self.submit(draft, now)

    async def _write_edit(self, order_id: str, draft: OrderDraft, now: Optional[datetime]) -> Order:
        existing = await self.order_repo.get_by_id(order_id)
        if not existing:
            raise NotFound("Order", order_id)
        if existing.business_id != draft.business_id:
            raise Conflict(f"El pedido {order_id} pertenece a otro negocio")

        payload = self.build_payload(draft, existing.business_id, now)
        data = payload.model_dump(mode="json")
        patch = {key: data[key] for key in ("customer", "items", "delivery", "timing", "payment")}
        patch.update(notes=payload.notes, subtotal=payload.subtotal, total=payload.total)
        if payload.timing.type == TimingType.SCHEDULED:
            patch["estimated_ready_at"] = payload.estimated_ready_at
        return await self.order_repo.update(order_id, patch)

    @staticmethod
    def draft_from_order(order: Order) -> OrderDraft:
        """Every editable field of the order mapped back into a draft"""
        draft = OrderDraft(
            business_id=order.business_id,
            customer_phone=order.customer.phone,
            customer_name=order.customer.name,
            client_id=order.customer.client_id,
            items=[line.model_copy() for line in order.items],
            delivery_type=order.delivery.type,
            selected_location=order.delivery.location.model_copy() if order.delivery.location else None,
            assigned_delivery_id=order.delivery.assigned_delivery_id,
            timing_type=order.timing.type,
            scheduled_date=order.timing.scheduled_date or "",
            scheduled_time=order.timing.scheduled_time or "",
            payment_method=order.payment.method,
            payment_status=order.payment.status,
            selected_bank=order.payment.selected_bank,
            cash_amount=order.payment.cash_amount,
            transfer_amount=order.payment.transfer_amount,
            notes=order.notes,
            subtotal=order.subtotal,
            delivery_fee=order.delivery.delivery_cost,
            total=order.total,
            editing_order_id=order.id,
        )
        return draft
