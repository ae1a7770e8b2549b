"""
Order draft - the in-memory order under construction

The draft owns the cart, the delivery/timing/payment choices and the
derived totals. Every mutation recomputes totals synchronously, and the
lifecycle stage is derived from field completeness after each change.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field

from .entities import (
    Client, ClientLocation, DeliveryType, LocationSnapshot, OrderLineItem,
    PaymentMethod, PaymentStatus, Product, TimingType, Totals, ValidationIssue,
)
from .exceptions import NotFound, SubmissionInProgress, ValidationFailed

MIXED_PAYMENT_TOLERANCE = 0.01
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


class DraftStage(str, Enum):
    EMPTY = "empty"
    CLIENT_PENDING = "client_pending"
    CLIENT_RESOLVED = "client_resolved"
    ITEMS_SELECTED = "items_selected"
    DELIVERY_SELECTED = "delivery_selected"
    PAYMENT_CONFIGURED = "payment_configured"
    READY_TO_SUBMIT = "ready_to_submit"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    SUBMIT_FAILED = "submit_failed"


def parse_schedule(date_text: str, time_text: str) -> datetime:
    """Combine YYYY-MM-DD and HH:MM into one naive timestamp; ValueError when they do not parse"""
    return datetime.strptime(f"{date_text.strip()} {time_text.strip()}", f"{DATE_FORMAT} {TIME_FORMAT}")


class OrderDraft(BaseModel):
    """Aggregate for the manual order workflow"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    business_id: str

    # Customer
    customer_phone: str = ""
    customer_name: str = ""
    client_id: Optional[str] = None
    customer_locations: List[ClientLocation] = []

    # Cart
    items: List[OrderLineItem] = []

    # Delivery
    delivery_type: Optional[DeliveryType] = None
    selected_location: Optional[LocationSnapshot] = None
    assigned_delivery_id: Optional[str] = None

    # Timing
    timing_type: TimingType = TimingType.IMMEDIATE
    scheduled_date: str = ""
    scheduled_time: str = ""

    # Payment
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_status: PaymentStatus = PaymentStatus.PENDING
    selected_bank: str = ""
    cash_amount: float = 0.0
    transfer_amount: float = 0.0

    notes: str = ""

    # Derived
    subtotal: float = 0.0
    delivery_fee: float = 0.0
    total: float = 0.0

    # Workflow bookkeeping
    submitting: bool = False
    last_error: Optional[str] = None
    search_generation: int = 0
    editing_order_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Customer
    # ------------------------------------------------------------------

    def set_customer(self, phone: Optional[str] = None, name: Optional[str] = None) -> None:
        """Typed customer fields; changing the phone detaches a previously selected client"""
        if phone is not None and phone != self.customer_phone:
            self.customer_phone = phone
            if self.client_id is not None:
                self._detach_client()
        if name is not None:
            self.customer_name = name

    def select_client(self, client: Client, locations: List[ClientLocation]) -> None:
        """Pick a resolved client; loads its locations and drops a selection that belonged to someone else"""
        if client.id != self.client_id:
            self.selected_location = None
        self.client_id = client.id
        self.customer_phone = client.phone
        self.customer_name = client.name
        self.customer_locations = list(locations)
        self.recalculate()

    def refresh_locations(self, locations: List[ClientLocation]) -> None:
        self.customer_locations = list(locations)

    def _detach_client(self) -> None:
        self.client_id = None
        self.customer_locations = []
        self.selected_location = None
        self.recalculate()

    # ------------------------------------------------------------------
    # Cart
    # ------------------------------------------------------------------

    def add_item(self, product: Product, variant_name: Optional[str] = None) -> OrderLineItem:
        """
        Add one unit of a product (or product variant).

        Policy: a line with the same product and variant is merged
        (quantity + 1); a new line is only created for a new combination.
        """
        if not product.is_available:
            raise ValidationFailed([ValidationIssue(field="items", message=f"{product.name} no está disponible")])

        name = product.name
        price = product.price
        resolved_variant = None
        if variant_name:
            variant = product.find_variant(variant_name)
            if variant is None:
                raise NotFound("Variant", f"{product.id}/{variant_name}")
            if not variant.is_available:
                raise ValidationFailed([
                    ValidationIssue(field="items", message=f"{product.name} - {variant.name} no está disponible")
                ])
            resolved_variant = variant.name
            name = f"{product.name} - {variant.name}"
            price = variant.price

        for line in self.items:
            if line.product_id == product.id and line.variant_name == resolved_variant:
                line.quantity += 1
                self.recalculate()
                return line

        line = OrderLineItem(
            product_id=product.id,
            name=name,
            unit_price=price,
            quantity=1,
            variant_name=resolved_variant,
        )
        self.items.append(line)
        self.recalculate()
        return line

    def set_quantity(self, index: int, quantity: int) -> None:
        self._check_index(index)
        if quantity <= 0:
            self.remove_item(index)
            return
        self.items[index].quantity = quantity
        self.recalculate()

    def remove_item(self, index: int) -> None:
        self._check_index(index)
        del self.items[index]
        self.recalculate()

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self.items):
            raise ValidationFailed([ValidationIssue(field="items", message=f"Línea {index} no existe")])

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def set_delivery_type(self, delivery_type: DeliveryType) -> None:
        self.delivery_type = DeliveryType(delivery_type)
        self.recalculate()

    def select_location(self, location_id: str) -> LocationSnapshot:
        """Copy one of the loaded client locations into the draft by value"""
        for location in self.customer_locations:
            if location.id == location_id:
                self.selected_location = LocationSnapshot.from_location(location)
                self.recalculate()
                return self.selected_location
        raise NotFound("Location", location_id)

    def use_location_snapshot(self, snapshot: LocationSnapshot) -> None:
        self.selected_location = snapshot
        self.recalculate()

    def forget_location(self, location_id: str) -> bool:
        """A location was deleted: drop it from the loaded list and clear the selection if it was chosen"""
        self.customer_locations = [loc for loc in self.customer_locations if loc.id != location_id]
        if self.selected_location and self.selected_location.location_id == location_id:
            self.selected_location = None
            self.recalculate()
            return True
        return False

    def clear_location(self) -> None:
        self.selected_location = None
        self.recalculate()

    def assign_delivery(self, delivery_id: Optional[str]) -> None:
        self.assigned_delivery_id = delivery_id

    # ------------------------------------------------------------------
    # Timing / payment / notes
    # ------------------------------------------------------------------

    def set_timing(self, timing_type: TimingType, scheduled_date: str = "", scheduled_time: str = "") -> None:
        self.timing_type = TimingType(timing_type)
        if self.timing_type == TimingType.SCHEDULED:
            self.scheduled_date = scheduled_date or ""
            self.scheduled_time = scheduled_time or ""
        else:
            self.scheduled_date = ""
            self.scheduled_time = ""

    def set_payment_method(self, method: PaymentMethod) -> None:
        self.payment_method = PaymentMethod(method)
        if self.payment_method == PaymentMethod.MIXED:
            self._rebalance_mixed()
        else:
            self.cash_amount = 0.0
            self.transfer_amount = 0.0

    def set_cash_amount(self, amount: float) -> None:
        """Edit the cash part of a mixed payment; transfer becomes the remainder. Ignored for other methods"""
        if self.payment_method != PaymentMethod.MIXED:
            return
        self.cash_amount = round(max(0.0, float(amount)), 2)
        self.transfer_amount = round(max(0.0, self.total - self.cash_amount), 2)

    def set_transfer_amount(self, amount: float) -> None:
        """Edit the transfer part of a mixed payment; cash becomes the remainder. Ignored for other methods"""
        if self.payment_method != PaymentMethod.MIXED:
            return
        self.transfer_amount = round(max(0.0, float(amount)), 2)
        self.cash_amount = round(max(0.0, self.total - self.transfer_amount), 2)

    def set_payment_status(self, status: PaymentStatus) -> None:
        self.payment_status = PaymentStatus(status)

    def set_bank(self, bank: str) -> None:
        self.selected_bank = bank or ""

    def set_notes(self, notes: str) -> None:
        self.notes = notes or ""

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def recalculate(self) -> Totals:
        previous_total = self.total
        self.subtotal = round(sum(line.unit_price * line.quantity for line in self.items), 2)
        if self.delivery_type == DeliveryType.DELIVERY and self.selected_location is not None:
            self.delivery_fee = round(self.selected_location.delivery_fee, 2)
        else:
            self.delivery_fee = 0.0
        self.total = round(self.subtotal + self.delivery_fee, 2)

        if self.payment_method == PaymentMethod.MIXED and self.total != previous_total:
            self._rebalance_mixed()
        return self.totals()

    def _rebalance_mixed(self) -> None:
        if self.cash_amount == 0 and self.transfer_amount == 0:
            if self.total > 0:
                self.cash_amount = round(self.total / 2, 2)
                self.transfer_amount = round(self.total - self.cash_amount, 2)
        else:
            self.transfer_amount = round(max(0.0, self.total - self.cash_amount), 2)

    def totals(self) -> Totals:
        return Totals(subtotal=self.subtotal, delivery_fee=self.delivery_fee, total=self.total)

    # ------------------------------------------------------------------
    # Validation and lifecycle
    # ------------------------------------------------------------------

    def validate_draft(self, tolerance: float = MIXED_PAYMENT_TOLERANCE) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []

        if not self.customer_phone.strip():
            issues.append(ValidationIssue(field="customer_phone", message="El celular del cliente es obligatorio"))
        if not self.customer_name.strip():
            issues.append(ValidationIssue(field="customer_name", message="El nombre del cliente es obligatorio"))
        if not self.items:
            issues.append(ValidationIssue(field="items", message="Agrega al menos un producto"))
        issues.extend(self._delivery_issues())
        issues.extend(self._timing_issues())
        issues.extend(self._payment_issues(tolerance))
        return issues

    def _delivery_issues(self) -> List[ValidationIssue]:
        if self.delivery_type is None:
            return [ValidationIssue(field="delivery_type", message="Selecciona retiro o delivery")]
        if self.delivery_type == DeliveryType.DELIVERY and self.selected_location is None:
            return [ValidationIssue(field="selected_location", message="Selecciona una ubicación para el delivery")]
        return []

    def _timing_issues(self) -> List[ValidationIssue]:
        if self.timing_type != TimingType.SCHEDULED:
            return []
        if not self.scheduled_date.strip() or not self.scheduled_time.strip():
            return [ValidationIssue(field="timing", message="Indica fecha y hora para el pedido programado")]
        try:
            parse_schedule(self.scheduled_date, self.scheduled_time)
        except ValueError:
            return [ValidationIssue(field="timing", message="Fecha u hora programada inválida")]
        return []

    def _payment_issues(self, tolerance: float) -> List[ValidationIssue]:
        if self.payment_method != PaymentMethod.MIXED:
            return []
        if abs(self.cash_amount + self.transfer_amount - self.total) > tolerance:
            return [ValidationIssue(
                field="payment",
                message=f"Efectivo + transferencia debe sumar ${self.total:.2f}",
            )]
        return []

    @property
    def stage(self) -> DraftStage:
        if self.submitting:
            return DraftStage.SUBMITTING
        if not self.customer_phone and not self.customer_name and not self.items and self.delivery_type is None:
            return DraftStage.EMPTY
        if not self.customer_phone.strip() or not self.customer_name.strip():
            return DraftStage.CLIENT_PENDING
        if not self.items:
            return DraftStage.CLIENT_RESOLVED
        if self._delivery_issues() or self._timing_issues():
            return DraftStage.ITEMS_SELECTED
        if self._payment_issues(MIXED_PAYMENT_TOLERANCE):
            return DraftStage.DELIVERY_SELECTED
        if self.validate_draft():
            return DraftStage.PAYMENT_CONFIGURED
        return DraftStage.READY_TO_SUBMIT

    @property
    def is_ready_to_submit(self) -> bool:
        return self.stage == DraftStage.READY_TO_SUBMIT

    def begin_submit(self, tolerance: float = MIXED_PAYMENT_TOLERANCE) -> None:
        if self.submitting:
            raise SubmissionInProgress(self.id)
        issues = self.validate_draft(tolerance)
        if issues:
            raise ValidationFailed(issues)
        self.submitting = True
        self.last_error = None

    def submit_failed(self, error: str) -> None:
        self.submitting = False
        self.last_error = error

    def reset(self) -> None:
        """Back to empty defaults; identity, business and search generation survive"""
        fresh = OrderDraft(id=self.id, business_id=self.business_id, search_generation=self.search_generation)
        for name in type(self).model_fields:
            setattr(self, name, getattr(fresh, name))

    def next_search_generation(self) -> int:
        self.search_generation += 1
        return self.search_generation

    # ------------------------------------------------------------------
    # Event application
    # ------------------------------------------------------------------

    def apply(self, event: "DraftEvent", catalog: Optional[Mapping[str, Product]] = None) -> "OrderDraft":
        """Apply one event in place and return the draft; refused while a submit is in flight"""
        if self.submitting:
            raise SubmissionInProgress(self.id)
        if isinstance(event, SetCustomer):
            self.set_customer(event.phone, event.name)
        elif isinstance(event, AddItem):
            product = (catalog or {}).get(event.product_id)
            if product is None:
                raise NotFound("Product", event.product_id)
            self.add_item(product, event.variant)
        elif isinstance(event, SetQuantity):
            self.set_quantity(event.index, event.quantity)
        elif isinstance(event, RemoveItem):
            self.remove_item(event.index)
        elif isinstance(event, SetDeliveryType):
            self.set_delivery_type(event.delivery_type)
        elif isinstance(event, SelectLocation):
            self.select_location(event.location_id)
        elif isinstance(event, ClearLocation):
            self.clear_location()
        elif isinstance(event, AssignDelivery):
            self.assign_delivery(event.delivery_id)
        elif isinstance(event, SetTiming):
            self.set_timing(event.timing_type, event.scheduled_date, event.scheduled_time)
        elif isinstance(event, SetPaymentMethod):
            self.set_payment_method(event.method)
        elif isinstance(event, SetCashAmount):
            self.set_cash_amount(event.amount)
        elif isinstance(event, SetTransferAmount):
            self.set_transfer_amount(event.amount)
        elif isinstance(event, SetPaymentStatus):
            self.set_payment_status(event.status)
        elif isinstance(event, SetBank):
            self.set_bank(event.bank)
        elif isinstance(event, SetNotes):
            self.set_notes(event.notes)
        else:
            raise TypeError(f"Unsupported draft event: {type(event).__name__}")
        return self

    def summary(self) -> dict:
        data = self.model_dump(mode="json")
        data["stage"] = self.stage.value
        data["issues"] = [issue.model_dump() for issue in self.validate_draft()]
        data["is_ready_to_submit"] = self.is_ready_to_submit
        return data


# ============================================================================
# EVENTS
# ============================================================================

class SetCustomer(BaseModel):
    type: Literal["set_customer"] = "set_customer"
    phone: Optional[str] = None
    name: Optional[str] = None


class AddItem(BaseModel):
    type: Literal["add_item"] = "add_item"
    product_id: str
    variant: Optional[str] = None


class SetQuantity(BaseModel):
    type: Literal["set_quantity"] = "set_quantity"
    index: int
    quantity: int


class RemoveItem(BaseModel):
    type: Literal["remove_item"] = "remove_item"
    index: int


class SetDeliveryType(BaseModel):
    type: Literal["set_delivery_type"] = "set_delivery_type"
    delivery_type: DeliveryType


class SelectLocation(BaseModel):
    type: Literal["select_location"] = "select_location"
    location_id: str


class ClearLocation(BaseModel):
    type: Literal["clear_location"] = "clear_location"


class AssignDelivery(BaseModel):
    type: Literal["assign_delivery"] = "assign_delivery"
    delivery_id: Optional[str] = None


class SetTiming(BaseModel):
    type: Literal["set_timing"] = "set_timing"
    timing_type: TimingType
    scheduled_date: str = ""
    scheduled_time: str = ""


class SetPaymentMethod(BaseModel):
    type: Literal["set_payment_method"] = "set_payment_method"
    method: PaymentMethod


class SetCashAmount(BaseModel):
    type: Literal["set_cash_amount"] = "set_cash_amount"
    amount: float


class SetTransferAmount(BaseModel):
    type: Literal["set_transfer_amount"] = "set_transfer_amount"
    amount: float


class SetPaymentStatus(BaseModel):
    type: Literal["set_payment_status"] = "set_payment_status"
    status: PaymentStatus


class SetBank(BaseModel):
    type: Literal["set_bank"] = "set_bank"
    bank: str = ""


class SetNotes(BaseModel):
    type: Literal["set_notes"] = "set_notes"
    notes: str = ""


DraftEvent = Annotated[
    Union[
        SetCustomer, AddItem, SetQuantity, RemoveItem, SetDeliveryType, SelectLocation,
        ClearLocation, AssignDelivery, SetTiming, SetPaymentMethod, SetCashAmount,
        SetTransferAmount, SetPaymentStatus, SetBank, SetNotes,
    ],
    Field(discriminator="type"),
]
