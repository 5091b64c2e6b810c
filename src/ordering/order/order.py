"""Order aggregate — a placed order, its monetary breakdown and status lifecycle.

An order is created from a non-empty Cart. Its lines are an independent
snapshot of the cart (name, quantity, unit price, customization cost), so a
later menu price change never alters a historical order.

Status lifecycle:
    PENDING → PREPARING → READY_FOR_DELIVERY → DELIVERED   (delivery orders)
    PENDING → PREPARING → READY_FOR_PICKUP → DELIVERED     (pickup orders)
    CANCELLED reachable from any non-terminal status

Only DELIVERED and CANCELLED are locked. Between the other statuses any move
is accepted: status is advisory metadata for the kitchen and the customer,
not a workflow engine.

Every status change appends to ``status_history``; entries are never edited
or reordered.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.config import CheckoutSettings
from ordering.domain import ordering
from ordering.exceptions import EmptyCartError, InvalidAmount, InvalidTransition
from ordering.order.events import (
    OrderCancelled,
    OrderCreated,
    OrderDelivered,
    OrderPaymentRecorded,
    OrderStatusChanged,
    OrderTotalsRecalculated,
)
from ordering.shared.money import format_money, round_money, to_cents

ORDER_CREATED_LABEL = "Order Created"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    PREPARING = "Preparing"
    READY_FOR_DELIVERY = "Ready for Delivery"
    READY_FOR_PICKUP = "Ready for Pickup"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class OrderPaymentStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"


_TERMINAL_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class OrderPricing:
    """Monetary breakdown of an order, locked at creation.

    ``total_amount`` is always ``subtotal + tax_amount + delivery_fee`` to the
    penny; every component is already rounded to two decimals.
    """

    subtotal = Float(default=0.0, min_value=0.0)
    tax_rate = Float(default=0.0, min_value=0.0, max_value=1.0)
    tax_amount = Float(default=0.0, min_value=0.0)
    delivery_fee = Float(default=0.0, min_value=0.0)
    total_amount = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="GBP")

    @invariant.post
    def total_must_equal_sum_of_components(self):
        expected = to_cents(self.subtotal) + to_cents(self.tax_amount) + to_cents(self.delivery_fee)
        if to_cents(self.total_amount) != expected:
            raise ValidationError(
                {"total_amount": [f"Total {self.total_amount} does not match subtotal + tax + delivery fee"]}
            )


@ordering.value_object(part_of="Order")
class DeliveryDetails:
    """Where and how the order is handed over."""

    is_delivery = Boolean(default=True)
    address = String(max_length=500)
    instructions = String(max_length=500)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLine:
    """Snapshot of one cart line, taken when the order was created."""

    item_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    customizations = Text()  # JSON array of customization names
    customization_cost = Float(default=0.0, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)

    @property
    def selected_customizations(self) -> list[str]:
        return json.loads(self.customizations) if self.customizations else []


@ordering.entity(part_of="Order")
class StatusUpdate:
    """One entry in the order's append-only status history."""

    status = String(required=True, max_length=100)
    message = String(max_length=500)
    sequence = Integer(required=True, min_value=1)
    recorded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    customer_id = Identifier(required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    payment_status = String(
        choices=OrderPaymentStatus,
        default=OrderPaymentStatus.PENDING.value,
    )
    payment_id = String(max_length=255)
    payment_method = String(max_length=50)
    lines = HasMany(OrderLine)
    status_history = HasMany(StatusUpdate)
    pricing = ValueObject(OrderPricing)
    delivery = ValueObject(DeliveryDetails)
    special_requests = String(max_length=1000)
    estimated_ready_at = DateTime()  # informational only, never enforced
    delivered_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def cancelled_order_must_be_refunded(self):
        if self.status == OrderStatus.CANCELLED.value and self.payment_status != OrderPaymentStatus.REFUNDED.value:
            raise ValidationError({"payment_status": ["A cancelled order must have its payment marked Refunded"]})

    @invariant.post
    def delivered_order_must_have_delivery_time(self):
        if self.status == OrderStatus.DELIVERED.value and self.delivered_at is None:
            raise ValidationError({"delivered_at": ["A delivered order must record when it was delivered"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id,
        cart,
        settings: CheckoutSettings | None = None,
        delivery_address: str = "",
        is_delivery: bool = True,
        delivery_instructions: str = "",
        special_requests: str = "",
    ):
        """Create an order from a cart and empty the cart.

        The order snapshots the cart's lines and prices them with the given
        settings. Pickup orders carry no delivery fee.

        Args:
            customer_id: The already-authenticated customer placing the order.
            cart: The Cart being checked out. Must have at least one line.
            settings: Tax rate, delivery fee, preparation time and currency.
                Defaults to ``CheckoutSettings()``.
            delivery_address: Free-form delivery address.
            is_delivery: False for collection orders.
            delivery_instructions: Notes for the driver.
            special_requests: Notes for the kitchen.
        """
        if cart.is_empty():
            raise EmptyCartError({"cart": ["Cannot create an order from an empty cart"]})

        settings = settings or CheckoutSettings()
        now = datetime.now(UTC)

        order = cls(
            customer_id=customer_id,
            status=OrderStatus.PENDING.value,
            payment_status=OrderPaymentStatus.PENDING.value,
            delivery=DeliveryDetails(
                is_delivery=is_delivery,
                address=delivery_address,
                instructions=delivery_instructions,
            ),
            special_requests=special_requests,
            estimated_ready_at=now + timedelta(minutes=settings.preparation_minutes),
            created_at=now,
            updated_at=now,
        )

        for line in cart.get_items():
            order.add_lines(
                OrderLine(
                    item_id=line.item_id,
                    name=line.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    customizations=json.dumps(line.selected_customizations),
                    customization_cost=line.customization_cost or 0.0,
                    line_total=line.line_total,
                )
            )

        order.pricing = cls._price(
            order.lines,
            tax_rate=settings.tax_rate,
            delivery_fee=settings.delivery_fee if is_delivery else 0.0,
            currency=settings.currency,
        )
        order._append_history(ORDER_CREATED_LABEL, "Your order has been placed successfully", now)

        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                customer_id=str(customer_id),
                line_count=len(order.lines),
                subtotal=order.pricing.subtotal,
                tax_amount=order.pricing.tax_amount,
                delivery_fee=order.pricing.delivery_fee,
                total_amount=order.pricing.total_amount,
                currency=order.pricing.currency,
                is_delivery=is_delivery,
                estimated_ready_at=order.estimated_ready_at,
                created_at=now,
            )
        )

        cart.clear()
        return order

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    @staticmethod
    def _price(lines, tax_rate: float, delivery_fee: float, currency: str) -> OrderPricing:
        subtotal = round_money(sum(line.line_total for line in lines))
        tax_amount = round_money(subtotal * tax_rate)
        fee = round_money(delivery_fee)
        return OrderPricing(
            subtotal=subtotal,
            tax_rate=tax_rate,
            tax_amount=tax_amount,
            delivery_fee=fee,
            total_amount=round_money(subtotal + tax_amount + fee),
            currency=currency,
        )

    def recalculate_totals(self, tax_rate: float | None = None, delivery_fee: float | None = None) -> None:
        """Recompute the breakdown from the snapshot lines.

        Totals are never recomputed implicitly; fee or tax adjustments after
        creation must go through here. Refused once the order is terminal or
        its payment has completed.
        """
        self._assert_not_terminal("recalculate totals")
        if self.payment_status == OrderPaymentStatus.COMPLETED.value:
            raise InvalidTransition({"pricing": ["Totals cannot change after payment has completed"]})
        if delivery_fee is not None and delivery_fee < 0:
            raise InvalidAmount({"delivery_fee": ["Delivery fee cannot be negative"]})

        self.pricing = self._price(
            self.lines,
            tax_rate=self.pricing.tax_rate if tax_rate is None else tax_rate,
            delivery_fee=self.pricing.delivery_fee if delivery_fee is None else delivery_fee,
            currency=self.pricing.currency,
        )
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderTotalsRecalculated(
                order_id=str(self.id),
                subtotal=self.pricing.subtotal,
                tax_amount=self.pricing.tax_amount,
                delivery_fee=self.pricing.delivery_fee,
                total_amount=self.pricing.total_amount,
            )
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _coerce_status(value) -> OrderStatus:
        if isinstance(value, OrderStatus):
            return value
        try:
            return OrderStatus(value)
        except ValueError:
            pass
        try:
            return OrderStatus[str(value).strip().upper().replace(" ", "_")]
        except KeyError:
            raise ValidationError({"status": [f"Unknown order status: {value}"]}) from None

    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in _TERMINAL_STATES

    def _assert_not_terminal(self, action: str) -> None:
        if self.is_terminal():
            raise InvalidTransition({"status": [f"Cannot {action}: order is already {self.status}"]})

    def _append_history(self, status: str, message: str, at: datetime) -> None:
        self.add_status_history(
            StatusUpdate(
                status=status,
                message=message,
                sequence=len(self.status_history or []) + 1,
                recorded_at=at,
            )
        )

    # -------------------------------------------------------------------
    # Status lifecycle
    # -------------------------------------------------------------------
    def update_status(self, new_status, message: str = "") -> None:
        """Move the order to ``new_status`` and record it in the history.

        Any status may follow any non-terminal status. Moving to CANCELLED or
        DELIVERED behaves like ``cancel()`` / ``mark_delivered()``.
        """
        target = self._coerce_status(new_status)
        self._assert_not_terminal(f"change status to {target.value}")

        if target == OrderStatus.CANCELLED:
            self._cancel(message or "Your order has been cancelled")
            return
        if target == OrderStatus.DELIVERED:
            self._deliver(message or "Your order has been delivered")
            return

        previous = self.status
        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = target.value
            self.updated_at = now
            self._append_history(target.value, message, now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                message=message,
                changed_at=now,
            )
        )

    def start_preparing(self, message: str = "Your order is being prepared") -> None:
        self.update_status(OrderStatus.PREPARING, message)

    def mark_ready(self, message: str = "") -> None:
        """Mark the order ready for delivery, or for pickup if it is a collection order."""
        if self.delivery is None or self.delivery.is_delivery:
            self.update_status(OrderStatus.READY_FOR_DELIVERY, message or "Your order is on its way")
        else:
            self.update_status(OrderStatus.READY_FOR_PICKUP, message or "Your order is ready for collection")

    def cancel(self, reason: str = "") -> None:
        """Cancel the order and mark its payment Refunded. No-op if already cancelled."""
        if self.status == OrderStatus.CANCELLED.value:
            return
        self._assert_not_terminal("cancel")
        self._cancel(reason or "Your order has been cancelled")

    def _cancel(self, message: str) -> None:
        previous = self.status
        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = OrderStatus.CANCELLED.value
            self.payment_status = OrderPaymentStatus.REFUNDED.value
            self.updated_at = now
            self._append_history("Order Cancelled", message, now)

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                previous_status=previous,
                reason=message,
                cancelled_at=now,
            )
        )

    def mark_delivered(self, message: str = "Your order has been delivered") -> None:
        if self.status == OrderStatus.CANCELLED.value:
            raise InvalidTransition({"status": ["A cancelled order cannot be delivered"]})
        self._assert_not_terminal("mark delivered")
        self._deliver(message)

    def _deliver(self, message: str) -> None:
        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = OrderStatus.DELIVERED.value
            self.delivered_at = now
            self.updated_at = now
            self._append_history(OrderStatus.DELIVERED.value, message, now)

        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                delivered_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment(self, payment_id, payment_method: str, payment_status, amount: float | None = None) -> None:
        """Record the outcome of a payment attempt against this order.

        Allowed on a delivered order so a cheque can still clear after the
        food has gone out; a cancelled order keeps its Refunded status.
        """
        if self.status == OrderStatus.CANCELLED.value:
            raise InvalidTransition({"payment_status": ["Cannot record a payment on a cancelled order"]})
        try:
            status = OrderPaymentStatus(
                payment_status.value if isinstance(payment_status, Enum) else payment_status
            )
        except ValueError:
            raise ValidationError({"payment_status": [f"Unknown payment status: {payment_status}"]}) from None

        with atomic_change(self):
            self.payment_id = str(payment_id)
            self.payment_method = payment_method
            self.payment_status = status.value
            self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderPaymentRecorded(
                order_id=str(self.id),
                payment_id=str(payment_id),
                payment_method=payment_method,
                payment_status=status.value,
                amount=amount,
            )
        )

    # -------------------------------------------------------------------
    # Read accessors
    # -------------------------------------------------------------------
    def get_lines(self) -> tuple[OrderLine, ...]:
        return tuple(self.lines)

    def get_history(self) -> tuple[StatusUpdate, ...]:
        """Status history, oldest first."""
        return tuple(sorted(self.status_history or [], key=lambda update: update.sequence))

    def latest_status(self) -> StatusUpdate | None:
        history = self.get_history()
        return history[-1] if history else None

    def is_ready_for_delivery(self) -> bool:
        return (
            self.status in (OrderStatus.READY_FOR_DELIVERY.value, OrderStatus.READY_FOR_PICKUP.value)
            and self.payment_status == OrderPaymentStatus.COMPLETED.value
        )

    def summary(self) -> str:
        total = format_money(self.pricing.total_amount, self.pricing.currency)
        return f"Order #{self.id} - {len(self.lines)} items - {total} - {self.status}"

    def track(self) -> str:
        total = format_money(self.pricing.total_amount, self.pricing.currency)
        return f"Order {self.id}: {self.status} - Total: {total}"
