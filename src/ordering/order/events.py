"""Domain events for the Order aggregate.

These are what a notification collaborator subscribes to: the core publishes
status changes, it does not manage subscribers.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderCreated:
    """A new order was placed from a cart."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    line_count = Integer(required=True)
    subtotal = Float(required=True)
    tax_amount = Float(required=True)
    delivery_fee = Float(required=True)
    total_amount = Float(required=True)
    currency = String(max_length=3, default="GBP")
    is_delivery = Boolean(default=True)
    estimated_ready_at = DateTime()
    created_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new (non-terminal or terminal) status."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(max_length=50, required=True)
    new_status = String(max_length=50, required=True)
    message = String(max_length=500)
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled and its payment marked for refund."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    previous_status = String(max_length=50, required=True)
    reason = String(max_length=500)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    """The order was handed over to the customer."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaymentRecorded:
    """The outcome of a payment attempt was recorded against the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    payment_method = String(max_length=50, required=True)
    payment_status = String(max_length=50, required=True)
    amount = Float()


@ordering.event(part_of="Order")
class OrderTotalsRecalculated:
    """Tax or delivery fee was changed after creation and totals recomputed."""

    __version__ = 1

    order_id = Identifier(required=True)
    subtotal = Float(required=True)
    tax_amount = Float(required=True)
    delivery_fee = Float(required=True)
    total_amount = Float(required=True)
