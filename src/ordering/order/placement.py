"""Order placement — command and handler.

Converts a cart into an order: every line is re-checked against the catalog,
the order snapshots the cart's lines, the cart is emptied, and both aggregates
are persisted in the same unit of work.
"""

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.catalog import get_catalog
from ordering.config import checkout_settings
from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    delivery_address = String(max_length=500)
    is_delivery = Boolean(default=True)
    delivery_instructions = String(max_length=500)
    special_requests = String(max_length=1000)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart_repo = current_domain.repository_for(Cart)
        cart = cart_repo.get(command.cart_id)
        cart.ensure_available(get_catalog())

        order = Order.create(
            customer_id=command.customer_id,
            cart=cart,
            settings=checkout_settings(),
            delivery_address=command.delivery_address or "",
            is_delivery=command.is_delivery if command.is_delivery is not None else True,
            delivery_instructions=command.delivery_instructions or "",
            special_requests=command.special_requests or "",
        )

        current_domain.repository_for(Order).add(order)
        cart_repo.add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            customer_id=str(command.customer_id),
            total_amount=order.pricing.total_amount,
        )
        return str(order.id)
