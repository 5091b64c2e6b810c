"""Cart management — commands and handler.

Handles cart creation and explicit clearing. Carts are emptied automatically
when an order is placed from them.
"""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.domain import ordering


@ordering.command(part_of="Cart")
class CreateCart:
    """Open a cart for a checkout session."""

    customer_id = Identifier(required=True)


@ordering.command(part_of="Cart")
class ClearCart:
    """Remove every line from a cart."""

    cart_id = Identifier(required=True)


@ordering.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        cart = Cart.create(customer_id=command.customer_id)
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.clear()
        repo.add(cart)
