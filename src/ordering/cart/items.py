"""Cart item management — commands and handler.

The catalog item is looked up through the catalog provider so that the
cart always prices a line from the published menu, never from the request.
"""

import json

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.catalog import get_catalog
from ordering.domain import ordering


@ordering.command(part_of="Cart")
class AddToCart:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)
    customizations = Text()  # JSON array of customization names


@ordering.command(part_of="Cart")
class UpdateCartQuantity:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    new_quantity = Integer(required=True)  # zero or less removes the line


@ordering.command(part_of="Cart")
class RemoveFromCart:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@ordering.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        item = get_catalog().get(command.item_id)
        if item is None:
            raise ObjectNotFoundError({"item_id": [f"Menu item {command.item_id} does not exist"]})

        customizations = (
            json.loads(command.customizations) if isinstance(command.customizations, str) else command.customizations
        )

        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.add_item(item, quantity=command.quantity, customizations=customizations or [])
        repo.add(cart)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.update_quantity(item_id=command.item_id, new_quantity=command.new_quantity)
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.remove_item(item_id=command.item_id)
        repo.add(cart)
