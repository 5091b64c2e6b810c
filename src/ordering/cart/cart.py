"""Cart aggregate — the customer's selection awaiting checkout.

Lines are keyed by catalog item: adding an item that is already in the cart
increases the existing line's quantity instead of adding a second line. A
line never holds a quantity below one; reducing it to zero removes the line.
The cart is emptied once an Order has been created from it.
"""

import json
from datetime import UTC, datetime

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from ordering.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated
from ordering.catalog.port import CatalogItem, CustomizationOption
from ordering.domain import ordering
from ordering.exceptions import InvalidCustomization, InvalidQuantity, ItemUnavailable
from ordering.shared.money import round_money


@ordering.entity(part_of="Cart")
class LineItem:
    """One menu item in the cart with its quantity and chosen customizations.

    Name, price and customization cost are copied from the catalog item when
    the line is added or merged, so the cart can be priced without a catalog
    round-trip.
    """

    item_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    category = String(max_length=100)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    customizations = Text()  # JSON array of customization names
    customization_cost = Float(default=0.0, min_value=0.0)
    preparation_minutes = Integer(default=0)
    added_at = DateTime()

    @property
    def selected_customizations(self) -> list[str]:
        return json.loads(self.customizations) if self.customizations else []

    @property
    def line_total(self) -> float:
        return round_money((self.unit_price + (self.customization_cost or 0.0)) * self.quantity)


@ordering.aggregate
class Cart:
    customer_id = Identifier(required=True)
    items = HasMany(LineItem)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def line_for(self, item_id) -> LineItem | None:
        return next((line for line in self.items if str(line.item_id) == str(item_id)), None)

    def get_items(self) -> tuple[LineItem, ...]:
        """Lines in insertion order, as an immutable view."""
        return tuple(self.items)

    def total(self) -> float:
        return round_money(sum(line.line_total for line in self.items))

    def is_empty(self) -> bool:
        return not self.items

    def item_count(self) -> int:
        """Number of units across all lines."""
        return sum(line.quantity for line in self.items)

    def items_in_category(self, category: str) -> list[LineItem]:
        return [line for line in self.items if (line.category or "").lower() == category.lower()]

    def estimated_preparation_minutes(self, base_minutes: int = 30) -> int:
        return base_minutes + sum((line.preparation_minutes or 0) * line.quantity for line in self.items)

    def unavailable_lines(self, catalog) -> list[LineItem]:
        """Lines whose catalog item was withdrawn or marked unavailable since it was added."""
        unavailable = []
        for line in self.items:
            item = catalog.get(line.item_id)
            if item is None or not item.available:
                unavailable.append(line)
        return unavailable

    def ensure_available(self, catalog) -> None:
        unavailable = self.unavailable_lines(catalog)
        if unavailable:
            names = ", ".join(line.name for line in unavailable)
            raise ItemUnavailable({"items": [f"No longer available: {names}"]})

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    @staticmethod
    def _resolve_customizations(item: CatalogItem, names) -> list[CustomizationOption]:
        resolved: list[CustomizationOption] = []
        for name in names:
            option = item.option(name)
            if option is None:
                raise InvalidCustomization(
                    {"customizations": [f"'{name}' is not a customization offered for {item.name}"]}
                )
            if option not in resolved:
                resolved.append(option)
        return resolved

    def add_item(self, item: CatalogItem, quantity=1, customizations=None):
        """Add a catalog item to the cart, merging into an existing line for the same item."""
        if quantity is None or quantity <= 0:
            raise InvalidQuantity({"quantity": ["Quantity must be greater than zero"]})
        if not item.available:
            raise ItemUnavailable({"item_id": [f"{item.name} is currently unavailable"]})

        existing = self.line_for(item.item_id)
        requested = list(customizations or [])
        if existing:
            requested = existing.selected_customizations + requested
        options = self._resolve_customizations(item, requested)

        now = datetime.now(UTC)
        names = json.dumps([o.name for o in options])
        customization_cost = round_money(sum(o.additional_cost for o in options))

        if existing:
            existing.quantity += quantity
            existing.name = item.name
            existing.unit_price = item.price
            existing.customizations = names
            existing.customization_cost = customization_cost
            line = existing
        else:
            line = LineItem(
                item_id=item.item_id,
                name=item.name,
                category=item.category,
                unit_price=item.price,
                quantity=quantity,
                customizations=names,
                customization_cost=customization_cost,
                preparation_minutes=item.preparation_minutes,
                added_at=now,
            )
            self.add_items(line)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.item_id),
                name=item.name,
                quantity=quantity,
                line_total=line.line_total,
            )
        )

    def update_quantity(self, item_id, new_quantity):
        """Set a line's quantity. Zero or less removes the line."""
        if new_quantity is None or new_quantity <= 0:
            self.remove_item(item_id)
            return

        self.updated_at = datetime.now(UTC)
        line = self.line_for(item_id)
        if line is None:
            return

        previous_quantity = line.quantity
        line.quantity = new_quantity

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, item_id):
        """Remove the line for a catalog item. Removing an absent item is a no-op."""
        self.updated_at = datetime.now(UTC)
        line = self.line_for(item_id)
        if line is None:
            return

        self.remove_items(line)

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item_id),
            )
        )

    def clear(self):
        """Remove every line."""
        lines = list(self.items)
        for line in lines:
            self.remove_items(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                lines_removed=len(lines),
            )
        )
