"""Catalog provider port (abstract interface).

The menu is owned by an external catalog; the ordering core only reads it.
Items cross the boundary as frozen dataclasses so that a cart never holds a
live reference the catalog could mutate underneath it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ordering.exceptions import InvalidAmount


@dataclass(frozen=True)
class CustomizationOption:
    """An optional extra on a menu item, e.g. "Extra cheese" for 1.50."""

    name: str
    additional_cost: float = 0.0
    description: str = ""

    def __post_init__(self) -> None:
        if self.additional_cost < 0:
            raise InvalidAmount({"additional_cost": [f"Customization '{self.name}' cannot have a negative cost"]})


@dataclass(frozen=True)
class CatalogItem:
    """A purchasable menu item as published by the catalog."""

    item_id: str
    name: str
    price: float
    available: bool = True
    category: str = ""
    description: str = ""
    preparation_minutes: int = 0
    dietary_tags: tuple[str, ...] = ()
    customization_options: tuple[CustomizationOption, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.price < 0:
            raise InvalidAmount({"price": [f"Item '{self.name}' cannot have a negative price"]})

    def option(self, name: str) -> CustomizationOption | None:
        """Return the customization option with this name (case-insensitive)."""
        return next(
            (o for o in self.customization_options if o.name.lower() == name.strip().lower()),
            None,
        )

    def has_dietary_tag(self, tag: str) -> bool:
        return tag.lower() in {t.lower() for t in self.dietary_tags}


class CatalogProvider(ABC):
    """Abstract catalog interface."""

    @abstractmethod
    def get(self, item_id: str) -> CatalogItem | None:
        """Return the item with this identifier, or None if unknown."""
        ...

    @abstractmethod
    def list_available(self, category: str | None = None) -> list[CatalogItem]:
        """Return available items, optionally restricted to one category."""
        ...
