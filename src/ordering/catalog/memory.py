"""In-memory catalog for development and testing.

Stands in for the real menu service: items are registered with ``add`` and
can be toggled unavailable to exercise the cart's availability guard.
"""

from dataclasses import replace

from ordering.catalog.port import CatalogItem, CatalogProvider


class InMemoryCatalog(CatalogProvider):
    """Dictionary-backed catalog."""

    def __init__(self, items: list[CatalogItem] | None = None) -> None:
        self._items: dict[str, CatalogItem] = {}
        for item in items or []:
            self.add(item)

    def add(self, item: CatalogItem) -> None:
        self._items[str(item.item_id)] = item

    def set_availability(self, item_id: str, available: bool) -> None:
        item = self._items[str(item_id)]
        self._items[str(item_id)] = replace(item, available=available)

    def get(self, item_id: str) -> CatalogItem | None:
        return self._items.get(str(item_id))

    def list_available(self, category: str | None = None) -> list[CatalogItem]:
        return [
            item
            for item in self._items.values()
            if item.available and (category is None or item.category.lower() == category.lower())
        ]
