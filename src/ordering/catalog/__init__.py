"""Catalog provider factory.

Provides get_catalog() / set_catalog() to swap implementations:
- InMemoryCatalog for development and testing
- a real menu service adapter in production
"""

from ordering.catalog.memory import InMemoryCatalog
from ordering.catalog.port import CatalogItem, CatalogProvider, CustomizationOption

_current_catalog: CatalogProvider | None = None


def get_catalog() -> CatalogProvider:
    """Return the current catalog provider. Defaults to an empty InMemoryCatalog."""
    global _current_catalog
    if _current_catalog is None:
        _current_catalog = InMemoryCatalog()
    return _current_catalog


def set_catalog(catalog: CatalogProvider) -> None:
    """Override the active catalog provider (useful for tests)."""
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    """Reset to default catalog."""
    global _current_catalog
    _current_catalog = None


__all__ = [
    "CatalogItem",
    "CatalogProvider",
    "CustomizationOption",
    "InMemoryCatalog",
    "get_catalog",
    "reset_catalog",
    "set_catalog",
]
