from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

MARGHERITA = "margherita"
GARLIC_BREAD = "garlic-bread"
TIRAMISU = "tiramisu"


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    from ordering.catalog import reset_catalog

    with ordering_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

    reset_catalog()


@pytest.fixture()
def menu():
    """A small menu installed as the active catalog."""
    from ordering.catalog import CatalogItem, CustomizationOption, InMemoryCatalog, set_catalog

    catalog = InMemoryCatalog(
        [
            CatalogItem(
                item_id=MARGHERITA,
                name="Margherita Pizza",
                price=12.99,
                category="Pizza",
                preparation_minutes=15,
                dietary_tags=("vegetarian",),
                customization_options=(
                    CustomizationOption(name="Extra Cheese", additional_cost=1.50),
                    CustomizationOption(name="Gluten-Free Base", additional_cost=2.00),
                ),
            ),
            CatalogItem(
                item_id=GARLIC_BREAD,
                name="Garlic Bread",
                price=4.50,
                category="Sides",
                preparation_minutes=5,
            ),
            CatalogItem(
                item_id=TIRAMISU,
                name="Tiramisu",
                price=5.25,
                category="Desserts",
                available=False,
            ),
        ]
    )
    set_catalog(catalog)
    return catalog


@pytest.fixture()
def future_date():
    return (datetime.now(UTC) + timedelta(days=365)).date()


@pytest.fixture()
def past_date():
    return (datetime.now(UTC) - timedelta(days=1)).date()
