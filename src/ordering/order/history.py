"""Customer order history — read-side queries over placed orders."""

from protean.utils.globals import current_domain

from ordering.order.order import Order


def orders_for_customer(customer_id: str, status: str | None = None) -> list[Order]:
    """Orders placed by a customer, newest first.

    ``status`` narrows the list to one order status, e.g. "Delivered".
    """
    filters = {"customer_id": customer_id}
    if status:
        filters["status"] = Order._coerce_status(status).value

    repo = current_domain.repository_for(Order)
    orders = repo._dao.query.filter(**filters).all().items
    return sorted(orders, key=lambda order: order.created_at, reverse=True)
