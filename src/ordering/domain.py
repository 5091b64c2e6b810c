"""Ordering bounded context — carts, orders and payments for the restaurant.

Handles cart accumulation, order creation with its status lifecycle, and
payment processing through interchangeable payment methods. The checkout
coordinator ties order finalization to a successful payment.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
