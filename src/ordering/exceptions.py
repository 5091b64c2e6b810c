"""Error taxonomy for the ordering core.

All errors are Protean exceptions constructed with a ``{field: [messages]}``
dict, so the FastAPI integration renders them like any other domain error.

- Argument errors (``ValidationError``): rejected at the call that introduced
  the bad value.
- Business-rule errors (``InvalidOperationError``): the request is well formed
  but cannot be honoured.
- State errors (``InvalidStateError``): the aggregate is in a state that does
  not accept the operation.
- Consistency errors: the caller passed stale or mismatched data.

Payment validation failures are not raised: they are recorded on the
payment itself and never raised.
"""

from protean.exceptions import InvalidOperationError, InvalidStateError, ValidationError


# ---------------------------------------------------------------------------
# Argument errors
# ---------------------------------------------------------------------------
class InvalidQuantity(ValidationError):
    """A non-positive quantity was supplied where a positive one is required."""


class InvalidAmount(ValidationError):
    """A negative monetary amount was supplied."""


class InvalidCustomization(ValidationError):
    """A customization was requested that the catalog item does not offer."""


class UnsupportedPaymentMethod(ValidationError):
    """The payment method is unknown or not accepted by this restaurant."""


# ---------------------------------------------------------------------------
# Business-rule errors
# ---------------------------------------------------------------------------
class ItemUnavailable(InvalidOperationError):
    """The catalog item is flagged unavailable."""


class EmptyCartError(InvalidOperationError):
    """An order cannot be created from a cart without lines."""


# ---------------------------------------------------------------------------
# State errors
# ---------------------------------------------------------------------------
class InvalidTransition(InvalidStateError):
    """The order or payment is in a state that rejects the requested change."""


# ---------------------------------------------------------------------------
# Consistency errors
# ---------------------------------------------------------------------------
class ConsistencyError(InvalidOperationError):
    """Base for hard failures caused by stale or tampered caller data."""


class AmountMismatch(ConsistencyError):
    """The payment amount differs from the order's total."""


class OrderMismatch(ConsistencyError):
    """The payment is linked to a different order."""
