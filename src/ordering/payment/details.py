"""Payment enums and the per-method detail value objects.

Exactly one detail value object is populated on a Payment, matching its
``method``: ``cash`` for Cash, ``card`` for Credit, ``cheque`` for Check.
Detail fields are not ``required``: a missing holder name or
cheque number is a declined payment, not a construction error.
"""

from enum import Enum

from protean.fields import Boolean, Date, Float, String

from ordering.domain import ordering


class PaymentStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class PaymentMethod(Enum):
    CASH = "Cash"
    CREDIT = "Credit"
    CHECK = "Check"

    @classmethod
    def coerce(cls, value) -> "PaymentMethod":
        """Accept an enum, its value or its name, case-insensitively."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        aliases = {"card": cls.CREDIT, "credit_card": cls.CREDIT, "cheque": cls.CHECK}
        if text in aliases:
            return aliases[text]
        for member in cls:
            if text in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown payment method: {value}")


@ordering.value_object(part_of="Payment")
class CashTender:
    """Cash handed over at the counter or to the driver."""

    amount_tendered = Float(default=0.0)
    change_due = Float(default=0.0)


@ordering.value_object(part_of="Payment")
class CardDetails:
    """Credit card details.

    The full card number and CVV only live here until the payment is
    processed; afterwards only ``last4`` and the expiry date are kept.
    """

    card_number = String(max_length=64)
    holder_name = String(max_length=255)
    expiry_date = Date()
    cvv = String(max_length=8)
    last4 = String(max_length=4)
    authorized = Boolean(default=False)

    @property
    def masked_number(self) -> str:
        return f"**** **** **** {self.last4 or '????'}"


@ordering.value_object(part_of="Payment")
class ChequeDetails:
    """A paper cheque; accepted on receipt, completed once it clears."""

    cheque_number = String(max_length=50)
    bank_name = String(max_length=255)
    check_date = Date()
    is_cleared = Boolean(default=False)
