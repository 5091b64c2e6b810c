"""Domain events for the Payment aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from ordering.domain import ordering


@ordering.event(part_of="Payment")
class PaymentCompleted:
    """Payment was taken in full (cash received, card authorized, or cheque cleared)."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    method = String(max_length=20, required=True)
    amount = Float(required=True)
    completed_at = DateTime(required=True)


@ordering.event(part_of="Payment")
class ChequeAccepted:
    """A valid cheque was received and awaits clearing."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    cheque_number = String(max_length=50)
    bank_name = String(max_length=255)
    amount = Float(required=True)
    accepted_at = DateTime(required=True)


@ordering.event(part_of="Payment")
class PaymentDeclined:
    """Payment details failed validation; the order can be paid another way."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    method = String(max_length=20, required=True)
    reason = String(max_length=1000)
    declined_at = DateTime(required=True)


@ordering.event(part_of="Payment")
class PaymentRefunded:
    """A completed payment (or an uncleared cheque) was returned."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(max_length=500)
    refunded_at = DateTime(required=True)


@ordering.event(part_of="Payment")
class ChequeCleared:
    """The bank honoured the cheque."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    cleared_at = DateTime(required=True)


@ordering.event(part_of="Payment")
class ChequeDishonoured:
    """The bank refused the cheque."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    dishonoured_at = DateTime(required=True)
