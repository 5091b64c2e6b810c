"""Paying for an order — command and handler.

Builds a Payment for the order in the requested method, runs it through the
``CheckoutCoordinator`` and persists both aggregates in the same unit of work.
A declined payment is still stored so the attempt stays on record; the
customer retries with a fresh ``PayForOrder``.
"""

import structlog
from protean import handle
from protean.fields import Date, Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.checkout.coordinator import CheckoutCoordinator
from ordering.config import checkout_settings
from ordering.domain import ordering
from ordering.exceptions import UnsupportedPaymentMethod
from ordering.order.order import Order
from ordering.payment.details import PaymentMethod
from ordering.payment.payment import Payment

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Payment")
class PayForOrder:
    """Pay for an order with cash, a credit card or a cheque.

    ``amount`` defaults to the order total. Only the fields of the chosen
    method are read.
    """

    order_id = Identifier(required=True)
    method = String(required=True, max_length=20)
    amount = Float()
    amount_tendered = Float()
    card_number = String(max_length=64)
    card_holder = String(max_length=255)
    expiry_date = Date()
    cvv = String(max_length=8)
    cheque_number = String(max_length=50)
    bank_name = String(max_length=255)
    check_date = Date()


def _details_for(method: PaymentMethod, command) -> dict:
    if method == PaymentMethod.CASH:
        return {"amount_tendered": command.amount_tendered}
    if method == PaymentMethod.CREDIT:
        return {
            "card_number": command.card_number,
            "holder_name": command.card_holder,
            "expiry_date": command.expiry_date,
            "cvv": command.cvv,
        }
    return {
        "cheque_number": command.cheque_number,
        "bank_name": command.bank_name,
        "check_date": command.check_date,
    }


@ordering.command_handler(part_of=Payment)
class PayForOrderHandler:
    @handle(PayForOrder)
    def pay_for_order(self, command):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)

        try:
            method = PaymentMethod.coerce(command.method)
        except ValueError:
            raise UnsupportedPaymentMethod({"method": [f"Unknown payment method: {command.method}"]}) from None

        payment = Payment.for_order(order, method, command.amount, **_details_for(method, command))

        result = CheckoutCoordinator(checkout_settings(), logger=logger).finalize_order(order, payment)

        current_domain.repository_for(Payment).add(payment)
        if result.approved:
            order_repo.add(order)
        return str(payment.id)
