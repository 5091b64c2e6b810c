"""Settling payments after checkout — commands and handler.

Cheques are accepted at the door but only count as paid once the bank clears
them. Refunds hand money (or the uncleared cheque) back to the customer.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.checkout.coordinator import CheckoutCoordinator
from ordering.config import checkout_settings
from ordering.domain import ordering
from ordering.order.order import Order, OrderPaymentStatus, OrderStatus
from ordering.payment.payment import Payment


@ordering.command(part_of="Payment")
class ClearCheque:
    """Report the bank's verdict on an accepted cheque: Cleared or Dishonoured."""

    payment_id = Identifier(required=True)
    outcome = String(max_length=20, default="Cleared")


@ordering.command(part_of="Payment")
class RefundPayment:
    payment_id = Identifier(required=True)
    reason = String(max_length=500)


@ordering.command_handler(part_of=Payment)
class SettlementHandler:
    @handle(ClearCheque)
    def clear_cheque(self, command):
        payment_repo = current_domain.repository_for(Payment)
        order_repo = current_domain.repository_for(Order)

        payment = payment_repo.get(command.payment_id)
        order = order_repo.get(payment.order_id)

        result = CheckoutCoordinator(checkout_settings()).record_cheque_clearance(
            order, payment, command.outcome or "Cleared"
        )

        payment_repo.add(payment)
        order_repo.add(order)
        return result.payment.status

    @handle(RefundPayment)
    def refund_payment(self, command):
        payment_repo = current_domain.repository_for(Payment)
        order_repo = current_domain.repository_for(Order)

        payment = payment_repo.get(command.payment_id)
        payment.refund(command.reason or "")
        payment_repo.add(payment)

        # Cancelled orders already carry Refunded.
        order = order_repo.get(payment.order_id)
        if order.status != OrderStatus.CANCELLED.value:
            order.record_payment(
                payment_id=payment.id,
                payment_method=payment.method,
                payment_status=OrderPaymentStatus.REFUNDED,
                amount=payment.amount,
            )
            order_repo.add(order)
