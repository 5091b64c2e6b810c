"""Checkout coordinator — joins order finalization to payment processing.

The coordinator is the only piece of the ordering context that knows about
both the Order and the Payment aggregates. It checks that the pair belongs
together, processes the payment and records the outcome on the order:

    1. method accepted?      no  → UnsupportedPaymentMethod
    2. same order?           no  → OrderMismatch
    3. same amount?          no  → AmountMismatch   (order untouched)
    4. order still open?     no  → InvalidTransition
    5. still unpaid?         no  → InvalidTransition   (paid, or a cheque awaiting clearance)
    6. payment.process()
       - Completed           → order.payment_status = Completed
       - Pending (cheque)    → order.payment_status = Pending
       - Failed              → order untouched, result.approved is False

Persisting both aggregates is left to the caller (the ``PayForOrder`` handler
runs inside Protean's unit of work). Retry policy also belongs to the caller:
a declined payment is final, and a new Payment is built for the next attempt.
"""

from dataclasses import dataclass, field

import structlog

from ordering.config import CheckoutSettings
from ordering.exceptions import AmountMismatch, InvalidTransition, OrderMismatch, UnsupportedPaymentMethod
from ordering.order.order import Order, OrderPaymentStatus, OrderStatus
from ordering.payment.details import PaymentStatus
from ordering.payment.payment import Payment
from ordering.shared.money import to_cents


@dataclass(frozen=True)
class FinalizationResult:
    order: Order
    payment: Payment
    approved: bool
    reasons: tuple[str, ...] = field(default_factory=tuple)

    @property
    def awaiting_clearance(self) -> bool:
        return self.approved and self.payment.status == PaymentStatus.PENDING.value


class CheckoutCoordinator:
    def __init__(self, settings: CheckoutSettings | None = None, logger=None) -> None:
        self.settings = settings or CheckoutSettings()
        self.logger = logger or structlog.get_logger(__name__)

    def _check_pair(self, order: Order, payment: Payment) -> None:
        if not self.settings.accepts(payment.method):
            raise UnsupportedPaymentMethod(
                {"method": [f"{payment.method} payments are not accepted at this restaurant"]}
            )

        if str(payment.order_id) != str(order.id):
            self.logger.error(
                "Payment belongs to another order",
                order_id=str(order.id),
                payment_id=str(payment.id),
                payment_order_id=str(payment.order_id),
            )
            raise OrderMismatch({"order_id": [f"Payment {payment.id} was not raised against order {order.id}"]})

        if to_cents(payment.amount) != to_cents(order.pricing.total_amount):
            self.logger.error(
                "Payment amount does not match order total",
                order_id=str(order.id),
                payment_id=str(payment.id),
                payment_amount=payment.amount,
                order_total=order.pricing.total_amount,
            )
            raise AmountMismatch(
                {"amount": [f"Payment amount {payment.amount:.2f} does not match order total {order.pricing.total_amount:.2f}"]}
            )

        if order.is_terminal():
            raise InvalidTransition({"status": [f"Cannot take payment for an order that is {order.status}"]})
        if order.payment_status == OrderPaymentStatus.COMPLETED.value:
            raise InvalidTransition({"payment_status": [f"Order {order.id} has already been paid"]})
        if order.payment_status == OrderPaymentStatus.PENDING.value and order.payment_id:
            raise InvalidTransition(
                {"payment_id": [f"Order {order.id} has cheque payment {order.payment_id} awaiting clearance"]}
            )

    def finalize_order(self, order: Order, payment: Payment) -> FinalizationResult:
        """Process ``payment`` and record its outcome on ``order``.

        Consistency and state problems raise. A declined payment does not:
        it comes back as ``approved=False`` with the reasons, and the order's
        payment status is left as it was.
        """
        self._check_pair(order, payment)

        if not payment.process():
            reasons = tuple(payment.failure_reason.split("; ")) if payment.failure_reason else ()
            self.logger.warning(
                "Payment declined",
                order_id=str(order.id),
                payment_id=str(payment.id),
                method=payment.method,
                reasons=list(reasons),
            )
            return FinalizationResult(order=order, payment=payment, approved=False, reasons=reasons)

        order_status = (
            OrderPaymentStatus.COMPLETED
            if payment.status == PaymentStatus.COMPLETED.value
            else OrderPaymentStatus.PENDING
        )
        order.record_payment(
            payment_id=payment.id,
            payment_method=payment.method,
            payment_status=order_status,
            amount=payment.amount,
        )

        self.logger.info(
            "Payment accepted",
            order_id=str(order.id),
            payment_id=str(payment.id),
            method=payment.method,
            amount=payment.amount,
            payment_status=payment.status,
        )
        return FinalizationResult(order=order, payment=payment, approved=True)

    def record_cheque_clearance(self, order: Order, payment: Payment, outcome: str = "Cleared") -> FinalizationResult:
        """Apply the bank's verdict on an accepted cheque to both aggregates.

        A cleared cheque completes the order's payment; a dishonoured one
        marks it Failed so staff can chase the customer.
        """
        if str(payment.order_id) != str(order.id):
            raise OrderMismatch({"order_id": [f"Payment {payment.id} was not raised against order {order.id}"]})
        if order.status == OrderStatus.CANCELLED.value:
            raise InvalidTransition({"status": [f"Order {order.id} was cancelled; refund the cheque instead"]})
        if str(order.payment_id or "") != str(payment.id):
            raise OrderMismatch({"payment_id": [f"Payment {payment.id} is not the payment recorded on order {order.id}"]})

        payment.update_status(outcome)
        cleared = payment.status == PaymentStatus.COMPLETED.value

        order.record_payment(
            payment_id=payment.id,
            payment_method=payment.method,
            payment_status=OrderPaymentStatus.COMPLETED if cleared else OrderPaymentStatus.FAILED,
            amount=payment.amount,
        )

        log = self.logger.info if cleared else self.logger.warning
        log(
            "Cheque cleared" if cleared else "Cheque dishonoured",
            order_id=str(order.id),
            payment_id=str(payment.id),
        )
        reasons = () if cleared else (payment.failure_reason,)
        return FinalizationResult(order=order, payment=payment, approved=cleared, reasons=reasons)
