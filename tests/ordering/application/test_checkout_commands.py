"""Application tests for paying for orders, clearing cheques and refunds."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from ordering.cart.items import AddToCart
from ordering.cart.management import CreateCart
from ordering.checkout.finalization import PayForOrder
from ordering.checkout.settlement import ClearCheque, RefundPayment
from ordering.exceptions import AmountMismatch, InvalidTransition, UnsupportedPaymentMethod
from ordering.order.cancellation import CancelOrder
from ordering.order.order import Order, OrderPaymentStatus, OrderStatus
from ordering.order.placement import PlaceOrder
from ordering.payment.details import PaymentStatus
from ordering.payment.payment import Payment
from protean import current_domain


def _today():
    return datetime.now(UTC).date()


def _placed_order():
    cart_id = current_domain.process(CreateCart(customer_id="cust-001"), asynchronous=False)
    current_domain.process(
        AddToCart(
            cart_id=cart_id,
            item_id="margherita",
            quantity=2,
            customizations=json.dumps(["Extra Cheese"]),
        ),
        asynchronous=False,
    )
    return current_domain.process(
        PlaceOrder(cart_id=cart_id, customer_id="cust-001", delivery_address="12 High Street"),
        asynchronous=False,
    )


def _pay(order_id, method, **fields):
    return current_domain.process(PayForOrder(order_id=order_id, method=method, **fields), asynchronous=False)


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _payment(payment_id):
    return current_domain.repository_for(Payment).get(payment_id)


def _accepted_cheque():
    order_id = _placed_order()
    payment_id = _pay(order_id, "Check", cheque_number="000123", bank_name="Northern Bank", check_date=_today())
    return order_id, payment_id


class TestPayForOrderCommand:
    def test_cash_payment(self, menu):
        order_id = _placed_order()

        payment_id = _pay(order_id, "Cash", amount_tendered=40.00)

        payment = _payment(payment_id)
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.amount == 37.77
        assert payment.cash.change_due == 2.23

        order = _order(order_id)
        assert order.payment_status == OrderPaymentStatus.COMPLETED.value
        assert order.payment_id == payment_id

    def test_credit_payment_keeps_no_card_number(self, menu):
        order_id = _placed_order()

        payment_id = _pay(
            order_id,
            "Credit",
            card_number="4111 1111 1111 1111",
            card_holder="Jane Smith",
            expiry_date=_today() + timedelta(days=400),
            cvv="123",
        )

        payment = _payment(payment_id)
        assert payment.status == PaymentStatus.COMPLETED.value
        assert not payment.card.card_number
        assert not payment.card.cvv
        assert payment.card.last4 == "1111"

    def test_declined_payment_is_stored_and_order_untouched(self, menu):
        order_id = _placed_order()

        payment_id = _pay(
            order_id,
            "Check",
            cheque_number="000123",
            bank_name="Northern Bank",
            check_date=_today() + timedelta(days=5),
        )

        payment = _payment(payment_id)
        assert payment.status == PaymentStatus.FAILED.value
        assert "post-dated" in payment.failure_reason

        order = _order(order_id)
        assert order.payment_status == OrderPaymentStatus.PENDING.value
        assert order.status == OrderStatus.PENDING.value

    def test_retry_after_decline(self, menu):
        order_id = _placed_order()
        _pay(order_id, "Cash", amount_tendered=10.00)

        payment_id = _pay(order_id, "Cash", amount_tendered=50.00)

        assert _order(order_id).payment_id == payment_id
        assert _order(order_id).payment_status == OrderPaymentStatus.COMPLETED.value

    def test_amount_mismatch_stores_nothing(self, menu):
        order_id = _placed_order()

        with pytest.raises(AmountMismatch):
            _pay(order_id, "Cash", amount=10.00, amount_tendered=10.00)

        assert _order(order_id).payment_status == OrderPaymentStatus.PENDING.value

    def test_unknown_method_is_rejected(self, menu):
        order_id = _placed_order()
        with pytest.raises(UnsupportedPaymentMethod):
            _pay(order_id, "Bitcoin")

    def test_cancelled_order_cannot_be_paid(self, menu):
        order_id = _placed_order()
        current_domain.process(CancelOrder(order_id=order_id), asynchronous=False)

        with pytest.raises(InvalidTransition):
            _pay(order_id, "Cash", amount_tendered=40.00)


class TestClearChequeCommand:
    def test_cleared_cheque_completes_order(self, menu):
        order_id, payment_id = _accepted_cheque()
        assert _order(order_id).payment_status == OrderPaymentStatus.PENDING.value

        status = current_domain.process(ClearCheque(payment_id=payment_id), asynchronous=False)

        assert status == PaymentStatus.COMPLETED.value
        assert _payment(payment_id).cheque.is_cleared is True
        assert _order(order_id).payment_status == OrderPaymentStatus.COMPLETED.value

    def test_dishonoured_cheque_fails_order_payment(self, menu):
        order_id, payment_id = _accepted_cheque()

        current_domain.process(ClearCheque(payment_id=payment_id, outcome="Dishonoured"), asynchronous=False)

        assert _payment(payment_id).status == PaymentStatus.FAILED.value
        assert _order(order_id).payment_status == OrderPaymentStatus.FAILED.value


class TestRefundPaymentCommand:
    def test_refund_marks_payment_and_order(self, menu):
        order_id = _placed_order()
        payment_id = _pay(order_id, "Cash", amount_tendered=40.00)

        current_domain.process(RefundPayment(payment_id=payment_id, reason="Cold food"), asynchronous=False)

        assert _payment(payment_id).status == PaymentStatus.REFUNDED.value
        assert _order(order_id).payment_status == OrderPaymentStatus.REFUNDED.value

    def test_refund_after_cancellation(self, menu):
        order_id = _placed_order()
        payment_id = _pay(order_id, "Cash", amount_tendered=40.00)
        current_domain.process(CancelOrder(order_id=order_id), asynchronous=False)

        current_domain.process(RefundPayment(payment_id=payment_id), asynchronous=False)

        assert _payment(payment_id).status == PaymentStatus.REFUNDED.value
        assert _order(order_id).status == OrderStatus.CANCELLED.value

    def test_declined_payment_cannot_be_refunded(self, menu):
        order_id = _placed_order()
        payment_id = _pay(order_id, "Cash", amount_tendered=1.00)

        with pytest.raises(InvalidTransition):
            current_domain.process(RefundPayment(payment_id=payment_id), asynchronous=False)
