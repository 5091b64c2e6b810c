"""Tests for the Payment aggregate's factories, amounts and refunds."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.cart.cart import Cart
from ordering.catalog import CatalogItem
from ordering.exceptions import InvalidAmount, InvalidTransition, UnsupportedPaymentMethod
from ordering.order.order import Order
from ordering.payment.details import CardDetails, CashTender, PaymentMethod, PaymentStatus
from ordering.payment.events import PaymentRefunded
from ordering.payment.payment import Payment
from protean.exceptions import ValidationError

VALID_CARD = "4111111111111111"


def _order():
    cart = Cart.create(customer_id="cust-001")
    cart.add_item(CatalogItem(item_id="margherita", name="Margherita Pizza", price=12.99), 1)
    return Order.create("cust-001", cart)


def _cash(amount=20.00, tendered=20.00):
    return Payment.cash_payment(order_id="ord-001", customer_id="cust-001", amount=amount, amount_tendered=tendered)


def _cheque():
    return Payment.check_payment(
        order_id="ord-001",
        customer_id="cust-001",
        amount=20.00,
        cheque_number="000777",
        bank_name="Northern Bank",
    )


class TestFactories:
    def test_cash_factory(self):
        payment = _cash()
        assert payment.method == PaymentMethod.CASH.value
        assert payment.status == PaymentStatus.PENDING.value
        assert payment.cash.amount_tendered == 20.00
        assert payment.card is None
        assert payment.cheque is None

    def test_check_defaults_date_to_today(self):
        payment = _cheque()
        assert payment.cheque.check_date == datetime.now(UTC).date()

    def test_negative_amount_is_rejected(self):
        with pytest.raises(InvalidAmount):
            _cash(amount=-5.00)

    @pytest.mark.parametrize("amount", [10.005, 37.774])
    def test_fractions_of_a_penny_are_rejected(self, amount):
        with pytest.raises(InvalidAmount):
            _cash(amount=amount, tendered=40.00)

    def test_cash_factory_populates_cash_tender(self):
        payment = Payment.for_order(_order(), "Cash", amount_tendered=40.00)
        assert isinstance(payment.cash, CashTender)
        assert payment.cash.amount_tendered == 40.00

    def test_method_requires_matching_details(self):
        with pytest.raises(ValidationError) as exc:
            Payment(order_id="ord-001", customer_id="cust-001", amount=10.0, method="Cash")
        assert "cash" in exc.value.messages

    def test_cash_payment_with_card_details_is_invalid(self):
        with pytest.raises(ValidationError):
            Payment(
                order_id="ord-001",
                customer_id="cust-001",
                amount=10.0,
                method="Cash",
                card=CardDetails(card_number=VALID_CARD, holder_name="Jane Smith"),
            )


class TestForOrder:
    def test_defaults_amount_to_order_total(self):
        order = _order()
        payment = Payment.for_order(order, "Cash", amount_tendered=50.00)

        assert payment.order_id == str(order.id)
        assert payment.customer_id == "cust-001"
        assert payment.amount == order.pricing.total_amount
        assert payment.currency == "GBP"

    def test_explicit_amount_wins(self):
        payment = Payment.for_order(_order(), "Cash", amount=5.00, amount_tendered=5.00)
        assert payment.amount == 5.00

    @pytest.mark.parametrize(
        "method, expected",
        [
            ("cash", PaymentMethod.CASH),
            ("CREDIT", PaymentMethod.CREDIT),
            ("card", PaymentMethod.CREDIT),
            ("Check", PaymentMethod.CHECK),
            ("cheque", PaymentMethod.CHECK),
            (PaymentMethod.CHECK, PaymentMethod.CHECK),
        ],
    )
    def test_method_aliases(self, method, expected):
        details = {
            PaymentMethod.CASH: {"amount_tendered": 50.00},
            PaymentMethod.CREDIT: {
                "card_number": "4111111111111111",
                "holder_name": "Jane Smith",
                "expiry_date": datetime.now(UTC).date() + timedelta(days=30),
                "cvv": "123",
            },
            PaymentMethod.CHECK: {"cheque_number": "000123", "bank_name": "Northern Bank"},
        }[expected]

        payment = Payment.for_order(_order(), method, **details)
        assert payment.method == expected.value

    def test_unknown_method_is_rejected(self):
        with pytest.raises(UnsupportedPaymentMethod):
            Payment.for_order(_order(), "Bitcoin")


class TestSetAmount:
    def test_set_amount(self):
        payment = _cash()
        payment.set_amount(12.50)
        assert payment.amount == 12.50

    def test_negative_amount_is_an_argument_error(self):
        payment = _cash()
        with pytest.raises(InvalidAmount):
            payment.set_amount(-0.01)
        assert payment.amount == 20.00

    def test_sub_penny_amount_is_an_argument_error(self):
        payment = _cash()
        with pytest.raises(InvalidAmount):
            payment.set_amount(12.505)
        assert payment.amount == 20.00

    def test_cannot_change_amount_after_processing(self):
        payment = _cash()
        payment.process()
        with pytest.raises(InvalidTransition):
            payment.set_amount(5.00)


class TestProcessing:
    def test_zero_amount_is_declined(self):
        payment = Payment.check_payment(
            order_id="ord-001",
            customer_id="cust-001",
            amount=0.0,
            cheque_number="000123",
            bank_name="Northern Bank",
        )
        assert payment.process() is False
        assert "Payment amount must be greater than zero" in payment.failure_reason

    def test_completed_payment_cannot_be_processed_again(self):
        payment = _cash()
        payment.process()
        with pytest.raises(InvalidTransition):
            payment.process()

    def test_failed_payment_cannot_be_processed_again(self):
        payment = _cash(tendered=1.00)
        payment.process()
        with pytest.raises(InvalidTransition):
            payment.process()
        assert payment.status == PaymentStatus.FAILED.value

    def test_is_accepted(self):
        accepted = _cash()
        accepted.process()
        declined = _cash(tendered=1.00)
        declined.process()

        assert accepted.is_accepted() is True
        assert declined.is_accepted() is False
        assert _cash().is_accepted() is False


class TestRefund:
    def test_refund_completed_payment(self):
        payment = _cash()
        payment.process()

        payment.refund("Order cancelled")

        assert payment.status == PaymentStatus.REFUNDED.value
        assert payment.refunded_at is not None
        refunded = [e for e in payment._events if isinstance(e, PaymentRefunded)]
        assert len(refunded) == 1
        assert refunded[0].reason == "Order cancelled"

    def test_pending_payment_cannot_be_refunded(self):
        with pytest.raises(InvalidTransition):
            _cash().refund()

    def test_failed_payment_cannot_be_refunded(self):
        payment = _cash(tendered=1.00)
        payment.process()
        with pytest.raises(InvalidTransition):
            payment.refund()

    def test_refunded_payment_cannot_be_refunded_again(self):
        payment = _cash()
        payment.process()
        payment.refund()
        with pytest.raises(InvalidTransition):
            payment.refund()

    def test_uncleared_cheque_can_be_returned(self):
        payment = _cheque()
        payment.process()

        payment.refund("Customer collected cheque")

        assert payment.status == PaymentStatus.REFUNDED.value

    def test_unprocessed_cheque_cannot_be_refunded(self):
        with pytest.raises(InvalidTransition):
            _cheque().refund()
