"""Tests for the checkout coordinator joining orders and payments."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.cart.cart import Cart
from ordering.catalog import CatalogItem, CustomizationOption
from ordering.checkout.coordinator import CheckoutCoordinator
from ordering.config import CheckoutSettings
from ordering.exceptions import (
    AmountMismatch,
    ConsistencyError,
    InvalidAmount,
    InvalidTransition,
    OrderMismatch,
    UnsupportedPaymentMethod,
)
from ordering.order.order import Order, OrderPaymentStatus, OrderStatus
from ordering.payment.details import PaymentStatus
from ordering.payment.payment import Payment
from structlog.testing import capture_logs

PIZZA = CatalogItem(
    item_id="margherita",
    name="Margherita Pizza",
    price=12.99,
    customization_options=(CustomizationOption(name="Extra Cheese", additional_cost=1.50),),
)
SETTINGS = CheckoutSettings(tax_rate=0.20, delivery_fee=2.99)


def _today():
    return datetime.now(UTC).date()


def _order():
    cart = Cart.create(customer_id="cust-001")
    cart.add_item(PIZZA, 2, ["Extra Cheese"])
    return Order.create("cust-001", cart, settings=SETTINGS, delivery_address="12 High Street")


@pytest.fixture()
def coordinator():
    return CheckoutCoordinator(SETTINGS)


class TestFinalizeOrder:
    def test_cash_payment_completes_order_payment(self, coordinator):
        order = _order()
        assert order.pricing.total_amount == 37.77

        payment = Payment.for_order(order, "Cash", amount_tendered=40.00)
        result = coordinator.finalize_order(order, payment)

        assert result.approved is True
        assert result.reasons == ()
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.cash.change_due == 2.23
        assert order.payment_status == OrderPaymentStatus.COMPLETED.value
        assert order.payment_id == str(payment.id)
        assert order.payment_method == "Cash"
        assert order.status == OrderStatus.PENDING.value

    def test_credit_payment_completes_order_payment(self, coordinator):
        order = _order()
        payment = Payment.for_order(
            order,
            "Credit",
            card_number="4111111111111111",
            holder_name="Jane Smith",
            expiry_date=_today() + timedelta(days=365),
            cvv="123",
        )

        result = coordinator.finalize_order(order, payment)

        assert result.approved is True
        assert order.payment_status == OrderPaymentStatus.COMPLETED.value

    def test_accepted_cheque_leaves_order_payment_pending(self, coordinator):
        order = _order()
        payment = Payment.for_order(order, "Check", cheque_number="000123", bank_name="Northern Bank")

        result = coordinator.finalize_order(order, payment)

        assert result.approved is True
        assert result.awaiting_clearance is True
        assert order.payment_status == OrderPaymentStatus.PENDING.value
        assert order.payment_id == str(payment.id)

    def test_post_dated_cheque_is_declined(self, coordinator):
        order = _order()
        payment = Payment.for_order(
            order,
            "Check",
            cheque_number="000123",
            bank_name="Northern Bank",
            check_date=_today() + timedelta(days=10),
        )

        result = coordinator.finalize_order(order, payment)

        assert result.approved is False
        assert "Cheque is post-dated" in result.reasons
        assert payment.status == PaymentStatus.FAILED.value
        assert order.payment_status == OrderPaymentStatus.PENDING.value
        assert order.payment_id is None
        assert order.status == OrderStatus.PENDING.value

    def test_declined_payment_can_be_retried_with_new_payment(self, coordinator):
        order = _order()
        first = Payment.for_order(order, "Cash", amount_tendered=20.00)
        assert coordinator.finalize_order(order, first).approved is False

        second = Payment.for_order(order, "Cash", amount_tendered=50.00)
        result = coordinator.finalize_order(order, second)

        assert result.approved is True
        assert order.payment_status == OrderPaymentStatus.COMPLETED.value
        assert order.payment_id == str(second.id)

    def test_amount_mismatch_is_a_hard_failure(self, coordinator):
        order = _order()
        payment = Payment.for_order(order, "Cash", amount=30.00, amount_tendered=40.00)

        with pytest.raises(AmountMismatch):
            coordinator.finalize_order(order, payment)

        assert order.payment_status == OrderPaymentStatus.PENDING.value
        assert payment.is_processed() is False

    def test_amount_mismatch_by_a_penny(self, coordinator):
        order = _order()
        payment = Payment.for_order(order, "Cash", amount=37.76, amount_tendered=40.00)
        with pytest.raises(AmountMismatch):
            coordinator.finalize_order(order, payment)

    def test_sub_penny_amount_never_reaches_the_order(self, coordinator):
        order = _order()
        with pytest.raises(InvalidAmount):
            Payment.for_order(order, "Cash", amount=37.774, amount_tendered=40.00)
        assert order.payment_status == OrderPaymentStatus.PENDING.value

    def test_consistency_errors_share_a_base(self):
        assert issubclass(AmountMismatch, ConsistencyError)
        assert issubclass(OrderMismatch, ConsistencyError)

    def test_payment_for_another_order_is_rejected(self, coordinator):
        order = _order()
        other = _order()
        payment = Payment.for_order(other, "Cash", amount_tendered=40.00)

        with pytest.raises(OrderMismatch):
            coordinator.finalize_order(order, payment)
        assert payment.is_processed() is False

    def test_method_not_accepted_is_rejected(self):
        coordinator = CheckoutCoordinator(CheckoutSettings(accepted_methods=("Cash", "Credit")))
        order = _order()
        payment = Payment.for_order(order, "Check", cheque_number="000123", bank_name="Northern Bank")

        with pytest.raises(UnsupportedPaymentMethod):
            coordinator.finalize_order(order, payment)

    def test_cancelled_order_cannot_be_paid(self, coordinator):
        order = _order()
        order.cancel()
        payment = Payment.for_order(order, "Cash", amount_tendered=40.00)

        with pytest.raises(InvalidTransition):
            coordinator.finalize_order(order, payment)
        assert order.payment_status == OrderPaymentStatus.REFUNDED.value

    def test_paid_order_cannot_be_paid_twice(self, coordinator):
        order = _order()
        coordinator.finalize_order(order, Payment.for_order(order, "Cash", amount_tendered=40.00))

        with pytest.raises(InvalidTransition):
            coordinator.finalize_order(order, Payment.for_order(order, "Cash", amount_tendered=40.00))

    def test_processed_payment_cannot_be_reused(self, coordinator):
        order = _order()
        payment = Payment.for_order(order, "Cash", amount_tendered=10.00)
        coordinator.finalize_order(order, payment)

        with pytest.raises(InvalidTransition):
            coordinator.finalize_order(order, payment)


class TestChequeClearance:
    def _accepted_cheque(self, coordinator):
        order = _order()
        payment = Payment.for_order(order, "Check", cheque_number="000123", bank_name="Northern Bank")
        coordinator.finalize_order(order, payment)
        return order, payment

    def test_cleared_cheque_completes_order_payment(self, coordinator):
        order, payment = self._accepted_cheque(coordinator)

        result = coordinator.record_cheque_clearance(order, payment)

        assert result.approved is True
        assert payment.status == PaymentStatus.COMPLETED.value
        assert order.payment_status == OrderPaymentStatus.COMPLETED.value

    def test_dishonoured_cheque_fails_order_payment(self, coordinator):
        order, payment = self._accepted_cheque(coordinator)

        result = coordinator.record_cheque_clearance(order, payment, "Dishonoured")

        assert result.approved is False
        assert result.reasons == ("Cheque dishonoured by the bank",)
        assert order.payment_status == OrderPaymentStatus.FAILED.value

    def test_cheque_can_clear_after_delivery(self, coordinator):
        order, payment = self._accepted_cheque(coordinator)
        order.mark_delivered()

        coordinator.record_cheque_clearance(order, payment)

        assert order.payment_status == OrderPaymentStatus.COMPLETED.value

    def test_cancelled_order_rejects_clearance(self, coordinator):
        order, payment = self._accepted_cheque(coordinator)
        order.cancel()

        with pytest.raises(InvalidTransition):
            coordinator.record_cheque_clearance(order, payment)
        assert payment.status == PaymentStatus.PENDING.value

    def test_cheque_awaiting_clearance_blocks_another_payment(self, coordinator):
        order, cheque = self._accepted_cheque(coordinator)
        cash = Payment.for_order(order, "Cash", amount_tendered=40.00)

        with pytest.raises(InvalidTransition):
            coordinator.finalize_order(order, cash)

        assert cash.is_processed() is False
        assert order.payment_id == str(cheque.id)
        assert order.payment_status == OrderPaymentStatus.PENDING.value

    def test_order_can_be_paid_again_after_dishonoured_cheque(self, coordinator):
        order, cheque = self._accepted_cheque(coordinator)
        coordinator.record_cheque_clearance(order, cheque, "Dishonoured")

        cash = Payment.for_order(order, "Cash", amount_tendered=40.00)
        result = coordinator.finalize_order(order, cash)

        assert result.approved is True
        assert order.payment_id == str(cash.id)
        assert order.payment_status == OrderPaymentStatus.COMPLETED.value

    def test_clearance_must_target_the_recorded_payment(self, coordinator):
        order, first = self._accepted_cheque(coordinator)
        coordinator.record_cheque_clearance(order, first, "Dishonoured")
        second = Payment.for_order(order, "Check", cheque_number="000124", bank_name="Northern Bank")
        coordinator.finalize_order(order, second)

        with pytest.raises(OrderMismatch):
            coordinator.record_cheque_clearance(order, first)

        assert order.payment_id == str(second.id)
        assert order.payment_status == OrderPaymentStatus.PENDING.value


class TestLogging:
    def test_declined_payment_is_logged(self):
        order = _order()
        payment = Payment.for_order(order, "Cash", amount_tendered=1.00)

        with capture_logs() as logs:
            CheckoutCoordinator(SETTINGS).finalize_order(order, payment)

        declined = [entry for entry in logs if entry["event"] == "Payment declined"]
        assert len(declined) == 1
        assert declined[0]["log_level"] == "warning"
        assert declined[0]["order_id"] == str(order.id)

    def test_amount_mismatch_is_logged_as_error(self):
        order = _order()
        payment = Payment.for_order(order, "Cash", amount=1.00, amount_tendered=1.00)

        with capture_logs() as logs, pytest.raises(AmountMismatch):
            CheckoutCoordinator(SETTINGS).finalize_order(order, payment)

        assert any(entry["log_level"] == "error" for entry in logs)
