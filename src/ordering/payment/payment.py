"""Payment aggregate — one attempt to pay for an order with one method.

A Payment references its Order by identifier only. It is created right before
processing and processed at most once; a declined payment stays Failed and the
customer retries with a new Payment against the same order.

State Machine:
    PENDING → COMPLETED → REFUNDED          (cash, credit)
    PENDING → FAILED                        (declined)
    PENDING (accepted) → COMPLETED          (cheque cleared)
    PENDING (accepted) → FAILED | REFUNDED  (cheque dishonoured or handed back)

The behaviour that differs per method lives in ``ordering.payment.methods``.
"""

from datetime import UTC, date, datetime
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, ValueObject

from ordering.domain import ordering
from ordering.exceptions import InvalidAmount, InvalidTransition, UnsupportedPaymentMethod
from ordering.payment.details import (
    CardDetails,
    CashTender,
    ChequeDetails,
    PaymentMethod,
    PaymentStatus,
)
from ordering.payment.events import ChequeAccepted, PaymentCompleted, PaymentDeclined, PaymentRefunded
from ordering.payment.methods import PaymentMethodHandler, card_digits, handler_for
from ordering.shared.money import is_whole_pence, round_money

_DETAIL_FIELD = {
    PaymentMethod.CASH: "cash",
    PaymentMethod.CREDIT: "card",
    PaymentMethod.CHECK: "cheque",
}


@ordering.aggregate
class Payment:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="GBP")
    method = String(choices=PaymentMethod, required=True)
    status = String(
        choices=PaymentStatus,
        default=PaymentStatus.PENDING.value,
    )
    cash = ValueObject(CashTender)
    card = ValueObject(CardDetails)
    cheque = ValueObject(ChequeDetails)
    failure_reason = String(max_length=1000)
    transaction_id = String(max_length=255)
    processed_at = DateTime()
    completed_at = DateTime()
    refunded_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def details_must_match_method(self):
        field_name = _DETAIL_FIELD[PaymentMethod(self.method)]
        if getattr(self, field_name) is None:
            raise ValidationError({field_name: [f"{self.method} payments require {field_name} details"]})

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def _new(cls, method: PaymentMethod, order_id, customer_id, amount, currency, **details):
        if amount is None or amount < 0:
            raise InvalidAmount({"amount": ["Amount cannot be negative"]})
        if not is_whole_pence(amount):
            raise InvalidAmount({"amount": [f"Amount {amount} has fractions of a penny"]})

        now = datetime.now(UTC)
        return cls(
            order_id=order_id,
            customer_id=customer_id,
            amount=round_money(amount),
            currency=currency,
            method=method.value,
            status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
            **details,
        )

    @classmethod
    def cash_payment(cls, order_id, customer_id, amount: float, amount_tendered: float, currency: str = "GBP"):
        return cls._new(
            PaymentMethod.CASH,
            order_id,
            customer_id,
            amount,
            currency,
            cash=CashTender(amount_tendered=amount_tendered or 0.0),
        )

    @classmethod
    def credit_payment(
        cls,
        order_id,
        customer_id,
        amount: float,
        card_number: str,
        holder_name: str,
        expiry_date: date | None,
        cvv,
        currency: str = "GBP",
    ):
        number = str(card_number or "")
        return cls._new(
            PaymentMethod.CREDIT,
            order_id,
            customer_id,
            amount,
            currency,
            card=CardDetails(
                card_number=number,
                holder_name=holder_name or "",
                expiry_date=expiry_date,
                cvv="" if cvv is None else str(cvv),
                last4=card_digits(number)[-4:],
            ),
        )

    @classmethod
    def check_payment(
        cls,
        order_id,
        customer_id,
        amount: float,
        cheque_number: str,
        bank_name: str,
        check_date: date | None = None,
        currency: str = "GBP",
    ):
        return cls._new(
            PaymentMethod.CHECK,
            order_id,
            customer_id,
            amount,
            currency,
            cheque=ChequeDetails(
                cheque_number=cheque_number or "",
                bank_name=bank_name or "",
                check_date=check_date or datetime.now(UTC).date(),
            ),
        )

    @classmethod
    def for_order(cls, order, method, amount: float | None = None, **details):
        """Build a payment for ``order``, charging its total unless ``amount`` is given.

        ``details`` are the keyword arguments of the matching factory
        (``amount_tendered``; ``card_number``, ``holder_name``, ``expiry_date``,
        ``cvv``; ``cheque_number``, ``bank_name``, ``check_date``).
        """
        try:
            payment_method = PaymentMethod.coerce(method)
        except ValueError:
            raise UnsupportedPaymentMethod({"method": [f"Unknown payment method: {method}"]}) from None

        factory = {
            PaymentMethod.CASH: cls.cash_payment,
            PaymentMethod.CREDIT: cls.credit_payment,
            PaymentMethod.CHECK: cls.check_payment,
        }[payment_method]
        return factory(
            order_id=str(order.id),
            customer_id=str(order.customer_id),
            amount=order.pricing.total_amount if amount is None else amount,
            currency=order.pricing.currency,
            **details,
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def handler(self) -> PaymentMethodHandler:
        return handler_for(self.method)

    def is_processed(self) -> bool:
        return self.processed_at is not None

    def set_amount(self, amount: float) -> None:
        if amount is None or amount < 0:
            raise InvalidAmount({"amount": ["Amount cannot be negative"]})
        if not is_whole_pence(amount):
            raise InvalidAmount({"amount": [f"Amount {amount} has fractions of a penny"]})
        if self.is_processed():
            raise InvalidTransition({"amount": ["The amount of a processed payment cannot change"]})
        self.amount = round_money(amount)
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Validation & processing
    # -------------------------------------------------------------------
    def validation_errors(self) -> list[str]:
        return self.handler.validate(self)

    def validate(self) -> bool:
        """True when the payment details would be accepted. Never raises, never mutates."""
        return not self.validation_errors()

    def process(self) -> bool:
        """Take the payment.

        Returns True when the payment was accepted (Completed, or Pending for
        a cheque awaiting clearance) and False when it was declined, in which
        case the status is Failed and ``failure_reason`` says why. Processing
        a payment twice is a caller error.
        """
        if self.is_processed():
            raise InvalidTransition({"status": [f"Payment has already been processed ({self.status})"]})

        handler = self.handler
        errors = handler.validate(self)
        now = datetime.now(UTC)

        if errors:
            with atomic_change(self):
                handler.decline(self)
                self.status = PaymentStatus.FAILED.value
                self.failure_reason = "; ".join(errors)
                self.processed_at = now
                self.updated_at = now

            self.raise_(
                PaymentDeclined(
                    payment_id=str(self.id),
                    order_id=str(self.order_id),
                    method=self.method,
                    reason=self.failure_reason,
                    declined_at=now,
                )
            )
            return False

        with atomic_change(self):
            handler.settle(self, now)
            self.transaction_id = f"txn_{uuid4().hex[:12]}"
            self.processed_at = now
            self.updated_at = now

        if PaymentStatus(self.status) == PaymentStatus.COMPLETED:
            self.raise_(
                PaymentCompleted(
                    payment_id=str(self.id),
                    order_id=str(self.order_id),
                    customer_id=str(self.customer_id),
                    method=self.method,
                    amount=self.amount,
                    completed_at=now,
                )
            )
        else:
            self.raise_(
                ChequeAccepted(
                    payment_id=str(self.id),
                    order_id=str(self.order_id),
                    cheque_number=self.cheque.cheque_number,
                    bank_name=self.cheque.bank_name,
                    amount=self.amount,
                    accepted_at=now,
                )
            )
        return True

    def is_accepted(self) -> bool:
        """Processed and not declined: Completed, or a cheque awaiting clearance."""
        return self.is_processed() and PaymentStatus(self.status) in (PaymentStatus.COMPLETED, PaymentStatus.PENDING)

    # -------------------------------------------------------------------
    # After processing
    # -------------------------------------------------------------------
    def update_status(self, new_status: str) -> None:
        """Apply an external status report, e.g. ``"Cleared"`` for a cheque."""
        now = datetime.now(UTC)
        with atomic_change(self):
            self.handler.update_status(self, new_status, now)
            self.updated_at = now

    def refund(self, reason: str = "") -> None:
        if not self.handler.can_refund(self):
            raise InvalidTransition({"status": [f"A {self.status} {self.method} payment cannot be refunded"]})

        now = datetime.now(UTC)
        self.status = PaymentStatus.REFUNDED.value
        self.refunded_at = now
        self.updated_at = now

        self.raise_(
            PaymentRefunded(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                amount=self.amount,
                reason=reason,
                refunded_at=now,
            )
        )

    def details(self) -> str:
        """Human-readable description; card numbers are always masked."""
        return self.handler.describe(self)
