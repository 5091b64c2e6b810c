"""Payment method handlers — one per way of paying.

Each handler owns the rules for its method: what makes the details valid,
what a successful payment looks like, when it can be refunded and how it is
described. The set is closed (``_HANDLERS``); adding a method means adding a
``PaymentMethod`` member, a detail value object and a handler here, without
touching the Payment aggregate or the checkout coordinator.

Handlers never raise for bad payment details. ``validate`` returns the list
of reasons and the Payment records them as a failed attempt.
"""

import re
from abc import ABC, abstractmethod
from datetime import UTC, date, datetime

from ordering.exceptions import InvalidTransition
from ordering.payment.details import CardDetails, CashTender, ChequeDetails, PaymentMethod, PaymentStatus
from ordering.payment.events import ChequeCleared, ChequeDishonoured
from ordering.shared.money import format_money, round_money, to_cents

_CARD_NUMBER_PATTERN = re.compile(r"[0-9]{13,19}")
_CVV_PATTERN = re.compile(r"[0-9]{3,4}")


def _today() -> date:
    return datetime.now(UTC).date()


def card_digits(card_number: str | None) -> str:
    """Strip the spaces and hyphens people type into card numbers."""
    return re.sub(r"[\s-]", "", card_number or "")


class PaymentMethodHandler(ABC):
    """Contract shared by every payment method."""

    method: PaymentMethod

    @abstractmethod
    def validate(self, payment) -> list[str]:
        """Return the reasons the payment cannot be taken; empty when valid."""
        ...

    @abstractmethod
    def settle(self, payment, now: datetime) -> None:
        """Apply a successful payment: set status and method-specific outcome fields."""
        ...

    def decline(self, payment) -> None:  # noqa: B027
        """Apply method-specific bookkeeping for a declined payment."""

    def can_refund(self, payment) -> bool:
        return PaymentStatus(payment.status) == PaymentStatus.COMPLETED

    def update_status(self, payment, new_status: str, now: datetime) -> None:
        raise InvalidTransition(
            {"status": [f"{self.method.value} payments do not accept manual status updates ({new_status})"]}
        )

    def describe(self, payment) -> str:
        amount = format_money(payment.amount, payment.currency or "GBP")
        return f"Payment ID: {payment.id}, Amount: {amount}, Status: {payment.status}, Method: {payment.method}"

    @staticmethod
    def _amount_errors(payment) -> list[str]:
        if to_cents(payment.amount) <= 0:
            return ["Payment amount must be greater than zero"]
        return []


class CashHandler(PaymentMethodHandler):
    method = PaymentMethod.CASH

    def validate(self, payment) -> list[str]:
        tendered = payment.cash.amount_tendered if payment.cash else 0.0
        tendered = tendered or 0.0
        if to_cents(tendered) <= 0:
            return ["Amount tendered must be greater than zero"]
        if to_cents(tendered) < to_cents(payment.amount):
            return [f"Insufficient amount tendered: {tendered:.2f} for a total of {payment.amount:.2f}"]
        return []

    def settle(self, payment, now: datetime) -> None:
        tendered = payment.cash.amount_tendered
        payment.cash = CashTender(
            amount_tendered=tendered,
            change_due=round_money(tendered - payment.amount),
        )
        payment.status = PaymentStatus.COMPLETED.value
        payment.completed_at = now

    def describe(self, payment) -> str:
        currency = payment.currency or "GBP"
        tendered = payment.cash.amount_tendered if payment.cash else 0.0
        change = payment.cash.change_due if payment.cash else 0.0
        return (
            f"{super().describe(payment)}, Tendered: {format_money(tendered or 0.0, currency)}, "
            f"Change: {format_money(change or 0.0, currency)}"
        )


class CreditHandler(PaymentMethodHandler):
    method = PaymentMethod.CREDIT

    def validate(self, payment) -> list[str]:
        card = payment.card
        if card is None:
            return ["Card details are required"]

        errors = []
        digits = card_digits(card.card_number)
        if not _CARD_NUMBER_PATTERN.fullmatch(digits):
            errors.append("Card number must contain between 13 and 19 digits")
        if not (card.holder_name or "").strip():
            errors.append("Card holder name is required")
        if card.expiry_date is None or card.expiry_date < _today():
            errors.append("Card has expired")
        if not _CVV_PATTERN.fullmatch(card.cvv or ""):
            errors.append("CVV must be 3 or 4 digits")
        return errors + self._amount_errors(payment)

    def _scrub(self, payment, authorized: bool) -> None:
        card = payment.card
        payment.card = CardDetails(
            card_number="",
            holder_name=card.holder_name if card else "",
            expiry_date=card.expiry_date if card else None,
            cvv="",
            last4=card.last4 if card else "",
            authorized=authorized,
        )

    def settle(self, payment, now: datetime) -> None:
        self._scrub(payment, authorized=True)
        payment.status = PaymentStatus.COMPLETED.value
        payment.completed_at = now

    def decline(self, payment) -> None:
        self._scrub(payment, authorized=False)

    def describe(self, payment) -> str:
        card = payment.card
        if card is None:
            return super().describe(payment)
        expiry = card.expiry_date.strftime("%m/%y") if card.expiry_date else "--/--"
        return f"{super().describe(payment)}, Card: {card.masked_number}, Expires: {expiry}"


class CheckHandler(PaymentMethodHandler):
    """Cheques are accepted on receipt but stay Pending until they clear."""

    method = PaymentMethod.CHECK

    def validate(self, payment) -> list[str]:
        cheque = payment.cheque
        if cheque is None:
            return ["Cheque details are required"]

        errors = []
        if not (cheque.cheque_number or "").strip():
            errors.append("Cheque number is required")
        if not (cheque.bank_name or "").strip():
            errors.append("Bank name is required")
        if cheque.check_date is not None and cheque.check_date > _today():
            errors.append("Cheque is post-dated")
        return errors + self._amount_errors(payment)

    def settle(self, payment, now: datetime) -> None:
        payment.status = PaymentStatus.PENDING.value

    def can_refund(self, payment) -> bool:
        # An accepted cheque that has not cleared yet can be handed back.
        status = PaymentStatus(payment.status)
        return status == PaymentStatus.COMPLETED or (status == PaymentStatus.PENDING and payment.is_processed())

    def update_status(self, payment, new_status: str, now: datetime) -> None:
        if PaymentStatus(payment.status) != PaymentStatus.PENDING or not payment.is_processed():
            raise InvalidTransition(
                {"status": [f"Only an accepted, uncleared cheque can change status (currently {payment.status})"]}
            )

        target = str(new_status).strip().lower()
        if target in ("cleared", PaymentStatus.COMPLETED.value.lower()):
            payment.cheque = ChequeDetails(
                cheque_number=payment.cheque.cheque_number,
                bank_name=payment.cheque.bank_name,
                check_date=payment.cheque.check_date,
                is_cleared=True,
            )
            payment.status = PaymentStatus.COMPLETED.value
            payment.completed_at = now
            payment.raise_(
                ChequeCleared(
                    payment_id=str(payment.id),
                    order_id=str(payment.order_id),
                    amount=payment.amount,
                    cleared_at=now,
                )
            )
        elif target in ("dishonoured", "bounced", PaymentStatus.FAILED.value.lower()):
            payment.status = PaymentStatus.FAILED.value
            payment.failure_reason = "Cheque dishonoured by the bank"
            payment.raise_(
                ChequeDishonoured(
                    payment_id=str(payment.id),
                    order_id=str(payment.order_id),
                    reason=payment.failure_reason,
                    dishonoured_at=now,
                )
            )
        else:
            raise InvalidTransition({"status": [f"Unsupported cheque status: {new_status}"]})

    def describe(self, payment) -> str:
        cheque = payment.cheque
        if cheque is None:
            return super().describe(payment)
        cleared = "cleared" if cheque.is_cleared else "not cleared"
        return f"{super().describe(payment)}, Cheque #{cheque.cheque_number} from {cheque.bank_name} ({cleared})"


_HANDLERS: dict[PaymentMethod, PaymentMethodHandler] = {
    PaymentMethod.CASH: CashHandler(),
    PaymentMethod.CREDIT: CreditHandler(),
    PaymentMethod.CHECK: CheckHandler(),
}


def handler_for(method) -> PaymentMethodHandler:
    return _HANDLERS[PaymentMethod.coerce(method)]
