"""
Domain: Payment entity.

Payments are owned by a Sale. A payment starts PENDING and moves once:
PENDING -> CONFIRMED (stamps paid_at) or PENDING -> CANCELLED.

`Sale.add_payment` confirms payments synchronously; PENDING payments only
appear when rows written by an external settlement process are restored.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from .errors import BusinessRuleError, ValidationError
from .money import DEFAULT_CURRENCY, AmountLike, Money
from .time import require_optional_utc_timestamp, require_utc_timestamp, utc_now


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    PIX = "PIX"
    BANK_SLIP = "BANK_SLIP"
    CREDIT = "CREDIT"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Payment:
    def __init__(
        self,
        *,
        payment_id: str,
        method: PaymentMethod,
        amount: Money,
        status: PaymentStatus,
        created_at: datetime,
        paid_at: Optional[datetime] = None,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        try:
            method = PaymentMethod(method)
            status = PaymentStatus(status)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if amount.is_zero():
            raise ValidationError("Payment amount must be greater than zero")
        require_utc_timestamp("created_at", created_at)
        require_optional_utc_timestamp("paid_at", paid_at)

        self._payment_id = payment_id
        self._method = method
        self._amount = amount
        self._status = status
        self._created_at = created_at
        self._paid_at = paid_at
        self._transaction_id = transaction_id
        self._notes = notes

    @classmethod
    def create(
        cls,
        *,
        method: PaymentMethod,
        amount: AmountLike,
        currency: str = DEFAULT_CURRENCY,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None,
        payment_id: Optional[str] = None,
    ) -> "Payment":
        return cls(
            payment_id=payment_id or str(uuid4()),
            method=method,
            amount=amount if isinstance(amount, Money) else Money.of(amount, currency),
            status=PaymentStatus.PENDING,
            created_at=utc_now(),
            transaction_id=transaction_id,
            notes=notes,
        )

    @classmethod
    def restore(
        cls,
        *,
        payment_id: str,
        method: PaymentMethod,
        amount: AmountLike,
        status: PaymentStatus,
        created_at: datetime,
        currency: str = DEFAULT_CURRENCY,
        paid_at: Optional[datetime] = None,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> "Payment":
        return cls(
            payment_id=payment_id,
            method=method,
            amount=Money.of(amount, currency),
            status=status,
            created_at=created_at,
            paid_at=paid_at,
            transaction_id=transaction_id,
            notes=notes,
        )

    @property
    def payment_id(self) -> str:
        return self._payment_id

    @property
    def method(self) -> PaymentMethod:
        return self._method

    @property
    def amount(self) -> Money:
        return self._amount

    @property
    def status(self) -> PaymentStatus:
        return self._status

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def paid_at(self) -> Optional[datetime]:
        return self._paid_at

    @property
    def transaction_id(self) -> Optional[str]:
        return self._transaction_id

    @property
    def notes(self) -> Optional[str]:
        return self._notes

    @property
    def is_pending(self) -> bool:
        return self._status is PaymentStatus.PENDING

    @property
    def is_confirmed(self) -> bool:
        return self._status is PaymentStatus.CONFIRMED

    @property
    def is_cancelled(self) -> bool:
        return self._status is PaymentStatus.CANCELLED

    def confirm(self) -> None:
        if self.is_confirmed:
            raise BusinessRuleError("Payment has already been confirmed")
        if self.is_cancelled:
            raise BusinessRuleError("Cannot confirm a cancelled payment")
        self._status = PaymentStatus.CONFIRMED
        self._paid_at = utc_now()

    def cancel(self) -> None:
        if self.is_cancelled:
            raise BusinessRuleError("Payment has already been cancelled")
        if self.is_confirmed:
            raise BusinessRuleError("Cannot cancel a confirmed payment")
        self._status = PaymentStatus.CANCELLED

    def __repr__(self) -> str:
        return (
            f"Payment(payment_id={self._payment_id!r}, method={self._method.value}, "
            f"amount={self._amount}, status={self._status.value})"
        )
