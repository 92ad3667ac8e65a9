"""Payment ledger - records, amends and removes money movements"""

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Iterator, List, Optional

from crediario_ledger.domain.balances import BalanceEngine
from crediario_ledger.domain.exceptions import NotFoundError, ValidationError
from crediario_ledger.domain.models import (
    LINK_TYPES,
    CreditSaleLink,
    DateRange,
    MovementKind,
    Payment,
    PaymentDraft,
    PaymentFilters,
)
from crediario_ledger.domain.ports import PaymentMethodStore, PaymentStore, UnitOfWork
from crediario_ledger.domain.settlement import SettlementTracker
from crediario_ledger.utils.date_utils import to_naive_utc

logger = logging.getLogger(__name__)


def validate_draft(draft: PaymentDraft) -> PaymentDraft:
    """
    Check a draft against the movement rules and return it normalized.

    Rules:
    - amount is a positive integer number of cents
    - revenue needs a destination account, expense a source account
    - transfer needs both, and they must differ
    - occurred_at is stored naive (timezone-aware values are converted to UTC)

    Raises:
        ValidationError: First rule the draft breaks
    """
    amount = draft.amount_cents
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("Amount must be an integer number of cents")
    if amount <= 0:
        raise ValidationError("Amount must be positive")

    try:
        kind = MovementKind(draft.movement_kind)
    except ValueError:
        raise ValidationError(f"Unknown movement kind: {draft.movement_kind}")

    if kind in (MovementKind.EXPENSE, MovementKind.TRANSFER) and draft.source_account_id is None:
        raise ValidationError(f"{kind.value.capitalize()} payments require a source account")
    if kind in (MovementKind.REVENUE, MovementKind.TRANSFER) and draft.destination_account_id is None:
        raise ValidationError(f"{kind.value.capitalize()} payments require a destination account")
    if kind == MovementKind.TRANSFER and draft.source_account_id == draft.destination_account_id:
        raise ValidationError("Transfer source and destination accounts must differ")

    if not isinstance(draft.occurred_at, datetime):
        raise ValidationError("occurred_at must be a datetime")
    occurred_at = to_naive_utc(draft.occurred_at)

    if draft.link is not None and type(draft.link) not in LINK_TYPES.values():
        raise ValidationError(f"Unsupported payment link: {draft.link!r}")

    return replace(draft, movement_kind=kind, occurred_at=occurred_at)


class PaymentLedger:
    """
    Entry point for every money movement.

    Each mutating call runs payment write + balance deltas + settlement
    update as one unit of work: committed together or rolled back together.
    """

    def __init__(
        self,
        payments: PaymentStore,
        balances: BalanceEngine,
        settlement: SettlementTracker,
        payment_methods: PaymentMethodStore,
        unit_of_work: UnitOfWork,
    ):
        self.payments = payments
        self.balances = balances
        self.settlement = settlement
        self.payment_methods = payment_methods
        self.unit_of_work = unit_of_work

    def record(self, draft: PaymentDraft) -> Payment:
        """
        Store a new payment and apply its effects.

        Raises:
            ValidationError: Bad amount, kind or missing accounts
            AccountNotFoundError: Referenced account does not exist
            NotFoundError: Linked credit sale or payment method does not exist
            OverpaymentError: Linked credit sale would be over-paid
        """
        draft = validate_draft(draft)

        with self._transaction():
            self._ensure_payment_method(draft.payment_method_id)
            self.balances.ensure_accounts(draft)
            payment = self.payments.add(draft)
            self._apply(payment)

        logger.debug(
            "Payment recorded",
            extra={"payment_id": payment.id, "kind": payment.movement_kind.value, "amount_cents": payment.amount_cents},
        )
        return payment

    def amend(self, payment_id: int, new_draft: PaymentDraft) -> Payment:
        """
        Replace a payment's fields.

        Old effects are fully reversed before the new ones are applied
        (reverse-then-reapply, never a diff).
        """
        with self._transaction():
            old = self._require(payment_id)
            new_draft = validate_draft(new_draft)
            self._ensure_payment_method(new_draft.payment_method_id)
            self.balances.ensure_accounts(old, new_draft)

            self._unapply(old)
            payment = self.payments.replace(payment_id, new_draft)
            self._apply(payment)

        logger.debug(
            "Payment amended",
            extra={"payment_id": payment_id, "old_amount_cents": old.amount_cents, "amount_cents": payment.amount_cents},
        )
        return payment

    def remove(self, payment_id: int) -> None:
        """Reverse a payment's effects and delete it"""
        with self._transaction():
            payment = self._require(payment_id)
            self.balances.ensure_accounts(payment)
            self._unapply(payment)
            self.payments.delete(payment_id)

        logger.debug("Payment removed", extra={"payment_id": payment_id})

    def collect_credit_payment(
        self,
        credit_sale_id: int,
        amount_cents: int,
        destination_account_id: int,
        occurred_at: Optional[datetime] = None,
        payment_method_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Payment:
        """Record a crediário installment as revenue linked to the credit sale"""
        return self.record(
            PaymentDraft(
                amount_cents=amount_cents,
                movement_kind=MovementKind.REVENUE,
                occurred_at=occurred_at or datetime.now(timezone.utc),
                destination_account_id=destination_account_id,
                payment_method_id=payment_method_id,
                link=CreditSaleLink(id=credit_sale_id),
                description=description,
            )
        )

    def get(self, payment_id: int) -> Payment:
        return self._require(payment_id)

    def list(
        self,
        date_range: Optional[DateRange] = None,
        filters: Optional[PaymentFilters] = None,
        limit: Optional[int] = None,
    ) -> List[Payment]:
        """Payments by occurred_at, most recent first"""
        return self.payments.list(date_range, filters, limit)

    def list_for_day(self, day: date) -> List[Payment]:
        return self.payments.list(DateRange(day, day))

    def _apply(self, payment: Payment) -> None:
        self.balances.apply(payment)
        if payment.credit_sale_id is not None:
            self.settlement.register_payment(payment.credit_sale_id, payment.amount_cents)

    def _unapply(self, payment: Payment) -> None:
        self.balances.reverse(payment)
        if payment.credit_sale_id is not None:
            self.settlement.reverse_payment(payment.credit_sale_id, payment.amount_cents)

    def _require(self, payment_id: int) -> Payment:
        payment = self.payments.get(payment_id)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        return payment

    def _ensure_payment_method(self, payment_method_id: Optional[int]) -> None:
        if payment_method_id is not None and self.payment_methods.get(payment_method_id) is None:
            raise NotFoundError(f"Payment method {payment_method_id} not found")

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.unit_of_work.commit()
        except Exception:
            self.unit_of_work.rollback()
            raise
