"""Credit settlement tracker - keeps crediário balances in step with payments"""

import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Callable, List

from crediario_ledger.domain.exceptions import (
    ConcurrentUpdateError,
    InconsistencyError,
    NotFoundError,
    OverpaymentError,
    ValidationError,
)
from crediario_ledger.domain.models import CreditPortfolioSummary, CreditSale, CreditSaleStatus
from crediario_ledger.domain.ports import CreditSaleStore

logger = logging.getLogger(__name__)


def stored_status(balance_due_cents: int) -> CreditSaleStatus:
    """Status persisted after a recompute: paid iff nothing is left to pay"""
    return CreditSaleStatus.PAID if balance_due_cents == 0 else CreditSaleStatus.OPEN


def effective_status(sale: CreditSale, today: date) -> CreditSaleStatus:
    """
    Read-time status including the overdue projection.

    Overdue is never written back; it depends only on balance_due, due_date
    and the current date. Reports must use this instead of sale.status.
    """
    if sale.balance_due_cents == 0:
        return CreditSaleStatus.PAID
    if today > sale.due_date:
        return CreditSaleStatus.OVERDUE
    return CreditSaleStatus.OPEN


def settle(sale: CreditSale, amount_cents: int) -> CreditSale:
    """Return the sale with amount_cents more paid; over-payment is rejected"""
    if amount_cents <= 0:
        raise ValidationError("Settlement amount must be positive")
    if amount_cents > sale.balance_due_cents:
        raise OverpaymentError(sale.id, amount_cents, sale.balance_due_cents)

    return _with_paid(sale, sale.amount_paid_cents + amount_cents)


def unsettle(sale: CreditSale, amount_cents: int) -> CreditSale:
    """Return the sale with amount_cents of a previous settlement undone"""
    if amount_cents <= 0:
        raise ValidationError("Settlement reversal amount must be positive")
    if amount_cents > sale.amount_paid_cents:
        raise InconsistencyError(
            f"Cannot reverse {amount_cents} cents on credit sale {sale.id}: "
            f"only {sale.amount_paid_cents} cents recorded as paid"
        )

    return _with_paid(sale, sale.amount_paid_cents - amount_cents)


def _with_paid(sale: CreditSale, amount_paid_cents: int) -> CreditSale:
    balance_due = sale.total_amount_due_cents - amount_paid_cents
    return replace(
        sale,
        amount_paid_cents=amount_paid_cents,
        balance_due_cents=balance_due,
        status=stored_status(balance_due),
    )


class SettlementTracker:
    """Registers and reverses crediário payments"""

    def __init__(self, credit_sales: CreditSaleStore, max_retries: int = 5):
        self.credit_sales = credit_sales
        self.max_retries = max_retries

    def get(self, credit_sale_id: int) -> CreditSale:
        sale = self.credit_sales.get(credit_sale_id)
        if sale is None:
            raise NotFoundError(f"Credit sale {credit_sale_id} not found")
        return sale

    def register_payment(self, credit_sale_id: int, amount_cents: int) -> CreditSale:
        """
        Add a payment to a credit sale.

        Raises:
            ValidationError: amount_cents is not positive
            NotFoundError: Unknown credit sale
            OverpaymentError: amount_cents exceeds balance_due (state unchanged)
        """
        return self._transition(credit_sale_id, lambda sale: settle(sale, amount_cents))

    def reverse_payment(self, credit_sale_id: int, amount_cents: int) -> CreditSale:
        """Undo a payment previously registered against a credit sale"""
        return self._transition(credit_sale_id, lambda sale: unsettle(sale, amount_cents))

    def list_overdue(self, today: date) -> List[CreditSale]:
        """Unsettled sales whose due date has passed"""
        return self.credit_sales.list_open_due_between(date.min, today - timedelta(days=1))

    def list_due_within(self, days: int, today: date) -> List[CreditSale]:
        """Unsettled sales falling due in the next `days` days (today included)"""
        return self.credit_sales.list_open_due_between(today, today + timedelta(days=days))

    def portfolio_summary(self, today: date) -> CreditPortfolioSummary:
        """Dashboard totals, classified with the overdue projection"""
        open_count = overdue_count = paid_count = 0
        total_pending = total_overdue = total_paid = 0
        debtors = set()

        for sale in self.credit_sales.list_all():
            status = effective_status(sale, today)
            total_paid += sale.amount_paid_cents

            if status == CreditSaleStatus.PAID:
                paid_count += 1
                continue

            debtors.add(sale.client_id)
            total_pending += sale.balance_due_cents
            if status == CreditSaleStatus.OVERDUE:
                overdue_count += 1
                total_overdue += sale.balance_due_cents
            else:
                open_count += 1

        return CreditPortfolioSummary(
            open_count=open_count,
            overdue_count=overdue_count,
            paid_count=paid_count,
            total_pending_cents=total_pending,
            total_overdue_cents=total_overdue,
            total_paid_cents=total_paid,
            debtor_client_ids=sorted(debtors),
        )

    def _transition(
        self,
        credit_sale_id: int,
        transition: Callable[[CreditSale], CreditSale],
    ) -> CreditSale:
        # Compare-and-swap on amount_paid: a concurrent writer makes the
        # write miss, and we recompute from the fresh row.
        for attempt in range(1, self.max_retries + 1):
            current = self.get(credit_sale_id)
            updated = transition(current)

            if self.credit_sales.compare_and_set(updated, expected_paid_cents=current.amount_paid_cents):
                return updated

            logger.info(
                "Credit sale changed concurrently, retrying",
                extra={"credit_sale_id": credit_sale_id, "attempt": attempt},
            )

        raise ConcurrentUpdateError(
            f"Credit sale {credit_sale_id} kept changing; gave up after {self.max_retries} attempts"
        )
