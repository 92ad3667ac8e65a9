"""Period summary aggregator - read-only totals over the payment ledger"""

from crediario_ledger.domain.exceptions import ValidationError
from crediario_ledger.domain.models import DateRange, MovementKind, PeriodSummary
from crediario_ledger.domain.ports import AccountStore, PaymentStore
from crediario_ledger.utils.date_utils import month_bounds


def month_range(year: int, month: int) -> DateRange:
    """First to last day of a calendar month"""
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}")
    start, end = month_bounds(year, month)
    return DateRange(start, end)


class PeriodSummaryAggregator:
    """Totals per movement kind; never writes"""

    def __init__(self, payments: PaymentStore, accounts: AccountStore, cash_account_name: str):
        self.payments = payments
        self.accounts = accounts
        self.cash_account_name = cash_account_name

    def summarize(self, date_range: DateRange) -> PeriodSummary:
        """
        Sum payment amounts by kind for occurred_at within the range.

        Transfers only move money between owned accounts, so they are
        reported but excluded from net_balance.
        """
        totals = self.payments.totals_by_kind(date_range)
        revenue = totals.get(MovementKind.REVENUE, 0)
        expense = totals.get(MovementKind.EXPENSE, 0)

        return PeriodSummary(
            total_revenue_cents=revenue,
            total_expense_cents=expense,
            total_transfer_cents=totals.get(MovementKind.TRANSFER, 0),
            net_balance_cents=revenue - expense,
        )

    def summarize_month(self, year: int, month: int) -> PeriodSummary:
        return self.summarize(month_range(year, month))

    def cash_balance(self) -> int:
        """Current balance of the cash-box account, 0 when it is not set up"""
        account = self.accounts.get_by_name(self.cash_account_name)
        return account.current_balance_cents if account else 0
