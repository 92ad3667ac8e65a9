"""
Storage ports consumed by the domain services.

Each service receives the ports it needs through its constructor, so the
domain never reaches for a shared client. The SQLAlchemy repositories in
infrastructure.database.repositories satisfy these protocols structurally.
"""

from datetime import date
from typing import Dict, List, Optional, Protocol

from crediario_ledger.domain.models import (
    BankAccount,
    CreditSale,
    DateRange,
    MovementKind,
    Payment,
    PaymentDraft,
    PaymentFilters,
    PaymentMethod,
)


class UnitOfWork(Protocol):
    """Transaction boundary (a SQLAlchemy Session qualifies)"""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class AccountStore(Protocol):
    def get(self, account_id: int) -> Optional[BankAccount]: ...

    def get_by_name(self, name: str) -> Optional[BankAccount]: ...

    def list_active(self) -> List[BankAccount]: ...

    def lock(self, account_ids: List[int]) -> List[int]:
        """Row-lock the given accounts in ascending id order; return the ids that exist"""
        ...

    def adjust_balance(self, account_id: int, delta_cents: int) -> int:
        """Atomically add delta to the stored balance and return the new balance"""
        ...


class BalanceJournal(Protocol):
    def append(self, payment_id: int, account_id: int, delta_cents: int) -> None: ...

    def net_for_payment(self, payment_id: int) -> Dict[int, int]:
        """account_id -> net delta still standing for the payment"""
        ...

    def net_for_account(self, account_id: int) -> int: ...


class PaymentStore(Protocol):
    def add(self, draft: PaymentDraft) -> Payment: ...

    def get(self, payment_id: int) -> Optional[Payment]: ...

    def replace(self, payment_id: int, draft: PaymentDraft) -> Payment: ...

    def delete(self, payment_id: int) -> None: ...

    def list(
        self,
        date_range: Optional[DateRange] = None,
        filters: Optional[PaymentFilters] = None,
        limit: Optional[int] = None,
    ) -> List[Payment]: ...

    def totals_by_kind(self, date_range: DateRange) -> Dict[MovementKind, int]: ...


class CreditSaleStore(Protocol):
    def get(self, credit_sale_id: int) -> Optional[CreditSale]: ...

    def compare_and_set(self, sale: CreditSale, expected_paid_cents: int) -> bool:
        """Write settlement fields only if amount_paid still equals expected"""
        ...

    def list_all(self) -> List[CreditSale]: ...

    def list_open_due_between(self, start: date, end: date) -> List[CreditSale]: ...


class PaymentMethodStore(Protocol):
    def get(self, payment_method_id: int) -> Optional[PaymentMethod]: ...
