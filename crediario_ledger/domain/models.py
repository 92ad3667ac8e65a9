"""Domain models - pure Python dataclasses representing ledger entities"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple, Union

from crediario_ledger.domain.exceptions import ValidationError


class MovementKind(str, Enum):
    """Direction of a money movement"""

    REVENUE = "revenue"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class CreditSaleStatus(str, Enum):
    """Settlement status of a credit sale (overdue is never stored)"""

    OPEN = "open"
    PAID = "paid"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class SaleLink:
    """Payment settles (part of) a sale"""

    link_type: ClassVar[str] = "sale"
    id: int


@dataclass(frozen=True)
class ServiceOrderLink:
    """Payment settles (part of) a service order"""

    link_type: ClassVar[str] = "service_order"
    id: int


@dataclass(frozen=True)
class CreditSaleLink:
    """Payment is an installment against a crediário"""

    link_type: ClassVar[str] = "credit_sale"
    id: int


@dataclass(frozen=True)
class PayableLink:
    """Payment settles (part of) an account payable"""

    link_type: ClassVar[str] = "payable"
    id: int


LinkTarget = Union[SaleLink, ServiceOrderLink, CreditSaleLink, PayableLink]

LINK_TYPES: Dict[str, type] = {
    cls.link_type: cls for cls in (SaleLink, ServiceOrderLink, CreditSaleLink, PayableLink)
}


def link_to_columns(link: Optional[LinkTarget]) -> Tuple[Optional[str], Optional[int]]:
    """Flatten a link into its (link_type, link_id) storage columns"""
    if link is None:
        return None, None
    return link.link_type, link.id


def link_from_columns(link_type: Optional[str], link_id: Optional[int]) -> Optional[LinkTarget]:
    """Rebuild a link from its storage columns"""
    if link_type is None or link_id is None:
        return None
    try:
        return LINK_TYPES[link_type](id=link_id)
    except KeyError:
        raise ValidationError(f"Unknown link type: {link_type}")


@dataclass
class BankAccount:
    """Money-holding account (bank or cash box)"""

    id: int
    name: str
    opening_balance_cents: int
    current_balance_cents: int
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    active: bool = True


@dataclass
class PaymentMethod:
    """How the money was handed over (cash, card, pix...)"""

    id: int
    name: str
    fee_percentage: float = 0.0
    fee_fixed_cents: int = 0
    liquidation_days: int = 0


@dataclass
class PaymentDraft:
    """Caller-supplied fields of a payment, before it is stored"""

    amount_cents: int
    movement_kind: MovementKind
    occurred_at: datetime
    source_account_id: Optional[int] = None
    destination_account_id: Optional[int] = None
    payment_method_id: Optional[int] = None
    link: Optional[LinkTarget] = None
    description: Optional[str] = None


@dataclass
class Payment:
    """Stored money movement"""

    id: int
    amount_cents: int
    movement_kind: MovementKind
    occurred_at: datetime
    source_account_id: Optional[int] = None
    destination_account_id: Optional[int] = None
    payment_method_id: Optional[int] = None
    link: Optional[LinkTarget] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def credit_sale_id(self) -> Optional[int]:
        return self.link.id if isinstance(self.link, CreditSaleLink) else None


@dataclass
class CreditSale:
    """Installment sale tracked until its balance reaches zero"""

    id: int
    sale_id: int
    client_id: int
    total_amount_due_cents: int
    amount_paid_cents: int
    balance_due_cents: int
    due_date: date
    status: CreditSaleStatus = CreditSaleStatus.OPEN


@dataclass(frozen=True)
class BalanceDelta:
    """Signed change to one account's balance"""

    account_id: int
    delta_cents: int


@dataclass
class Reconciliation:
    """Stored balance vs. balance rebuilt from the movement journal"""

    account_id: int
    opening_balance_cents: int
    journal_total_cents: int
    current_balance_cents: int

    @property
    def expected_balance_cents(self) -> int:
        return self.opening_balance_cents + self.journal_total_cents

    @property
    def drift_cents(self) -> int:
        return self.current_balance_cents - self.expected_balance_cents

    @property
    def consistent(self) -> bool:
        return self.drift_cents == 0


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days"""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValidationError(f"Date range start {self.start} is after end {self.end}")

    def bounds(self) -> Tuple[datetime, datetime]:
        """Half-open datetime bounds [start 00:00, day after end 00:00)"""
        return (
            datetime.combine(self.start, time.min),
            datetime.combine(self.end + timedelta(days=1), time.min),
        )


@dataclass
class PaymentFilters:
    """Optional narrowing of a payment listing"""

    movement_kind: Optional[MovementKind] = None
    account_id: Optional[int] = None  # either side of the movement
    payment_method_id: Optional[int] = None
    link_type: Optional[str] = None
    link_id: Optional[int] = None


@dataclass
class PeriodSummary:
    """Aggregate totals per movement kind"""

    total_revenue_cents: int
    total_expense_cents: int
    total_transfer_cents: int
    net_balance_cents: int  # revenue - expense, transfers excluded


@dataclass
class CreditPortfolioSummary:
    """Crediário dashboard figures"""

    open_count: int
    overdue_count: int
    paid_count: int
    total_pending_cents: int
    total_overdue_cents: int
    total_paid_cents: int
    debtor_client_ids: List[int] = field(default_factory=list)
