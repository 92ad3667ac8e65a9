"""Data access layer for ledger entities"""

from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from crediario_ledger.domain.exceptions import AccountNotFoundError, NotFoundError, PaymentMethodInUseError
from crediario_ledger.domain.models import (
    BankAccount,
    CreditSale,
    CreditSaleStatus,
    DateRange,
    MovementKind,
    Payment,
    PaymentDraft,
    PaymentFilters,
    PaymentMethod,
    link_from_columns,
    link_to_columns,
)
from crediario_ledger.infrastructure.database.models import (
    BalanceMovementRecord,
    BankAccountRecord,
    CreditSaleRecord,
    PaymentMethodRecord,
    PaymentRecord,
)


def _account_to_domain(record: BankAccountRecord) -> BankAccount:
    return BankAccount(
        id=record.id,
        name=record.name,
        opening_balance_cents=record.opening_balance_cents,
        current_balance_cents=record.current_balance_cents,
        bank_name=record.bank_name,
        account_number=record.account_number,
        active=record.active,
    )


def _payment_to_domain(record: PaymentRecord) -> Payment:
    return Payment(
        id=record.id,
        amount_cents=record.amount_cents,
        movement_kind=MovementKind(record.movement_kind),
        occurred_at=record.occurred_at,
        source_account_id=record.source_account_id,
        destination_account_id=record.destination_account_id,
        payment_method_id=record.payment_method_id,
        link=link_from_columns(record.link_type, record.link_id),
        description=record.description,
        created_at=record.created_at,
    )


def _credit_sale_to_domain(record: CreditSaleRecord) -> CreditSale:
    return CreditSale(
        id=record.id,
        sale_id=record.sale_id,
        client_id=record.client_id,
        total_amount_due_cents=record.total_amount_due_cents,
        amount_paid_cents=record.amount_paid_cents,
        balance_due_cents=record.balance_due_cents,
        due_date=record.due_date,
        status=CreditSaleStatus(record.status),
    )


def _payment_method_to_domain(record: PaymentMethodRecord) -> PaymentMethod:
    return PaymentMethod(
        id=record.id,
        name=record.name,
        fee_percentage=record.fee_percentage,
        fee_fixed_cents=record.fee_fixed_cents,
        liquidation_days=record.liquidation_days,
    )


class AccountRepository:
    """Repository for bank accounts"""

    def __init__(self, db: Session):
        self.db = db

    def create_account(
        self,
        name: str,
        opening_balance_cents: int = 0,
        bank_name: Optional[str] = None,
        account_number: Optional[str] = None,
    ) -> BankAccount:
        """Administrative setup; the ledger itself never creates accounts"""
        record = BankAccountRecord(
            name=name,
            bank_name=bank_name,
            account_number=account_number,
            opening_balance_cents=opening_balance_cents,
            current_balance_cents=opening_balance_cents,
        )
        self.db.add(record)
        self.db.flush()
        return _account_to_domain(record)

    def get(self, account_id: int) -> Optional[BankAccount]:
        record = (
            self.db.query(BankAccountRecord)
            .populate_existing()  # balances change through UPDATE statements
            .filter(BankAccountRecord.id == account_id)
            .first()
        )
        return _account_to_domain(record) if record else None

    def get_by_name(self, name: str) -> Optional[BankAccount]:
        record = (
            self.db.query(BankAccountRecord)
            .populate_existing()
            .filter(BankAccountRecord.name == name)
            .order_by(BankAccountRecord.id)
            .first()
        )
        return _account_to_domain(record) if record else None

    def list_active(self) -> List[BankAccount]:
        records = (
            self.db.query(BankAccountRecord)
            .populate_existing()
            .filter(BankAccountRecord.active.is_(True))
            .order_by(BankAccountRecord.name)
            .all()
        )
        return [_account_to_domain(r) for r in records]

    def lock(self, account_ids: List[int]) -> List[int]:
        """
        SELECT ... FOR UPDATE over the accounts, ordered by id.

        Held until the transaction ends; every ledger write takes its locks
        through here so concurrent writers queue in the same order.
        """
        if not account_ids:
            return []

        rows = (
            self.db.query(BankAccountRecord.id)
            .filter(BankAccountRecord.id.in_(account_ids))
            .order_by(BankAccountRecord.id)
            .with_for_update()
            .all()
        )
        return [account_id for (account_id,) in rows]

    def adjust_balance(self, account_id: int, delta_cents: int) -> int:
        """
        Add delta to the balance inside the database.

        Single UPDATE ... SET balance = balance + delta, so concurrent
        writers cannot lose each other's update.
        """
        result = self.db.execute(
            update(BankAccountRecord)
            .where(BankAccountRecord.id == account_id)
            .values(current_balance_cents=BankAccountRecord.current_balance_cents + delta_cents)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise AccountNotFoundError(account_id)

        return (
            self.db.query(BankAccountRecord.current_balance_cents)
            .filter(BankAccountRecord.id == account_id)
            .scalar()
        )


class BalanceMovementRepository:
    """Repository for the balance movement journal"""

    def __init__(self, db: Session):
        self.db = db

    def append(self, payment_id: int, account_id: int, delta_cents: int) -> None:
        self.db.add(BalanceMovementRecord(payment_id=payment_id, account_id=account_id, delta_cents=delta_cents))
        self.db.flush()

    def net_for_payment(self, payment_id: int) -> Dict[int, int]:
        rows = (
            self.db.query(BalanceMovementRecord.account_id, func.sum(BalanceMovementRecord.delta_cents))
            .filter(BalanceMovementRecord.payment_id == payment_id)
            .group_by(BalanceMovementRecord.account_id)
            .all()
        )
        return {account_id: int(total) for account_id, total in rows}

    def net_for_account(self, account_id: int) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(BalanceMovementRecord.delta_cents), 0))
            .filter(BalanceMovementRecord.account_id == account_id)
            .scalar()
        )
        return int(total)


class PaymentRepository:
    """Repository for payments"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, draft: PaymentDraft) -> Payment:
        """Persist a validated draft and return it with its new id"""
        record = PaymentRecord()
        self._assign(record, draft)
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        self.db.refresh(record)
        return _payment_to_domain(record)

    def get(self, payment_id: int) -> Optional[Payment]:
        record = self._get_record(payment_id)
        return _payment_to_domain(record) if record else None

    def replace(self, payment_id: int, draft: PaymentDraft) -> Payment:
        record = self._get_record(payment_id)
        if record is None:
            raise NotFoundError(f"Payment {payment_id} not found")

        self._assign(record, draft)
        self.db.flush()
        return _payment_to_domain(record)

    def delete(self, payment_id: int) -> None:
        record = self._get_record(payment_id)
        if record is None:
            raise NotFoundError(f"Payment {payment_id} not found")

        self.db.delete(record)
        self.db.flush()

    def list(
        self,
        date_range: Optional[DateRange] = None,
        filters: Optional[PaymentFilters] = None,
        limit: Optional[int] = None,
    ) -> List[Payment]:
        """Payments ordered by occurred_at, most recent first"""
        query = self.db.query(PaymentRecord)

        if date_range is not None:
            start, end = date_range.bounds()
            query = query.filter(PaymentRecord.occurred_at >= start, PaymentRecord.occurred_at < end)

        if filters is not None:
            if filters.movement_kind is not None:
                query = query.filter(PaymentRecord.movement_kind == MovementKind(filters.movement_kind).value)
            if filters.account_id is not None:
                query = query.filter(
                    or_(
                        PaymentRecord.source_account_id == filters.account_id,
                        PaymentRecord.destination_account_id == filters.account_id,
                    )
                )
            if filters.payment_method_id is not None:
                query = query.filter(PaymentRecord.payment_method_id == filters.payment_method_id)
            if filters.link_type is not None:
                query = query.filter(PaymentRecord.link_type == filters.link_type)
            if filters.link_id is not None:
                query = query.filter(PaymentRecord.link_id == filters.link_id)

        query = query.order_by(PaymentRecord.occurred_at.desc(), PaymentRecord.id.desc())
        if limit is not None:
            query = query.limit(limit)

        return [_payment_to_domain(r) for r in query.all()]

    def totals_by_kind(self, date_range: DateRange) -> Dict[MovementKind, int]:
        start, end = date_range.bounds()
        rows = (
            self.db.query(PaymentRecord.movement_kind, func.sum(PaymentRecord.amount_cents))
            .filter(PaymentRecord.occurred_at >= start, PaymentRecord.occurred_at < end)
            .group_by(PaymentRecord.movement_kind)
            .all()
        )
        return {MovementKind(kind): int(total) for kind, total in rows}

    def count_for_payment_method(self, payment_method_id: int) -> int:
        return (
            self.db.query(func.count(PaymentRecord.id))
            .filter(PaymentRecord.payment_method_id == payment_method_id)
            .scalar()
        )

    def _get_record(self, payment_id: int) -> Optional[PaymentRecord]:
        return self.db.query(PaymentRecord).filter(PaymentRecord.id == payment_id).first()

    @staticmethod
    def _assign(record: PaymentRecord, draft: PaymentDraft) -> None:
        record.amount_cents = draft.amount_cents
        record.movement_kind = MovementKind(draft.movement_kind).value
        record.occurred_at = draft.occurred_at
        record.source_account_id = draft.source_account_id
        record.destination_account_id = draft.destination_account_id
        record.payment_method_id = draft.payment_method_id
        record.link_type, record.link_id = link_to_columns(draft.link)
        record.description = draft.description


class CreditSaleRepository:
    """Repository for credit sales (crediário)"""

    def __init__(self, db: Session):
        self.db = db

    def create_credit_sale(
        self,
        sale_id: int,
        client_id: int,
        total_amount_due_cents: int,
        due_date: date,
    ) -> CreditSale:
        """Opened by the sale workflow when a sale is sold on credit"""
        record = CreditSaleRecord(
            sale_id=sale_id,
            client_id=client_id,
            total_amount_due_cents=total_amount_due_cents,
            amount_paid_cents=0,
            balance_due_cents=total_amount_due_cents,
            due_date=due_date,
            status=CreditSaleStatus.OPEN.value,
        )
        self.db.add(record)
        self.db.flush()
        return _credit_sale_to_domain(record)

    def get(self, credit_sale_id: int) -> Optional[CreditSale]:
        record = (
            self.db.query(CreditSaleRecord)
            .populate_existing()  # settlement writes go through UPDATE statements
            .filter(CreditSaleRecord.id == credit_sale_id)
            .first()
        )
        return _credit_sale_to_domain(record) if record else None

    def compare_and_set(self, sale: CreditSale, expected_paid_cents: int) -> bool:
        """Write settlement fields only if nobody changed amount_paid since it was read"""
        result = self.db.execute(
            update(CreditSaleRecord)
            .where(
                CreditSaleRecord.id == sale.id,
                CreditSaleRecord.amount_paid_cents == expected_paid_cents,
            )
            .values(
                amount_paid_cents=sale.amount_paid_cents,
                balance_due_cents=sale.balance_due_cents,
                status=CreditSaleStatus(sale.status).value,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_all(self) -> List[CreditSale]:
        return self._list()

    def list_open_due_between(self, start: date, end: date) -> List[CreditSale]:
        return self._list(
            CreditSaleRecord.status == CreditSaleStatus.OPEN.value,
            CreditSaleRecord.due_date >= start,
            CreditSaleRecord.due_date <= end,
        )

    def _list(self, *criteria) -> List[CreditSale]:
        records = (
            self.db.query(CreditSaleRecord)
            .populate_existing()
            .filter(*criteria)
            .order_by(CreditSaleRecord.due_date.asc(), CreditSaleRecord.id.asc())
            .all()
        )
        return [_credit_sale_to_domain(r) for r in records]


class PaymentMethodRepository:
    """Repository for payment methods"""

    def __init__(self, db: Session):
        self.db = db

    def create_payment_method(
        self,
        name: str,
        fee_percentage: float = 0.0,
        fee_fixed_cents: int = 0,
        liquidation_days: int = 0,
    ) -> PaymentMethod:
        record = PaymentMethodRecord(
            name=name,
            fee_percentage=fee_percentage,
            fee_fixed_cents=fee_fixed_cents,
            liquidation_days=liquidation_days,
        )
        self.db.add(record)
        self.db.flush()
        return _payment_method_to_domain(record)

    def get(self, payment_method_id: int) -> Optional[PaymentMethod]:
        record = self.db.query(PaymentMethodRecord).filter(PaymentMethodRecord.id == payment_method_id).first()
        return _payment_method_to_domain(record) if record else None

    def list_all(self) -> List[PaymentMethod]:
        records = self.db.query(PaymentMethodRecord).order_by(PaymentMethodRecord.name).all()
        return [_payment_method_to_domain(r) for r in records]

    def delete(self, payment_method_id: int) -> None:
        """
        Delete an unused payment method.

        Raises:
            NotFoundError: Unknown payment method
            PaymentMethodInUseError: Payments still reference it
        """
        record = self.db.query(PaymentMethodRecord).filter(PaymentMethodRecord.id == payment_method_id).first()
        if record is None:
            raise NotFoundError(f"Payment method {payment_method_id} not found")

        in_use = PaymentRepository(self.db).count_for_payment_method(payment_method_id)
        if in_use:
            raise PaymentMethodInUseError(
                f"Payment method '{record.name}' is used by {in_use} payment(s) and cannot be deleted"
            )

        self.db.delete(record)
        self.db.flush()
