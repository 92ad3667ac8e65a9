"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime
from typing import Dict, Generator, List, Optional
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from crediario_ledger.api.dependencies import get_today
from crediario_ledger.api.main import create_app
from crediario_ledger.bootstrap import LedgerServices, build_services
from crediario_ledger.domain.exceptions import AccountNotFoundError
from crediario_ledger.domain.models import BankAccount, CreditSale
from crediario_ledger.domain.settlement import stored_status
from crediario_ledger.infrastructure.database.models import Base
from crediario_ledger.infrastructure.database.repositories import (
    AccountRepository,
    CreditSaleRepository,
    PaymentMethodRepository,
)
from crediario_ledger.infrastructure.database.session import create_ledger_engine, get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test_ledger.db"
engine = create_ledger_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TODAY = date(2024, 3, 15)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def services(db: Session) -> LedgerServices:
    return build_services(db)


@pytest.fixture
def accounts(db: Session) -> AccountRepository:
    return AccountRepository(db)


@pytest.fixture
def credit_sales(db: Session) -> CreditSaleRepository:
    return CreditSaleRepository(db)


@pytest.fixture
def payment_methods(db: Session) -> PaymentMethodRepository:
    return PaymentMethodRepository(db)


@pytest.fixture
def account_a(db: Session, accounts: AccountRepository) -> BankAccount:
    """Main bank account, opening balance 1000.00"""
    account = accounts.create_account("Banco do Brasil", opening_balance_cents=100_000, bank_name="BB")
    db.commit()
    return account


@pytest.fixture
def account_b(db: Session, accounts: AccountRepository) -> BankAccount:
    """Cash box, opening balance 0"""
    account = accounts.create_account("CAIXA DA EMPRESA", opening_balance_cents=0)
    db.commit()
    return account


@pytest.fixture
def credit_sale(db: Session, credit_sales: CreditSaleRepository) -> CreditSale:
    """Crediário of 500.00 due on 2024-03-31"""
    sale = credit_sales.create_credit_sale(sale_id=10, client_id=7, total_amount_due_cents=50_000, due_date=date(2024, 3, 31))
    db.commit()
    return sale


@pytest.fixture
def when() -> datetime:
    return datetime(2024, 3, 10, 9, 30)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    return TestClient(app)


# In-memory ports for pure domain tests


class InMemoryAccounts:
    def __init__(self, opening: Dict[int, int]):
        self.opening = dict(opening)
        self.balances = dict(opening)
        self.locks: List[List[int]] = []
        self.adjusted: List[int] = []

    def get(self, account_id: int) -> Optional[BankAccount]:
        if account_id not in self.balances:
            return None
        return BankAccount(
            id=account_id,
            name=f"account-{account_id}",
            opening_balance_cents=self.opening[account_id],
            current_balance_cents=self.balances[account_id],
        )

    def get_by_name(self, name: str) -> Optional[BankAccount]:
        return next((self.get(i) for i in self.balances if f"account-{i}" == name), None)

    def list_active(self) -> List[BankAccount]:
        return [self.get(i) for i in sorted(self.balances)]

    def lock(self, account_ids: List[int]) -> List[int]:
        self.locks.append(list(account_ids))
        return [i for i in account_ids if i in self.balances]

    def adjust_balance(self, account_id: int, delta_cents: int) -> int:
        if account_id not in self.balances:
            raise AccountNotFoundError(account_id)
        self.adjusted.append(account_id)
        self.balances[account_id] += delta_cents
        return self.balances[account_id]


class InMemoryJournal:
    def __init__(self):
        self.entries: List[tuple] = []

    def append(self, payment_id: int, account_id: int, delta_cents: int) -> None:
        self.entries.append((payment_id, account_id, delta_cents))

    def net_for_payment(self, payment_id: int) -> Dict[int, int]:
        totals: Dict[int, int] = {}
        for pid, account_id, delta in self.entries:
            if pid == payment_id:
                totals[account_id] = totals.get(account_id, 0) + delta
        return totals

    def net_for_account(self, account_id: int) -> int:
        return sum(delta for _, aid, delta in self.entries if aid == account_id)


class InMemoryCreditSales:
    def __init__(self, *sales: CreditSale):
        self.sales = {s.id: s for s in sales}
        self.writes = 0

    def get(self, credit_sale_id: int) -> Optional[CreditSale]:
        return self.sales.get(credit_sale_id)

    def compare_and_set(self, sale: CreditSale, expected_paid_cents: int) -> bool:
        if self.sales[sale.id].amount_paid_cents != expected_paid_cents:
            return False
        self.sales[sale.id] = sale
        self.writes += 1
        return True

    def list_all(self) -> List[CreditSale]:
        return sorted(self.sales.values(), key=lambda s: (s.due_date, s.id))

    def list_open_due_between(self, start: date, end: date) -> List[CreditSale]:
        return [s for s in self.list_all() if s.status.value == "open" and start <= s.due_date <= end]


@pytest.fixture
def memory_accounts() -> InMemoryAccounts:
    return InMemoryAccounts({1: 100_000, 2: 0})


@pytest.fixture
def memory_journal() -> InMemoryJournal:
    return InMemoryJournal()


@pytest.fixture
def make_credit_sale():
    def _make(
        id: int = 1,
        total: int = 50_000,
        paid: int = 0,
        due_date: date = date(2024, 3, 31),
        client_id: int = 7,
    ) -> CreditSale:
        return CreditSale(
            id=id,
            sale_id=100 + id,
            client_id=client_id,
            total_amount_due_cents=total,
            amount_paid_cents=paid,
            balance_due_cents=total - paid,
            due_date=due_date,
            status=stored_status(total - paid),
        )

    return _make


@pytest.fixture
def memory_credit_sales():
    return InMemoryCreditSales
