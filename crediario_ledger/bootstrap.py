"""Wires the domain services onto a database session"""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from crediario_ledger.config import settings
from crediario_ledger.domain.balances import BalanceEngine
from crediario_ledger.domain.ledger import PaymentLedger
from crediario_ledger.domain.settlement import SettlementTracker
from crediario_ledger.domain.summary import PeriodSummaryAggregator
from crediario_ledger.infrastructure.database.repositories import (
    AccountRepository,
    BalanceMovementRepository,
    CreditSaleRepository,
    PaymentMethodRepository,
    PaymentRepository,
)


@dataclass
class LedgerServices:
    """Domain services sharing one session (one unit of work)"""

    ledger: PaymentLedger
    balances: BalanceEngine
    settlement: SettlementTracker
    summary: PeriodSummaryAggregator
    accounts: AccountRepository


def build_services(db: Session) -> LedgerServices:
    """Build the ledger, balance engine, settlement tracker and aggregator"""
    accounts = AccountRepository(db)
    payments = PaymentRepository(db)

    balances = BalanceEngine(accounts, BalanceMovementRepository(db))
    settlement = SettlementTracker(CreditSaleRepository(db), max_retries=settings.settlement_max_retries)
    ledger = PaymentLedger(
        payments=payments,
        balances=balances,
        settlement=settlement,
        payment_methods=PaymentMethodRepository(db),
        unit_of_work=db,
    )
    summary = PeriodSummaryAggregator(payments, accounts, cash_account_name=settings.cash_account_name)

    return LedgerServices(
        ledger=ledger,
        balances=balances,
        settlement=settlement,
        summary=summary,
        accounts=accounts,
    )
