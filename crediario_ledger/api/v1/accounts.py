"""/v1/accounts - balances, cash box and reconciliation"""

from typing import List

from fastapi import APIRouter, Depends, Request

from crediario_ledger.api.dependencies import get_request_id, get_services
from crediario_ledger.api.errors import to_http_error
from crediario_ledger.api.v1.schemas import AccountResponse, CashBalanceResponse, ReconciliationResponse
from crediario_ledger.bootstrap import LedgerServices
from crediario_ledger.domain.exceptions import LedgerError
from crediario_ledger.infrastructure.observability.logging import log_balance_drift

router = APIRouter()


@router.get("/accounts", response_model=List[AccountResponse])
def list_accounts(services: LedgerServices = Depends(get_services)):
    """Active accounts ordered by name"""
    return [
        AccountResponse(
            id=a.id,
            name=a.name,
            bank_name=a.bank_name,
            account_number=a.account_number,
            opening_balance_cents=a.opening_balance_cents,
            current_balance_cents=a.current_balance_cents,
        )
        for a in services.accounts.list_active()
    ]


@router.get("/accounts/cash", response_model=CashBalanceResponse)
def get_cash_balance(services: LedgerServices = Depends(get_services)):
    """Balance of the company cash box"""
    return CashBalanceResponse(
        account_name=services.summary.cash_account_name,
        balance_cents=services.summary.cash_balance(),
    )


@router.get("/accounts/{account_id}/reconciliation", response_model=ReconciliationResponse)
def reconcile_account(account_id: int, request: Request, services: LedgerServices = Depends(get_services)):
    """
    Compare the stored balance with opening balance + movement journal.

    A non-zero drift means the balance was changed outside the ledger.
    """
    request_id = get_request_id(request)

    try:
        result = services.balances.reconcile(account_id)
    except LedgerError as e:
        raise to_http_error(e, request_id)

    if not result.consistent:
        log_balance_drift(request_id, result)

    return ReconciliationResponse(
        account_id=result.account_id,
        opening_balance_cents=result.opening_balance_cents,
        journal_total_cents=result.journal_total_cents,
        expected_balance_cents=result.expected_balance_cents,
        current_balance_cents=result.current_balance_cents,
        drift_cents=result.drift_cents,
        consistent=result.consistent,
    )
