"""/v1/credit-sales - crediário status, collection and portfolio"""

import time
from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from crediario_ledger.api.dependencies import get_request_id, get_services, get_today
from crediario_ledger.api.errors import to_http_error
from crediario_ledger.api.v1.payments import payment_to_schema
from crediario_ledger.api.v1.schemas import (
    CreditPaymentRequest,
    CreditPaymentResponse,
    CreditPortfolioResponse,
    CreditSaleListResponse,
    CreditSaleResponse,
)
from crediario_ledger.bootstrap import LedgerServices
from crediario_ledger.domain.exceptions import LedgerError
from crediario_ledger.domain.models import CreditSale
from crediario_ledger.domain.settlement import effective_status
from crediario_ledger.infrastructure.observability.logging import log_ledger_event
from crediario_ledger.infrastructure.observability.metrics import (
    ledger_operation_histogram,
    record_payment_operation,
    record_settlement,
)

router = APIRouter()


def credit_sale_to_schema(sale: CreditSale, today: date) -> CreditSaleResponse:
    return CreditSaleResponse(
        id=sale.id,
        sale_id=sale.sale_id,
        client_id=sale.client_id,
        total_amount_due_cents=sale.total_amount_due_cents,
        amount_paid_cents=sale.amount_paid_cents,
        balance_due_cents=sale.balance_due_cents,
        due_date=sale.due_date,
        status=effective_status(sale, today).value,
        stored_status=sale.status.value,
    )


@router.get("/credit-sales/overdue", response_model=CreditSaleListResponse)
def list_overdue_credit_sales(
    services: LedgerServices = Depends(get_services),
    today: date = Depends(get_today),
):
    """Unsettled credit sales past their due date, oldest first"""
    sales = services.settlement.list_overdue(today)
    return CreditSaleListResponse(count=len(sales), credit_sales=[credit_sale_to_schema(s, today) for s in sales])


@router.get("/credit-sales/due-soon", response_model=CreditSaleListResponse)
def list_credit_sales_due_soon(
    days: int = Query(7, ge=0, le=365),
    services: LedgerServices = Depends(get_services),
    today: date = Depends(get_today),
):
    """Unsettled credit sales due within the next `days` days"""
    sales = services.settlement.list_due_within(days, today)
    return CreditSaleListResponse(count=len(sales), credit_sales=[credit_sale_to_schema(s, today) for s in sales])


@router.get("/credit-sales/summary", response_model=CreditPortfolioResponse)
def get_credit_portfolio(
    services: LedgerServices = Depends(get_services),
    today: date = Depends(get_today),
):
    """Open, overdue and paid totals using the overdue projection"""
    summary = services.settlement.portfolio_summary(today)
    return CreditPortfolioResponse(
        open_count=summary.open_count,
        overdue_count=summary.overdue_count,
        paid_count=summary.paid_count,
        debtor_count=len(summary.debtor_client_ids),
        total_pending_cents=summary.total_pending_cents,
        total_overdue_cents=summary.total_overdue_cents,
        total_paid_cents=summary.total_paid_cents,
    )


@router.get("/credit-sales/{credit_sale_id}", response_model=CreditSaleResponse)
def get_credit_sale(
    credit_sale_id: int,
    request: Request,
    services: LedgerServices = Depends(get_services),
    today: date = Depends(get_today),
):
    try:
        sale = services.settlement.get(credit_sale_id)
    except LedgerError as e:
        raise to_http_error(e, get_request_id(request))

    return credit_sale_to_schema(sale, today)


@router.post("/credit-sales/{credit_sale_id}/payments", response_model=CreditPaymentResponse, status_code=201)
def collect_credit_payment(
    credit_sale_id: int,
    request_body: CreditPaymentRequest,
    request: Request,
    services: LedgerServices = Depends(get_services),
    today: date = Depends(get_today),
):
    """
    Collect a crediário installment.

    Records revenue into the destination account and settles the credit
    sale in the same transaction. Over-payment is rejected with 409 so the
    cashier can split the amount.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        payment = services.ledger.collect_credit_payment(
            credit_sale_id=credit_sale_id,
            amount_cents=request_body.amount_cents,
            destination_account_id=request_body.destination_account_id,
            occurred_at=request_body.occurred_at,
            payment_method_id=request_body.payment_method_id,
            description=request_body.description,
        )
        sale = services.settlement.get(credit_sale_id)
    except LedgerError as e:
        raise to_http_error(e, request_id)

    duration = time.time() - start_time
    ledger_operation_histogram.labels(operation="record").observe(duration)
    record_payment_operation("record", payment.movement_kind.value, payment.amount_cents)
    record_settlement(sale.balance_due_cents)
    log_ledger_event(
        request_id,
        "record",
        payment.id,
        payment.movement_kind.value,
        payment.amount_cents,
        duration * 1000,
        credit_sale_id=credit_sale_id,
    )

    return CreditPaymentResponse(payment=payment_to_schema(payment), credit_sale=credit_sale_to_schema(sale, today))
