"""/v1/payments - record, amend, remove and list money movements"""

import time
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from crediario_ledger.api.dependencies import get_request_id, get_services
from crediario_ledger.api.errors import to_http_error
from crediario_ledger.api.v1.schemas import PaymentLinkSchema, PaymentListResponse, PaymentRequest, PaymentResponse
from crediario_ledger.bootstrap import LedgerServices
from crediario_ledger.config import settings
from crediario_ledger.domain.exceptions import LedgerError, ValidationError
from crediario_ledger.domain.models import DateRange, MovementKind, Payment, PaymentFilters, link_to_columns
from crediario_ledger.infrastructure.observability.logging import log_ledger_event
from crediario_ledger.infrastructure.observability.metrics import (
    ledger_operation_histogram,
    record_payment_operation,
    record_settlement,
)

router = APIRouter()


def payment_to_schema(payment: Payment) -> PaymentResponse:
    link_type, link_id = link_to_columns(payment.link)
    return PaymentResponse(
        id=payment.id,
        amount_cents=payment.amount_cents,
        movement_kind=payment.movement_kind,
        occurred_at=payment.occurred_at,
        source_account_id=payment.source_account_id,
        destination_account_id=payment.destination_account_id,
        payment_method_id=payment.payment_method_id,
        link=PaymentLinkSchema(type=link_type, id=link_id) if link_type else None,
        description=payment.description,
        created_at=payment.created_at,
    )


def optional_range(start: Optional[date], end: Optional[date]) -> Optional[DateRange]:
    """Both bounds or neither"""
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise ValidationError("Provide both start and end, or neither")
    return DateRange(start, end)


def _observe(operation: str, payment: Payment, request_id: str, start_time: float) -> None:
    duration = time.time() - start_time
    kind = payment.movement_kind.value

    ledger_operation_histogram.labels(operation=operation).observe(duration)
    record_payment_operation(operation, kind, payment.amount_cents if operation == "record" else None)
    log_ledger_event(
        request_id, operation, payment.id, kind, payment.amount_cents, duration * 1000, payment.credit_sale_id
    )


def _observe_settlement(
    services: LedgerServices, applied: Optional[Payment] = None, taken_back: Optional[Payment] = None
) -> None:
    """Count crediário settlements written through the generic payment routes"""
    if taken_back is not None and taken_back.credit_sale_id is not None:
        record_settlement(services.settlement.get(taken_back.credit_sale_id).balance_due_cents, reversed=True)
    if applied is not None and applied.credit_sale_id is not None:
        record_settlement(services.settlement.get(applied.credit_sale_id).balance_due_cents)


@router.post("/payments", response_model=PaymentResponse, status_code=201)
def record_payment(
    request_body: PaymentRequest,
    request: Request,
    services: LedgerServices = Depends(get_services),
):
    """
    Record a money movement.

    Flow:
    1. Validate amount and the accounts the movement kind requires
    2. Persist the payment
    3. Apply balance deltas to the affected accounts
    4. Settle the linked credit sale, if any
    All four commit together or not at all.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        payment = services.ledger.record(request_body.to_draft())
    except LedgerError as e:
        raise to_http_error(e, request_id)

    _observe("record", payment, request_id, start_time)
    _observe_settlement(services, applied=payment)
    return payment_to_schema(payment)


@router.get("/payments", response_model=PaymentListResponse)
def list_payments(
    request: Request,
    start: Optional[date] = Query(None, description="First day (inclusive)"),
    end: Optional[date] = Query(None, description="Last day (inclusive)"),
    movement_kind: Optional[MovementKind] = None,
    account_id: Optional[int] = Query(None, description="Matches source or destination"),
    payment_method_id: Optional[int] = None,
    link_type: Optional[str] = None,
    link_id: Optional[int] = None,
    limit: int = Query(settings.default_list_limit, gt=0, le=5000),
    services: LedgerServices = Depends(get_services),
):
    """List payments by occurred_at, most recent first"""
    try:
        date_range = optional_range(start, end)
    except LedgerError as e:
        raise to_http_error(e, get_request_id(request))

    filters = PaymentFilters(
        movement_kind=movement_kind,
        account_id=account_id,
        payment_method_id=payment_method_id,
        link_type=link_type,
        link_id=link_id,
    )
    payments = services.ledger.list(date_range, filters, limit=limit)

    return PaymentListResponse(count=len(payments), payments=[payment_to_schema(p) for p in payments])


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: int, request: Request, services: LedgerServices = Depends(get_services)):
    try:
        payment = services.ledger.get(payment_id)
    except LedgerError as e:
        raise to_http_error(e, get_request_id(request))

    return payment_to_schema(payment)


@router.put("/payments/{payment_id}", response_model=PaymentResponse)
def amend_payment(
    payment_id: int,
    request_body: PaymentRequest,
    request: Request,
    services: LedgerServices = Depends(get_services),
):
    """Correct a payment: old effects are reversed, then the new ones applied"""
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        old = services.ledger.get(payment_id)
        payment = services.ledger.amend(payment_id, request_body.to_draft())
    except LedgerError as e:
        raise to_http_error(e, request_id)

    _observe("amend", payment, request_id, start_time)
    _observe_settlement(services, applied=payment, taken_back=old)
    return payment_to_schema(payment)


@router.delete("/payments/{payment_id}", status_code=204)
def remove_payment(payment_id: int, request: Request, services: LedgerServices = Depends(get_services)):
    """Delete a mistaken payment after reversing its effects"""
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        payment = services.ledger.get(payment_id)
        services.ledger.remove(payment_id)
    except LedgerError as e:
        raise to_http_error(e, request_id)

    _observe("remove", payment, request_id, start_time)
    _observe_settlement(services, taken_back=payment)
    return Response(status_code=204)
