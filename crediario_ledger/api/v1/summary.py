"""GET /v1/summary - period totals for reports and dashboards"""

from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from crediario_ledger.api.dependencies import get_request_id, get_services
from crediario_ledger.api.errors import to_http_error
from crediario_ledger.api.v1.schemas import SummaryResponse
from crediario_ledger.bootstrap import LedgerServices
from crediario_ledger.domain.exceptions import LedgerError
from crediario_ledger.domain.models import DateRange, PeriodSummary
from crediario_ledger.domain.summary import month_range

router = APIRouter()


def summary_to_schema(date_range: DateRange, summary: PeriodSummary) -> SummaryResponse:
    return SummaryResponse(
        start=date_range.start,
        end=date_range.end,
        total_revenue_cents=summary.total_revenue_cents,
        total_expense_cents=summary.total_expense_cents,
        total_transfer_cents=summary.total_transfer_cents,
        net_balance_cents=summary.net_balance_cents,
    )


@router.get("/summary", response_model=SummaryResponse)
def get_summary(
    request: Request,
    start: date = Query(..., description="First day (inclusive)"),
    end: date = Query(..., description="Last day (inclusive)"),
    services: LedgerServices = Depends(get_services),
):
    """
    Revenue, expense and transfer totals for a period.

    net_balance = revenue - expense; transfers only redistribute cash.
    """
    try:
        date_range = DateRange(start, end)
    except LedgerError as e:
        raise to_http_error(e, get_request_id(request))

    return summary_to_schema(date_range, services.summary.summarize(date_range))


@router.get("/summary/monthly", response_model=SummaryResponse)
def get_monthly_summary(
    request: Request,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    services: LedgerServices = Depends(get_services),
):
    try:
        date_range = month_range(year, month)
    except LedgerError as e:
        raise to_http_error(e, get_request_id(request))

    return summary_to_schema(date_range, services.summary.summarize(date_range))
