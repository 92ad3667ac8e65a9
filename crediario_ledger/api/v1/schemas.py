"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from crediario_ledger.domain.models import MovementKind, PaymentDraft, link_from_columns


class PaymentLinkSchema(BaseModel):
    """Originating document of a payment"""

    type: Literal["sale", "service_order", "credit_sale", "payable"]
    id: int = Field(..., gt=0)


class PaymentRequest(BaseModel):
    """Request body for POST /v1/payments and PUT /v1/payments/{id}"""

    amount_cents: int = Field(..., gt=0, description="Amount in cents; direction comes from movement_kind")
    movement_kind: MovementKind
    occurred_at: datetime = Field(..., description="When the money actually moved")
    source_account_id: Optional[int] = Field(None, description="Required for expense and transfer")
    destination_account_id: Optional[int] = Field(None, description="Required for revenue and transfer")
    payment_method_id: Optional[int] = None
    link: Optional[PaymentLinkSchema] = None
    description: Optional[str] = Field(None, max_length=500)

    def to_draft(self) -> PaymentDraft:
        return PaymentDraft(
            amount_cents=self.amount_cents,
            movement_kind=self.movement_kind,
            occurred_at=self.occurred_at,
            source_account_id=self.source_account_id,
            destination_account_id=self.destination_account_id,
            payment_method_id=self.payment_method_id,
            link=link_from_columns(self.link.type, self.link.id) if self.link else None,
            description=self.description,
        )


class PaymentResponse(BaseModel):
    """Stored payment"""

    id: int
    amount_cents: int
    movement_kind: MovementKind
    occurred_at: datetime
    source_account_id: Optional[int] = None
    destination_account_id: Optional[int] = None
    payment_method_id: Optional[int] = None
    link: Optional[PaymentLinkSchema] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class PaymentListResponse(BaseModel):
    """Response for GET /v1/payments"""

    count: int
    payments: List[PaymentResponse]


class CreditSaleResponse(BaseModel):
    """Credit sale with its read-time status"""

    id: int
    sale_id: int
    client_id: int
    total_amount_due_cents: int
    amount_paid_cents: int
    balance_due_cents: int
    due_date: date
    status: Literal["open", "paid", "overdue"] = Field(..., description="Includes the overdue projection")
    stored_status: Literal["open", "paid"]


class CreditSaleListResponse(BaseModel):
    """Response for GET /v1/credit-sales/overdue"""

    count: int
    credit_sales: List[CreditSaleResponse]


class CreditPaymentRequest(BaseModel):
    """Request body for POST /v1/credit-sales/{id}/payments"""

    amount_cents: int = Field(..., gt=0)
    destination_account_id: int
    occurred_at: Optional[datetime] = None
    payment_method_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=500)


class CreditPaymentResponse(BaseModel):
    """Collected installment and the resulting credit sale state"""

    payment: PaymentResponse
    credit_sale: CreditSaleResponse


class CreditPortfolioResponse(BaseModel):
    """Response for GET /v1/credit-sales/summary"""

    open_count: int
    overdue_count: int
    paid_count: int
    debtor_count: int
    total_pending_cents: int
    total_overdue_cents: int
    total_paid_cents: int


class SummaryResponse(BaseModel):
    """Response for GET /v1/summary and GET /v1/summary/monthly"""

    start: date
    end: date
    total_revenue_cents: int
    total_expense_cents: int
    total_transfer_cents: int
    net_balance_cents: int


class AccountResponse(BaseModel):
    """Bank account with its current balance"""

    id: int
    name: str
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    opening_balance_cents: int
    current_balance_cents: int


class CashBalanceResponse(BaseModel):
    """Response for GET /v1/accounts/cash"""

    account_name: str
    balance_cents: int


class ReconciliationResponse(BaseModel):
    """Response for GET /v1/accounts/{id}/reconciliation"""

    account_id: int
    opening_balance_cents: int
    journal_total_cents: int
    expected_balance_cents: int
    current_balance_cents: int
    drift_cents: int
    consistent: bool
