"""SQLAlchemy ORM models for the ledger tables"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Text,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class BankAccountRecord(Base):
    """Bank or cash-box account"""

    __tablename__ = "bank_accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, index=True)
    bank_name = Column(Text, nullable=True)
    account_number = Column(Text, nullable=True)
    opening_balance_cents = Column(BigInteger, nullable=False, default=0)
    current_balance_cents = Column(BigInteger, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class PaymentMethodRecord(Base):
    """Payment method (cash, debit card, pix...)"""

    __tablename__ = "payment_methods"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    fee_percentage = Column(Float, nullable=False, default=0.0)
    fee_fixed_cents = Column(BigInteger, nullable=False, default=0)
    liquidation_days = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class PaymentRecord(Base):
    """Money movement between zero, one or two accounts"""

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="payment_amount_positive"),
        CheckConstraint("movement_kind IN ('revenue', 'expense', 'transfer')", name="payment_movement_kind"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    amount_cents = Column(BigInteger, nullable=False)
    movement_kind = Column(Text, nullable=False, index=True)
    occurred_at = Column(DateTime, nullable=False, index=True)
    source_account_id = Column(Integer, ForeignKey("bank_accounts.id", ondelete="RESTRICT"), nullable=True, index=True)
    destination_account_id = Column(
        Integer, ForeignKey("bank_accounts.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    payment_method_id = Column(Integer, ForeignKey("payment_methods.id", ondelete="RESTRICT"), nullable=True)
    link_type = Column(Text, nullable=True)
    link_id = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CreditSaleRecord(Base):
    """Crediário: sale paid in installments"""

    __tablename__ = "credit_sales"
    __table_args__ = (
        CheckConstraint("amount_paid_cents >= 0", name="credit_sale_paid_non_negative"),
        CheckConstraint("amount_paid_cents <= total_amount_due_cents", name="credit_sale_not_overpaid"),
        CheckConstraint("balance_due_cents = total_amount_due_cents - amount_paid_cents", name="credit_sale_balance"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_id = Column(Integer, nullable=False, index=True)
    client_id = Column(Integer, nullable=False, index=True)
    total_amount_due_cents = Column(BigInteger, nullable=False)
    amount_paid_cents = Column(BigInteger, nullable=False, default=0)
    balance_due_cents = Column(BigInteger, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(Text, nullable=False, default="open")  # open | paid; overdue is derived
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())


class BalanceMovementRecord(Base):
    """Append-only journal of every delta applied to an account"""

    __tablename__ = "balance_movements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_id = Column(Integer, nullable=False, index=True)  # outlives deleted payments
    account_id = Column(Integer, ForeignKey("bank_accounts.id", ondelete="RESTRICT"), nullable=False, index=True)
    delta_cents = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
