"""Integration tests for the ledger against a real database"""

import pytest
from datetime import date, datetime, timezone
from sqlalchemy import update
from crediario_ledger.domain.exceptions import (
    AccountNotFoundError,
    NotFoundError,
    OverpaymentError,
    PaymentMethodInUseError,
    ValidationError,
)
from crediario_ledger.domain.models import (
    CreditSaleLink,
    CreditSaleStatus,
    DateRange,
    MovementKind,
    PaymentDraft,
    PaymentFilters,
    SaleLink,
)
from crediario_ledger.infrastructure.database.models import BankAccountRecord, PaymentRecord


def balance(services, account) -> int:
    return services.accounts.get(account.id).current_balance_cents


def revenue(account, amount: int, when: datetime, **kwargs) -> PaymentDraft:
    return PaymentDraft(
        amount_cents=amount,
        movement_kind=MovementKind.REVENUE,
        occurred_at=when,
        destination_account_id=account.id,
        **kwargs,
    )


def test_revenue_credits_account(services, account_a, when):
    """Sale paid in cash: 1000.00 + 150.00"""
    payment = services.ledger.record(revenue(account_a, 15_000, when, link=SaleLink(id=33)))

    assert payment.id is not None
    assert payment.link == SaleLink(id=33)
    assert balance(services, account_a) == 115_000
    assert services.ledger.get(payment.id).amount_cents == 15_000


def test_transfer_moves_money(services, account_a, account_b, when):
    services.ledger.record(
        PaymentDraft(
            amount_cents=20_000,
            movement_kind=MovementKind.TRANSFER,
            occurred_at=when,
            source_account_id=account_a.id,
            destination_account_id=account_b.id,
        )
    )

    assert balance(services, account_a) == 80_000
    assert balance(services, account_b) == 20_000


def test_amend_changes_balance_by_difference(services, account_a, when):
    """Expense of 100.00 corrected to 130.00"""
    payment = services.ledger.record(
        PaymentDraft(
            amount_cents=10_000,
            movement_kind=MovementKind.EXPENSE,
            occurred_at=when,
            source_account_id=account_a.id,
        )
    )
    assert balance(services, account_a) == 90_000

    amended = services.ledger.amend(
        payment.id,
        PaymentDraft(
            amount_cents=13_000,
            movement_kind=MovementKind.EXPENSE,
            occurred_at=when,
            source_account_id=account_a.id,
            description="Conta de luz",
        ),
    )

    assert amended.id == payment.id
    assert amended.description == "Conta de luz"
    assert balance(services, account_a) == 87_000


def test_amend_kind_and_account(services, account_a, account_b, when):
    """Revenue on A re-filed as expense from B"""
    payment = services.ledger.record(revenue(account_a, 5_000, when))

    services.ledger.amend(
        payment.id,
        PaymentDraft(
            amount_cents=5_000,
            movement_kind=MovementKind.EXPENSE,
            occurred_at=when,
            source_account_id=account_b.id,
        ),
    )

    assert balance(services, account_a) == 100_000
    assert balance(services, account_b) == -5_000


def test_remove_restores_balances(services, account_a, account_b, when):
    payment = services.ledger.record(
        PaymentDraft(
            amount_cents=7_500,
            movement_kind=MovementKind.TRANSFER,
            occurred_at=when,
            source_account_id=account_a.id,
            destination_account_id=account_b.id,
        )
    )

    services.ledger.remove(payment.id)

    assert balance(services, account_a) == 100_000
    assert balance(services, account_b) == 0
    with pytest.raises(NotFoundError):
        services.ledger.get(payment.id)


def test_unknown_payment(services, account_a, when):
    with pytest.raises(NotFoundError):
        services.ledger.amend(999, revenue(account_a, 1_000, when))
    with pytest.raises(NotFoundError):
        services.ledger.remove(999)


def test_unknown_account_persists_nothing(services, db, account_a, when):
    with pytest.raises(AccountNotFoundError):
        services.ledger.record(
            PaymentDraft(
                amount_cents=1_000,
                movement_kind=MovementKind.TRANSFER,
                occurred_at=when,
                source_account_id=account_a.id,
                destination_account_id=999,
            )
        )

    assert db.query(PaymentRecord).count() == 0
    assert balance(services, account_a) == 100_000


def test_unknown_unused_role_account_persists_nothing(services, db, account_a, when):
    """A revenue ignores its source, but the stored source must still exist"""
    with pytest.raises(AccountNotFoundError):
        services.ledger.record(revenue(account_a, 1_000, when, source_account_id=999))

    assert db.query(PaymentRecord).count() == 0
    assert balance(services, account_a) == 100_000


def test_invalid_draft_persists_nothing(services, db, account_a, when):
    with pytest.raises(ValidationError):
        services.ledger.record(revenue(account_a, 0, when))

    assert db.query(PaymentRecord).count() == 0


def test_credit_sale_settled_in_two_installments(services, account_b, credit_sale, when):
    """200.00 then 300.00 against a 500.00 crediário"""
    services.ledger.collect_credit_payment(credit_sale.id, 20_000, account_b.id, occurred_at=when)

    sale = services.settlement.get(credit_sale.id)
    assert sale.amount_paid_cents == 20_000
    assert sale.balance_due_cents == 30_000
    assert sale.status == CreditSaleStatus.OPEN

    payment = services.ledger.collect_credit_payment(credit_sale.id, 30_000, account_b.id, occurred_at=when)

    sale = services.settlement.get(credit_sale.id)
    assert payment.link == CreditSaleLink(id=credit_sale.id)
    assert payment.movement_kind == MovementKind.REVENUE
    assert sale.amount_paid_cents == 50_000
    assert sale.balance_due_cents == 0
    assert sale.status == CreditSaleStatus.PAID
    assert balance(services, account_b) == 50_000


def test_overpayment_rolls_back_everything(services, db, account_b, credit_sale, when):
    """Rejected installment leaves no payment and no balance change"""
    services.ledger.collect_credit_payment(credit_sale.id, 40_000, account_b.id, occurred_at=when)

    with pytest.raises(OverpaymentError):
        services.ledger.collect_credit_payment(credit_sale.id, 20_000, account_b.id, occurred_at=when)

    sale = services.settlement.get(credit_sale.id)
    assert sale.amount_paid_cents == 40_000
    assert balance(services, account_b) == 40_000
    assert db.query(PaymentRecord).count() == 1


def test_collect_defaults_to_utc_now(services, account_b, credit_sale):
    before = datetime.now(timezone.utc).replace(tzinfo=None)
    payment = services.ledger.collect_credit_payment(credit_sale.id, 1_000, account_b.id)
    after = datetime.now(timezone.utc).replace(tzinfo=None)

    assert payment.occurred_at.tzinfo is None
    assert before <= payment.occurred_at <= after


def test_unknown_credit_sale_rolls_back(services, db, account_b, when):
    with pytest.raises(NotFoundError):
        services.ledger.collect_credit_payment(404, 1_000, account_b.id, occurred_at=when)

    assert db.query(PaymentRecord).count() == 0
    assert balance(services, account_b) == 0


def test_removing_installment_reopens_credit_sale(services, account_b, credit_sale, when):
    services.ledger.collect_credit_payment(credit_sale.id, 20_000, account_b.id, occurred_at=when)
    last = services.ledger.collect_credit_payment(credit_sale.id, 30_000, account_b.id, occurred_at=when)

    services.ledger.remove(last.id)

    sale = services.settlement.get(credit_sale.id)
    assert sale.amount_paid_cents == 20_000
    assert sale.balance_due_cents == 30_000
    assert sale.status == CreditSaleStatus.OPEN
    assert balance(services, account_b) == 20_000


def test_amending_installment_resettles(services, account_b, credit_sale, when):
    payment = services.ledger.collect_credit_payment(credit_sale.id, 20_000, account_b.id, occurred_at=when)

    services.ledger.amend(
        payment.id,
        revenue(account_b, 50_000, when, link=CreditSaleLink(id=credit_sale.id)),
    )

    sale = services.settlement.get(credit_sale.id)
    assert sale.amount_paid_cents == 50_000
    assert sale.status == CreditSaleStatus.PAID
    assert balance(services, account_b) == 50_000


def test_amend_to_overpayment_keeps_old_payment(services, account_b, credit_sale, when):
    payment = services.ledger.collect_credit_payment(credit_sale.id, 20_000, account_b.id, occurred_at=when)

    with pytest.raises(OverpaymentError):
        services.ledger.amend(
            payment.id,
            revenue(account_b, 60_000, when, link=CreditSaleLink(id=credit_sale.id)),
        )

    assert services.ledger.get(payment.id).amount_cents == 20_000
    assert services.settlement.get(credit_sale.id).amount_paid_cents == 20_000
    assert balance(services, account_b) == 20_000


def test_reconcile_after_activity(services, account_a, account_b, when):
    services.ledger.record(revenue(account_a, 12_345, when))
    payment = services.ledger.record(revenue(account_a, 1_000, when))
    services.ledger.amend(payment.id, revenue(account_b, 2_000, when))

    result = services.balances.reconcile(account_a.id)

    assert result.journal_total_cents == 12_345
    assert result.current_balance_cents == 112_345
    assert result.consistent


def test_reconcile_detects_tampering(services, db, account_a):
    db.execute(
        update(BankAccountRecord)
        .where(BankAccountRecord.id == account_a.id)
        .values(current_balance_cents=BankAccountRecord.current_balance_cents + 500)
    )
    db.commit()

    result = services.balances.reconcile(account_a.id)

    assert result.drift_cents == 500
    assert not result.consistent


def test_payment_method_must_exist(services, account_a, when):
    with pytest.raises(NotFoundError):
        services.ledger.record(revenue(account_a, 1_000, when, payment_method_id=77))


def test_payment_method_in_use_cannot_be_deleted(services, db, payment_methods, account_a, when):
    pix = payment_methods.create_payment_method("PIX")
    cash = payment_methods.create_payment_method("Dinheiro")
    db.commit()

    services.ledger.record(revenue(account_a, 1_000, when, payment_method_id=pix.id))

    with pytest.raises(PaymentMethodInUseError):
        payment_methods.delete(pix.id)

    payment_methods.delete(cash.id)
    db.commit()
    assert [m.name for m in payment_methods.list_all()] == ["PIX"]


def test_list_ordering_and_filters(services, account_a, account_b, credit_sale):
    early = services.ledger.record(revenue(account_a, 1_000, datetime(2024, 3, 9, 8, 0)))
    late = services.ledger.record(revenue(account_b, 2_000, datetime(2024, 3, 10, 18, 0)))
    expense = services.ledger.record(
        PaymentDraft(
            amount_cents=3_000,
            movement_kind=MovementKind.EXPENSE,
            occurred_at=datetime(2024, 3, 10, 12, 0),
            source_account_id=account_a.id,
        )
    )
    installment = services.ledger.collect_credit_payment(
        credit_sale.id, 4_000, account_b.id, occurred_at=datetime(2024, 4, 2, 10, 0)
    )

    ids = [p.id for p in services.ledger.list()]
    assert ids == [installment.id, late.id, expense.id, early.id]

    march = DateRange(date(2024, 3, 1), date(2024, 3, 31))
    assert [p.id for p in services.ledger.list(march)] == [late.id, expense.id, early.id]

    by_account = services.ledger.list(filters=PaymentFilters(account_id=account_a.id))
    assert [p.id for p in by_account] == [expense.id, early.id]

    by_kind = services.ledger.list(filters=PaymentFilters(movement_kind=MovementKind.EXPENSE))
    assert [p.id for p in by_kind] == [expense.id]

    by_link = services.ledger.list(filters=PaymentFilters(link_type="credit_sale", link_id=credit_sale.id))
    assert [p.id for p in by_link] == [installment.id]

    assert len(services.ledger.list(limit=2)) == 2


def test_list_for_day_includes_late_evening(services, account_a):
    services.ledger.record(revenue(account_a, 1_000, datetime(2024, 3, 10, 0, 0)))
    services.ledger.record(revenue(account_a, 2_000, datetime(2024, 3, 10, 23, 59, 59)))
    services.ledger.record(revenue(account_a, 4_000, datetime(2024, 3, 11, 0, 0)))

    day = services.ledger.list_for_day(date(2024, 3, 10))

    assert sorted(p.amount_cents for p in day) == [1_000, 2_000]


def test_period_summary(services, account_a, account_b):
    """Revenue 500.00, expense 120.00, transfer 80.00 -> net 380.00"""
    services.ledger.record(revenue(account_b, 50_000, datetime(2024, 3, 5, 10, 0)))
    services.ledger.record(
        PaymentDraft(
            amount_cents=12_000,
            movement_kind=MovementKind.EXPENSE,
            occurred_at=datetime(2024, 3, 31, 23, 0),
            source_account_id=account_a.id,
        )
    )
    services.ledger.record(
        PaymentDraft(
            amount_cents=8_000,
            movement_kind=MovementKind.TRANSFER,
            occurred_at=datetime(2024, 3, 20, 15, 0),
            source_account_id=account_b.id,
            destination_account_id=account_a.id,
        )
    )
    services.ledger.record(revenue(account_b, 99_999, datetime(2024, 4, 1, 0, 0)))

    march = DateRange(date(2024, 3, 1), date(2024, 3, 31))
    summary = services.summary.summarize(march)

    assert summary.total_revenue_cents == 50_000
    assert summary.total_expense_cents == 12_000
    assert summary.total_transfer_cents == 8_000
    assert summary.net_balance_cents == 38_000

    # Read-only: asking again gives the same answer
    assert services.summary.summarize(march) == summary
    assert services.summary.summarize_month(2024, 3) == summary


def test_empty_period_summary(services):
    summary = services.summary.summarize(DateRange(date(2024, 1, 1), date(2024, 1, 31)))

    assert summary.total_revenue_cents == 0
    assert summary.total_expense_cents == 0
    assert summary.total_transfer_cents == 0
    assert summary.net_balance_cents == 0


def test_cash_balance(services, account_a, account_b, when):
    assert services.summary.cash_balance() == 0

    services.ledger.record(revenue(account_b, 7_000, when))

    assert services.summary.cash_balance() == 7_000


def test_cash_balance_without_cash_account(services, account_a):
    assert services.summary.cash_balance() == 0
