"""Domain-specific exceptions"""


class LedgerError(Exception):
    """Base exception for the ledger domain"""

    pass


class ValidationError(LedgerError):
    """Payment draft or settlement input is malformed"""

    pass


class NotFoundError(LedgerError):
    """Referenced payment, credit sale or payment method does not exist"""

    pass


class AccountNotFoundError(NotFoundError):
    """Referenced bank account does not exist"""

    def __init__(self, account_id: int):
        super().__init__(f"Bank account {account_id} not found")
        self.account_id = account_id


class OverpaymentError(LedgerError):
    """Settlement would push amount_paid above total_amount_due"""

    def __init__(self, credit_sale_id: int, amount_cents: int, balance_due_cents: int):
        super().__init__(
            f"Payment of {amount_cents} cents exceeds balance due of "
            f"{balance_due_cents} cents on credit sale {credit_sale_id}"
        )
        self.credit_sale_id = credit_sale_id
        self.amount_cents = amount_cents
        self.balance_due_cents = balance_due_cents


class InconsistencyError(LedgerError):
    """Stored state no longer matches the ledger (drift)"""

    pass


class PaymentMethodInUseError(LedgerError):
    """Payment method is referenced by recorded payments"""

    pass


class ConcurrentUpdateError(LedgerError):
    """Record kept changing under concurrent writers; safe to retry later"""

    pass
