"""Balance update engine - the only writer of bank account balances"""

from collections import defaultdict
from typing import Dict, Iterable, List, Union

from crediario_ledger.domain.exceptions import AccountNotFoundError, InconsistencyError
from crediario_ledger.domain.models import BalanceDelta, MovementKind, Payment, PaymentDraft, Reconciliation
from crediario_ledger.domain.ports import AccountStore, BalanceJournal


def deltas_for(payment: Union[Payment, PaymentDraft]) -> List[BalanceDelta]:
    """
    Translate a payment into signed balance changes.

    Rules:
    - revenue:  +amount on destination (money enters)
    - expense:  -amount on source (money leaves)
    - transfer: -amount on source, +amount on destination

    An account set on a role the kind does not use is ignored.
    """
    kind = payment.movement_kind
    amount = payment.amount_cents
    deltas = []

    if kind in (MovementKind.EXPENSE, MovementKind.TRANSFER) and payment.source_account_id is not None:
        deltas.append(BalanceDelta(account_id=payment.source_account_id, delta_cents=-amount))

    if kind in (MovementKind.REVENUE, MovementKind.TRANSFER) and payment.destination_account_id is not None:
        deltas.append(BalanceDelta(account_id=payment.destination_account_id, delta_cents=amount))

    return deltas


def invert(deltas: Iterable[BalanceDelta]) -> List[BalanceDelta]:
    """Negate every delta"""
    return [BalanceDelta(account_id=d.account_id, delta_cents=-d.delta_cents) for d in deltas]


def net_by_account(deltas: Iterable[BalanceDelta]) -> Dict[int, int]:
    """Sum deltas per account, dropping accounts that net to zero"""
    totals: Dict[int, int] = defaultdict(int)
    for d in deltas:
        totals[d.account_id] += d.delta_cents
    return {account_id: total for account_id, total in totals.items() if total != 0}


class BalanceEngine:
    """Applies and reverses payment effects on account balances"""

    def __init__(self, accounts: AccountStore, journal: BalanceJournal):
        self.accounts = accounts
        self.journal = journal

    def apply(self, payment: Payment) -> List[BalanceDelta]:
        """
        Apply a payment's deltas.

        Every referenced account is resolved before the first write, so an
        unknown account fails the operation without touching any balance.

        Raises:
            AccountNotFoundError: A referenced account does not exist
        """
        deltas = deltas_for(payment)
        self._ensure_accounts_exist(deltas)
        self._write(payment.id, deltas)
        return deltas

    def reverse(self, payment: Payment) -> List[BalanceDelta]:
        """
        Undo the effects previously applied for a payment.

        The journal must show exactly the deltas the payment implies still
        standing on each account; anything else means the ledger drifted.

        Raises:
            InconsistencyError: Journal does not hold the payment's effects
            AccountNotFoundError: A referenced account no longer exists
        """
        deltas = deltas_for(payment)
        expected = net_by_account(deltas)
        standing = {
            account_id: total
            for account_id, total in self.journal.net_for_payment(payment.id).items()
            if total != 0
        }

        if standing != expected:
            raise InconsistencyError(
                f"Payment {payment.id} effects not found as applied: "
                f"expected {expected}, journal holds {standing}"
            )

        self._ensure_accounts_exist(deltas)
        reversal = invert(deltas)
        self._write(payment.id, reversal)
        return reversal

    def reconcile(self, account_id: int) -> Reconciliation:
        """Compare stored balance with opening balance plus journal"""
        account = self.accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)

        return Reconciliation(
            account_id=account_id,
            opening_balance_cents=account.opening_balance_cents,
            journal_total_cents=self.journal.net_for_account(account_id),
            current_balance_cents=account.current_balance_cents,
        )

    def ensure_accounts(self, *movements: Union[Payment, PaymentDraft]) -> List[int]:
        """
        Lock every account the movements reference, in ascending id order.

        Both roles are checked even when the kind ignores one, since the
        payment row stores them. Taking all row locks up front in one order
        keeps opposite transfers (and amend's reverse + reapply) from
        deadlocking each other.

        Raises:
            AccountNotFoundError: A referenced account does not exist
        """
        account_ids = sorted(
            {
                account_id
                for m in movements
                for account_id in (m.source_account_id, m.destination_account_id)
                if account_id is not None
            }
        )
        locked = set(self.accounts.lock(account_ids))
        for account_id in account_ids:
            if account_id not in locked:
                raise AccountNotFoundError(account_id)
        return account_ids

    def _ensure_accounts_exist(self, deltas: List[BalanceDelta]) -> None:
        for d in deltas:
            if self.accounts.get(d.account_id) is None:
                raise AccountNotFoundError(d.account_id)

    def _write(self, payment_id: int, deltas: List[BalanceDelta]) -> None:
        for d in sorted(deltas, key=lambda d: d.account_id):
            # Storage-level increment; never read-compute-write
            self.accounts.adjust_balance(d.account_id, d.delta_cents)
            self.journal.append(payment_id, d.account_id, d.delta_cents)
