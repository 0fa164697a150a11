import logging

from .errors import AccountNotFound, InsufficientBalance, InvalidInput
from .models import Balance

_log = logging.getLogger(__name__)


def _check_amount(amount, allow_zero=True):
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidInput(f"amount must be an integer, got {amount!r}")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidInput(f"invalid amount {amount}")


class BalanceLedger:
    """Owns every mutation of account balances."""

    def __init__(self, db):
        self.db = db

    async def get_balance(self, account_id):
        row = await self.db.fetchone(
            "SELECT balance, total_spent FROM users WHERE id = ?", (account_id,)
        )
        if row is None:
            raise AccountNotFound(f"account {account_id} is not registered")
        return Balance(balance=int(row['balance']), lifetime_spend=int(row['total_spent']))

    async def deduct(self, account_id, amount):
        """Take ``amount`` from the balance and add it to lifetime spend.

        The check and the update are one statement, so two concurrent
        deductions can never both pass against the same funds.
        """
        _check_amount(amount)
        result = await self.db.execute(
            """
            UPDATE users
            SET balance = balance - ?, total_spent = total_spent + ?
            WHERE id = ? AND balance >= ?
            """,
            (amount, amount, account_id, amount),
        )
        if result.rowcount == 1:
            return await self.get_balance(account_id)
        current = await self.get_balance(account_id)
        raise InsufficientBalance(amount, current.balance)

    async def credit_deposit(self, account_id, amount):
        """Credit a confirmed deposit. Admin-only; purchases never call this."""
        _check_amount(amount, allow_zero=False)
        result = await self.db.execute(
            "UPDATE users SET balance = balance + ? WHERE id = ?", (amount, account_id)
        )
        if result.rowcount == 0:
            raise AccountNotFound(f"account {account_id} is not registered")
        balance = await self.get_balance(account_id)
        _log.info("Credited %d to account %s, new balance %d", amount, account_id, balance.balance)
        return balance
