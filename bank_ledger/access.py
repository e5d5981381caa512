"""
Access Policy

Read-side authorization for accounts and transactions. Every rule checks
existence first and ownership second: a missing resource is NotFound for
everyone, an existing one the caller may not see is Forbidden.
"""

from typing import List

from .accounts import AccountManager, BankAccount
from .errors import Forbidden, NotFound
from .identity import Identity
from .transactions import Transaction, TransactionDetails, TransactionLedger


def require_admin(caller: Identity) -> None:
    """Administrative actions need the admin role, whoever they act for"""
    if not caller.is_admin:
        raise Forbidden("Forbidden")


class AccessPolicy:
    """
    Decides what a caller may read
    """

    def __init__(self, account_manager: AccountManager, ledger: TransactionLedger):
        self.account_manager = account_manager
        self.ledger = ledger

    def view_account(self, caller: Identity, account_id: int) -> BankAccount:
        """Single account: owner or admin"""
        account = self.account_manager.get_account(account_id)
        if not account:
            raise NotFound(f"Account with id {account_id} not found")
        if account.user_id != caller.id and not caller.is_admin:
            raise Forbidden("This account doesn't belong to this user")
        return account

    def own_accounts(self, caller: Identity) -> List[BankAccount]:
        """The caller's own accounts, ascending by id"""
        return self.account_manager.get_user_accounts(caller.id)

    def all_accounts(self, caller: Identity) -> List[BankAccount]:
        require_admin(caller)
        return self.account_manager.list_accounts()

    def view_transaction(self, caller: Identity, transaction_id: int) -> TransactionDetails:
        """Single transaction: owner of either account, or admin"""
        details = self.ledger.get_transaction_details(transaction_id)
        if not details:
            raise NotFound(f"Transaction with id {transaction_id} not found")
        if caller.id not in details.participant_user_ids and not caller.is_admin:
            raise Forbidden("This user is not authorized to access this transaction")
        return details

    def own_transactions(self, caller: Identity) -> List[Transaction]:
        """Transactions touching any account the caller owns, ascending by id"""
        return self.ledger.list_for_user(caller.id)

    def all_transactions(self, caller: Identity) -> List[Transaction]:
        require_admin(caller)
        return self.ledger.list_transactions()
