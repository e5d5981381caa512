"""
Transaction Ledger Module

Append-only record of money transfers. A transaction is a historical
fact: once written it is never updated or deleted, even if one of the
accounts it references is later removed.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .accounts import CENT, AccountManager, BankAccount
from .storage import StorageInterface, StorageRecord
from .users import UserManager


@dataclass
class Transaction(StorageRecord):
    """
    Transfer of an amount from one account to another
    """
    source_account_id: int
    destination_account_id: int
    amount: Decimal

    def __post_init__(self):
        if not self.amount > 0:
            raise ValueError("Transaction amount must be positive")

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source_account_id": self.source_account_id,
            "destination_account_id": self.destination_account_id,
            "amount": str(self.amount),
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class TransactionDetails:
    """A transaction with both accounts and the names of their owners"""
    transaction: Transaction
    source_account: Optional[BankAccount]
    destination_account: Optional[BankAccount]
    source_owner_name: Optional[str] = None
    destination_owner_name: Optional[str] = None

    @property
    def participant_user_ids(self) -> set:
        """Owners of whichever accounts still exist"""
        return {account.user_id
                for account in (self.source_account, self.destination_account)
                if account is not None}

    def to_public_dict(self) -> Dict[str, Any]:
        result = self.transaction.to_public_dict()
        result["source_account"] = _account_view(self.source_account, self.source_owner_name)
        result["destination_account"] = _account_view(self.destination_account, self.destination_owner_name)
        return result


def _account_view(account: Optional[BankAccount], owner_name: Optional[str]) -> Optional[Dict[str, Any]]:
    if account is None:
        return None
    view = account.to_public_dict()
    view["user"] = {"name": owner_name}
    return view


class TransactionLedger:
    """
    Stores transactions and answers participant queries
    """

    def __init__(self, storage: StorageInterface, account_manager: AccountManager,
                 user_manager: UserManager):
        self.storage = storage
        self.account_manager = account_manager
        self.user_manager = user_manager
        self.table_name = "transactions"

    def create_transaction(self, source_account_id: int, destination_account_id: int,
                           amount: Decimal) -> Transaction:
        """Insert a new transaction; id is assigned from the table sequence.

        The amount is stored in whole cents, like balances.
        """
        now = datetime.now(timezone.utc)
        transaction = Transaction(
            id=self.storage.next_id(self.table_name),
            created_at=now,
            updated_at=now,
            source_account_id=source_account_id,
            destination_account_id=destination_account_id,
            amount=amount.quantize(CENT)
        )
        self.storage.save(self.table_name, transaction.id, transaction.to_dict())
        return transaction

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID"""
        data = self.storage.load(self.table_name, transaction_id)
        if data:
            return self._transaction_from_dict(data)
        return None

    def get_transaction_details(self, transaction_id: int) -> Optional[TransactionDetails]:
        """Get a transaction joined with its accounts and their owners' names"""
        transaction = self.get_transaction(transaction_id)
        if not transaction:
            return None

        source = self.account_manager.get_account(transaction.source_account_id)
        destination = self.account_manager.get_account(transaction.destination_account_id)

        return TransactionDetails(
            transaction=transaction,
            source_account=source,
            destination_account=destination,
            source_owner_name=self._owner_name(source),
            destination_owner_name=self._owner_name(destination)
        )

    def list_transactions(self) -> List[Transaction]:
        """All transactions, ascending by id"""
        transactions = [self._transaction_from_dict(data)
                        for data in self.storage.load_all(self.table_name)]
        return sorted(transactions, key=lambda t: t.id)

    def list_for_user(self, user_id: int) -> List[Transaction]:
        """
        Transactions where the user owns the source or the destination
        account, ascending by id
        """
        account_ids = {account.id for account in self.account_manager.get_user_accounts(user_id)}
        if not account_ids:
            return []

        matches = self.storage.filter(
            self.table_name,
            lambda record: (record['source_account_id'] in account_ids or
                            record['destination_account_id'] in account_ids)
        )
        transactions = [self._transaction_from_dict(data) for data in matches]
        return sorted(transactions, key=lambda t: t.id)

    def _owner_name(self, account: Optional[BankAccount]) -> Optional[str]:
        if account is None:
            return None
        owner = self.user_manager.get_user(account.user_id)
        return owner.name if owner else None

    def _transaction_from_dict(self, data: Dict) -> Transaction:
        return Transaction(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            source_account_id=data['source_account_id'],
            destination_account_id=data['destination_account_id'],
            amount=Decimal(data['amount'])
        )
