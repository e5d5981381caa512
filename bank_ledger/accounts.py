"""
Account Store Module

Owns BankAccount records: administrative create and delete, lookups, and
the balance adjustment used by the transfer engine. Balances are Decimal
amounts with two decimal places and never go below zero.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import Conflict, InsufficientBalance, NotFound, ValidationError
from .logging_config import get_logger, log_action
from .storage import StorageInterface, StorageRecord
from .users import UserManager

CENT = Decimal("0.01")


@dataclass
class BankAccount(StorageRecord):
    """
    Bank account owned by a single user
    """
    user_id: int
    bank_name: str
    bank_account_number: str
    balance: Decimal = Decimal("0.00")

    def __post_init__(self):
        if self.balance < 0:
            raise ValueError("Account balance cannot be negative")

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "bank_name": self.bank_name,
            "bank_account_number": self.bank_account_number,
            "balance": str(self.balance),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class AccountManager:
    """
    Manages account lifecycle and balances
    """

    def __init__(self, storage: StorageInterface, user_manager: UserManager):
        self.storage = storage
        self.user_manager = user_manager
        self.accounts_table = "bank_accounts"
        self.logger = get_logger("bank_ledger.accounts")

    def create_account(
        self,
        user_id: int,
        bank_name: str,
        bank_account_number: str,
        balance: Decimal = Decimal("0")
    ) -> BankAccount:
        """
        Create a new account for a user

        Args:
            user_id: ID of account owner
            bank_name: Name of the bank holding the account
            bank_account_number: Account number, unique across all accounts
            balance: Opening balance, zero or more

        Returns:
            Created BankAccount object

        Raises:
            ValidationError: negative opening balance
            Conflict: unknown user or account number already taken
        """
        if balance < 0:
            raise ValidationError("Balance must be a positive number")

        with self.storage.atomic():
            if not self.user_manager.get_user(user_id):
                raise Conflict(f"No user with user_id {user_id}")

            if self.get_account_by_number(bank_account_number):
                raise Conflict(f"Bank account number {bank_account_number} has already been taken")

            now = datetime.now(timezone.utc)
            account = BankAccount(
                id=self.storage.next_id(self.accounts_table),
                created_at=now,
                updated_at=now,
                user_id=user_id,
                bank_name=bank_name,
                bank_account_number=bank_account_number,
                balance=balance.quantize(CENT)
            )
            self._save_account(account)

        log_action(
            self.logger, "info", f"Account created for user_id {user_id}",
            user_id=user_id, action="create_account", resource=f"account:{account.id}",
            extra={"bank_name": bank_name, "balance": str(account.balance)}
        )
        return account

    def get_account(self, account_id: int) -> Optional[BankAccount]:
        """Get account by ID"""
        account_dict = self.storage.load(self.accounts_table, account_id)
        if account_dict:
            return self._account_from_dict(account_dict)
        return None

    def get_account_by_number(self, bank_account_number: str) -> Optional[BankAccount]:
        accounts = self.storage.find(self.accounts_table, {"bank_account_number": bank_account_number})
        if accounts:
            return self._account_from_dict(accounts[0])
        return None

    def list_accounts(self) -> List[BankAccount]:
        """All accounts, ascending by id"""
        accounts = [self._account_from_dict(data) for data in self.storage.load_all(self.accounts_table)]
        return sorted(accounts, key=lambda a: a.id)

    def get_user_accounts(self, user_id: int) -> List[BankAccount]:
        """Accounts owned by a user, ascending by id"""
        accounts = [self._account_from_dict(data)
                    for data in self.storage.find(self.accounts_table, {"user_id": user_id})]
        return sorted(accounts, key=lambda a: a.id)

    def delete_account(self, account_id: int) -> BankAccount:
        """
        Hard-delete an account. Transactions that reference it are kept.

        Raises:
            NotFound: no account with that id
        """
        with self.storage.atomic():
            account = self.get_account(account_id)
            if not account:
                raise NotFound(f"Account with id {account_id} not found")
            self.storage.delete(self.accounts_table, account_id)

        log_action(
            self.logger, "info", f"Account with id {account_id} deleted",
            user_id=account.user_id, action="delete_account", resource=f"account:{account_id}"
        )
        return account

    def adjust_balance(self, account_id: int, delta: Decimal) -> BankAccount:
        """
        Add delta (negative to debit) to an account balance.

        Joins the caller's unit of work when one is open, so a transfer's
        debit, credit and ledger insert commit together.

        Raises:
            NotFound: account vanished
            InsufficientBalance: the result would be negative
        """
        with self.storage.atomic():
            account = self.get_account(account_id)
            if not account:
                raise NotFound(f"Account with id {account_id} not found")

            new_balance = (account.balance + delta).quantize(CENT)
            if new_balance < 0:
                raise InsufficientBalance()

            account.balance = new_balance
            account.updated_at = datetime.now(timezone.utc)
            self._save_account(account)
        return account

    def _save_account(self, account: BankAccount) -> None:
        self.storage.save(self.accounts_table, account.id, account.to_dict())

    def _account_from_dict(self, data: Dict) -> BankAccount:
        return BankAccount(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            user_id=data['user_id'],
            bank_name=data['bank_name'],
            bank_account_number=data['bank_account_number'],
            balance=Decimal(data['balance'])
        )
