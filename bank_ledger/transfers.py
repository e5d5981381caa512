"""
Transfer Engine

Moves money between two accounts. A transfer is admitted only if every
precondition holds, checked in a fixed order so a bad request always gets
the same error:

    positive_amount -> accounts_exist -> distinct_accounts
        -> caller_owns_source -> sufficient_balance

The checks and the three writes (transaction insert, debit, credit) run
inside a single storage unit of work. The unit holds the storage lock for
its whole duration, so two transfers debiting the same account cannot both
pass the balance check against the same starting balance.
"""

from decimal import Decimal, InvalidOperation
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .accounts import CENT, AccountManager, BankAccount
from .errors import (
    AccountNotFound, BankingError, InsufficientBalance, NotOwner,
    SameAccountTransfer, ValidationError
)
from .identity import Identity
from .logging_config import get_logger, log_action
from .storage import StorageInterface
from .transactions import Transaction, TransactionLedger


@dataclass
class TransferContext:
    """Everything the precondition checks look at"""
    caller: Identity
    source_account_id: int
    destination_account_id: int
    amount: Decimal
    source: Optional[BankAccount] = None
    destination: Optional[BankAccount] = None


@dataclass(frozen=True)
class CheckResult:
    """Outcome of evaluating the preconditions: ok, or the first failure"""
    check: Optional[str] = None
    error: Optional[BankingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class TransferResult:
    """Created transaction plus both accounts after the update"""
    transaction: Transaction
    source_account: BankAccount
    destination_account: BankAccount

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "transaction": self.transaction.to_public_dict(),
            "source_account": self.source_account.to_public_dict(),
            "destination_account": self.destination_account.to_public_dict(),
        }


def check_positive_amount(ctx: TransferContext) -> Optional[BankingError]:
    amount = ctx.amount
    if not amount.is_finite() or amount <= 0:
        return ValidationError("Amount must be a positive number")
    try:
        whole_cents = amount == amount.quantize(CENT)
    except InvalidOperation:
        whole_cents = False
    if not whole_cents:
        return ValidationError("Amount must have at most 2 decimal places")
    return None


def check_accounts_exist(ctx: TransferContext) -> Optional[BankingError]:
    if ctx.source is None or ctx.destination is None:
        return AccountNotFound()
    return None


def check_distinct_accounts(ctx: TransferContext) -> Optional[BankingError]:
    if ctx.source_account_id == ctx.destination_account_id:
        return SameAccountTransfer()
    return None


def check_caller_owns_source(ctx: TransferContext) -> Optional[BankingError]:
    if ctx.source.user_id != ctx.caller.id:
        return NotOwner()
    return None


def check_sufficient_balance(ctx: TransferContext) -> Optional[BankingError]:
    if ctx.amount > ctx.source.balance:
        return InsufficientBalance()
    return None


# Evaluation order decides which error a request with several problems gets
PRECONDITIONS: Tuple[Tuple[str, Callable[[TransferContext], Optional[BankingError]]], ...] = (
    ("positive_amount", check_positive_amount),
    ("accounts_exist", check_accounts_exist),
    ("distinct_accounts", check_distinct_accounts),
    ("caller_owns_source", check_caller_owns_source),
    ("sufficient_balance", check_sufficient_balance),
)


def run_checks(ctx: TransferContext) -> CheckResult:
    """Evaluate PRECONDITIONS in order, stopping at the first failure"""
    for name, check in PRECONDITIONS:
        error = check(ctx)
        if error is not None:
            return CheckResult(check=name, error=error)
    return CheckResult()


def _to_decimal(amount: Union[Decimal, int, float, str]) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    try:
        # str() first so floats keep their printed value, not their binary one
        return Decimal(str(amount))
    except InvalidOperation:
        return Decimal("NaN")


class TransferEngine:
    """
    Validates and applies transfers between accounts
    """

    def __init__(self, storage: StorageInterface, account_manager: AccountManager,
                 ledger: TransactionLedger):
        self.storage = storage
        self.account_manager = account_manager
        self.ledger = ledger
        self.logger = get_logger("bank_ledger.transfers")

    def evaluate(self, caller: Identity, source_account_id: int, destination_account_id: int,
                 amount: Union[Decimal, int, float, str]) -> CheckResult:
        """Run the preconditions against current state without changing anything"""
        with self.storage.atomic():
            ctx = self._load_context(caller, source_account_id, destination_account_id, amount)
            return run_checks(ctx)

    def transfer(self, caller: Identity, source_account_id: int, destination_account_id: int,
                 amount: Union[Decimal, int, float, str]) -> TransferResult:
        """
        Transfer amount from the source account to the destination account

        Args:
            caller: Authenticated identity; must own the source account
            source_account_id: Account to debit
            destination_account_id: Account to credit
            amount: Positive amount with at most two decimal places

        Returns:
            TransferResult with the new transaction and both updated accounts

        Raises:
            ValidationError, AccountNotFound, SameAccountTransfer, NotOwner,
            InsufficientBalance: a precondition failed; nothing was written.
            Any other exception means the storage unit of work failed and
            was rolled back.
        """
        failed_check = None
        try:
            with self.storage.atomic():
                ctx = self._load_context(caller, source_account_id, destination_account_id, amount)
                outcome = run_checks(ctx)
                if not outcome.ok:
                    failed_check = outcome.check
                    raise outcome.error

                amount_due = ctx.amount.quantize(CENT)
                transaction = self.ledger.create_transaction(
                    source_account_id, destination_account_id, amount_due
                )
                source = self.account_manager.adjust_balance(source_account_id, -amount_due)
                destination = self.account_manager.adjust_balance(destination_account_id, amount_due)
        except BankingError as e:
            log_action(
                self.logger, "warning", f"Transfer rejected: {e.message}",
                user_id=caller.id, action="transfer_rejected",
                extra={
                    "check": failed_check,
                    "error": e.kind,
                    "source_account_id": source_account_id,
                    "destination_account_id": destination_account_id,
                    "amount": str(amount)
                }
            )
            raise
        except Exception:
            self.logger.exception("Transfer failed and was rolled back",
                                  extra={"user_id": caller.id, "action": "transfer_failed"})
            raise

        log_action(
            self.logger, "info", "Transfer completed",
            user_id=caller.id, action="transfer", resource=f"transaction:{transaction.id}",
            extra={
                "source_account_id": source_account_id,
                "destination_account_id": destination_account_id,
                "amount": str(transaction.amount),
                "source_balance": str(source.balance),
                "destination_balance": str(destination.balance)
            }
        )
        return TransferResult(transaction, source, destination)

    def _load_context(self, caller: Identity, source_account_id: int, destination_account_id: int,
                      amount: Union[Decimal, int, float, str]) -> TransferContext:
        return TransferContext(
            caller=caller,
            source_account_id=source_account_id,
            destination_account_id=destination_account_id,
            amount=_to_decimal(amount),
            source=self.account_manager.get_account(source_account_id),
            destination=self.account_manager.get_account(destination_account_id)
        )
