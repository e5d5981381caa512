"""
Transaction endpoints
"""

from fastapi import APIRouter, Depends, status

from .deps import BankingSystem, get_admin_identity, get_banking_system, get_current_identity
from .schemas import TransferRequest
from .serializers import success
from ..identity import Identity


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_transaction(
    request: TransferRequest,
    identity: Identity = Depends(get_current_identity),
    system: BankingSystem = Depends(get_banking_system)
):
    """Transfer money from one of the caller's accounts to another account"""
    result = system.transfer_engine.transfer(
        caller=identity,
        source_account_id=request.source_account_id,
        destination_account_id=request.destination_account_id,
        amount=request.amount
    )
    return success(**result.to_public_dict())


@router.post("/evaluate")
async def evaluate_transaction(
    request: TransferRequest,
    identity: Identity = Depends(get_current_identity),
    system: BankingSystem = Depends(get_banking_system)
):
    """Tell whether a transfer would be accepted, without moving money"""
    outcome = system.transfer_engine.evaluate(
        caller=identity,
        source_account_id=request.source_account_id,
        destination_account_id=request.destination_account_id,
        amount=request.amount
    )
    return success(
        allowed=outcome.ok,
        check=outcome.check,
        message=outcome.error.message if outcome.error else None
    )


@router.get("/all")
async def list_all_transactions(
    identity: Identity = Depends(get_admin_identity),
    system: BankingSystem = Depends(get_banking_system)
):
    """List every transaction, ascending by id (admin only)"""
    transactions = system.access_policy.all_transactions(identity)
    return success(transactions_data=[txn.to_public_dict() for txn in transactions])


@router.get("")
async def list_own_transactions(
    identity: Identity = Depends(get_current_identity),
    system: BankingSystem = Depends(get_banking_system)
):
    """List transactions touching the caller's accounts"""
    transactions = system.access_policy.own_transactions(identity)
    return success(transactions_data=[txn.to_public_dict() for txn in transactions])


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: int,
    identity: Identity = Depends(get_current_identity),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get one transaction with both accounts and their owners' names"""
    details = system.access_policy.view_transaction(identity, transaction_id)
    return success(transaction=details.to_public_dict())
