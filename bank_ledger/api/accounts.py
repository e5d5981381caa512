"""
Account management endpoints
"""

from fastapi import APIRouter, Depends, status

from .deps import BankingSystem, get_admin_identity, get_banking_system, get_current_identity
from .schemas import CreateAccountRequest
from .serializers import account_with_owner, success
from ..identity import Identity


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_account(
    request: CreateAccountRequest,
    identity: Identity = Depends(get_admin_identity),
    system: BankingSystem = Depends(get_banking_system)
):
    """Create an account for any user (admin only)"""
    account = system.account_manager.create_account(
        user_id=request.user_id,
        bank_name=request.bank_name,
        bank_account_number=request.bank_account_number,
        balance=request.balance
    )
    return success(
        message=f"successfully added account for user_id {account.user_id}",
        account=account.to_public_dict()
    )


@router.get("/all")
async def list_all_accounts(
    identity: Identity = Depends(get_admin_identity),
    system: BankingSystem = Depends(get_banking_system)
):
    """List every account, ascending by id (admin only)"""
    accounts = system.access_policy.all_accounts(identity)
    return success(accounts_data=[account.to_public_dict() for account in accounts])


@router.get("")
async def list_own_accounts(
    identity: Identity = Depends(get_current_identity),
    system: BankingSystem = Depends(get_banking_system)
):
    """List the authenticated user's accounts"""
    owner = system.user_manager.get_user(identity.id)
    accounts = system.access_policy.own_accounts(identity)
    return success(account_data=[account_with_owner(account, owner) for account in accounts])


@router.get("/{account_id}")
async def get_account(
    account_id: int,
    identity: Identity = Depends(get_current_identity),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get one account (owner or admin)"""
    account = system.access_policy.view_account(identity, account_id)
    owner = system.user_manager.get_user(account.user_id)
    return success(account_data=account_with_owner(account, owner))


@router.delete("/{account_id}")
async def delete_account(
    account_id: int,
    identity: Identity = Depends(get_admin_identity),
    system: BankingSystem = Depends(get_banking_system)
):
    """Delete an account (admin only)"""
    account = system.account_manager.delete_account(account_id)
    return success(
        message=f"Account with id {account_id} deleted successfully",
        deleted_account=account.to_public_dict()
    )
