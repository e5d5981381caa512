"""
User endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import register_user
from .deps import BankingSystem, get_admin_identity, get_banking_system, get_current_identity
from .schemas import RegisterRequest
from .serializers import success
from ..errors import NotFound
from ..identity import Identity


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    request: RegisterRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Create a new customer"""
    return register_user(request, system)


@router.get("/all")
async def list_users(
    identity: Identity = Depends(get_admin_identity),
    system: BankingSystem = Depends(get_banking_system)
):
    """List every user (admin only)"""
    users = system.user_manager.list_users()
    return success(users_data=[user.to_public_dict() for user in users])


@router.get("")
async def get_own_user(
    identity: Identity = Depends(get_current_identity),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get the authenticated user with profile"""
    user = system.user_manager.get_user(identity.id)
    if not user:
        raise NotFound(f"User with id {identity.id} not found")
    return success(user_data=user.to_public_dict(include_profile=True))
