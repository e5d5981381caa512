"""
Registration, login and token check endpoints
"""

from fastapi import APIRouter, Depends, status

from .deps import BankingSystem, get_banking_system, get_current_identity
from .schemas import LoginRequest, RegisterRequest
from .serializers import success
from ..identity import Identity


router = APIRouter()


def register_user(request: RegisterRequest, system: BankingSystem) -> dict:
    user = system.user_manager.register(
        name=request.name,
        email=request.email,
        password=request.password,
        identity_type=request.identity_type,
        identity_number=request.identity_number,
        address=request.address
    )
    return success(
        message=f"Successfully added {user.name}'s data",
        user=user.to_public_dict(include_profile=True)
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Register a new customer"""
    return register_user(request, system)


@router.post("/login")
async def login(
    request: LoginRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Check credentials and return a bearer token"""
    user = system.user_manager.authenticate(request.email, request.password)
    token = system.identity_gate.issue_token(
        user.id, user.role, claims={"name": user.name, "email": user.email}
    )
    return success(
        message=f"Logged in as {user.name}",
        data={"user": user.to_public_dict(), "token": token}
    )


@router.get("/authenticate")
async def authenticate(identity: Identity = Depends(get_current_identity)):
    """Tell whether the presented token is valid"""
    return success(message="Authenticated")
