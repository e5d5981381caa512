"""
Pydantic schemas for API requests
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


# Auth and user schemas
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=8)
    identity_type: Optional[str] = None
    identity_number: Optional[str] = None
    address: Optional[str] = None


class LoginRequest(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


# Account schemas
class CreateAccountRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    bank_name: str = Field(..., min_length=1)
    bank_account_number: str = Field(..., min_length=1)
    balance: Decimal = Field(Decimal("0"), ge=0, max_digits=18, decimal_places=2,
                             description="Opening balance")


# Transaction schemas
class TransferRequest(BaseModel):
    source_account_id: int = Field(..., gt=0, description="Account to debit; must belong to the caller")
    destination_account_id: int = Field(..., gt=0, description="Account to credit")
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=2, allow_inf_nan=False)
