"""
Response payload helpers
"""

from typing import Any, Dict, Optional

from ..accounts import BankAccount
from ..users import User


def account_with_owner(account: BankAccount, owner: Optional[User]) -> Dict[str, Any]:
    """Account fields plus a credential-free view of its owner"""
    data = account.to_public_dict()
    data["user"] = owner.to_public_dict() if owner else None
    return data


def success(**payload: Any) -> Dict[str, Any]:
    return {"status": "success", **payload}
