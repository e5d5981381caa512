"""
Domain Errors

Every business-rule failure raised by the ledger is a BankingError. Each
kind carries the HTTP status it is reported with, so the API layer can
translate it without knowing the rule that produced it.
"""

from typing import Any, Dict, List, Optional


class BankingError(Exception):
    """Base class for all domain errors"""

    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "failed", "message": self.message}


class ValidationError(BankingError):
    """Malformed or missing input fields"""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, message: Optional[str] = None,
                 errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["errors"] = self.errors
        return result


class AuthenticationFailed(BankingError):
    """Login with an unknown email or a wrong password"""

    status_code = 400
    default_message = "Invalid email or password"


class AuthError(BankingError):
    """Missing, malformed or expired bearer token"""

    status_code = 401
    default_message = "Unauthorized"


class Forbidden(BankingError):
    """Caller may not act on a resource it addressed correctly"""

    status_code = 403
    default_message = "Forbidden"


class NotOwner(Forbidden):
    """Caller does not own the source account of a transfer"""

    default_message = "The source account doesn't belong to this user"


class NotFound(BankingError):
    """Addressed resource does not exist"""

    status_code = 404
    default_message = "Not found"


class Conflict(BankingError):
    """Uniqueness violation or missing foreign reference"""

    status_code = 409
    default_message = "Conflict"


class AccountNotFound(Conflict):
    """A transfer references an account id that does not resolve.

    Reported as a conflict: the ids are payload references, not the
    resource addressed by the request path.
    """

    default_message = "Invalid account id"


class SameAccountTransfer(Conflict):
    """Source and destination of a transfer are the same account"""

    default_message = "Cannot do transaction between same account"


class InsufficientBalance(Conflict):
    """Transfer amount exceeds the source account balance"""

    default_message = "Insufficient balance"
