"""
Identity Gate

Turns a bearer token into an Identity (who is calling and with which
role) and issues tokens at login. Nothing else in the ledger looks at
tokens; the stores and the transfer engine only ever see an Identity.
"""

from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from enum import Enum
from typing import Any, Dict, Optional

import jwt

from .errors import AuthError


class Role(Enum):
    """User roles"""
    CUSTOMER = "customer"
    ADMIN = "admin"


@dataclass(frozen=True)
class Identity:
    """Authenticated caller"""
    id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class IdentityGate:
    """Issues and verifies HS256 JWTs"""

    def __init__(self, secret: str, algorithm: str = "HS256", expiry_hours: int = 24):
        self.secret = secret
        self.algorithm = algorithm
        self.expiry_hours = expiry_hours

    def issue_token(self, user_id: int, role: Role, claims: Optional[Dict[str, Any]] = None) -> str:
        """Sign a token for a user"""
        now = datetime.now(timezone.utc)
        payload = dict(claims or {})
        payload.update({
            "sub": str(user_id),
            "role": role.value,
            "iat": now,
            "exp": now + timedelta(hours=self.expiry_hours),
        })
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def authenticate(self, token: Optional[str]) -> Identity:
        """
        Verify a token and return the caller identity

        Raises:
            AuthError: token missing, expired, tampered with or lacking claims
        """
        if not token:
            raise AuthError("Unauthorized")

        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthError("Token expired")
        except jwt.InvalidTokenError:
            raise AuthError("Invalid token")

        try:
            return Identity(id=int(payload["sub"]), role=Role(payload["role"]))
        except (KeyError, ValueError):
            raise AuthError("Invalid token")
