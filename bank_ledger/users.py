"""
User Directory Module

Registration, credential checks and profile lookup. Passwords are stored
as salted scrypt hashes and never leave this module.
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import AuthenticationFailed, Conflict
from .identity import Role
from .logging_config import get_logger, log_action
from .storage import StorageInterface, StorageRecord


@dataclass
class Profile:
    """Identity documents and address attached to a user"""
    identity_type: Optional[str] = None
    identity_number: Optional[str] = None
    address: Optional[str] = None


@dataclass
class User(StorageRecord):
    """Registered user"""
    name: str
    email: str
    role: Role = Role.CUSTOMER
    password_hash: Optional[str] = None
    password_salt: Optional[str] = None
    profile: Optional[Profile] = None

    def to_public_dict(self, include_profile: bool = False) -> Dict[str, Any]:
        """Serializable view without credentials"""
        result = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "created_at": self.created_at.isoformat(),
        }
        if include_profile:
            profile = self.profile or Profile()
            result["profile"] = {
                "identity_type": profile.identity_type,
                "identity_number": profile.identity_number,
                "address": profile.address,
            }
        return result


class UserManager:
    """
    Manages user registration and authentication
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "users"
        self.logger = get_logger("bank_ledger.users")

    def register(
        self,
        name: str,
        email: str,
        password: str,
        identity_type: Optional[str] = None,
        identity_number: Optional[str] = None,
        address: Optional[str] = None,
        role: Role = Role.CUSTOMER
    ) -> User:
        """
        Register a new user

        Raises:
            Conflict: email already registered
        """
        email = email.strip().lower()
        # scrypt is slow; keep it outside the storage lock
        password_salt = secrets.token_hex(16)
        password_hash = self._hash_password(password, password_salt)

        with self.storage.atomic():
            if self.get_user_by_email(email):
                raise Conflict("Email has already been taken")

            now = datetime.now(timezone.utc)
            user = User(
                id=self.storage.next_id(self.table_name),
                created_at=now,
                updated_at=now,
                name=name,
                email=email,
                role=role,
                password_hash=password_hash,
                password_salt=password_salt,
                profile=Profile(identity_type, identity_number, address)
            )
            self._save_user(user)

        log_action(
            self.logger, "info", f"User registered: {user.name}",
            user_id=user.id, action="register", resource=f"user:{user.id}",
            extra={"role": role.value}
        )
        return user

    def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials

        Raises:
            AuthenticationFailed: unknown email or wrong password (same message
            for both, so the response does not reveal which emails exist)
        """
        user = self.get_user_by_email(email)
        if not user or not self._verify_password(user, password):
            log_action(
                self.logger, "warning", "Login failed",
                action="login_failed", resource="auth"
            )
            raise AuthenticationFailed()

        log_action(
            self.logger, "info", f"Logged in as {user.name}",
            user_id=user.id, action="login", resource="auth"
        )
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        data = self.storage.load(self.table_name, user_id)
        if data:
            return self._user_from_dict(data)
        return None

    def get_user_by_email(self, email: str) -> Optional[User]:
        users = self.storage.find(self.table_name, {"email": email.strip().lower()})
        if users:
            return self._user_from_dict(users[0])
        return None

    def list_users(self) -> List[User]:
        """All users, ascending by id"""
        users = [self._user_from_dict(data) for data in self.storage.load_all(self.table_name)]
        return sorted(users, key=lambda u: u.id)

    def _hash_password(self, password: str, salt: str) -> str:
        return hashlib.scrypt(
            password.encode(),
            salt=salt.encode(),
            n=16384, r=8, p=1
        ).hex()

    def _verify_password(self, user: User, password: str) -> bool:
        if not user.password_hash or not user.password_salt:
            return False
        expected = self._hash_password(password, user.password_salt)
        return hmac.compare_digest(expected, user.password_hash)

    def _save_user(self, user: User) -> None:
        data = user.to_dict()
        data['role'] = user.role.value
        self.storage.save(self.table_name, user.id, data)

    def _user_from_dict(self, data: Dict) -> User:
        profile = data.get('profile') or {}
        return User(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            name=data['name'],
            email=data['email'],
            role=Role(data['role']),
            password_hash=data.get('password_hash'),
            password_salt=data.get('password_salt'),
            profile=Profile(**profile)
        )
