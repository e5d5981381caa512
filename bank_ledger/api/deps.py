"""
Ledger wiring and request dependencies
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..access import AccessPolicy, require_admin
from ..accounts import AccountManager
from ..config import BankLedgerConfig, get_config
from ..identity import Identity, IdentityGate
from ..storage import StorageInterface, create_storage
from ..transactions import TransactionLedger
from ..transfers import TransferEngine
from ..users import UserManager


class BankingSystem:
    """Ledger components sharing one storage backend"""

    def __init__(self, storage: StorageInterface, config: Optional[BankLedgerConfig] = None):
        self.config = config or get_config()
        self.storage = storage

        self.identity_gate = IdentityGate(
            secret=self.config.jwt_secret,
            algorithm=self.config.jwt_algorithm,
            expiry_hours=self.config.jwt_expiry_hours
        )
        self.user_manager = UserManager(self.storage)
        self.account_manager = AccountManager(self.storage, self.user_manager)
        self.ledger = TransactionLedger(self.storage, self.account_manager, self.user_manager)
        self.transfer_engine = TransferEngine(self.storage, self.account_manager, self.ledger)
        self.access_policy = AccessPolicy(self.account_manager, self.ledger)

    @classmethod
    def from_config(cls, config: Optional[BankLedgerConfig] = None) -> "BankingSystem":
        config = config or get_config()
        storage = create_storage(config.storage_backend, config.database_path)
        return cls(storage, config)


# JWT Security
security = HTTPBearer(auto_error=False)


def get_banking_system(request: Request) -> BankingSystem:
    return request.app.state.banking_system


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    system: BankingSystem = Depends(get_banking_system)
) -> Identity:
    """Dependency that validates the bearer token and returns the caller"""
    token = credentials.credentials if credentials else None
    return system.identity_gate.authenticate(token)


def get_admin_identity(identity: Identity = Depends(get_current_identity)) -> Identity:
    """Like get_current_identity, but only lets admins through"""
    require_admin(identity)
    return identity
