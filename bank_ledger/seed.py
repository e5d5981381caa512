"""
Initial data: the admin user that can create accounts for everyone else.
"""

from typing import Optional

from .config import BankLedgerConfig
from .identity import Role
from .logging_config import get_logger
from .users import User, UserManager

logger = get_logger("bank_ledger.seed")


def seed_admin(user_manager: UserManager, config: BankLedgerConfig) -> Optional[User]:
    """Create the configured admin user unless that email already exists.

    Returns the created user, or None when nothing was created.
    """
    if user_manager.get_user_by_email(config.admin_email):
        return None

    admin = user_manager.register(
        name=config.admin_name,
        email=config.admin_email,
        password=config.admin_password,
        role=Role.ADMIN
    )
    logger.info("Seeded admin user %s", admin.email)
    return admin
