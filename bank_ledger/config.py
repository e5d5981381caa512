"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class BankLedgerConfig(BaseSettings):
    """Bank ledger service configuration"""

    # Storage configuration
    storage_backend: str = "sqlite"  # sqlite or memory
    database_path: str = "bank_ledger.db"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    api_prefix: str = "/api/v1"

    # Security configuration
    jwt_secret: str = "change-me-in-production-with-a-long-random-secret"
    jwt_expiry_hours: int = 24
    jwt_algorithm: str = "HS256"

    # Logging configuration
    log_level: str = "INFO"
    log_file: Optional[str] = None  # If None, logs to stdout

    # Initial admin account, created on startup when missing
    seed_admin: bool = True
    admin_name: str = "Admin"
    admin_email: str = "admin@example.com"
    admin_password: str = "change-me-admin"

    class Config:
        env_prefix = "BANK_LEDGER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = BankLedgerConfig()


def get_config() -> BankLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BankLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = BankLedgerConfig()
    return config
