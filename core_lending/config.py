"""
Configuration Management Module

Centralized, environment-driven configuration using pydantic-settings.
"""

from decimal import Decimal
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .currency import Currency


class LendingConfig(BaseSettings):
    """Lending engine configuration"""

    model_config = SettingsConfigDict(
        env_prefix="LENDING_",
        env_file=".env",
        case_sensitive=False,
    )

    # Storage configuration
    database_url: str = "sqlite:///core_lending.db"  # memory:// for in-process storage

    # Business rules configuration
    currency: str = "INR"
    loan_interest_rate: Decimal = Decimal("8")
    loan_fine_rate: Decimal = Decimal("0")
    loan_first_due_offset: int = 1
    subscription_first_due_offset: int = 0

    # Concurrency configuration
    max_payment_retries: int = 3

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    @field_validator("currency")
    @classmethod
    def _known_currency(cls, value: str) -> str:
        code = value.upper()
        if code not in Currency.__members__:
            raise ValueError(f"Unsupported currency {value}")
        return code

    @field_validator("loan_first_due_offset", "subscription_first_due_offset")
    @classmethod
    def _offset_zero_or_one(cls, value: int) -> int:
        if value not in (0, 1):
            raise ValueError("first due offset must be 0 or 1")
        return value

    @field_validator("max_payment_retries")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_payment_retries must be at least 1")
        return value

    @property
    def currency_enum(self) -> Currency:
        return Currency[self.currency]


# Global configuration instance
config = LendingConfig()


def get_config() -> LendingConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LendingConfig:
    """Reload configuration from environment"""
    global config
    config = LendingConfig()
    return config
