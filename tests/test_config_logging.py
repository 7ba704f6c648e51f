"""
Tests for configuration and structured logging
"""

import pytest
import json
import logging
from decimal import Decimal
from pydantic import ValidationError

from core_lending.config import LendingConfig
from core_lending.currency import Currency
from core_lending.logging_config import JSONFormatter, setup_logging, log_action


class TestLendingConfig:
    """Test environment-driven configuration"""

    def test_defaults(self):
        config = LendingConfig()
        assert config.loan_interest_rate == Decimal("8")
        assert config.loan_first_due_offset == 1
        assert config.subscription_first_due_offset == 0
        assert config.currency_enum == Currency.INR

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LENDING_CURRENCY", "usd")
        monkeypatch.setenv("LENDING_MAX_PAYMENT_RETRIES", "5")
        config = LendingConfig()
        assert config.currency_enum == Currency.USD
        assert config.max_payment_retries == 5

    @pytest.mark.parametrize("field,value", [
        ("currency", "XYZ"),
        ("loan_first_due_offset", 2),
        ("max_payment_retries", 0),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            LendingConfig(**{field: value})


class TestStructuredLogging:
    """Test JSON log output"""

    def test_log_action_fields(self):
        logger = setup_logging(level="DEBUG", fmt="json", logger_name="core_lending.test")
        records = []

        class Capture(logging.Handler):
            def emit(self, record):
                records.append(record)

        logger.addHandler(Capture())
        log_action(logger, "info", "Payment applied", action="apply_payment",
                   resource="plan:P1", extra={"amount": "INR 10.00"})

        data = json.loads(JSONFormatter().format(records[0]))
        assert data["message"] == "Payment applied"
        assert data["action"] == "apply_payment"
        assert data["resource"] == "plan:P1"
        assert data["extra"] == {"amount": "INR 10.00"}
        assert "correlation_id" not in data
