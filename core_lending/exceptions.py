"""
Error taxonomy for the lending engine.

Validation errors also subclass ValueError and lookup errors also subclass
LookupError, so callers that only know the builtin hierarchy still work.
"""

from decimal import Decimal
from typing import Any, Optional


class LendingError(Exception):
    """Base exception for all lending engine errors."""

    code = "lending_error"

    def to_dict(self) -> dict:
        return {"error": self.code, "message": str(self)}


class InvalidScheduleParameters(LendingError, ValueError):
    """Raised when a schedule cannot be generated from the given amount/duration."""

    code = "invalid_schedule_parameters"


class InvalidPaymentAmount(LendingError, ValueError):
    """Raised when a payment amount is not strictly positive."""

    code = "invalid_payment_amount"


class PlanNotFound(LendingError, LookupError):
    """Raised when a repayment plan id is unknown."""

    code = "plan_not_found"

    def __init__(self, plan_id: str):
        super().__init__(f"Repayment plan {plan_id} not found")
        self.plan_id = plan_id


class PlanDefinitionNotFound(LendingError, LookupError):
    """Raised when a catalog plan id is unknown."""

    code = "plan_definition_not_found"

    def __init__(self, definition_id: str):
        super().__init__(f"Plan {definition_id} not found")
        self.definition_id = definition_id


class OverpaymentUnapplied(LendingError):
    """
    Raised after a payment has been fully allocated and committed when part
    of the amount could not be applied to any installment.

    Attributes:
        unapplied: Money left over after every installment was paid
        result: The committed PaymentResult (updated plan and ledger event)
    """

    code = "overpayment_unapplied"

    def __init__(self, unapplied, result: Optional[Any] = None):
        super().__init__(f"Payment exceeds total remaining due by {unapplied.to_string()}")
        self.unapplied = unapplied
        self.result = result

    @property
    def unapplied_amount(self) -> Decimal:
        return self.unapplied.amount

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["unapplied_amount"] = str(self.unapplied.amount)
        data["currency"] = self.unapplied.currency.code
        return data


class LoanNotEligible(LendingError):
    """Raised when an owner without payment history requests a loan."""

    code = "loan_not_eligible"


class LoanLimitExceeded(LendingError, ValueError):
    """Raised when a requested loan exceeds what the owner has paid so far."""

    code = "loan_limit_exceeded"


class InvalidPlanState(LendingError):
    """Raised on a forbidden plan status transition or an inactive catalog plan."""

    code = "invalid_plan_state"


class ConcurrentModificationError(LendingError):
    """Raised when a plan kept changing underneath a payment until retries ran out."""

    code = "concurrent_modification"
