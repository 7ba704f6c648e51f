"""
Translation of engine errors into structured HTTP rejections
"""

from decimal import Decimal

from fastapi import HTTPException, status

from ..currency import Currency, Money, MAX_AMOUNT, decimal_from_string
from ..logging_config import get_logger, log_action
from ..exceptions import (
    LendingError, PlanNotFound, PlanDefinitionNotFound, LoanNotEligible,
    OverpaymentUnapplied, InvalidPlanState, ConcurrentModificationError,
    InvalidPaymentAmount
)


logger = get_logger("core_lending.api")

STATUS_BY_ERROR = [
    (PlanNotFound, status.HTTP_404_NOT_FOUND),
    (PlanDefinitionNotFound, status.HTTP_404_NOT_FOUND),
    (LoanNotEligible, status.HTTP_403_FORBIDDEN),
    (OverpaymentUnapplied, status.HTTP_409_CONFLICT),
    (InvalidPlanState, status.HTTP_409_CONFLICT),
    (ConcurrentModificationError, status.HTTP_409_CONFLICT),
]


def http_error(error: LendingError) -> HTTPException:
    """HTTPException carrying the error's structured body"""
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status_code = code
            break
    log_action(
        logger, "warning", f"Request rejected: {error}",
        action="reject_request", extra={"error": error.code, "status_code": status_code}
    )
    return HTTPException(status_code=status_code, detail=error.to_dict())


def parse_amount(value: str, error_type=InvalidPaymentAmount) -> Decimal:
    """Decimal from a request string, rejected with `error_type` if malformed or too large"""
    try:
        amount = decimal_from_string(value)
    except ValueError as e:
        raise error_type(str(e))
    if abs(amount) > MAX_AMOUNT:
        raise error_type(f"Amount {value} exceeds the maximum of {MAX_AMOUNT}")
    return amount


def parse_money(value: str, currency: Currency, error_type=InvalidPaymentAmount) -> Money:
    """Money in `currency` from a request string"""
    amount = parse_amount(value, error_type)
    try:
        return Money(amount, currency)
    except ValueError as e:
        raise error_type(str(e))
