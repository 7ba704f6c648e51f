"""
Loan endpoints
"""

from fastapi import APIRouter, Depends, status

from .deps import LendingSystem, get_lending_system
from .errors import http_error, parse_money
from .schemas import CreateLoanRequest, plan_response
from ..exceptions import LendingError, InvalidScheduleParameters


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def provide_loan(
    request: CreateLoanRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Disburse a loan to an eligible owner"""
    try:
        amount = parse_money(request.amount, system.config.currency_enum, InvalidScheduleParameters)
        disbursement = system.service.provide_loan(
            owner_id=request.owner_id,
            amount=amount,
            duration_months=request.duration_months,
            start_date=request.start_date
        )
    except LendingError as e:
        raise http_error(e)

    return {
        "loan": plan_response(disbursement.loan),
        "transaction": disbursement.transaction.to_dict()
    }
