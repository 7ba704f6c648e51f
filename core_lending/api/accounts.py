"""
Payment, due-amount and repayment plan endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends

from .deps import LendingSystem, get_lending_system
from .errors import http_error, parse_money
from .schemas import PaymentRequest, plan_response
from ..exceptions import LendingError, OverpaymentUnapplied


router = APIRouter()


def _payment_body(result):
    return {
        "plan": plan_response(result.plan),
        "payment_event": result.payment_event.to_dict() if result.payment_event else None,
        "applied_amount": str(result.applied.amount),
        "unapplied_amount": str(result.unapplied.amount),
    }


@router.post("/payments")
async def make_payment(
    request: PaymentRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Apply a payment to a repayment plan, oldest installment first"""
    try:
        amount = parse_money(request.amount, system.config.currency_enum)
        result = system.service.apply_payment(
            plan_id=request.plan_id,
            amount=amount,
            payment_date=request.payment_date
        )
    except OverpaymentUnapplied as e:
        error = http_error(e)
        error.detail.update(_payment_body(e.result))
        raise error
    except LendingError as e:
        raise http_error(e)

    return _payment_body(result)


@router.get("/repayment-plans/{plan_id}")
async def get_repayment_plan(
    plan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get a repayment plan with its schedule"""
    try:
        return plan_response(system.service.get_plan(plan_id))
    except LendingError as e:
        raise http_error(e)


@router.get("/repayment-plans/{plan_id}/due-amount")
async def get_due_amount(
    plan_id: str,
    as_of_date: Optional[date] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """Amount payable now: overdue installments plus fines; upcoming shown separately"""
    try:
        breakdown = system.service.due_amount(plan_id, as_of_date)
    except LendingError as e:
        raise http_error(e)

    body = breakdown.to_dict()
    body["plan_id"] = plan_id
    return body


@router.post("/repayment-plans/{plan_id}/default")
async def mark_plan_defaulted(
    plan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Mark an active repayment plan as defaulted"""
    try:
        return plan_response(system.service.mark_defaulted(plan_id))
    except LendingError as e:
        raise http_error(e)


@router.get("/owners/{owner_id}")
async def get_owner(
    owner_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Owner eligibility, payment history, plans and ledger transactions"""
    owner = system.service.owners.get(owner_id)
    body = owner.to_dict()
    body["plans"] = [plan_response(p) for p in system.service.plans_for_owner(owner_id)]
    body["total_paid"] = str(system.service.total_paid_by_owner(owner_id).amount)
    body["transactions"] = [e.to_dict() for e in system.service.ledger.events_for_owner(owner_id)]
    return body
