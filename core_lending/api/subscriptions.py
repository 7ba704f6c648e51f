"""
Subscription endpoints
"""

from fastapi import APIRouter, Depends, status

from .deps import LendingSystem, get_lending_system
from .errors import http_error
from .schemas import CreateSubscriptionRequest, plan_response
from ..exceptions import LendingError


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_subscription(
    request: CreateSubscriptionRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Subscribe an owner to a catalog plan"""
    try:
        plan = system.service.create_subscription(
            owner_id=request.owner_id,
            definition_id=request.plan_id,
            start_date=request.start_date
        )
    except LendingError as e:
        raise http_error(e)

    return plan_response(plan)
