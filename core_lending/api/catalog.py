"""
Plan catalog endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from .deps import LendingSystem, get_lending_system
from .errors import http_error, parse_amount, parse_money
from .schemas import CreatePlanDefinitionRequest, UpdatePlanDefinitionRequest, definition_response
from ..exceptions import LendingError, InvalidScheduleParameters


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_plan_definition(
    request: CreatePlanDefinitionRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Create a catalog plan"""
    try:
        definition = system.catalog.create(
            name=request.name,
            amount=parse_money(request.amount, system.config.currency_enum, InvalidScheduleParameters),
            duration_months=request.duration_months,
            interest_rate=parse_amount(request.interest_rate, InvalidScheduleParameters),
            fine_rate=parse_amount(request.fine_rate, InvalidScheduleParameters),
            description=request.description
        )
    except LendingError as e:
        raise http_error(e)

    return definition_response(definition)


@router.get("")
async def list_plan_definitions(
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    system: LendingSystem = Depends(get_lending_system)
):
    """List catalog plans, newest first"""
    result = system.catalog.list(query=q, page=page, limit=limit)
    result["items"] = [definition_response(d) for d in result["items"]]
    return result


@router.get("/{definition_id}")
async def get_plan_definition(
    definition_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get a catalog plan"""
    try:
        return definition_response(system.catalog.get(definition_id))
    except LendingError as e:
        raise http_error(e)


@router.patch("/{definition_id}")
async def update_plan_definition(
    definition_id: str,
    request: UpdatePlanDefinitionRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Update a catalog plan; existing subscriptions keep their terms"""
    try:
        changes = {
            "name": request.name,
            "duration_months": request.duration_months,
            "description": request.description,
        }
        if request.amount is not None:
            changes["amount"] = parse_money(request.amount, system.config.currency_enum, InvalidScheduleParameters)
        if request.interest_rate is not None:
            changes["interest_rate"] = parse_amount(request.interest_rate, InvalidScheduleParameters)
        if request.fine_rate is not None:
            changes["fine_rate"] = parse_amount(request.fine_rate, InvalidScheduleParameters)

        definition = system.catalog.update(definition_id, **changes)
    except LendingError as e:
        raise http_error(e)

    return definition_response(definition)


@router.delete("/{definition_id}")
async def delete_plan_definition(
    definition_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Delete a catalog plan"""
    try:
        system.catalog.delete(definition_id)
    except LendingError as e:
        raise http_error(e)

    return {"message": "Plan deleted successfully"}


@router.post("/{definition_id}/toggle-status")
async def toggle_plan_definition(
    definition_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Enable or disable a catalog plan for new subscriptions"""
    try:
        definition = system.catalog.toggle_status(definition_id)
    except LendingError as e:
        raise http_error(e)

    return definition_response(definition)
