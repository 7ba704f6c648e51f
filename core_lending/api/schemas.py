"""
Pydantic schemas for API requests and responses
"""

from datetime import date
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from ..plans import RepaymentPlan
from ..catalog import PlanDefinition


# Catalog schemas
class CreatePlanDefinitionRequest(BaseModel):
    name: str
    amount: str = Field(..., description="Plan price as a decimal string")
    duration_months: int
    interest_rate: str = Field(..., description="Percent, e.g. \"8\"")
    fine_rate: str = Field(..., description="Percent of an installment charged when late")
    description: Optional[str] = None


class UpdatePlanDefinitionRequest(BaseModel):
    name: Optional[str] = None
    amount: Optional[str] = None
    duration_months: Optional[int] = None
    interest_rate: Optional[str] = None
    fine_rate: Optional[str] = None
    description: Optional[str] = None


# Repayment plan schemas
class CreateSubscriptionRequest(BaseModel):
    owner_id: str
    plan_id: str = Field(..., description="Catalog plan id")
    start_date: Optional[date] = None


class CreateLoanRequest(BaseModel):
    owner_id: str
    amount: str = Field(..., description="Principal as a decimal string")
    duration_months: int
    start_date: Optional[date] = None


class PaymentRequest(BaseModel):
    plan_id: str
    amount: str = Field(..., description="Payment amount as a decimal string")
    payment_date: Optional[date] = None


def plan_response(plan: RepaymentPlan) -> Dict[str, Any]:
    body = plan.to_dict()
    body['total_paid'] = str(plan.total_paid.amount)
    body['total_remaining'] = str(plan.total_remaining.amount)
    return body


def definition_response(definition: PlanDefinition) -> Dict[str, Any]:
    return definition.to_dict()
