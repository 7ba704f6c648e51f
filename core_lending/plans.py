"""
Repayment Plan Module

The account abstraction shared by loans and subscriptions: financed amount,
rates, the embedded installment schedule and derived status fields.
"""

from decimal import Decimal
from datetime import datetime, date
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Any
from enum import Enum

from .currency import Money, Currency
from .storage import StorageRecord
from .schedule import ScheduleEntry, schedule_total, schedule_paid


class PlanType(Enum):
    """Kinds of repayment plans"""
    LOAN = "loan"                  # Disbursed principal plus simple interest
    SUBSCRIPTION = "subscription"  # Catalog plan price paid in installments


class PlanStatus(Enum):
    """Repayment plan lifecycle states"""
    ACTIVE = "active"
    COMPLETED = "completed"   # Terminal: every installment fully paid
    DEFAULTED = "defaulted"   # Set externally, never by payment allocation


@dataclass
class RepaymentPlan(StorageRecord):
    """Loan or subscription with its installment schedule"""
    owner_id: str
    plan_type: PlanType
    principal: Money                    # Nominal amount financed
    total_repayment: Money              # What the schedule sums to
    interest_rate: Decimal              # Percent, e.g. Decimal('8')
    fine_rate: Decimal                  # Percent of an installment charged when late
    duration_months: int
    start_date: date
    end_date: date
    schedule: List[ScheduleEntry] = field(default_factory=list)
    status: PlanStatus = PlanStatus.ACTIVE
    interest_earned: Money = None
    fine_charged: Money = None
    definition_id: Optional[str] = None  # Catalog plan for subscriptions
    version: int = 0                     # Storage version this copy was loaded at

    def __post_init__(self):
        zero_amount = Money.zero(self.currency)
        if self.interest_earned is None:
            self.interest_earned = zero_amount
        if self.fine_charged is None:
            self.fine_charged = zero_amount

    @property
    def currency(self) -> Currency:
        return self.principal.currency

    @property
    def is_completed(self) -> bool:
        return self.status == PlanStatus.COMPLETED

    @property
    def total_paid(self) -> Money:
        return schedule_paid(self.schedule, self.currency)

    @property
    def total_remaining(self) -> Money:
        return self.total_repayment - self.total_paid

    @property
    def all_paid(self) -> bool:
        return all(entry.is_settled for entry in self.schedule)

    def copy_with(self, **changes) -> 'RepaymentPlan':
        """Shallow copy with field overrides; entries are immutable so sharing them is safe"""
        if 'schedule' not in changes:
            changes['schedule'] = list(self.schedule)
        return replace(self, **changes)

    def check_invariants(self) -> None:
        """Raise ValueError if the schedule no longer sums to total_repayment or is out of order"""
        total = schedule_total(self.schedule, self.currency)
        if total != self.total_repayment:
            raise ValueError(
                f"Schedule sums to {total.to_string()}, expected {self.total_repayment.to_string()}"
            )
        due_dates = [entry.due_date for entry in self.schedule]
        if due_dates != sorted(due_dates):
            raise ValueError("Schedule entries are not ordered by due date")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'owner_id': self.owner_id,
            'plan_type': self.plan_type.value,
            'currency': self.currency.code,
            'principal': str(self.principal.amount),
            'total_repayment': str(self.total_repayment.amount),
            'interest_rate': str(self.interest_rate),
            'fine_rate': str(self.fine_rate),
            'duration_months': self.duration_months,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'schedule': [entry.to_dict() for entry in self.schedule],
            'status': self.status.value,
            'interest_earned': str(self.interest_earned.amount),
            'fine_charged': str(self.fine_charged.amount),
            'definition_id': self.definition_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], version: int = 0) -> 'RepaymentPlan':
        currency = Currency[data['currency']]

        def money(key: str) -> Money:
            return Money(Decimal(data[key]), currency)

        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            owner_id=data['owner_id'],
            plan_type=PlanType(data['plan_type']),
            principal=money('principal'),
            total_repayment=money('total_repayment'),
            interest_rate=Decimal(data['interest_rate']),
            fine_rate=Decimal(data['fine_rate']),
            duration_months=data['duration_months'],
            start_date=date.fromisoformat(data['start_date']),
            end_date=date.fromisoformat(data['end_date']),
            schedule=[ScheduleEntry.from_dict(entry, currency) for entry in data['schedule']],
            status=PlanStatus(data['status']),
            interest_earned=money('interest_earned'),
            fine_charged=money('fine_charged'),
            definition_id=data.get('definition_id'),
            version=version,
        )
