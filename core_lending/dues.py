"""
Due Amount Module

Read-only query over a plan's schedule: what is overdue, what is coming up
and which fines apply as of a reference date.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass
from typing import Any, Dict

from .currency import Money
from .plans import RepaymentPlan
from .schedule import ScheduleEntry


def installment_fine(entry: ScheduleEntry, fine_rate: Decimal) -> Money:
    """Fine charged once for a late installment: fine_rate percent of its amount due"""
    return entry.amount_due.percent(fine_rate)


def fine_applies(entry: ScheduleEntry, as_of: date) -> bool:
    """
    Whether `entry` carries a fine as of `as_of`.

    An installment paid after its due date keeps its fine. An installment
    with money still owed carries one once its due date has arrived, unless
    it was partly paid and the reference date is the due date itself.
    """
    if entry.is_late:
        return True
    if entry.is_settled or as_of < entry.due_date:
        return False
    return entry.paid_on is None or as_of > entry.due_date


@dataclass(frozen=True)
class DueBreakdown:
    """Amounts owed on a plan as of a date"""
    as_of: date
    overdue_amount: Money
    upcoming_amount: Money
    fine_amount: Money

    @property
    def total_due(self) -> Money:
        """Currently payable: overdue installments plus fines, upcoming excluded"""
        return self.overdue_amount + self.fine_amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_due': str(self.total_due.amount),
            'overdue_amount': str(self.overdue_amount.amount),
            'upcoming_amount': str(self.upcoming_amount.amount),
            'fine_amount': str(self.fine_amount.amount),
            'currency': self.total_due.currency.code,
            'as_of_date': self.as_of.isoformat(),
        }


class DueCalculator:
    """Computes a DueBreakdown without touching the plan"""

    def due_as_of(self, plan: RepaymentPlan, as_of: date) -> DueBreakdown:
        zero = Money.zero(plan.currency)
        if plan.is_completed:
            return DueBreakdown(as_of=as_of, overdue_amount=zero,
                                upcoming_amount=zero, fine_amount=zero)

        overdue = zero
        upcoming = zero
        fines = zero
        for entry in plan.schedule:
            if fine_applies(entry, as_of):
                fines = fines + installment_fine(entry, plan.fine_rate)

            remaining = entry.remaining
            if not remaining.is_positive():
                continue
            if as_of >= entry.due_date:
                overdue = overdue + remaining
            else:
                upcoming = upcoming + remaining

        return DueBreakdown(
            as_of=as_of,
            overdue_amount=overdue,
            upcoming_amount=upcoming,
            fine_amount=fines,
        )
