"""
Account State Module

Derives plan status, interest earned and fines charged from the schedule,
and works out the side effects a payment has on the owner and the ledger.
"""

from datetime import date
from dataclasses import dataclass
from typing import Optional
import uuid

from .clock import Clock
from .currency import Money, money_sum
from .dues import installment_fine
from .ledger import PaymentEvent, EventKind
from .owners import PaymentHistoryEntry, PaymentTimeliness
from .plans import RepaymentPlan, PlanStatus


@dataclass(frozen=True)
class Settlement:
    """Recomputed plan plus everything the caller must persist alongside it"""
    plan: RepaymentPlan
    grants_eligibility: bool
    history_entry: Optional[PaymentHistoryEntry]
    payment_event: Optional[PaymentEvent]


class AccountStateEvaluator:
    """Recomputes derived plan state after every allocation"""

    def __init__(self, clock: Clock):
        self.clock = clock

    def recompute(self, plan: RepaymentPlan) -> RepaymentPlan:
        """
        Return a copy of `plan` with status, interest_earned and fine_charged
        derived from its schedule. The input plan is left untouched.

        A fully paid plan is completed. A partly paid active plan stays
        active. Defaulted plans only leave that state by being paid in full.
        """
        status = plan.status
        interest_earned = plan.interest_earned

        if plan.all_paid:
            status = PlanStatus.COMPLETED
            interest_earned = plan.principal.percent(plan.interest_rate)

        fine_charged = money_sum(
            (installment_fine(entry, plan.fine_rate) for entry in plan.schedule if entry.is_late),
            plan.currency,
        )

        return plan.copy_with(
            status=status,
            interest_earned=interest_earned,
            fine_charged=fine_charged,
            updated_at=self.clock.now(),
        )

    def settle(self, plan: RepaymentPlan, applied: Money, payment_date: date) -> Settlement:
        """
        Recompute `plan` after `applied` was allocated on `payment_date` and
        build the owner history entry, eligibility grant and ledger event.
        """
        updated = self.recompute(plan)
        paid_so_far = updated.total_paid.is_positive()

        history_entry = None
        payment_event = None
        if applied.is_positive():
            late = any(entry.is_late for entry in updated.schedule)
            history_entry = PaymentHistoryEntry(
                plan_id=updated.id,
                status=PaymentTimeliness.LATE if late else PaymentTimeliness.TIMELY,
                recorded_on=payment_date,
                completed_at=payment_date if updated.is_completed else None,
            )

            now = self.clock.now()
            payment_event = PaymentEvent(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                owner_id=updated.owner_id,
                account_id=updated.id,
                kind=EventKind.PAYMENT,
                amount=applied,
                occurred_on=payment_date,
                metadata={
                    "plan_type": updated.plan_type.value,
                    "plan_status": updated.status.value,
                    "remaining": str(updated.total_remaining.amount),
                },
            )

        return Settlement(
            plan=updated,
            grants_eligibility=paid_so_far,
            history_entry=history_entry,
            payment_event=payment_event,
        )
