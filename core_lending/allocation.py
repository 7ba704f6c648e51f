"""
Payment Allocation Module

Distributes an incoming payment across outstanding installments, oldest due
date first. The allocator is the only code that changes an installment's
paid amount, paid-on date or late flag.
"""

from datetime import date
from dataclasses import dataclass
from typing import List, Tuple
import logging

from .currency import Money
from .exceptions import InvalidPaymentAmount
from .schedule import ScheduleEntry


logger = logging.getLogger("core_lending.allocation")


@dataclass(frozen=True)
class AllocationResult:
    """Outcome of one allocation: the new schedule and how the amount split"""
    schedule: Tuple[ScheduleEntry, ...]
    applied: Money
    unapplied: Money

    @property
    def has_overpayment(self) -> bool:
        return self.unapplied.is_positive()


class PaymentAllocator:
    """FIFO allocator over a repayment schedule"""

    def apply(
        self,
        schedule: List[ScheduleEntry],
        amount: Money,
        payment_date: date
    ) -> AllocationResult:
        """
        Apply `amount` to `schedule` as of `payment_date`.

        The input schedule is not modified; a new tuple of entries is returned
        in the same order. Installments are visited by ascending due date and
        each receives min(remaining due, remaining payment). Whatever is left
        after every installment is settled comes back as `unapplied`.

        Raises:
            InvalidPaymentAmount: amount is zero or negative
        """
        if not amount.is_positive():
            raise InvalidPaymentAmount(f"Payment amount must be positive, got {amount.to_string()}")

        entries = list(schedule)
        remaining = amount

        # sorted() is stable, so same-day installments keep their order
        order = sorted(range(len(entries)), key=lambda i: entries[i].due_date)
        for index in order:
            if remaining.is_zero():
                break
            entry = entries[index]
            if entry.is_settled:
                continue
            applied = min(entry.remaining, remaining)
            entries[index] = entry.with_payment(applied, payment_date)
            remaining = remaining - applied

        applied_total = amount - remaining
        if remaining.is_positive():
            logger.info(
                "Payment of %s left %s unapplied",
                amount.to_string(), remaining.to_string()
            )

        return AllocationResult(
            schedule=tuple(entries),
            applied=applied_total,
            unapplied=remaining,
        )
