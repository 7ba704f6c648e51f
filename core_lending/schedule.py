"""
Schedule Module

Installment value objects and the generator that lays out a flat monthly
repayment schedule for a loan or subscription plan.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Any
import calendar

from .currency import Money, Currency, money_sum
from .exceptions import InvalidScheduleParameters


LOAN_FIRST_DUE_OFFSET = 1          # first installment one month after disbursement
SUBSCRIPTION_FIRST_DUE_OFFSET = 0  # first installment due in the start month
MAX_DURATION_MONTHS = 1200


@dataclass(frozen=True)
class ScheduleEntry:
    """Single installment of a repayment schedule"""
    due_date: date
    amount_due: Money
    paid_amount: Money
    paid_on: Optional[date] = None
    is_late: bool = False

    def __post_init__(self):
        if not self.amount_due.is_positive():
            raise InvalidScheduleParameters(
                f"Installment amount must be positive, got {self.amount_due.to_string()}"
            )
        if self.paid_amount.is_negative() or self.paid_amount > self.amount_due:
            raise ValueError(
                f"Paid amount {self.paid_amount.to_string()} outside "
                f"0..{self.amount_due.to_string()}"
            )

    @property
    def currency(self) -> Currency:
        return self.amount_due.currency

    @property
    def remaining(self) -> Money:
        """Amount still owed on this installment"""
        return self.amount_due - self.paid_amount

    @property
    def is_settled(self) -> bool:
        return self.paid_amount >= self.amount_due

    def is_overdue(self, as_of: date) -> bool:
        """Unpaid (fully or partly) and past its due date as of `as_of`"""
        return not self.is_settled and as_of > self.due_date

    def with_payment(self, amount: Money, paid_on: date) -> 'ScheduleEntry':
        """Copy of this entry with `amount` more paid on `paid_on`"""
        return replace(
            self,
            paid_amount=self.paid_amount + amount,
            paid_on=paid_on,
            is_late=paid_on > self.due_date,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'due_date': self.due_date.isoformat(),
            'amount_due': str(self.amount_due.amount),
            'paid_amount': str(self.paid_amount.amount),
            'paid_on': self.paid_on.isoformat() if self.paid_on else None,
            'is_late': self.is_late,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], currency: Currency) -> 'ScheduleEntry':
        paid_on = data.get('paid_on')
        return cls(
            due_date=date.fromisoformat(data['due_date']),
            amount_due=Money(Decimal(data['amount_due']), currency),
            paid_amount=Money(Decimal(data.get('paid_amount', '0')), currency),
            paid_on=date.fromisoformat(paid_on) if paid_on else None,
            is_late=bool(data.get('is_late', False)),
        )


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, clamping to the last day of a shorter month"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def total_repayment(principal: Money, rate: Decimal) -> Money:
    """Principal plus simple interest at `rate` percent"""
    if Decimal(str(rate)) < Decimal('0'):
        raise InvalidScheduleParameters(f"Interest rate cannot be negative, got {rate}")
    return principal + principal.percent(rate)


def schedule_total(schedule: List[ScheduleEntry], currency: Currency) -> Money:
    return money_sum((entry.amount_due for entry in schedule), currency)


def schedule_paid(schedule: List[ScheduleEntry], currency: Currency) -> Money:
    return money_sum((entry.paid_amount for entry in schedule), currency)


class ScheduleGenerator:
    """
    Lays out `duration_months` equal monthly installments.

    The per-installment amount is truncated to the currency's minor unit and
    the last installment absorbs the remainder, so the installments always
    sum exactly to the financed total.

    Args:
        first_due_offset: months between the start date and the first due
            date. 1 for loans, 0 for subscriptions.
    """

    def __init__(self, first_due_offset: int = LOAN_FIRST_DUE_OFFSET):
        if first_due_offset not in (0, 1):
            raise ValueError(f"first_due_offset must be 0 or 1, got {first_due_offset}")
        self.first_due_offset = first_due_offset

    def generate(
        self,
        total_amount: Money,
        duration_months: int,
        start_date: date
    ) -> List[ScheduleEntry]:
        """
        Generate the installment list

        Args:
            total_amount: Amount to be repaid across the whole schedule
            duration_months: Number of monthly installments
            start_date: Plan start (disbursement or subscription start)

        Returns:
            Entries ordered by ascending due date

        Raises:
            InvalidScheduleParameters: non-positive amount or duration, or an
                amount too small to give every installment one minor unit
        """
        if isinstance(duration_months, bool) or not isinstance(duration_months, int):
            raise InvalidScheduleParameters(
                f"Duration must be a whole number of months, got {duration_months!r}"
            )
        if duration_months <= 0:
            raise InvalidScheduleParameters(f"Duration must be positive, got {duration_months}")
        if duration_months > MAX_DURATION_MONTHS:
            raise InvalidScheduleParameters(
                f"Duration cannot exceed {MAX_DURATION_MONTHS} months, got {duration_months}"
            )
        try:
            add_months(start_date, duration_months + self.first_due_offset)
        except (ValueError, OverflowError):
            raise InvalidScheduleParameters(
                f"A {duration_months}-month schedule from {start_date.isoformat()} ends past {date.max.year}"
            )
        if not total_amount.is_positive():
            raise InvalidScheduleParameters(
                f"Total amount must be positive, got {total_amount.to_string()}"
            )

        installment = total_amount.split_down(duration_months)
        if not installment.is_positive():
            raise InvalidScheduleParameters(
                f"{total_amount.to_string()} cannot be split into {duration_months} installments"
            )
        last_installment = total_amount - installment * (duration_months - 1)

        zero = Money.zero(total_amount.currency)
        schedule = []
        for i in range(duration_months):
            schedule.append(ScheduleEntry(
                due_date=add_months(start_date, i + self.first_due_offset),
                amount_due=last_installment if i == duration_months - 1 else installment,
                paid_amount=zero,
            ))

        return schedule
