"""
Test suite for due amount calculation

Overdue/upcoming split, fine rules and completed plans.
"""

from decimal import Decimal
from datetime import date, datetime, timezone

from core_lending.currency import Money, Currency
from core_lending.allocation import PaymentAllocator
from core_lending.dues import DueCalculator, fine_applies, installment_fine
from core_lending.plans import RepaymentPlan, PlanType, PlanStatus
from core_lending.schedule import ScheduleEntry, ScheduleGenerator


def inr(value: str) -> Money:
    return Money(Decimal(value), Currency.INR)


def make_plan(schedule=None, fine_rate='8', status=PlanStatus.ACTIVE) -> RepaymentPlan:
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    schedule = schedule or ScheduleGenerator(first_due_offset=0).generate(
        inr('300'), 3, date(2024, 1, 10)
    )
    return RepaymentPlan(
        id="PLAN001",
        created_at=now,
        updated_at=now,
        owner_id="OWNER001",
        plan_type=PlanType.SUBSCRIPTION,
        principal=inr('300'),
        total_repayment=inr('300'),
        interest_rate=Decimal('0'),
        fine_rate=Decimal(fine_rate),
        duration_months=3,
        start_date=date(2024, 1, 10),
        end_date=date(2024, 4, 10),
        schedule=schedule,
        status=status,
    )


class TestDueCalculator:
    """Test due amount queries"""

    def setup_method(self):
        """Set up test fixtures"""
        self.calculator = DueCalculator()
        self.allocator = PaymentAllocator()

    def test_nothing_due_before_first_installment(self):
        due = self.calculator.due_as_of(make_plan(), date(2024, 1, 5))

        assert due.overdue_amount.is_zero()
        assert due.upcoming_amount == inr('300')
        assert due.fine_amount.is_zero()
        assert due.total_due.is_zero()

    def test_installment_due_today_is_overdue_with_fine(self):
        """An untouched installment is payable and fined from its due date"""
        due = self.calculator.due_as_of(make_plan(), date(2024, 1, 10))

        assert due.overdue_amount == inr('100')
        assert due.upcoming_amount == inr('200')
        assert due.fine_amount == inr('8')
        assert due.total_due == inr('108')

    def test_late_payment_keeps_fine(self):
        """150 paid the day after the first due date leaves only the fine payable"""
        plan = make_plan()
        allocation = self.allocator.apply(plan.schedule, inr('150'), date(2024, 1, 11))
        plan = plan.copy_with(schedule=list(allocation.schedule))

        due = self.calculator.due_as_of(plan, date(2024, 1, 11))

        assert due.overdue_amount.is_zero()
        assert due.upcoming_amount == inr('150')
        assert due.fine_amount == inr('8')
        assert due.total_due == inr('8')

    def test_partly_paid_entry_fined_only_after_due_date(self):
        """A partly paid installment carries no fine on its due date, one the day after"""
        plan = make_plan()
        allocation = self.allocator.apply(plan.schedule, inr('40'), date(2024, 1, 5))
        plan = plan.copy_with(schedule=list(allocation.schedule))

        on_due_date = self.calculator.due_as_of(plan, date(2024, 1, 10))
        day_after = self.calculator.due_as_of(plan, date(2024, 1, 11))

        assert on_due_date.overdue_amount == inr('60')
        assert on_due_date.fine_amount.is_zero()
        assert day_after.fine_amount == inr('8')
        assert day_after.total_due == inr('68')

    def test_several_overdue_installments(self):
        due = self.calculator.due_as_of(make_plan(), date(2024, 3, 11))

        assert due.overdue_amount == inr('300')
        assert due.upcoming_amount.is_zero()
        assert due.fine_amount == inr('24')

    def test_completed_plan_owes_nothing(self):
        """A completed plan reports all zeros, late fines included"""
        plan = make_plan()
        allocation = self.allocator.apply(plan.schedule, inr('300'), date(2024, 5, 1))
        plan = plan.copy_with(schedule=list(allocation.schedule), status=PlanStatus.COMPLETED)

        due = self.calculator.due_as_of(plan, date(2024, 6, 1))

        assert due.total_due.is_zero()
        assert due.fine_amount.is_zero()
        assert due.upcoming_amount.is_zero()

    def test_query_does_not_modify_plan(self):
        plan = make_plan()
        before = plan.to_dict()
        self.calculator.due_as_of(plan, date(2024, 6, 1))
        assert plan.to_dict() == before

    def test_zero_fine_rate(self):
        due = self.calculator.due_as_of(make_plan(fine_rate='0'), date(2024, 2, 1))
        assert due.fine_amount.is_zero()
        assert due.total_due == inr('100')

    def test_to_dict(self):
        data = self.calculator.due_as_of(make_plan(), date(2024, 1, 10)).to_dict()
        assert data == {
            'total_due': '108.00',
            'overdue_amount': '100.00',
            'upcoming_amount': '200.00',
            'fine_amount': '8.00',
            'currency': 'INR',
            'as_of_date': '2024-01-10',
        }


class TestFineRules:
    """Test per-installment fine decisions"""

    def test_fine_applies(self):
        entry = ScheduleEntry(date(2024, 1, 10), inr('100'), inr('0'))

        assert not fine_applies(entry, date(2024, 1, 9))
        assert fine_applies(entry, date(2024, 1, 10))
        assert not fine_applies(entry.with_payment(inr('100'), date(2024, 1, 10)), date(2024, 2, 1))
        assert fine_applies(entry.with_payment(inr('100'), date(2024, 1, 12)), date(2024, 2, 1))

    def test_installment_fine(self):
        entry = ScheduleEntry(date(2024, 1, 10), inr('108'), inr('0'))
        assert installment_fine(entry, Decimal('5')) == inr('5.40')
