"""
Test suite for account state evaluation

Status transitions, interest earned, fines charged and payment side effects.
"""

from decimal import Decimal
from datetime import date, datetime, timezone

from core_lending.currency import Money, Currency
from core_lending.allocation import PaymentAllocator
from core_lending.clock import FixedClock
from core_lending.dues import DueCalculator
from core_lending.evaluator import AccountStateEvaluator
from core_lending.ledger import EventKind
from core_lending.owners import PaymentTimeliness
from core_lending.plans import RepaymentPlan, PlanType, PlanStatus
from core_lending.schedule import ScheduleGenerator, total_repayment


def inr(value: str) -> Money:
    return Money(Decimal(value), Currency.INR)


def make_loan(status=PlanStatus.ACTIVE) -> RepaymentPlan:
    """1200 at 8% over 12 months, fine rate 5%"""
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    total = total_repayment(inr('1200'), Decimal('8'))
    return RepaymentPlan(
        id="LOAN001",
        created_at=now,
        updated_at=now,
        owner_id="OWNER001",
        plan_type=PlanType.LOAN,
        principal=inr('1200'),
        total_repayment=total,
        interest_rate=Decimal('8'),
        fine_rate=Decimal('5'),
        duration_months=12,
        start_date=date(2024, 1, 15),
        end_date=date(2025, 1, 15),
        schedule=ScheduleGenerator().generate(total, 12, date(2024, 1, 15)),
        status=status,
    )


class TestAccountStateEvaluator:
    """Test derived plan state"""

    def setup_method(self):
        """Set up test fixtures"""
        self.clock = FixedClock(datetime(2024, 6, 1, tzinfo=timezone.utc))
        self.evaluator = AccountStateEvaluator(self.clock)
        self.allocator = PaymentAllocator()

    def pay(self, plan, amount, on):
        allocation = self.allocator.apply(plan.schedule, inr(amount), on)
        return plan.copy_with(schedule=list(allocation.schedule)), allocation

    def test_partial_payment_stays_active(self):
        plan, _ = self.pay(make_loan(), '200', date(2024, 2, 10))
        updated = self.evaluator.recompute(plan)

        assert updated.status == PlanStatus.ACTIVE
        assert updated.interest_earned.is_zero()
        assert updated.fine_charged.is_zero()
        assert updated.updated_at == self.clock.now()

    def test_full_payment_completes_with_interest(self):
        """Completion books the simple interest on the principal"""
        plan, _ = self.pay(make_loan(), '1296', date(2024, 2, 10))
        updated = self.evaluator.recompute(plan)

        assert updated.status == PlanStatus.COMPLETED
        assert updated.interest_earned == inr('96')

    def test_recompute_leaves_input_untouched(self):
        plan, _ = self.pay(make_loan(), '1296', date(2024, 2, 10))
        self.evaluator.recompute(plan)
        assert plan.status == PlanStatus.ACTIVE

    def test_fine_charged_for_late_installments(self):
        """fine_charged sums fines on installments paid after their due date"""
        plan, _ = self.pay(make_loan(), '216', date(2024, 3, 20))
        updated = self.evaluator.recompute(plan)

        # Feb 15 and Mar 15 installments, 5% of 108 each
        assert updated.fine_charged == inr('10.80')

    def test_fine_charged_matches_due_calculator_for_late_entries(self):
        plan, _ = self.pay(make_loan(), '216', date(2024, 3, 20))
        updated = self.evaluator.recompute(plan)
        due = DueCalculator().due_as_of(updated, date(2024, 3, 20))

        assert due.fine_amount == updated.fine_charged

    def test_defaulted_plan_stays_defaulted_until_paid_off(self):
        plan, _ = self.pay(make_loan(PlanStatus.DEFAULTED), '100', date(2024, 2, 10))
        assert self.evaluator.recompute(plan).status == PlanStatus.DEFAULTED

        plan, _ = self.pay(plan, '1196', date(2024, 2, 11))
        assert self.evaluator.recompute(plan).status == PlanStatus.COMPLETED

    def test_settle_builds_side_effects(self):
        plan, allocation = self.pay(make_loan(), '108', date(2024, 2, 15))
        settlement = self.evaluator.settle(plan, allocation.applied, date(2024, 2, 15))

        assert settlement.grants_eligibility
        assert settlement.history_entry.status == PaymentTimeliness.TIMELY
        assert settlement.history_entry.completed_at is None
        event = settlement.payment_event
        assert event.kind == EventKind.PAYMENT
        assert event.amount == inr('108')
        assert event.account_id == plan.id
        assert event.occurred_on == date(2024, 2, 15)

    def test_settle_late_and_completing_payment(self):
        plan, allocation = self.pay(make_loan(), '1296', date(2024, 3, 1))
        settlement = self.evaluator.settle(plan, allocation.applied, date(2024, 3, 1))

        assert settlement.plan.is_completed
        assert settlement.history_entry.status == PaymentTimeliness.LATE
        assert settlement.history_entry.completed_at == date(2024, 3, 1)

    def test_settle_without_applied_amount_records_no_event(self):
        plan = make_loan()
        settlement = self.evaluator.settle(plan, Money.zero(Currency.INR), date(2024, 2, 1))

        assert settlement.payment_event is None
        assert settlement.history_entry is None
        assert not settlement.grants_eligibility

    def test_settle_on_completed_plan_adds_no_history(self):
        """Nothing applied means no history entry, even on a plan with payments"""
        plan, _ = self.pay(make_loan(), '1296', date(2024, 3, 1))
        completed = self.evaluator.recompute(plan)
        settlement = self.evaluator.settle(completed, Money.zero(Currency.INR), date(2024, 4, 1))

        assert settlement.history_entry is None
        assert settlement.payment_event is None
        assert settlement.grants_eligibility
