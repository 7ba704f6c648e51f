"""
Repayment Service Module

Entry point for plan creation, payments and due-amount queries. Each
payment is one read-modify-write of a single plan: load at a version,
allocate, recompute, then store plan, owner and ledger records atomically
with a compare-and-swap on the plan version.
"""

from datetime import date
from dataclasses import dataclass
from typing import List, Optional
import uuid

from .allocation import PaymentAllocator
from .catalog import PlanCatalog
from .clock import Clock, SystemClock
from .config import LendingConfig, get_config
from .currency import Money, money_sum
from .dues import DueBreakdown, DueCalculator
from .evaluator import AccountStateEvaluator
from .exceptions import (
    InvalidPaymentAmount, InvalidScheduleParameters, InvalidPlanState,
    LoanNotEligible, LoanLimitExceeded, OverpaymentUnapplied,
    ConcurrentModificationError
)
from .ledger import LedgerRecorder, PaymentEvent, EventKind
from .owners import OwnerRegistry
from .plans import RepaymentPlan, PlanType, PlanStatus
from .repository import PlanRepository
from .schedule import ScheduleGenerator, add_months, total_repayment
from .storage import StorageInterface, VersionConflict
from .logging_config import get_logger, log_action


@dataclass(frozen=True)
class PaymentResult:
    """Committed outcome of one payment"""
    plan: RepaymentPlan
    payment_event: Optional[PaymentEvent]
    applied: Money
    unapplied: Money


@dataclass(frozen=True)
class LoanDisbursement:
    """A newly created loan and its disbursement ledger record"""
    loan: RepaymentPlan
    transaction: PaymentEvent


class RepaymentService:
    """
    Creates loans and subscriptions, applies payments and answers due-amount
    queries for repayment plans
    """

    def __init__(
        self,
        storage: StorageInterface,
        clock: Optional[Clock] = None,
        config: Optional[LendingConfig] = None
    ):
        self.storage = storage
        self.clock = clock or SystemClock()
        self.config = config or get_config()

        self.plans = PlanRepository(storage)
        self.ledger = LedgerRecorder(storage)
        self.owners = OwnerRegistry(storage, self.clock)
        self.catalog = PlanCatalog(storage, self.clock)

        self.allocator = PaymentAllocator()
        self.due_calculator = DueCalculator()
        self.evaluator = AccountStateEvaluator(self.clock)
        self.loan_schedule = ScheduleGenerator(self.config.loan_first_due_offset)
        self.subscription_schedule = ScheduleGenerator(self.config.subscription_first_due_offset)

        self.logger = get_logger("core_lending.service")

    def create_subscription(
        self,
        owner_id: str,
        definition_id: str,
        start_date: Optional[date] = None
    ) -> RepaymentPlan:
        """
        Subscribe an owner to a catalog plan

        Args:
            owner_id: Paying party
            definition_id: Catalog plan to subscribe to
            start_date: First installment month (defaults to today)

        Returns:
            The stored subscription plan
        """
        definition = self.catalog.get(definition_id)
        if not definition.enabled:
            raise InvalidPlanState(f"Plan {definition.name} is not open for subscriptions")

        start_date = start_date or self.clock.today()
        schedule = self.subscription_schedule.generate(
            definition.amount, definition.duration_months, start_date
        )

        plan = self._new_plan(
            owner_id=owner_id,
            plan_type=PlanType.SUBSCRIPTION,
            principal=definition.amount,
            total=definition.amount,
            interest_rate=definition.interest_rate,
            fine_rate=definition.fine_rate,
            duration_months=definition.duration_months,
            start_date=start_date,
            schedule=schedule,
            definition_id=definition.id,
        )
        self.plans.create(plan)

        log_action(
            self.logger, "info", "Subscription created",
            action="create_subscription", resource=f"plan:{plan.id}",
            extra={
                "owner_id": owner_id,
                "definition_id": definition.id,
                "total_amount": plan.total_repayment.to_string(),
                "duration_months": plan.duration_months,
            }
        )
        return plan

    def provide_loan(
        self,
        owner_id: str,
        amount: Money,
        duration_months: int,
        start_date: Optional[date] = None
    ) -> LoanDisbursement:
        """
        Disburse a loan to an eligible owner

        The principal may not exceed what the owner has paid so far across
        their subscriptions. Repayment is the principal plus simple interest
        at the configured loan rate, in equal monthly installments starting
        one month after the start date.
        """
        if not amount.is_positive():
            raise InvalidScheduleParameters(f"Loan amount must be positive, got {amount.to_string()}")

        owner = self.owners.get(owner_id)
        if not owner.is_eligible_for_loan:
            raise LoanNotEligible(f"Owner {owner_id} is not eligible for a loan")

        paid = self.total_paid_by_owner(owner_id, amount.currency)
        if amount > paid:
            raise LoanLimitExceeded(
                f"Loan amount cannot exceed total paid amount: {paid.to_string()}"
            )

        start_date = start_date or self.clock.today()
        interest_rate = self.config.loan_interest_rate
        total = total_repayment(amount, interest_rate)
        schedule = self.loan_schedule.generate(total, duration_months, start_date)

        loan = self._new_plan(
            owner_id=owner_id,
            plan_type=PlanType.LOAN,
            principal=amount,
            total=total,
            interest_rate=interest_rate,
            fine_rate=self.config.loan_fine_rate,
            duration_months=duration_months,
            start_date=start_date,
            schedule=schedule,
        )

        now = self.clock.now()
        disbursement = PaymentEvent(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            owner_id=owner_id,
            account_id=loan.id,
            kind=EventKind.DISBURSEMENT,
            amount=amount,
            occurred_on=start_date,
        )

        with self.storage.atomic():
            self.plans.create(loan)
            self.ledger.record(disbursement)

        log_action(
            self.logger, "info", "Loan disbursed",
            action="provide_loan", resource=f"plan:{loan.id}",
            extra={
                "owner_id": owner_id,
                "principal": amount.to_string(),
                "total_repayment": total.to_string(),
                "duration_months": duration_months,
            }
        )
        return LoanDisbursement(loan=loan, transaction=disbursement)

    def apply_payment(
        self,
        plan_id: str,
        amount: Money,
        payment_date: Optional[date] = None
    ) -> PaymentResult:
        """
        Allocate a payment to a plan's oldest unpaid installments

        Args:
            plan_id: Repayment plan to pay
            amount: Payment amount, in the plan's currency
            payment_date: Date the money arrived (defaults to today)

        Returns:
            PaymentResult with the stored plan and ledger event

        Raises:
            InvalidPaymentAmount: non-positive amount or wrong currency
            PlanNotFound: unknown plan
            OverpaymentUnapplied: after committing, if part of the amount
                could not be applied; carries the committed PaymentResult
            ConcurrentModificationError: the plan kept changing concurrently
        """
        if not amount.is_positive():
            raise InvalidPaymentAmount(f"Payment amount must be positive, got {amount.to_string()}")
        payment_date = payment_date or self.clock.today()

        with self.plans.locked(plan_id):
            result = self._apply_with_retries(plan_id, amount, payment_date)

        log_action(
            self.logger, "info", "Payment applied",
            action="apply_payment", resource=f"plan:{plan_id}",
            extra={
                "amount": amount.to_string(),
                "applied": result.applied.to_string(),
                "unapplied": result.unapplied.to_string(),
                "payment_date": payment_date.isoformat(),
                "status": result.plan.status.value,
            }
        )

        if result.unapplied.is_positive():
            log_action(
                self.logger, "warning", "Payment exceeded remaining due",
                action="apply_payment", resource=f"plan:{plan_id}",
                extra={"unapplied": result.unapplied.to_string()}
            )
            raise OverpaymentUnapplied(result.unapplied, result)

        return result

    def _apply_with_retries(self, plan_id: str, amount: Money, payment_date: date) -> PaymentResult:
        attempts = self.config.max_payment_retries
        for attempt in range(1, attempts + 1):
            # Always start from a fresh read; a stale copy must never be re-applied
            plan = self.plans.load_for_update(plan_id)
            if amount.currency != plan.currency:
                raise InvalidPaymentAmount(
                    f"Payment in {amount.currency.code} for a {plan.currency.code} plan"
                )

            allocation = self.allocator.apply(plan.schedule, amount, payment_date)
            settlement = self.evaluator.settle(
                plan.copy_with(schedule=list(allocation.schedule)),
                allocation.applied,
                payment_date,
            )

            try:
                with self.storage.atomic():
                    stored = self.plans.save(settlement.plan)
                    self.owners.record_payment(
                        stored.owner_id, settlement.history_entry, settlement.grants_eligibility
                    )
                    if settlement.payment_event is not None:
                        self.ledger.record(settlement.payment_event)
            except VersionConflict as e:
                self.logger.warning(
                    f"Plan {plan_id} changed during payment (attempt {attempt}/{attempts}): {e}"
                )
                continue

            return PaymentResult(
                plan=stored,
                payment_event=settlement.payment_event,
                applied=allocation.applied,
                unapplied=allocation.unapplied,
            )

        raise ConcurrentModificationError(
            f"Repayment plan {plan_id} was modified concurrently {attempts} times; payment not applied"
        )

    def due_amount(self, plan_id: str, as_of: Optional[date] = None) -> DueBreakdown:
        """Overdue, upcoming and fine amounts of a plan as of a date (defaults to today)"""
        plan = self.plans.load(plan_id)
        return self.due_calculator.due_as_of(plan, as_of or self.clock.today())

    def get_plan(self, plan_id: str) -> RepaymentPlan:
        return self.plans.load(plan_id)

    def plans_for_owner(self, owner_id: str) -> List[RepaymentPlan]:
        return self.plans.find_by_owner(owner_id)

    def total_paid_by_owner(self, owner_id: str, currency=None) -> Money:
        """Sum of installment payments across the owner's subscriptions"""
        currency = currency or self.config.currency_enum
        subscriptions = self.plans.find_by_owner_and_type(owner_id, PlanType.SUBSCRIPTION)
        return money_sum(
            (plan.total_paid for plan in subscriptions if plan.currency == currency),
            currency,
        )

    def mark_defaulted(self, plan_id: str) -> RepaymentPlan:
        """Move an active plan to defaulted; completed plans cannot default"""
        with self.plans.locked(plan_id):
            plan = self.plans.load_for_update(plan_id)
            if plan.status == PlanStatus.COMPLETED:
                raise InvalidPlanState(f"Repayment plan {plan_id} is completed and cannot default")
            if plan.status == PlanStatus.DEFAULTED:
                return plan
            defaulted = plan.copy_with(status=PlanStatus.DEFAULTED, updated_at=self.clock.now())
            try:
                self.plans.save(defaulted)
            except VersionConflict as e:
                raise ConcurrentModificationError(str(e))

        log_action(
            self.logger, "warning", "Repayment plan defaulted",
            action="mark_defaulted", resource=f"plan:{plan_id}"
        )
        return defaulted

    def _new_plan(
        self,
        owner_id: str,
        plan_type: PlanType,
        principal: Money,
        total: Money,
        interest_rate,
        fine_rate,
        duration_months: int,
        start_date: date,
        schedule,
        definition_id: Optional[str] = None
    ) -> RepaymentPlan:
        now = self.clock.now()
        plan = RepaymentPlan(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            owner_id=owner_id,
            plan_type=plan_type,
            principal=principal,
            total_repayment=total,
            interest_rate=interest_rate,
            fine_rate=fine_rate,
            duration_months=duration_months,
            start_date=start_date,
            end_date=add_months(start_date, duration_months),
            schedule=schedule,
            definition_id=definition_id,
        )
        plan.check_invariants()
        return plan
