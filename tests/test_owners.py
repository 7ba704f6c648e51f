"""
Tests for account owners and loan eligibility
"""

from datetime import date

from core_lending.clock import FixedClock
from core_lending.owners import OwnerRegistry, PaymentHistoryEntry, PaymentTimeliness
from core_lending.storage import InMemoryStorage


class TestOwnerRegistry:
    """Test owner state"""

    def setup_method(self):
        """Set up test fixtures"""
        self.registry = OwnerRegistry(InMemoryStorage(), FixedClock())

    def test_unknown_owner_is_not_eligible(self):
        owner = self.registry.get("OWNER001")
        assert owner.id == "OWNER001"
        assert not owner.is_eligible_for_loan
        assert owner.payment_history == []

    def test_record_payment_grants_eligibility_once(self):
        entry = PaymentHistoryEntry("PLAN001", PaymentTimeliness.TIMELY, date(2024, 1, 10))

        self.registry.record_payment("OWNER001", entry, grant_eligibility=True)
        owner = self.registry.record_payment("OWNER001", entry, grant_eligibility=True)

        assert owner.is_eligible_for_loan
        assert len(self.registry.get("OWNER001").payment_history) == 2
        assert owner.grant_loan_eligibility() is False

    def test_eligibility_is_never_cleared(self):
        self.registry.record_payment("OWNER001", None, grant_eligibility=True)
        self.registry.record_payment("OWNER001", None, grant_eligibility=False)
        assert self.registry.get("OWNER001").is_eligible_for_loan

    def test_history_round_trip(self):
        entry = PaymentHistoryEntry(
            "PLAN001", PaymentTimeliness.LATE, date(2024, 2, 1), completed_at=date(2024, 2, 1)
        )
        self.registry.record_payment("OWNER001", entry, grant_eligibility=True)
        assert self.registry.get("OWNER001").payment_history == [entry]
