"""
Tests for the ledger recorder
"""

import pytest
from decimal import Decimal
from datetime import date, datetime, timezone

from core_lending.currency import Money, Currency
from core_lending.ledger import LedgerRecorder, PaymentEvent, EventKind, EventStatus
from core_lending.storage import InMemoryStorage


def make_event(event_id, account_id="PLAN001", owner_id="OWNER001",
               kind=EventKind.PAYMENT, amount='100', occurred_on=date(2024, 2, 1)):
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return PaymentEvent(
        id=event_id,
        created_at=now,
        updated_at=now,
        owner_id=owner_id,
        account_id=account_id,
        kind=kind,
        amount=Money(Decimal(amount), Currency.INR),
        occurred_on=occurred_on,
    )


class TestPaymentEvent:
    """Test ledger event records"""

    def test_amount_must_be_positive(self):
        with pytest.raises(ValueError):
            make_event("EVT001", amount='0')

    def test_dict_round_trip(self):
        event = make_event("EVT001")
        event.metadata = {"plan_type": "loan"}
        restored = PaymentEvent.from_dict(event.to_dict())

        assert restored == event
        assert restored.status == EventStatus.COMPLETED


class TestLedgerRecorder:
    """Test recording and querying events"""

    def setup_method(self):
        """Set up test fixtures"""
        self.storage = InMemoryStorage()
        self.ledger = LedgerRecorder(self.storage)

    def test_record_and_get(self):
        self.ledger.record(make_event("EVT001"))
        assert self.ledger.get_event("EVT001").amount == Money(Decimal('100'), Currency.INR)
        assert self.ledger.get_event("missing") is None

    def test_duplicate_event_refused(self):
        self.ledger.record(make_event("EVT001"))
        with pytest.raises(ValueError, match="already recorded"):
            self.ledger.record(make_event("EVT001"))
        assert self.storage.count("ledger_events") == 1

    def test_queries(self):
        self.ledger.record(make_event("EVT002", occurred_on=date(2024, 3, 1)))
        self.ledger.record(make_event("EVT001", occurred_on=date(2024, 2, 1)))
        self.ledger.record(make_event("EVT003", kind=EventKind.DISBURSEMENT, amount='1200',
                                      occurred_on=date(2024, 1, 15)))
        self.ledger.record(make_event("EVT004", account_id="PLAN002", owner_id="OWNER002"))

        events = self.ledger.events_for_account("PLAN001")
        assert [e.id for e in events] == ["EVT003", "EVT001", "EVT002"]
        assert len(self.ledger.events_for_owner("OWNER002")) == 1

        assert [e.id for e in self.ledger.events_for_owner("OWNER001")] == ["EVT003", "EVT001", "EVT002"]
