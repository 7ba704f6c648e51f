"""
Ledger Module

Append-only log of money movements on repayment plans: loan disbursements
and installment payments. The engine notifies the ledger of each completed
event; it plays no part in allocation itself.
"""

from decimal import Decimal
from datetime import datetime, date
from dataclasses import dataclass, field
from typing import Dict, List, Any
from enum import Enum

from .currency import Money, Currency
from .storage import StorageInterface, StorageRecord
from .logging_config import get_logger, log_action


class EventKind(Enum):
    """Ledger event kinds"""
    DISBURSEMENT = "disbursement"
    PAYMENT = "payment"


class EventStatus(Enum):
    """Ledger events are recorded once the money movement has happened"""
    COMPLETED = "completed"


@dataclass
class PaymentEvent(StorageRecord):
    """One money movement against a repayment plan"""
    owner_id: str
    account_id: str                  # Repayment plan id
    kind: EventKind
    amount: Money
    occurred_on: date
    status: EventStatus = EventStatus.COMPLETED
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.amount.is_positive():
            raise ValueError(f"Ledger amount must be positive, got {self.amount.to_string()}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'owner_id': self.owner_id,
            'account_id': self.account_id,
            'kind': self.kind.value,
            'amount': str(self.amount.amount),
            'currency': self.amount.currency.code,
            'occurred_on': self.occurred_on.isoformat(),
            'status': self.status.value,
            'metadata': self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PaymentEvent':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            owner_id=data['owner_id'],
            account_id=data['account_id'],
            kind=EventKind(data['kind']),
            amount=Money(Decimal(data['amount']), Currency[data['currency']]),
            occurred_on=date.fromisoformat(data['occurred_on']),
            status=EventStatus(data.get('status', EventStatus.COMPLETED.value)),
            metadata=data.get('metadata') or {},
        )


class LedgerRecorder:
    """Stores PaymentEvents and answers per-account and per-owner queries"""

    def __init__(self, storage: StorageInterface, table_name: str = "ledger_events"):
        self.storage = storage
        self.table_name = table_name
        self.logger = get_logger("core_lending.ledger")

    def record(self, event: PaymentEvent) -> PaymentEvent:
        """Append an event; recording the same event id twice is refused"""
        if self.storage.exists(self.table_name, event.id):
            raise ValueError(f"Ledger event {event.id} already recorded")
        self.storage.save(self.table_name, event.id, event.to_dict())

        log_action(
            self.logger, "info", f"Ledger event recorded: {event.kind.value}",
            action="record_event", resource=f"plan:{event.account_id}",
            extra={
                "event_id": event.id,
                "owner_id": event.owner_id,
                "amount": event.amount.to_string(),
                "occurred_on": event.occurred_on.isoformat(),
            }
        )
        return event

    def get_event(self, event_id: str):
        data = self.storage.load(self.table_name, event_id)
        return PaymentEvent.from_dict(data) if data else None

    def events_for_account(self, account_id: str) -> List[PaymentEvent]:
        events = [
            PaymentEvent.from_dict(data)
            for data in self.storage.find(self.table_name, {"account_id": account_id})
        ]
        events.sort(key=lambda e: (e.occurred_on, e.created_at))
        return events

    def events_for_owner(self, owner_id: str) -> List[PaymentEvent]:
        events = [
            PaymentEvent.from_dict(data)
            for data in self.storage.find(self.table_name, {"owner_id": owner_id})
        ]
        events.sort(key=lambda e: (e.occurred_on, e.created_at))
        return events
