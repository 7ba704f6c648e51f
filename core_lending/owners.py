"""
Account Owner Module

The paying party behind repayment plans: its loan-eligibility flag and the
history of payments it has made.
"""

from datetime import datetime, date
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from enum import Enum

from .clock import Clock
from .storage import StorageInterface, StorageRecord
from .logging_config import get_logger, log_action


class PaymentTimeliness(Enum):
    TIMELY = "timely"
    LATE = "late"


@dataclass(frozen=True)
class PaymentHistoryEntry:
    """One payment as seen from the owner's side"""
    plan_id: str
    status: PaymentTimeliness
    recorded_on: date
    completed_at: Optional[date] = None  # Set when this payment completed the plan

    def to_dict(self) -> Dict[str, Any]:
        return {
            'plan_id': self.plan_id,
            'status': self.status.value,
            'recorded_on': self.recorded_on.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PaymentHistoryEntry':
        completed_at = data.get('completed_at')
        return cls(
            plan_id=data['plan_id'],
            status=PaymentTimeliness(data['status']),
            recorded_on=date.fromisoformat(data['recorded_on']),
            completed_at=date.fromisoformat(completed_at) if completed_at else None,
        )


@dataclass
class AccountOwner(StorageRecord):
    """
    Paying party.

    is_eligible_for_loan is a one-way flag: it is granted the first time
    any of the owner's plans has money paid against it and is never cleared.
    """
    is_eligible_for_loan: bool = False
    payment_history: List[PaymentHistoryEntry] = field(default_factory=list)

    def grant_loan_eligibility(self) -> bool:
        """Set the flag; returns True if this call changed it"""
        if self.is_eligible_for_loan:
            return False
        self.is_eligible_for_loan = True
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'is_eligible_for_loan': self.is_eligible_for_loan,
            'payment_history': [entry.to_dict() for entry in self.payment_history],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccountOwner':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            is_eligible_for_loan=bool(data.get('is_eligible_for_loan', False)),
            payment_history=[
                PaymentHistoryEntry.from_dict(entry) for entry in data.get('payment_history', [])
            ],
        )


class OwnerRegistry:
    """
    Owner state store. Owner ids arrive already validated by the account
    system, so an unknown id simply has no history yet.
    """

    def __init__(self, storage: StorageInterface, clock: Clock, table_name: str = "owners"):
        self.storage = storage
        self.clock = clock
        self.table_name = table_name
        self.logger = get_logger("core_lending.owners")

    def get(self, owner_id: str) -> AccountOwner:
        data = self.storage.load(self.table_name, owner_id)
        if data:
            return AccountOwner.from_dict(data)
        now = self.clock.now()
        return AccountOwner(id=owner_id, created_at=now, updated_at=now)

    def save(self, owner: AccountOwner) -> None:
        owner.updated_at = self.clock.now()
        self.storage.save(self.table_name, owner.id, owner.to_dict())

    def record_payment(
        self,
        owner_id: str,
        history_entry: Optional[PaymentHistoryEntry],
        grant_eligibility: bool
    ) -> AccountOwner:
        """Apply the owner-side effects of a settled payment"""
        owner = self.get(owner_id)
        if grant_eligibility and owner.grant_loan_eligibility():
            log_action(
                self.logger, "info", "Owner became eligible for loans",
                action="grant_loan_eligibility", resource=f"owner:{owner_id}"
            )
        if history_entry is not None:
            owner.payment_history.append(history_entry)
        self.save(owner)
        return owner
