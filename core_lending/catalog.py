"""
Plan Catalog Module

Subscription plan templates (price, duration, interest and fine rates)
that repayment plans are created from.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Dict, Optional, Any
import uuid

from .clock import Clock
from .currency import Money, Currency
from .exceptions import InvalidScheduleParameters, PlanDefinitionNotFound
from .schedule import MAX_DURATION_MONTHS
from .storage import StorageInterface, StorageRecord
from .logging_config import get_logger, log_action


@dataclass
class PlanDefinition(StorageRecord):
    """Catalog entry a subscription is created from"""
    name: str
    amount: Money
    duration_months: int
    interest_rate: Decimal
    fine_rate: Decimal
    description: Optional[str] = None
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'name': self.name,
            'amount': str(self.amount.amount),
            'currency': self.amount.currency.code,
            'duration_months': self.duration_months,
            'interest_rate': str(self.interest_rate),
            'fine_rate': str(self.fine_rate),
            'description': self.description,
            'enabled': self.enabled,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlanDefinition':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            name=data['name'],
            amount=Money(Decimal(data['amount']), Currency[data['currency']]),
            duration_months=data['duration_months'],
            interest_rate=Decimal(data['interest_rate']),
            fine_rate=Decimal(data['fine_rate']),
            description=data.get('description'),
            enabled=data.get('enabled', True),
        )


def _validate_terms(amount: Money, duration_months: int,
                    interest_rate: Decimal, fine_rate: Decimal) -> None:
    if not amount.is_positive():
        raise InvalidScheduleParameters(f"Plan amount must be positive, got {amount.to_string()}")
    if isinstance(duration_months, bool) or not isinstance(duration_months, int) or duration_months <= 0:
        raise InvalidScheduleParameters(f"Plan duration must be a positive number of months, got {duration_months!r}")
    if duration_months > MAX_DURATION_MONTHS:
        raise InvalidScheduleParameters(
            f"Plan duration cannot exceed {MAX_DURATION_MONTHS} months, got {duration_months}"
        )
    if interest_rate < 0 or fine_rate < 0:
        raise InvalidScheduleParameters("Plan rates cannot be negative")


class PlanCatalog:
    """CRUD over plan definitions"""

    def __init__(self, storage: StorageInterface, clock: Clock, table_name: str = "plan_definitions"):
        self.storage = storage
        self.clock = clock
        self.table_name = table_name
        self.logger = get_logger("core_lending.catalog")

    def create(
        self,
        name: str,
        amount: Money,
        duration_months: int,
        interest_rate: Decimal,
        fine_rate: Decimal,
        description: Optional[str] = None
    ) -> PlanDefinition:
        if not name or not name.strip():
            raise InvalidScheduleParameters("Plan name is required")
        _validate_terms(amount, duration_months, interest_rate, fine_rate)

        now = self.clock.now()
        definition = PlanDefinition(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            name=name.strip(),
            amount=amount,
            duration_months=duration_months,
            interest_rate=interest_rate,
            fine_rate=fine_rate,
            description=description,
        )
        self.storage.save(self.table_name, definition.id, definition.to_dict())

        log_action(
            self.logger, "info", f"Plan created: {definition.name}",
            action="create_plan_definition", resource=f"plan_definition:{definition.id}",
            extra={"amount": amount.to_string(), "duration_months": duration_months}
        )
        return definition

    def get(self, definition_id: str) -> PlanDefinition:
        data = self.storage.load(self.table_name, definition_id)
        if not data:
            raise PlanDefinitionNotFound(definition_id)
        return PlanDefinition.from_dict(data)

    def list(self, query: Optional[str] = None, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """
        Newest-first page of definitions, optionally filtered by a
        case-insensitive substring of name or description
        """
        definitions = [PlanDefinition.from_dict(d) for d in self.storage.load_all(self.table_name)]
        if query:
            needle = query.lower()
            definitions = [
                d for d in definitions
                if needle in d.name.lower() or needle in (d.description or "").lower()
            ]
        definitions.sort(key=lambda d: d.created_at, reverse=True)

        page = max(page, 1)
        limit = max(limit, 1)
        start = (page - 1) * limit
        total = len(definitions)
        return {
            "items": definitions[start:start + limit],
            "total": total,
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit,
        }

    def update(self, definition_id: str, **changes) -> PlanDefinition:
        """Update name/amount/duration_months/interest_rate/fine_rate/description"""
        definition = self.get(definition_id)
        allowed = {'name', 'amount', 'duration_months', 'interest_rate', 'fine_rate', 'description'}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        for key, value in changes.items():
            if value is not None:
                setattr(definition, key, value)
        _validate_terms(definition.amount, definition.duration_months,
                        definition.interest_rate, definition.fine_rate)

        definition.updated_at = self.clock.now()
        self.storage.save(self.table_name, definition.id, definition.to_dict())
        return definition

    def delete(self, definition_id: str) -> None:
        if not self.storage.delete(self.table_name, definition_id):
            raise PlanDefinitionNotFound(definition_id)

    def toggle_status(self, definition_id: str) -> PlanDefinition:
        """Flip a definition between enabled and disabled"""
        definition = self.get(definition_id)
        definition.enabled = not definition.enabled
        definition.updated_at = self.clock.now()
        self.storage.save(self.table_name, definition.id, definition.to_dict())

        log_action(
            self.logger, "info",
            f"Plan {'enabled' if definition.enabled else 'disabled'}: {definition.name}",
            action="toggle_plan_definition", resource=f"plan_definition:{definition.id}"
        )
        return definition
