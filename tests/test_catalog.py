"""
Tests for the plan catalog
"""

import pytest
from decimal import Decimal

from core_lending.catalog import PlanCatalog
from core_lending.clock import FixedClock
from core_lending.currency import Money, Currency
from core_lending.exceptions import InvalidScheduleParameters, PlanDefinitionNotFound
from core_lending.storage import InMemoryStorage


def inr(value: str) -> Money:
    return Money(Decimal(value), Currency.INR)


class TestPlanCatalog:
    """Test plan definition CRUD"""

    def setup_method(self):
        """Set up test fixtures"""
        self.clock = FixedClock()
        self.catalog = PlanCatalog(InMemoryStorage(), self.clock)

    def create(self, name="Gold", amount='1200', description=None):
        definition = self.catalog.create(
            name=name, amount=inr(amount), duration_months=12,
            interest_rate=Decimal('8'), fine_rate=Decimal('5'), description=description
        )
        self.clock.advance(minutes=1)
        return definition

    def test_create_and_get(self):
        definition = self.create(description="Monthly gold savings")
        loaded = self.catalog.get(definition.id)

        assert loaded == definition
        assert loaded.enabled

    def test_create_validation(self):
        with pytest.raises(InvalidScheduleParameters):
            self.create(name="  ")
        with pytest.raises(InvalidScheduleParameters):
            self.create(amount='0')
        with pytest.raises(InvalidScheduleParameters):
            self.catalog.create("Bad", inr('100'), 0, Decimal('8'), Decimal('5'))
        with pytest.raises(InvalidScheduleParameters):
            self.catalog.create("Bad", inr('100'), 6, Decimal('-1'), Decimal('5'))
        with pytest.raises(InvalidScheduleParameters):
            self.catalog.create("Huge", inr('100000000'), 100000, Decimal('8'), Decimal('5'))

    def test_get_unknown(self):
        with pytest.raises(PlanDefinitionNotFound):
            self.catalog.get("missing")

    def test_list_search_and_paginate(self):
        self.create("Gold")
        self.create("Silver", description="entry level")
        self.create("Platinum")

        page = self.catalog.list(limit=2)
        assert page["total"] == 3
        assert page["pages"] == 2
        assert [d.name for d in page["items"]] == ["Platinum", "Silver"]
        assert [d.name for d in self.catalog.list(page=2, limit=2)["items"]] == ["Gold"]

        assert [d.name for d in self.catalog.list(query="ENTRY")["items"]] == ["Silver"]
        assert self.catalog.list(query="diamond")["total"] == 0

    def test_update(self):
        definition = self.create()
        updated = self.catalog.update(definition.id, name="Gold Plus", amount=inr('1500'),
                                      description=None)

        assert updated.name == "Gold Plus"
        assert updated.amount == inr('1500')
        assert updated.duration_months == 12
        assert updated.updated_at > definition.created_at
        assert self.catalog.get(definition.id).name == "Gold Plus"

    def test_update_rejects_unknown_fields_and_bad_terms(self):
        definition = self.create()
        with pytest.raises(ValueError):
            self.catalog.update(definition.id, enabled=False)
        with pytest.raises(InvalidScheduleParameters):
            self.catalog.update(definition.id, duration_months=-3)

    def test_delete(self):
        definition = self.create()
        self.catalog.delete(definition.id)
        with pytest.raises(PlanDefinitionNotFound):
            self.catalog.delete(definition.id)

    def test_toggle_status(self):
        definition = self.create()
        assert not self.catalog.toggle_status(definition.id).enabled
        assert self.catalog.toggle_status(definition.id).enabled
