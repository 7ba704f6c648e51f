"""
Plan Repository Module

Load/store of repayment plans. Writes are compare-and-swap on the stored
version, and payments against one plan are serialized in-process with a
per-plan lock.
"""

from contextlib import contextmanager
from typing import Dict, List
import threading

from .exceptions import PlanNotFound, ConcurrentModificationError
from .plans import RepaymentPlan, PlanType
from .storage import StorageInterface, VersionConflict
from .logging_config import get_logger


class _PlanLock:
    """Per-plan lock with a count of threads holding or waiting for it"""

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


class PlanRepository:
    """Repayment plan store with optimistic concurrency"""

    def __init__(self, storage: StorageInterface, table_name: str = "repayment_plans"):
        self.storage = storage
        self.table_name = table_name
        self.logger = get_logger("core_lending.repository")
        self._locks: Dict[str, _PlanLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def locked(self, plan_id: str):
        """
        Hold the in-process lock for one plan; other plans are unaffected.
        The lock is dropped once no thread holds or waits for it.
        """
        with self._locks_guard:
            plan_lock = self._locks.get(plan_id)
            if plan_lock is None:
                plan_lock = self._locks[plan_id] = _PlanLock()
            plan_lock.users += 1
        try:
            with plan_lock.lock:
                yield
        finally:
            with self._locks_guard:
                plan_lock.users -= 1
                if plan_lock.users == 0:
                    del self._locks[plan_id]

    def create(self, plan: RepaymentPlan) -> RepaymentPlan:
        """Insert a new plan; fails if the id is already taken"""
        try:
            version = self.storage.save_versioned(self.table_name, plan.id, plan.to_dict(), 0)
        except VersionConflict:
            raise ConcurrentModificationError(f"Repayment plan {plan.id} already exists")
        plan.version = version
        return plan

    def load(self, plan_id: str) -> RepaymentPlan:
        """
        Load a plan with the version it was read at, ready for a later save().

        Raises:
            PlanNotFound: unknown plan id
        """
        loaded = self.storage.load_versioned(self.table_name, plan_id)
        if loaded is None:
            raise PlanNotFound(plan_id)
        data, version = loaded
        return RepaymentPlan.from_dict(data, version=version)

    load_for_update = load

    def save(self, plan: RepaymentPlan) -> RepaymentPlan:
        """
        Write `plan` back if nobody changed it since it was loaded.

        Raises:
            VersionConflict: the stored version moved on; reload and retry
        """
        new_version = self.storage.save_versioned(
            self.table_name, plan.id, plan.to_dict(), plan.version
        )
        plan.version = new_version
        return plan

    def exists(self, plan_id: str) -> bool:
        return self.storage.exists(self.table_name, plan_id)

    def find_by_owner(self, owner_id: str) -> List[RepaymentPlan]:
        plans = [
            RepaymentPlan.from_dict(data)
            for data in self.storage.find(self.table_name, {"owner_id": owner_id})
        ]
        plans.sort(key=lambda p: p.created_at)
        return plans

    def find_by_owner_and_type(self, owner_id: str, plan_type: PlanType) -> List[RepaymentPlan]:
        return [p for p in self.find_by_owner(owner_id) if p.plan_type == plan_type]
