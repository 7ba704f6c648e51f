"""
Lending system wiring and the FastAPI dependency that provides it
"""

from typing import Optional

from ..clock import Clock, SystemClock
from ..config import LendingConfig, get_config
from ..service import RepaymentService
from ..storage import StorageInterface, create_storage


class LendingSystem:
    """Storage, clock and service wired together for the API"""

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        clock: Optional[Clock] = None,
        config: Optional[LendingConfig] = None
    ):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.database_url)
        self.clock = clock or SystemClock()
        self.service = RepaymentService(self.storage, self.clock, self.config)

    @property
    def catalog(self):
        return self.service.catalog


_lending_system: Optional[LendingSystem] = None


def get_lending_system() -> LendingSystem:
    """Dependency returning the process-wide lending system, built on first use"""
    global _lending_system
    if _lending_system is None:
        _lending_system = LendingSystem()
    return _lending_system
