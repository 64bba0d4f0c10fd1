"""
Service context: the store handle and acting user passed to every repository.
"""

from datetime import datetime
from typing import Callable, Optional

from config import Config
from date_utils import now as current_time
from exceptions import PreconditionError
from services.customer_repository import CustomerRepository
from services.equipment_repository import EquipmentRepository
from services.installation_repository import InstallationRepository
from services.job_repository import JobRepository


class ServiceContext:
    """
    Explicit dependencies for one caller.

    Holds the Store, the acting user (or None), the configuration class
    and the clock used for date rules. Repositories are created on first
    access and cached.
    """

    def __init__(self, store, user=None, clock: Optional[Callable[[], datetime]] = None, config=None):
        if store is None:
            raise PreconditionError("No store configured")
        self.store = store
        self.user = user
        self.clock = clock or current_time
        self.config = config or Config
        self._repositories = {}

    @property
    def owner_id(self) -> str:
        if self.user is None:
            raise PreconditionError("No signed-in user")
        return self.user.id

    @property
    def has_user(self) -> bool:
        return self.user is not None

    def now(self) -> datetime:
        return self.clock()

    def _repository(self, name, factory):
        if name not in self._repositories:
            self._repositories[name] = factory(self)
        return self._repositories[name]

    @property
    def jobs(self):
        return self._repository('jobs', JobRepository)

    @property
    def customers(self):
        return self._repository('customers', CustomerRepository)

    @property
    def equipment(self):
        return self._repository('equipment', EquipmentRepository)

    @property
    def installations(self):
        return self._repository('installations', InstallationRepository)

    def __repr__(self):
        user = self.user.email if self.user is not None else None
        return f"<ServiceContext user={user}>"
