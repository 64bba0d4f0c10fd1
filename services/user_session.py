"""
User session: who is acting, and the ServiceContext bound to them.

Sessions are ordinary objects. Callers create one, configure it with a
Store and pass it (or the contexts it hands out) to whatever needs it.
"""

import logging
from typing import Dict, Optional

from config import Config
from database.models import User
from exceptions import AuthenticationError, PreconditionError
from services.context import ServiceContext
from services.users_repository import UsersRepository

logger = logging.getLogger(__name__)


class UserSession:
    """Sign-up / sign-in state for one caller."""

    def __init__(self, store=None, config=None, clock=None):
        self.config = config or Config
        self.clock = clock
        self.store = None
        self.users: Optional[UsersRepository] = None
        self._current_user: Optional[User] = None
        if store is not None:
            self.configure(store)

    def configure(self, store):
        """Attach the store; signs out any previous user."""
        self.store = store
        self.users = UsersRepository(store, config=self.config, clock=self.clock)
        self._current_user = None
        logger.info("User session configured")

    def _require_store(self) -> UsersRepository:
        if self.users is None:
            raise PreconditionError("User session is not configured with a store")
        return self.users

    @property
    def current_user(self) -> Optional[User]:
        return self._current_user

    @property
    def is_signed_in(self) -> bool:
        return self._current_user is not None

    def require_user(self) -> User:
        if self._current_user is None:
            raise PreconditionError("No signed-in user")
        return self._current_user

    def context(self) -> ServiceContext:
        """ServiceContext for the signed-in user."""
        self._require_store()
        return ServiceContext(self.store, self.require_user(), clock=self.clock, config=self.config)

    def sign_up(self, data: Dict) -> User:
        """Create an account and sign it in."""
        users = self._require_store()
        user = users.create_user(data)
        self._current_user = users.update_last_sign_in(user.id)
        logger.info(f"User signed up: {user.email}")
        return self._current_user

    def sign_in(self, email: str, password: str) -> User:
        """Sign in; AuthenticationError for an unknown email or wrong password."""
        users = self._require_store()
        user = users.get_user_by_email(email or '')
        if user is None or not users.verify_password(user, password):
            logger.warning(f"Failed sign-in attempt for {email}")
            raise AuthenticationError()
        self._current_user = users.update_last_sign_in(user.id)
        logger.info(f"User signed in: {user.email}")
        return self._current_user

    def sign_out(self):
        if self._current_user is not None:
            logger.info(f"User signed out: {self._current_user.email}")
        self._current_user = None

    def update_profile(self, data: Dict) -> User:
        users = self._require_store()
        self._current_user = users.update_profile(self.require_user().id, data)
        return self._current_user

    def delete_account(self) -> Dict[str, int]:
        """Delete the signed-in user with everything they own, then sign out."""
        users = self._require_store()
        removed = users.delete_user(self.require_user().id)
        self._current_user = None
        return removed
