"""
Ownership scoping for owner-bound records.

Every query goes through OwnershipScope so that a user only ever sees the
records they own. A record owned by someone else is reported exactly like
a missing one.
"""

import logging

from exceptions import NotFoundError

logger = logging.getLogger(__name__)


class OwnershipScope:
    """Restricts queries and new records to the acting user of a ServiceContext."""

    def __init__(self, context):
        self.context = context

    @property
    def owner_id(self) -> str:
        # Raises PreconditionError when nobody is signed in
        return self.context.owner_id

    def query(self, session, model):
        """Query over model limited to the acting user's records."""
        return session.query(model).filter(model.owner_id == self.owner_id)

    def get(self, session, model, record_id):
        """Owned record by id, or None."""
        if not record_id:
            return None
        return self.query(session, model).filter(model.id == record_id).first()

    def get_or_404(self, session, model, record_id):
        """Owned record by id; NotFoundError when missing or owned by another user."""
        record = self.get(session, model, record_id)
        if record is None:
            logger.debug(f"{model.__name__} {record_id} not visible to owner {self.owner_id}")
            raise NotFoundError(model.__name__, record_id)
        return record

    def attach(self, record):
        """Stamp a new record with the acting user as owner."""
        record.owner_id = self.owner_id
        return record

    def owns(self, record) -> bool:
        return record is not None and record.owner_id == self.owner_id
