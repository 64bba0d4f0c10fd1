"""
Customer Repository - Database access layer for customers and leads.
"""

import enum
import logging
from typing import Dict, List, Optional

from database.enums import ContactMethod, JobStatus, LeadStatus
from database.models import Customer, Job
from services.base_repository import BaseRepository
from validators import normalize_phone, validate_customer

logger = logging.getLogger(__name__)

# Job statuses that keep a customer from being deleted
BLOCKING_JOB_STATUSES = (JobStatus.PENDING.value, JobStatus.IN_PROGRESS.value)


class CustomerSortKey(str, enum.Enum):
    NAME = 'name'
    CREATED_DATE = 'created_date'
    LEAD_STATUS = 'lead_status'


class CustomerRepository(BaseRepository):
    """Repository for customer database operations."""

    model = Customer
    entity_name = 'Customer'

    text_fields = ('name', 'email', 'phone', 'address', 'notes')
    date_fields = ('last_contact_date',)
    enum_fields = {'lead_status': LeadStatus, 'preferred_contact_method': ContactMethod}

    editable_fields = (
        'name', 'email', 'phone', 'address', 'lead_status', 'notes',
        'preferred_contact_method', 'last_contact_date',
    )
    search_columns = ('name', 'email', 'phone', 'address')
    sort_columns = {
        CustomerSortKey.NAME: 'name',
        CustomerSortKey.CREATED_DATE: 'created_date',
        CustomerSortKey.LEAD_STATUS: 'lead_status',
    }
    default_sort = CustomerSortKey.NAME
    default_ascending = True

    def validate(self, data: Dict, creating: bool = True):
        return validate_customer(data)

    def create(self, data: Dict) -> Customer:
        """Create a new customer (lead status defaults to new lead)."""
        values = self.normalize(self._pick(data, self.editable_fields))
        values.setdefault('lead_status', LeadStatus.NEW_LEAD.value)
        values.setdefault('preferred_contact_method', ContactMethod.EMAIL.value)

        self.raise_if_invalid(self.validate(values))

        moment = self.context.now()
        customer = Customer(created_date=moment, updated_at=moment, **values)
        return self._insert(customer)

    def fetch_all(self, lead_status=None, search: Optional[str] = None, sort_by=None,
                  ascending: Optional[bool] = None, limit: Optional[int] = None) -> List[Customer]:
        """List customers, optionally in one lead status (by name by default)."""
        return super().fetch_all(
            search=search, sort_by=sort_by, ascending=ascending, limit=limit,
            lead_status=lead_status,
        )

    def _apply_filters(self, session, query, lead_status=None):
        if lead_status is not None:
            query = query.filter(Customer.lead_status == LeadStatus.coerce(lead_status).value)
        return query

    def _before_update(self, session, record, changes: Dict):
        if 'lead_status' in changes and changes['lead_status'] != record.lead_status:
            logger.info(f"Customer {record.id} lead status: {record.lead_status} -> {changes['lead_status']}")
        record.updated_at = self.context.now()

    def update_lead_status(self, customer_id: str, lead_status) -> Customer:
        """Move a customer to another pipeline stage."""
        return self.update(customer_id, {'lead_status': lead_status})

    def record_contact(self, customer_id: str, when=None) -> Customer:
        """Stamp the last contact date (defaults to now)."""
        return self.update(customer_id, {'last_contact_date': when or self.context.now()})

    def find_by_phone(self, phone: str) -> List[Customer]:
        """Customers whose phone has the same digits."""
        digits = normalize_phone(phone)
        if not digits:
            return []
        return [c for c in self.fetch_all() if normalize_phone(c.phone) == digits]

    def jobs_for(self, customer_id: str) -> List[Job]:
        """Jobs referencing the customer, looked up on every call."""
        with self.store.read_session() as session:
            customer = self.scope.get_or_404(session, Customer, customer_id)
            return self.scope.query(session, Job).filter(
                Job.customer_id == customer.id
            ).order_by(Job.created_date.desc(), Job.created_seq.asc()).all()

    def can_delete(self, customer_id: str) -> bool:
        """False while the customer has pending or in-progress jobs."""
        return not any(job.status in BLOCKING_JOB_STATUSES for job in self.jobs_for(customer_id))

    def _before_delete(self, session, record):
        # Jobs outlive their customer; only the reference is cleared
        detached = session.query(Job).filter(
            Job.owner_id == record.owner_id,
            Job.customer_id == record.id
        ).update({Job.customer_id: None}, synchronize_session=False)
        if detached:
            logger.info(f"Cleared customer {record.id} from {detached} job(s)")
