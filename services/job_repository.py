"""
Job Repository - Database access layer for solar installation jobs.
"""

import enum
import logging
from typing import Dict, List, Optional

from sqlalchemy import func

from database.enums import JobStatus
from database.models import Customer, Installation, Job
from exceptions import NotFoundError
from services.base_repository import BaseRepository
from validators import validate_job, validate_job_status_transition

logger = logging.getLogger(__name__)


class JobSortKey(str, enum.Enum):
    CREATED_DATE = 'created_date'
    CUSTOMER_NAME = 'customer_name'
    REVENUE = 'revenue'
    SYSTEM_SIZE = 'system_size'


class JobRepository(BaseRepository):
    """Repository for job database operations."""

    model = Job
    entity_name = 'Job'

    text_fields = ('customer_name', 'address', 'notes', 'site_visit_notes')
    number_fields = ('system_size', 'estimated_revenue')
    date_fields = ('scheduled_date', 'site_visit_date')
    enum_fields = {'status': JobStatus}

    editable_fields = (
        'customer_name', 'address', 'system_size', 'estimated_revenue', 'status',
        'scheduled_date', 'notes', 'customer_id', 'site_visit_date', 'site_visit_notes',
    )
    search_columns = ('customer_name', 'address', 'notes')
    sort_columns = {
        JobSortKey.CREATED_DATE: 'created_date',
        JobSortKey.CUSTOMER_NAME: 'customer_name',
        JobSortKey.REVENUE: 'estimated_revenue',
        JobSortKey.SYSTEM_SIZE: 'system_size',
    }
    default_sort = JobSortKey.CREATED_DATE
    default_ascending = False  # newest first

    def validate(self, data: Dict, creating: bool = True):
        return validate_job(data, now=self.context.now())

    def create(self, data: Dict) -> Job:
        """Create a new job (status defaults to pending)."""
        values = self.normalize(self._pick(data, self.editable_fields))
        values.setdefault('status', JobStatus.PENDING.value)
        values.setdefault('estimated_revenue', 0.0)

        if values.get('customer_id'):
            customer = self._owned_customer(values['customer_id'])
            # A job opened from a customer inherits its contact details
            if not values.get('customer_name'):
                values['customer_name'] = customer.name
            if not values.get('address'):
                values['address'] = customer.address

        self.raise_if_invalid(self.validate(values))

        moment = self.context.now()
        job = Job(created_date=moment, updated_at=moment, **values)
        return self._insert(job)

    def fetch_all(self, status=None, customer_id: Optional[str] = None, search: Optional[str] = None,
                  sort_by=None, ascending: Optional[bool] = None, limit: Optional[int] = None) -> List[Job]:
        """List jobs with optional status/customer filters (newest first by default)."""
        return super().fetch_all(
            search=search, sort_by=sort_by, ascending=ascending, limit=limit,
            status=status, customer_id=customer_id,
        )

    def _apply_filters(self, session, query, status=None, customer_id=None):
        if status is not None:
            query = query.filter(Job.status == JobStatus.coerce(status).value)
        if customer_id is not None:
            query = query.filter(Job.customer_id == customer_id)
        return query

    def _before_update(self, session, record, changes: Dict):
        if 'customer_id' in changes and changes['customer_id']:
            if self.scope.get(session, Customer, changes['customer_id']) is None:
                raise NotFoundError('Customer', changes['customer_id'])
        new_status = changes.get('status')
        if new_status is not None and new_status != record.status:
            self.raise_business_rule(validate_job_status_transition(record.status, new_status))
            logger.info(f"Job {record.id} status: {record.status} -> {new_status}")
        record.updated_at = self.context.now()

    def update_status(self, job_id: str, status) -> Job:
        """Move a job to a new status; BusinessRuleError for a disallowed transition."""
        new_status = self.coerce_enum('status', JobStatus, status)

        def apply(session, job):
            self.raise_business_rule(validate_job_status_transition(job.status, new_status))
            logger.info(f"Job {job.id} status: {job.status} -> {new_status}")
            job.status = new_status
            job.updated_at = self.context.now()

        return self._modify(job_id, apply, action='Updated status of')

    def _before_delete(self, session, record):
        # Installations cannot outlive their job
        removed = session.query(Installation).filter(
            Installation.owner_id == record.owner_id,
            Installation.job_id == record.id
        ).delete(synchronize_session=False)
        if removed:
            logger.info(f"Deleted {removed} installation(s) of job {record.id}")

    def jobs_for_customer(self, customer_id: str) -> List[Job]:
        """Jobs linked to a customer, newest first."""
        return self.fetch_all(customer_id=customer_id)

    def count_by_status(self) -> Dict[str, int]:
        """Number of jobs per status value (every status present, zero if unused)."""
        counts = {status.value: 0 for status in JobStatus}
        with self.store.read_session() as session:
            rows = self.scope.query(session, Job).with_entities(
                Job.status, func.count(Job.id)
            ).group_by(Job.status).all()
        for status, total in rows:
            counts[status] = total
        return counts

    def _owned_customer(self, customer_id: str) -> Customer:
        with self.store.read_session() as session:
            return self.scope.get_or_404(session, Customer, customer_id)
